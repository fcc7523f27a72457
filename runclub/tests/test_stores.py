import json
import unittest
from datetime import datetime
from unittest.mock import MagicMock

from runclub.dates import KST
from runclub.errors import NotFoundError, StorageError, ValidationError
from runclub.models import ClubData, Member, Milestone, RunRecord, Schedule
from runclub.storage import InMemoryStorageClient
from runclub.stores import DocumentClubStore


def _member(member_id="m1", name="Minji"):
    return Member(id=member_id, name=name, join_date="2024-05-01")


class DocumentClubStoreTests(unittest.TestCase):
    def setUp(self):
        self.storage = InMemoryStorageClient()
        self.store = DocumentClubStore(self.storage, retry_delay=0)

    def _document(self, path):
        return json.loads(self.storage.stored_objects[path])

    def test_missing_document_is_created(self):
        self.assertEqual(self.store.list_members(), [])
        document = self._document("members.json")
        self.assertEqual(document["members"], [])
        self.assertIn("lastUpdated", document)

    def test_put_inserts_then_overwrites(self):
        self.store.put_member(_member())
        self.store.put_member(Member(id="m1", name="Minji Kim", join_date="2024-05-01"))
        members = self.store.list_members()
        self.assertEqual(len(members), 1)
        self.assertEqual(members[0].name, "Minji Kim")
        self.assertEqual(self._document("members.json")["members"][0]["joinDate"], "2024-05-01")

    def test_delete_records(self):
        for record_id in ("r1", "r2", "r3"):
            self.store.put_record(
                RunRecord(id=record_id, member_id="m1", distance=5, date="2024-05-01")
            )
        self.store.delete_records(["r1", "r3"])
        self.assertEqual([r.id for r in self.store.list_records()], ["r2"])

    def test_member_records_newest_first(self):
        self.store.put_record(RunRecord(id="r1", member_id="m1", distance=5, date="2024-05-01"))
        self.store.put_record(RunRecord(id="r2", member_id="m2", distance=5, date="2024-05-03"))
        self.store.put_record(RunRecord(id="r3", member_id="m1", distance=5, date="2024-05-02"))
        self.assertEqual([r.id for r in self.store.list_member_records("m1")], ["r3", "r1"])

    def test_schedules_by_date(self):
        self.store.put_schedule(Schedule(id="s1", date="2024-05-10", title="Run"))
        self.store.put_schedule(Schedule(id="s2", date="2024-05-11", title="Run"))
        self.assertEqual([s.id for s in self.store.list_schedules_by_date("2024-05-11")], ["s2"])

    def test_legacy_numeric_ids_and_dates(self):
        self.storage.upload_json(
            "records.json",
            {
                "records": [
                    {
                        "id": 1700000000000,
                        "memberId": 17,
                        "distance": "7.5",
                        "date": "2024. 5. 1.",
                        "originalDate": "2024-05-01T06:00:00.000Z",
                    }
                ]
            },
        )
        record = self.store.list_records()[0]
        self.assertEqual(record.id, "1700000000000")
        self.assertEqual(record.member_id, "17")
        self.assertEqual(record.distance, 7.5)
        self.assertEqual(record.date, "2024-05-01")

    def test_invalid_json_is_reported(self):
        self.storage.stored_objects["members.json"] = b"{not json"
        with self.assertRaises(StorageError) as ctx:
            self.store.list_members()
        self.assertEqual(ctx.exception.code, "InvalidData")

    def test_replace_all_and_load_all(self):
        data = ClubData(
            members=[_member()],
            records=[RunRecord(id="r1", member_id="m1", distance=3, date="2024-05-01")],
            schedules=[Schedule(id="s1", date="2024-05-10", title="Run", participants=["m1"])],
            milestones=[Milestone(id="ms1", target_km=100, reward="Dinner")],
        )
        self.store.replace_all(data)
        loaded = self.store.load_all()
        self.assertEqual(loaded.to_document(), data.to_document())

    def test_backups(self):
        self.store.put_member(_member())
        data = self.store.load_all()
        key = self.store.save_backup(data, now=datetime(2024, 5, 15, 9, 30, tzinfo=KST))
        self.assertEqual(key, "backups/backup-2024-05-15T09-30-00-000000.json")

        payload = self._document(key)
        self.assertEqual(payload["version"], "2.0")
        self.assertIn("backupDate", payload)

        self.assertEqual([b["key"] for b in self.store.list_backups()], [key])
        restored = self.store.load_backup(key)
        self.assertEqual([m.id for m in restored.members], ["m1"])

    def test_load_backup_rejects_other_keys(self):
        with self.assertRaises(ValidationError) as ctx:
            self.store.load_backup("members.json")
        self.assertEqual(ctx.exception.field, "key")
        with self.assertRaises(NotFoundError) as ctx:
            self.store.load_backup("backups/backup-missing.json")
        self.assertEqual(ctx.exception.item_id, "backups/backup-missing.json")

    def test_retryable_load_errors_are_retried(self):
        storage = MagicMock()
        storage.get_bytes.side_effect = [
            StorageError("down", code="ServiceUnavailable"),
            json.dumps({"members": [{"id": "m1", "name": "Minji"}]}).encode(),
        ]
        store = DocumentClubStore(storage, retry_delay=0)
        self.assertEqual([m.id for m in store.list_members()], ["m1"])
        self.assertEqual(storage.get_bytes.call_count, 2)

    def test_load_errors_propagate(self):
        storage = MagicMock()
        storage.get_bytes.side_effect = StorageError("denied", code="AccessDenied")
        store = DocumentClubStore(storage, retry_delay=0)
        with self.assertRaises(StorageError):
            store.load_all()

    def test_check_connection(self):
        self.assertTrue(self.store.check_connection())
        storage = MagicMock()
        storage.check.side_effect = StorageError("denied", code="AccessDenied")
        self.assertFalse(DocumentClubStore(storage, retry_delay=0).check_connection())


if __name__ == "__main__":
    unittest.main()
