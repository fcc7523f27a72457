import unittest

from runclub.db import SqlClubStore
from runclub.models import ClubData, Member, Milestone, RunRecord, Schedule


class SqlClubStoreTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL store.
    """

    def setUp(self):
        self.store = SqlClubStore("sqlite+pysqlite:///:memory:", retry_delay=0)

    def test_requires_database_url(self):
        with self.assertRaises(ValueError):
            SqlClubStore("")

    def test_member_roundtrip_and_overwrite(self):
        member = Member(
            id="m1",
            name="Minji",
            join_date="2024-05-01",
            email="minji@example.com",
            created_at="2024-05-01T09:00:00.000+09:00",
            updated_at="2024-05-01T09:00:00.000+09:00",
        )
        self.store.put_member(member)
        member.total_distance = 12.5
        member.record_count = 2
        self.store.put_member(member)

        members = self.store.list_members()
        self.assertEqual(len(members), 1)
        self.assertEqual(members[0], member)

    def test_schedule_participants_roundtrip(self):
        schedule = Schedule(
            id="s1", date="2024-05-10", title="Morning run", participants=["m1", "m2"]
        )
        self.store.put_schedule(schedule)
        self.assertEqual(self.store.list_schedules_by_date("2024-05-10")[0].participants, ["m1", "m2"])
        self.assertEqual(self.store.list_schedules_by_date("2024-05-11"), [])

    def test_member_records_and_batch_delete(self):
        for record_id, member_id, day in (
            ("r1", "m1", "2024-05-01"),
            ("r2", "m1", "2024-05-03"),
            ("r3", "m2", "2024-05-02"),
        ):
            self.store.put_record(
                RunRecord(id=record_id, member_id=member_id, distance=5.0, date=day)
            )
        self.assertEqual([r.id for r in self.store.list_member_records("m1")], ["r2", "r1"])

        self.store.delete_records(["r1", "r3"])
        self.assertEqual([r.id for r in self.store.list_records()], ["r2"])

    def test_milestones_sorted_and_deleted(self):
        self.store.put_milestone(Milestone(id="b", target_km=500, reward="Party"))
        self.store.put_milestone(Milestone(id="a", target_km=100, reward="Coffee", is_active=False))
        milestones = self.store.list_milestones()
        self.assertEqual([m.id for m in milestones], ["a", "b"])
        self.assertFalse(milestones[0].is_active)
        self.store.delete_milestone("a")
        self.assertEqual([m.id for m in self.store.list_milestones()], ["b"])

    def test_replace_all(self):
        self.store.put_member(Member(id="old", name="Old", join_date="2024-01-01"))
        data = ClubData(
            members=[Member(id="m1", name="Minji", join_date="2024-05-01")],
            records=[RunRecord(id="r1", member_id="m1", distance=3.0, date="2024-05-02")],
            schedules=[Schedule(id="s1", date="2024-05-10", title="Run")],
            milestones=[Milestone(id="ms1", target_km=100.0, reward="Dinner")],
        )
        self.store.replace_all(data)
        self.assertEqual(self.store.load_all(), data)

    def test_check_connection(self):
        self.assertTrue(self.store.check_connection())


if __name__ == "__main__":
    unittest.main()
