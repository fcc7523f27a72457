import base64
import json
import unittest
from unittest.mock import MagicMock, patch

from runclub.lambda_handler import handle, lambda_handler
from runclub.storage import InMemoryStorageClient

KEY = "running-club-data.json"


class LambdaHandlerTests(unittest.TestCase):
    def setUp(self):
        self.storage = InMemoryStorageClient()

    def _call(self, event):
        response = handle(event, self.storage, KEY)
        body = json.loads(response["body"]) if response["body"] else None
        return response, body

    def test_options_preflight(self):
        response, body = self._call({"httpMethod": "OPTIONS"})
        self.assertEqual(response["statusCode"], 200)
        self.assertIsNone(body)
        self.assertEqual(response["headers"]["Access-Control-Allow-Origin"], "*")

    def test_get_returns_initial_document_when_missing(self):
        response, body = self._call({"httpMethod": "GET"})
        self.assertEqual(response["statusCode"], 200)
        self.assertEqual(body["members"], [])
        self.assertEqual(body["schedules"], [])
        self.assertIn("lastUpdated", body)

    def test_post_then_get(self):
        payload = {"members": [{"id": 1, "name": "Minji"}], "records": [], "schedules": []}
        response, body = self._call({"httpMethod": "POST", "body": json.dumps(payload)})
        self.assertEqual(response["statusCode"], 200)
        self.assertIn("timestamp", body)

        stored = json.loads(self.storage.get_bytes(KEY))
        self.assertEqual(stored["lastUpdated"], body["timestamp"])

        _, fetched = self._call({"requestContext": {"http": {"method": "GET"}}})
        self.assertEqual(fetched["members"][0]["name"], "Minji")

    def test_post_base64_body(self):
        payload = {"members": [], "records": [], "schedules": []}
        event = {
            "httpMethod": "POST",
            "isBase64Encoded": True,
            "body": base64.b64encode(json.dumps(payload).encode()).decode(),
        }
        response, _ = self._call(event)
        self.assertEqual(response["statusCode"], 200)

    def test_post_rejects_undecodable_base64_body(self):
        for body in ("!!!notbase64", base64.b64encode(b"\xff\xfe").decode()):
            event = {"httpMethod": "POST", "isBase64Encoded": True, "body": body}
            response, payload = self._call(event)
            self.assertEqual(response["statusCode"], 400)
            self.assertIn("error", payload)
        self.assertNotIn(KEY, self.storage.stored_objects)

    def test_post_rejects_incomplete_data(self):
        response, body = self._call(
            {"httpMethod": "POST", "body": json.dumps({"members": [], "records": []})}
        )
        self.assertEqual(response["statusCode"], 400)
        self.assertIn("error", body)
        response, _ = self._call({"httpMethod": "POST", "body": "{oops"})
        self.assertEqual(response["statusCode"], 400)

    def test_other_methods(self):
        response, _ = self._call({"httpMethod": "PUT"})
        self.assertEqual(response["statusCode"], 405)

    def test_unexpected_errors(self):
        storage = MagicMock()
        storage.get_bytes.side_effect = RuntimeError("bucket exploded")
        response = handle({"httpMethod": "GET"}, storage, KEY)
        self.assertEqual(response["statusCode"], 500)
        self.assertEqual(json.loads(response["body"])["details"], "bucket exploded")

    def test_lambda_handler_uses_configured_storage(self):
        with patch("runclub.lambda_handler.get_storage_client", return_value=self.storage):
            response = lambda_handler({"httpMethod": "GET"}, None)
        self.assertEqual(response["statusCode"], 200)


if __name__ == "__main__":
    unittest.main()
