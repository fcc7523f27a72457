import unittest

from botocore.exceptions import ClientError, EndpointConnectionError

from runclub.errors import StorageError, storage_error_from
from runclub.retry import with_retry


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "GetObject")


class WithRetryTests(unittest.TestCase):
    def setUp(self):
        self.delays = []

    def _flaky(self, failures, code="NetworkingError"):
        calls = {"count": 0}

        def operation():
            calls["count"] += 1
            if calls["count"] <= failures:
                raise StorageError("flaky", code=code)
            return "ok"

        return operation, calls

    def test_retries_with_exponential_backoff(self):
        operation, calls = self._flaky(2)
        result = with_retry(operation, sleep=self.delays.append)
        self.assertEqual(result, "ok")
        self.assertEqual(calls["count"], 3)
        self.assertEqual(self.delays, [1.0, 2.0])

    def test_gives_up_after_last_attempt(self):
        operation, calls = self._flaky(5, code="ThrottlingException")
        with self.assertRaises(StorageError) as ctx:
            with_retry(operation, base_delay=0.5, sleep=self.delays.append)
        self.assertEqual(ctx.exception.code, "ThrottlingException")
        self.assertEqual(calls["count"], 3)
        self.assertEqual(self.delays, [0.5, 1.0])

    def test_non_retryable_errors_raise_immediately(self):
        operation, calls = self._flaky(1, code="AccessDenied")
        with self.assertRaises(StorageError):
            with_retry(operation, sleep=self.delays.append)
        self.assertEqual(calls["count"], 1)
        self.assertEqual(self.delays, [])

    def test_other_exceptions_are_not_retried(self):
        calls = []

        def operation():
            calls.append(1)
            raise KeyError("id")

        with self.assertRaises(KeyError):
            with_retry(operation, sleep=self.delays.append)
        self.assertEqual(len(calls), 1)


class StorageErrorMappingTests(unittest.TestCase):
    def test_missing_file(self):
        error = storage_error_from(_client_error("NoSuchKey"), "load", "members.json")
        self.assertEqual(error.code, "NoSuchKey")
        self.assertEqual(error.message, "File not found: members.json")
        self.assertFalse(error.retryable)

    def test_throttling_is_retryable(self):
        error = storage_error_from(
            _client_error("ProvisionedThroughputExceededException"), "save", "RunningClub-Records"
        )
        self.assertTrue(error.retryable)
        self.assertIn("Too many requests", error.message)

    def test_connection_errors_are_network_errors(self):
        error = storage_error_from(
            EndpointConnectionError(endpoint_url="https://s3.example"), "load", "members.json"
        )
        self.assertEqual(error.code, "NetworkingError")
        self.assertTrue(error.retryable)

    def test_auth_errors(self):
        error = storage_error_from(_client_error("InvalidAccessKeyId"), "load", "x")
        self.assertIn("authentication", error.message)

    def test_default_messages(self):
        load = storage_error_from(_client_error("Weird"), "load", "x")
        save = storage_error_from(_client_error("Weird"), "save", "x")
        self.assertIn("load", load.message)
        self.assertIn("save", save.message)

    def test_storage_errors_pass_through(self):
        original = StorageError("already wrapped", code="InvalidData")
        self.assertIs(storage_error_from(original, "load", "x"), original)


if __name__ == "__main__":
    unittest.main()
