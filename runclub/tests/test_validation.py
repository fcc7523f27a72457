import unittest

from runclub.errors import ValidationError
from runclub.validation import (
    validate_date,
    validate_distance,
    validate_email,
    validate_name,
    validate_pace,
    validate_reward,
    validate_target_km,
    validate_time,
)


class ValidationTests(unittest.TestCase):
    def test_name_is_trimmed(self):
        self.assertEqual(validate_name("  Minji "), "Minji")

    def test_name_length_limits(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_name("   ")
        self.assertEqual(ctx.exception.field, "name")
        with self.assertRaises(ValidationError):
            validate_name("x" * 51)
        self.assertEqual(validate_name("x" * 50), "x" * 50)

    def test_title_uses_its_own_field_and_limit(self):
        title = "t" * 100
        self.assertEqual(validate_name(title, "title", 100), title)
        with self.assertRaises(ValidationError) as ctx:
            validate_name(None, "title", 100)
        self.assertEqual(ctx.exception.field, "title")

    def test_distance_bounds(self):
        self.assertEqual(validate_distance("5.5"), 5.5)
        self.assertEqual(validate_distance(0.1), 0.1)
        self.assertEqual(validate_distance(100), 100.0)
        for bad in (0, 0.05, 100.1, -3, "far", None, float("nan")):
            with self.assertRaises(ValidationError):
                validate_distance(bad)

    def test_pace(self):
        self.assertIsNone(validate_pace(""))
        self.assertIsNone(validate_pace(None))
        self.assertEqual(validate_pace("5:30"), "5:30")
        self.assertEqual(validate_pace("12:05"), "12:05")
        for bad in ("5:60", "530", "5:3", "123:00", "5:30\n", 530):
            with self.assertRaises(ValidationError):
                validate_pace(bad)

    def test_date(self):
        self.assertEqual(validate_date("2024-02-29"), "2024-02-29")
        for bad in ("2023-02-29", "2024/01/01", "", None, "24-01-01", "2024-05-01\n"):
            with self.assertRaises(ValidationError):
                validate_date(bad)

    def test_date_error_names_field(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_date("soon", "join_date")
        self.assertEqual(ctx.exception.field, "join_date")

    def test_time(self):
        self.assertEqual(validate_time(""), "")
        self.assertEqual(validate_time("06:30"), "06:30")
        for bad in ("24:00", "6:30", "06:61", "06:30\n"):
            with self.assertRaises(ValidationError):
                validate_time(bad)

    def test_email(self):
        self.assertIsNone(validate_email(" "))
        self.assertEqual(validate_email(" a@b.kr "), "a@b.kr")
        with self.assertRaises(ValidationError):
            validate_email("not-an-email")
        with self.assertRaises(ValidationError):
            validate_email("a@b.kr\nx")

    def test_milestone_fields(self):
        self.assertEqual(validate_target_km("250"), 250.0)
        with self.assertRaises(ValidationError):
            validate_target_km(0)
        for bad in (float("nan"), float("inf"), "-inf"):
            with self.assertRaises(ValidationError):
                validate_target_km(bad)
        self.assertEqual(validate_reward(" Pizza party "), "Pizza party")
        with self.assertRaises(ValidationError):
            validate_reward("")


if __name__ == "__main__":
    unittest.main()
