import unittest
from datetime import date

from runclub import calendar_view
from runclub.models import Schedule


class CalendarViewTests(unittest.TestCase):
    def setUp(self):
        self.schedules = [
            Schedule(id="s1", date="2024-05-10", title="Han river run", time="07:00"),
            Schedule(id="s2", date="2024-05-10", title="Recovery jog", time="06:00"),
            Schedule(id="s3", date="2024-06-02", title="Trail day"),
        ]

    def test_grid_starts_sunday_and_ends_saturday(self):
        days = calendar_view.build_month(2024, 5, self.schedules, date(2024, 5, 15))
        self.assertEqual(len(days), 35)
        self.assertEqual(days[0].date, date(2024, 4, 28))
        self.assertEqual(days[-1].date, date(2024, 6, 1))
        self.assertFalse(days[0].is_current_month)
        self.assertTrue(days[3].is_current_month)

    def test_days_carry_schedules_and_flags(self):
        days = calendar_view.build_month(
            2024, 5, self.schedules, date(2024, 5, 15), selected=date(2024, 5, 10)
        )
        by_date = {d.date: d for d in days}
        tenth = by_date[date(2024, 5, 10)]
        self.assertTrue(tenth.has_schedule)
        self.assertTrue(tenth.is_selected)
        self.assertEqual([s.id for s in tenth.schedules], ["s2", "s1"])
        self.assertTrue(by_date[date(2024, 5, 15)].is_today)
        self.assertFalse(by_date[date(2024, 5, 11)].has_schedule)

    def test_month_view(self):
        view = calendar_view.month_view(2024, 12, self.schedules, date(2024, 12, 1))
        self.assertEqual(view["previous"], {"year": 2024, "month": 11})
        self.assertEqual(view["next"], {"year": 2025, "month": 1})
        self.assertEqual(view["schedules"], {})

        view = calendar_view.month_view(2024, 5, self.schedules, date(2024, 5, 1))
        self.assertEqual(set(view["schedules"]), {"s1", "s2"})
        self.assertEqual(view["days"][0]["date"], "2024-04-28")

    def test_previous_month_wraps_year(self):
        self.assertEqual(calendar_view.previous_month(2024, 1), (2023, 12))

    def test_upcoming_schedules(self):
        upcoming = calendar_view.upcoming_schedules(self.schedules, date(2024, 5, 10))
        self.assertEqual([s.id for s in upcoming], ["s2", "s1", "s3"])
        upcoming = calendar_view.upcoming_schedules(
            self.schedules, date(2024, 5, 11), limit=1
        )
        self.assertEqual([s.id for s in upcoming], ["s3"])


if __name__ == "__main__":
    unittest.main()
