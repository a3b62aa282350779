# appointments/tests/test_timeutils.py
from datetime import date, time

from django.test import SimpleTestCase

from appointments.exceptions import InvalidDateFormat, InvalidTimeFormat
from appointments.timeutils import (
    Interval, contains, day_of_week, format_date, merge_intervals, overlaps, parse_date, to_hhmm,
    to_minutes, weekday_dates,
)


class MinuteConversionTests(SimpleTestCase):
    """Test cases for "HH:MM" <-> minutes"""

    def test_to_minutes(self):
        self.assertEqual(to_minutes('00:00'), 0)
        self.assertEqual(to_minutes('09:45'), 585)
        self.assertEqual(to_minutes('23:59'), 1439)
        self.assertEqual(to_minutes(time(13, 30)), 810)

    def test_to_minutes_accepts_seconds_from_the_database(self):
        self.assertEqual(to_minutes('14:15:00'), 855)

    def test_to_minutes_rejects_malformed_input(self):
        for value in ['24:00', '9:00', '09:60', 'nueve', '', None, 540]:
            with self.assertRaises(InvalidTimeFormat, msg=repr(value)):
                to_minutes(value)

    def test_to_hhmm(self):
        self.assertEqual(to_hhmm(0), '00:00')
        self.assertEqual(to_hhmm(585), '09:45')
        self.assertEqual(to_hhmm(1439), '23:59')

    def test_to_hhmm_rejects_out_of_range(self):
        for value in [-1, 1440, '600', 9.5, True]:
            with self.assertRaises(InvalidTimeFormat, msg=repr(value)):
                to_hhmm(value)

    def test_round_trip_over_whole_day(self):
        for minutes in range(0, 1440, 7):
            self.assertEqual(to_minutes(to_hhmm(minutes)), minutes)


class IntervalTests(SimpleTestCase):
    """Half-open interval predicates"""

    def test_touching_intervals_do_not_overlap(self):
        self.assertFalse(overlaps(540, 585, 585, 630))
        self.assertFalse(overlaps(585, 630, 540, 585))

    def test_overlapping_intervals(self):
        self.assertTrue(overlaps(540, 600, 570, 630))
        self.assertTrue(overlaps(540, 600, 550, 560))
        self.assertTrue(overlaps(550, 560, 540, 600))

    def test_contains(self):
        self.assertTrue(contains(540, 840, 540, 840))
        self.assertTrue(contains(540, 840, 600, 645))
        self.assertFalse(contains(540, 840, 800, 845))
        self.assertFalse(contains(540, 840, 500, 560))

    def test_merge_intervals(self):
        merged = merge_intervals([(600, 630), (540, 585), (585, 600), (700, 720), (710, 715), (800, 800)])
        self.assertEqual(merged, [Interval(540, 630), Interval(700, 720)])

    def test_merge_empty(self):
        self.assertEqual(merge_intervals([]), [])


class DateTests(SimpleTestCase):

    def test_parse_and_format(self):
        self.assertEqual(parse_date('2024-06-12'), date(2024, 6, 12))
        self.assertEqual(parse_date(date(2024, 6, 12)), date(2024, 6, 12))
        self.assertEqual(format_date(date(2024, 6, 12)), '2024-06-12')

    def test_parse_rejects_invalid(self):
        for value in ['2024-02-30', '12/06/2024', '2024-6-1', None]:
            with self.assertRaises(InvalidDateFormat, msg=repr(value)):
                parse_date(value)

    def test_day_of_week_starts_on_sunday(self):
        self.assertEqual(day_of_week('2024-06-09'), 0)  # Sunday
        self.assertEqual(day_of_week('2024-06-10'), 1)  # Monday
        self.assertEqual(day_of_week('2024-06-15'), 6)  # Saturday

    def test_weekday_dates(self):
        self.assertEqual(
            weekday_dates(1, date(2024, 6, 5), 3),
            [date(2024, 6, 10), date(2024, 6, 17), date(2024, 6, 24)]
        )
        # The start date itself counts when it falls on the day
        self.assertEqual(weekday_dates(1, date(2024, 6, 10), 1), [date(2024, 6, 10)])
