# appointments/timeutils.py
"""
Minute-of-day arithmetic used by every scheduling computation.

Times are compared as integer minutes since midnight and exchanged as
"HH:MM" strings; dates are exchanged as "YYYY-MM-DD". Intervals are
half-open: [start, end).
"""
import re
from collections import namedtuple
from datetime import date, datetime, time, timedelta

from .exceptions import InvalidDateFormat, InvalidTimeFormat

MINUTES_PER_DAY = 24 * 60

# Seconds are tolerated because database drivers render TIME columns as HH:MM:SS
_TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$')
_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

DAY_NAMES = ['Domingo', 'Lunes', 'Martes', 'Miércoles', 'Jueves', 'Viernes', 'Sábado']


Interval = namedtuple('Interval', ['start', 'end'])


def to_minutes(value):
    """Convert "HH:MM" (or a datetime.time) to minutes since midnight"""
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if not isinstance(value, str):
        raise InvalidTimeFormat(f'Invalid time value: {value!r}')

    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidTimeFormat(f'Invalid time format: {value!r} (expected HH:MM)')
    return int(match.group(1)) * 60 + int(match.group(2))


def to_hhmm(minutes):
    """Convert minutes since midnight to "HH:MM" """
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidTimeFormat(f'Invalid minute value: {minutes!r}')
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise InvalidTimeFormat(f'Minute value out of range: {minutes}')
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def to_time(value):
    """"HH:MM" -> datetime.time"""
    minutes = to_minutes(value)
    return time(minutes // 60, minutes % 60)


def overlaps(a_start, a_end, b_start, b_end):
    """
    True iff [a_start, a_end) and [b_start, b_end) intersect.
    Intervals that only touch (a_end == b_start) do not overlap.
    """
    return a_start < b_end and b_start < a_end


def contains(outer_start, outer_end, start, end):
    """True iff [start, end) lies entirely inside [outer_start, outer_end)"""
    return outer_start <= start and end <= outer_end


def merge_intervals(intervals):
    """
    Sort and merge overlapping or touching intervals.
    Empty or inverted intervals are dropped.
    """
    ordered = sorted(Interval(start, end) for start, end in intervals if start < end)
    merged = []
    for interval in ordered:
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, interval.end))
        else:
            merged.append(interval)
    return merged


def parse_date(value):
    """Accept a date or a "YYYY-MM-DD" string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_PATTERN.match(value.strip()):
        raise InvalidDateFormat(f'Invalid date format: {value!r} (expected YYYY-MM-DD)')
    try:
        return datetime.strptime(value.strip(), '%Y-%m-%d').date()
    except ValueError:
        raise InvalidDateFormat(f'Invalid date: {value!r}')


def format_date(value):
    return parse_date(value).strftime('%Y-%m-%d')


def day_of_week(value):
    """Day of week of a calendar date, 0 = Sunday ... 6 = Saturday"""
    return (parse_date(value).weekday() + 1) % 7


def weekday_dates(day, start_date, weeks):
    """The next ``weeks`` dates falling on ``day`` (0 = Sunday), from start_date inclusive"""
    current = parse_date(start_date)
    current += timedelta(days=(day - day_of_week(current)) % 7)
    dates = []
    for _ in range(weeks):
        dates.append(current)
        current += timedelta(days=7)
    return dates
