"""
Next occurrence computation for recurring tasks.

Every advancer starts from the task's start date and returns the first
occurrence strictly after `now`. `now` may be a datetime or a date; a
candidate date is "after now" when its midnight is later than `now`.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from .errors import FormatError
from .rules import (
    LAST,
    SECOND_TO_LAST,
    EveryNDays,
    Monthly,
    NoRepeat,
    Rule,
    Weekly,
    Yearly,
    format_date,
    parse_date,
    parse_rule,
)

Instant = Union[datetime, date]


def _as_naive(now: Instant) -> Instant:
    if isinstance(now, datetime) and now.tzinfo is not None:
        return now.replace(tzinfo=None)
    return now


def after_now(candidate: date, now: Instant) -> bool:
    if isinstance(now, datetime):
        return datetime.combine(candidate, time.min) > now
    return candidate > now


def _now_day(now: Instant) -> date:
    return now.date() if isinstance(now, datetime) else now


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def add_years(d: date, years: int) -> date:
    """
    Add calendar years with civil rollover: Feb 29 becomes Mar 1 when the
    target year is not a leap year.
    """
    try:
        return d.replace(year=d.year + years)
    except ValueError:
        if (d.month, d.day) != (2, 29):
            raise
        return date(d.year + years, 3, 1)


def _advance_yearly(now: Instant, start: date, rule: Yearly) -> date:
    current = start
    while True:
        current = add_years(current, 1)
        if after_now(current, now):
            return current


def _advance_days(now: Instant, start: date, rule: EveryNDays) -> date:
    step = timedelta(days=rule.n)
    current = start
    while True:
        current += step
        if after_now(current, now):
            return current


def _advance_weekly(now: Instant, start: date, rule: Weekly) -> date:
    # days on or before now's calendar day never qualify
    current = max(start, _now_day(now))
    while True:
        current += timedelta(days=1)
        if current.isoweekday() in rule.days and after_now(current, now):
            return current


def _month_targets(year: int, month: int, days: tuple):
    last = last_day_of_month(year, month)
    for day in days:
        if day == LAST:
            yield last
        elif day == SECOND_TO_LAST:
            yield last - timedelta(days=1)
        elif day <= last.day:
            yield date(year, month, day)


def _advance_monthly(now: Instant, start: date, rule: Monthly) -> date:
    # months before now's month only hold dates already passed
    month_start = max(start.replace(day=1), _now_day(now).replace(day=1))

    while True:
        if month_start.month in rule.months:
            for target in _month_targets(month_start.year, month_start.month, rule.days):
                if after_now(target, now):
                    return target
        month_start += relativedelta(months=1)


advancers = {
    Yearly: _advance_yearly,
    EveryNDays: _advance_days,
    Weekly: _advance_weekly,
    Monthly: _advance_monthly,
}


def next_occurrence(now: Instant, start: date, rule: Rule) -> Optional[date]:
    """
    Return the first occurrence of `rule` strictly after `now`, scanning from
    `start`, or None for a single-occurrence rule.

    Raises FormatError when the next occurrence falls past year 9999.
    """
    if isinstance(rule, NoRepeat):
        return None
    try:
        return advancers[type(rule)](_as_naive(now), start, rule)
    except (ValueError, OverflowError) as e:
        raise FormatError(f"next date after {format_date(start)} is out of range: {e}") from None


def next_date(now: Instant, start: str, repeat: str) -> str:
    """
    Compute the next occurrence for a stored task.

    Args:
        now: reference instant; occurrences must be strictly after it.
        start: the task date as 'YYYYMMDD'.
        repeat: the recurrence rule string.

    Returns:
        The next date as 'YYYYMMDD', or "" when `repeat` is empty. The start
        date is not validated for an empty rule.

    Raises:
        FormatError: `start` or `repeat` is malformed, or the next date is
        out of range.
    """
    if repeat is None or repeat == "":
        return ""
    start_date = parse_date(start)
    rule = parse_rule(repeat)
    return format_date(next_occurrence(now, start_date, rule))
