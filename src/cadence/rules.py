import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Union

from .errors import FormatError

DATE_FMT = "%Y%m%d"

MAX_INTERVAL = 400
MAX_WEEKDAY = 7
MAX_MONTHDAY = 31
MAX_MONTH = 12

# -2 and -1 count back from the end of the month
SECOND_TO_LAST = -2
LAST = -1

DATE_REGEX = re.compile(r"^[0-9]{8}$")
INT_REGEX = re.compile(r"^[+-]?[0-9]+$")


@dataclass(frozen=True)
class NoRepeat:
    pass


@dataclass(frozen=True)
class Yearly:
    pass


@dataclass(frozen=True)
class EveryNDays:
    n: int


@dataclass(frozen=True)
class Weekly:
    days: frozenset


@dataclass(frozen=True)
class Monthly:
    days: tuple
    months: frozenset = frozenset(range(1, MAX_MONTH + 1))


Rule = Union[NoRepeat, Yearly, EveryNDays, Weekly, Monthly]


def parse_date(value: str) -> date:
    """
    Parse a 'YYYYMMDD' string into a date.

    >>> parse_date("20240229")
    datetime.date(2024, 2, 29)
    """
    if not isinstance(value, str) or not DATE_REGEX.match(value):
        raise FormatError(f"invalid date {value!r}: expected YYYYMMDD")
    try:
        return datetime.strptime(value, DATE_FMT).date()
    except ValueError:
        raise FormatError(f"invalid date {value!r}: not a calendar date") from None


def format_date(d: date) -> str:
    return d.strftime(DATE_FMT)


def integer(arg: str, min: int, max: int, zero: bool, typ: str) -> int:
    """
    :param arg: decimal integer string, optionally signed
    :param min: minimum allowed
    :param max: maximum allowed
    :param zero: zero not allowed if False
    :param typ: label for message
    :return: the integer or raise FormatError
    """
    if not INT_REGEX.match(arg):
        raise FormatError(f"{typ}: {arg!r} is not an integer")
    value = int(arg)
    if value < min:
        msg = f"{value} is less than the allowed minimum {min}"
    elif value > max:
        msg = f"{value} is greater than the allowed maximum {max}"
    elif not zero and value == 0:
        msg = "0 is not allowed"
    else:
        return value
    raise FormatError(f"{typ}: {msg}")


def integer_list(arg: str, min: int, max: int, zero: bool, typ: str) -> list[int]:
    """
    Parse a comma separated list of integers, collecting every bad entry.

    >>> integer_list("1,3", 1, 7, False, "weekdays")
    [1, 3]
    """
    ret = []
    problems = []
    for part in arg.split(","):
        try:
            ret.append(integer(part, min, max, zero, typ))
        except FormatError as e:
            problems.append(str(e).removeprefix(f"{typ}: "))
    if problems:
        raise FormatError(f"{typ}: {'; '.join(problems)}")
    return ret


def arrange_special_days(days: list[int]) -> tuple:
    """
    Sort month days ascending with -2 and then -1 moved behind the regular days.

    >>> arrange_special_days([-1, 15, -2, 1])
    (1, 15, -2, -1)
    """
    ordered = sorted(days)
    regular = [d for d in ordered if d > 0]
    second_to_last = [d for d in ordered if d == SECOND_TO_LAST]
    last = [d for d in ordered if d == LAST]
    return tuple(regular + second_to_last + last)


def _expect_args(keyword: str, args: list[str], required: int, strict: bool = False):
    # trailing tokens are ignored unless strict
    if len(args) < required:
        raise FormatError(f"'{keyword}' rule is missing arguments")
    if strict and len(args) > required:
        raise FormatError(f"'{keyword}' rule has unexpected arguments: {args}")


def do_yearly(args: list[str]) -> Yearly:
    _expect_args("y", args, 0)
    return Yearly()


def do_interval(args: list[str]) -> EveryNDays:
    _expect_args("d", args, 1, strict=True)
    return EveryNDays(integer(args[0], 1, MAX_INTERVAL, False, "interval"))


def do_weekdays(args: list[str]) -> Weekly:
    _expect_args("w", args, 1)
    return Weekly(frozenset(integer_list(args[0], 1, MAX_WEEKDAY, False, "weekdays")))


def do_monthdays(args: list[str]) -> Monthly:
    _expect_args("m", args, 1)
    days = integer_list(args[0], SECOND_TO_LAST, MAX_MONTHDAY, False, "monthdays")
    if len(args) > 1:
        months = frozenset(integer_list(args[1], 1, MAX_MONTH, False, "months"))
        return Monthly(arrange_special_days(days), months)
    return Monthly(arrange_special_days(days))


freq_map = dict(
    y=do_yearly,
    d=do_interval,
    w=do_weekdays,
    m=do_monthdays,
)


def parse_rule(repeat: str) -> Rule:
    """
    Parse a recurrence rule string.

      ""                      -> NoRepeat
      "y"                     -> Yearly
      "d N"                   -> EveryNDays, 1 <= N <= 400
      "w D1,D2,..."           -> Weekly, 1 (Monday) ... 7 (Sunday)
      "m D1,D2,... [M1,...]"  -> Monthly, days in -2 ... 31 except 0,
                                 optional months in 1 ... 12

    Tokens past those a rule reads are ignored, except after "d N".
    Raises FormatError for anything else, including a blank string.
    """
    if repeat is None or repeat == "":
        return NoRepeat()
    parts = repeat.split()
    if not parts:
        raise FormatError(f"blank repeat rule {repeat!r}")
    keyword, args = parts[0], parts[1:]
    if keyword not in freq_map:
        keys = ", ".join(freq_map)
        raise FormatError(f"'{keyword}' is not a supported rule. Choose from: {keys}")
    return freq_map[keyword](args)
