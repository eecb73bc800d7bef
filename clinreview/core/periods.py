"""
Review periods.

A period is either a calendar month or a numbered week. Week 1 of a year
starts on the first Monday on or after January 1st (January 1st itself when
it is a Monday, January 2nd when it is a Sunday). Every caller that needs a
week boundary goes through this module.

All datetimes are naive and interpreted as UTC.
"""
import calendar
import enum
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple, Union

_ONE_TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """Offset-aware input converted to the naive UTC used everywhere else."""
    if moment is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


MONTH_NAMES = [calendar.month_name[i] for i in range(1, 13)]


class PeriodKind(str, enum.Enum):
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class Period:
    kind: PeriodKind
    year: int
    number: int  # week number or month number
    start: datetime
    end: datetime  # inclusive

    def contains(self, moment: Union[datetime, date]) -> bool:
        if not isinstance(moment, datetime):
            moment = datetime.combine(moment, time.min)
        return self.start <= moment <= self.end

    @property
    def key(self) -> str:
        if self.kind is PeriodKind.WEEK:
            return f"{self.year}-W{self.number:02d}"
        return f"{self.year}-{self.number:02d}"

    @property
    def label(self) -> str:
        if self.kind is PeriodKind.WEEK:
            return f"Week {self.number}, {self.year}"
        return f"{MONTH_NAMES[self.number - 1]} {self.year}"


def _js_weekday(d: date) -> int:
    """Sunday=0 .. Saturday=6."""
    return (d.weekday() + 1) % 7


def first_monday(year: int) -> date:
    """Start of week 1 for ``year``."""
    jan1 = date(year, 1, 1)
    day = _js_weekday(jan1)
    offset = 1 - day if day <= 1 else 8 - day
    return jan1 + timedelta(days=offset)


def week_start(year: int, week: int) -> date:
    return first_monday(year) + timedelta(days=(week - 1) * 7)


def last_week(year: int) -> int:
    """Highest week number whose Monday still falls inside ``year``."""
    return (date(year, 12, 31) - first_monday(year)).days // 7 + 1


def week_period(year: int, week: int) -> Period:
    if week < 1:
        raise ValueError("Week numbers start at 1")
    if week > last_week(year):
        raise ValueError(f"Week {week} of {year} starts in the following year")
    start = datetime.combine(week_start(year, week), time.min)
    return Period(
        kind=PeriodKind.WEEK,
        year=year,
        number=week,
        start=start,
        end=start + timedelta(days=7) - _ONE_TICK,
    )


def month_period(year: int, month: int) -> Period:
    if not 1 <= month <= 12:
        raise ValueError("Month must be between 1 and 12")
    start = datetime(year, month, 1)
    last_day = calendar.monthrange(year, month)[1]
    end = datetime.combine(date(year, month, last_day), time.max)
    return Period(kind=PeriodKind.MONTH, year=year, number=month, start=start, end=end)


def week_of(moment: Union[datetime, date]) -> Tuple[int, int]:
    """
    (year, week) containing ``moment``. Days before the first Monday of the
    year are folded into week 1 of that same year.
    """
    day = moment.date() if isinstance(moment, datetime) else moment
    diff_days = (day - first_monday(day.year)).days
    week = math.floor(diff_days / 7) + 1
    return day.year, max(1, week)


def weeks_in_year(year: int) -> int:
    jan1 = date(year, 1, 1)
    dec31 = date(year, 12, 31)
    day = _js_weekday(jan1)
    # Jan 1 on Thu..Sat pushes the first counted week to the following Sunday
    first = jan1 if day <= 4 else date(year, 1, 8 - day)
    diff_days = (dec31 - first).days
    return math.ceil(diff_days / 7)


def weeks_in_month(year: int, month: int) -> List[int]:
    """Week numbers of ``year`` whose seven days overlap ``month``."""
    first_day = date(year, month, 1)
    last_day = date(year, month, calendar.monthrange(year, month)[1])
    weeks = []
    for week in range(1, weeks_in_year(year) + 1):
        start = week_start(year, week)
        end = start + timedelta(days=6)
        if start <= last_day and end >= first_day:
            weeks.append(week)
    return weeks


def current_period(kind: PeriodKind, today: Optional[date] = None) -> Period:
    today = today or date.today()
    if kind is PeriodKind.WEEK:
        return week_period(*week_of(today))
    return month_period(today.year, today.month)


def parse_period(kind: Union[PeriodKind, str], year: int, number: int) -> Period:
    kind = PeriodKind(kind)
    if kind is PeriodKind.WEEK:
        return week_period(year, number)
    return month_period(year, number)


def month_number(name: str) -> int:
    """'January' -> 1. Accepts full or abbreviated English names."""
    normalized = name.strip().lower()
    for index, full in enumerate(MONTH_NAMES, start=1):
        if full.lower() == normalized or full[:3].lower() == normalized:
            return index
    raise ValueError(f"Unknown month name: {name}")


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def trailing_months(end_year: int, end_month: int, count: int = 6) -> List[Period]:
    """``count`` consecutive month periods ending with (end_year, end_month)."""
    return [
        month_period(*shift_month(end_year, end_month, -offset))
        for offset in range(count - 1, -1, -1)
    ]


def is_valid_monthly_review_date(review_date: Union[datetime, date], today: Optional[date] = None) -> bool:
    """Monthly reviews may only be dated in the current or the previous month."""
    today = today or date.today()
    review_month = (review_date.year, review_date.month)
    previous = shift_month(today.year, today.month, -1)
    return previous <= review_month <= (today.year, today.month)
