"""
Timeline module for IdeaPile.

Groups ideas into display buckets relative to a reference instant:
today and yesterday by time of day, this week and last week by weekday,
this month by week of month, last month as one bucket, older by calendar
month.

Pure and synchronous. `now` is always passed in and read once, so the same
inputs always give the same buckets.
"""

from datetime import date, datetime, timedelta
from typing import Iterable

from ideapile.models import Bucket, Idea

# Time-of-day bands: [start_hour, end_hour)
TIME_BANDS = (
    ("morning", 5, 12),
    ("afternoon", 12, 18),
    ("evening", 18, 22),
)
OVERNIGHT = "overnight"

BAND_SUBTITLES = {
    "morning": "in the morning",
    "afternoon": "in the afternoon",
    "evening": "in the evening",
    "overnight": "overnight",
}

# Sunday-first, matching weekday index 0=Sunday..6=Saturday
WEEKDAY_NAMES = (
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
)

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

# Cosmetic color tier per recency class
COLOR_TIERS = {
    "today": "success",
    "yesterday": "warning",
    "this-week": "primary",
    "last-week": "muted",
    "this-month": "muted",
    "last-month": "muted",
    "older": "subtle",
}

_BANDS = ("morning", "afternoon", "evening", OVERNIGHT)

# Fixed display order. Anything not listed (the per-month "older" buckets)
# sorts after these, newest first.
BUCKET_ORDER: tuple[str, ...] = (
    *(f"today-{band}" for band in _BANDS),
    *(f"yesterday-{band}" for band in _BANDS),
    *(f"this-week-{day}" for day in range(6, -1, -1)),
    *(f"last-week-{day}" for day in range(6, -1, -1)),
    *(f"this-month-week-{week}" for week in range(5, 0, -1)),
    "last-month",
)

_ORDER_INDEX = {key: index for index, key in enumerate(BUCKET_ORDER)}


def time_of_day(dt: datetime) -> str:
    """Band name for a wall-clock time. Lower bounds inclusive."""
    hour = dt.hour
    for name, start, end in TIME_BANDS:
        if start <= hour < end:
            return name
    return OVERNIGHT


def sunday_weekday(d: date) -> int:
    """Weekday index with Sunday as 0."""
    return (d.weekday() + 1) % 7


def relative_time(dt: datetime, now: datetime) -> str:
    """Coarse human-readable age of dt as seen from now."""
    seconds = (now - dt).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return "yesterday" if days == 1 else f"{days} days ago"
    if days < 30:
        weeks = days // 7
        return "1 week ago" if weeks == 1 else f"{weeks} weeks ago"

    months = days // 30
    if months < 12:
        return "1 month ago" if months == 1 else f"{months} months ago"

    years = max(1, days // 365)
    return "1 year ago" if years == 1 else f"{years} years ago"


def _as_wall_clock(ts: datetime, now: datetime) -> datetime:
    """Express ts in now's frame so calendar fields are comparable."""
    if now.tzinfo is not None:
        if ts.tzinfo is None:
            return ts.replace(tzinfo=now.tzinfo)
        return ts.astimezone(now.tzinfo)
    if ts.tzinfo is not None:
        # Naive now means local wall-clock time
        return ts.astimezone().replace(tzinfo=None)
    return ts


class _Calendar:
    """Day boundaries derived once from now."""

    def __init__(self, now: datetime):
        self.now = now
        self.today = now.date()
        self.yesterday = self.today - timedelta(days=1)
        self.this_week_start = self.today - timedelta(days=sunday_weekday(self.today))
        self.last_week_start = self.this_week_start - timedelta(days=7)
        self.this_month_start = self.today.replace(day=1)
        self.last_month_start = (self.this_month_start - timedelta(days=1)).replace(day=1)

    def classify(self, day: date) -> str:
        if day == self.today:
            return "today"
        if day == self.yesterday:
            return "yesterday"
        if day >= self.this_week_start:
            return "this-week"
        if day >= self.last_week_start:
            return "last-week"
        if day >= self.this_month_start:
            return "this-month"
        if day >= self.last_month_start:
            return "last-month"
        return "older"

    def describe(self, local: datetime) -> tuple[str, str, str, str]:
        """(key, title, subtitle, color) for one wall-clock timestamp."""
        day = local.date()
        recency = self.classify(day)
        color = COLOR_TIERS[recency]

        if recency in ("today", "yesterday"):
            band = time_of_day(local)
            title = "Today" if recency == "today" else "Yesterday"
            return f"{recency}-{band}", title, BAND_SUBTITLES[band], color

        if recency in ("this-week", "last-week"):
            weekday = sunday_weekday(day)
            subtitle = recency.replace("-", " ")
            return f"{recency}-{weekday}", WEEKDAY_NAMES[weekday], subtitle, color

        if recency == "this-month":
            week = -(-day.day // 7)  # ceil(day / 7)
            return f"this-month-week-{week}", f"Week {week}", "this month", color

        if recency == "last-month":
            subtitle = MONTH_NAMES[self.last_month_start.month - 1]
            return "last-month", "Last month", subtitle, color

        title = f"{MONTH_NAMES[day.month - 1]} {day.year}"
        subtitle = relative_time(local, self.now)
        return f"older-{day.year}-{day.month:02d}", title, subtitle, color


def group_by_time(ideas: Iterable[Idea], now: datetime) -> list[Bucket]:
    """
    Group ideas into ordered display buckets relative to now.

    Buckets follow BUCKET_ORDER; unlisted buckets come after, ordered by
    their most recent member, newest first. Members within a bucket are
    newest first.
    """
    calendar = _Calendar(now)

    stamped = [(_as_wall_clock(idea.timestamp, now), idea) for idea in ideas]
    stamped.sort(key=lambda pair: pair[0], reverse=True)

    buckets: dict[str, Bucket] = {}
    newest: dict[str, datetime] = {}

    for local, idea in stamped:
        key, title, subtitle, color = calendar.describe(local)
        if key not in buckets:
            buckets[key] = Bucket(key=key, title=title, subtitle=subtitle, color=color)
            newest[key] = local
        buckets[key].members.append(idea)

    listed = sorted(
        (key for key in buckets if key in _ORDER_INDEX),
        key=lambda key: _ORDER_INDEX[key],
    )
    unlisted = sorted(
        (key for key in buckets if key not in _ORDER_INDEX),
        key=lambda key: (newest[key], key),
        reverse=True,
    )
    return [buckets[key] for key in listed + unlisted]
