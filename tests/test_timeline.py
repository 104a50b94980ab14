"""Tests for temporal bucketing."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from ideapile.models import Idea
from ideapile.timeline import (
    BUCKET_ORDER,
    group_by_time,
    relative_time,
    sunday_weekday,
    time_of_day,
)

UTC = timezone.utc

# Wednesday
NOW = datetime(2024, 5, 15, 14, 30, tzinfo=UTC)


def make_idea(ts: datetime, content: str = "idea") -> Idea:
    return Idea(id=f"id-{ts.isoformat()}", content=content, timestamp=ts)


def key_for(ts: datetime, now: datetime = NOW) -> str:
    buckets = group_by_time([make_idea(ts)], now)
    assert len(buckets) == 1
    return buckets[0].key


class TestTimeOfDay:
    @pytest.mark.parametrize("hour,minute,band", [
        (5, 0, "morning"),
        (4, 59, "overnight"),
        (11, 59, "morning"),
        (12, 0, "afternoon"),
        (17, 59, "afternoon"),
        (18, 0, "evening"),
        (21, 59, "evening"),
        (22, 0, "overnight"),
        (0, 0, "overnight"),
    ])
    def test_bands(self, hour, minute, band):
        assert time_of_day(datetime(2024, 5, 15, hour, minute)) == band

    def test_sunday_is_zero(self):
        assert sunday_weekday(datetime(2024, 5, 12).date()) == 0
        assert sunday_weekday(datetime(2024, 5, 18).date()) == 6


class TestClassification:
    @pytest.mark.parametrize("ts,key", [
        (datetime(2024, 5, 15, 5, 0, 0, tzinfo=UTC), "today-morning"),
        (datetime(2024, 5, 15, 4, 59, 59, tzinfo=UTC), "today-overnight"),
        (datetime(2024, 5, 15, 13, 0, tzinfo=UTC), "today-afternoon"),
        (datetime(2024, 5, 14, 9, 0, tzinfo=UTC), "yesterday-morning"),
        (datetime(2024, 5, 14, 23, 0, tzinfo=UTC), "yesterday-overnight"),
        (datetime(2024, 5, 13, 10, 0, tzinfo=UTC), "this-week-1"),
        (datetime(2024, 5, 12, 0, 0, tzinfo=UTC), "this-week-0"),
        (datetime(2024, 5, 11, 23, 59, tzinfo=UTC), "last-week-6"),
        (datetime(2024, 5, 5, 0, 0, tzinfo=UTC), "last-week-0"),
        (datetime(2024, 5, 4, 12, 0, tzinfo=UTC), "this-month-week-1"),
        (datetime(2024, 5, 1, 0, 0, tzinfo=UTC), "this-month-week-1"),
        (datetime(2024, 4, 30, 12, 0, tzinfo=UTC), "last-month"),
        (datetime(2024, 4, 1, 0, 0, tzinfo=UTC), "last-month"),
        (datetime(2024, 3, 31, 23, 59, tzinfo=UTC), "older-2024-03"),
        (datetime(2023, 1, 10, tzinfo=UTC), "older-2023-01"),
    ])
    def test_keys(self, ts, key):
        assert key_for(ts) == key

    def test_week_of_month_rounds_up(self):
        now = datetime(2024, 5, 31, 12, 0, tzinfo=UTC)
        assert key_for(datetime(2024, 5, 8, tzinfo=UTC), now) == "this-month-week-2"
        assert key_for(datetime(2024, 5, 15, tzinfo=UTC), now) == "this-month-week-3"

    def test_this_week_spanning_previous_month(self):
        # Thursday; the week started on Sunday 2024-04-28
        now = datetime(2024, 5, 2, 12, 0, tzinfo=UTC)
        assert key_for(datetime(2024, 4, 29, 10, 0, tzinfo=UTC), now) == "this-week-1"

    def test_sunday_now_puts_friday_in_last_week(self):
        now = datetime(2024, 5, 12, 10, 0, tzinfo=UTC)
        assert key_for(datetime(2024, 5, 11, 10, 0, tzinfo=UTC), now) == "yesterday-morning"
        assert key_for(datetime(2024, 5, 10, 10, 0, tzinfo=UTC), now) == "last-week-5"

    def test_last_month_across_year_boundary(self):
        now = datetime(2024, 1, 20, 12, 0, tzinfo=UTC)
        assert key_for(datetime(2023, 12, 15, tzinfo=UTC), now) == "last-month"
        assert key_for(datetime(2023, 11, 30, tzinfo=UTC), now) == "older-2023-11"

    def test_leap_day_last_month(self):
        now = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)
        assert key_for(datetime(2024, 2, 29, tzinfo=UTC), now) == "last-month"

    def test_future_timestamp_is_this_week(self):
        assert key_for(NOW + timedelta(days=3)).startswith("this-week-")

    def test_uses_now_timezone(self):
        now = datetime(2024, 5, 15, 14, 30, tzinfo=timezone(timedelta(hours=-3)))
        # 02:00 UTC on the 15th is 23:00 on the 14th at UTC-3
        assert key_for(datetime(2024, 5, 15, 2, 0, tzinfo=UTC), now) == "yesterday-overnight"


class TestBucketMetadata:
    def test_today_bucket(self):
        bucket = group_by_time([make_idea(datetime(2024, 5, 15, 9, 0, tzinfo=UTC))], NOW)[0]
        assert bucket.title == "Today"
        assert bucket.subtitle == "in the morning"
        assert bucket.color == "success"

    def test_weekday_bucket(self):
        bucket = group_by_time([make_idea(datetime(2024, 5, 13, 9, 0, tzinfo=UTC))], NOW)[0]
        assert bucket.title == "Monday"
        assert bucket.subtitle == "this week"
        assert bucket.color == "primary"

    def test_last_month_bucket(self):
        bucket = group_by_time([make_idea(datetime(2024, 4, 20, tzinfo=UTC))], NOW)[0]
        assert bucket.title == "Last month"
        assert bucket.subtitle == "April"

    def test_older_bucket(self):
        bucket = group_by_time([make_idea(datetime(2024, 3, 10, tzinfo=UTC))], NOW)[0]
        assert bucket.title == "March 2024"
        assert bucket.subtitle == "2 months ago"
        assert bucket.color == "subtle"


class TestGrouping:
    TIMESTAMPS = [
        datetime(2024, 5, 15, 10, 0, tzinfo=UTC),
        datetime(2024, 5, 15, 13, 0, tzinfo=UTC),
        datetime(2024, 5, 14, 20, 0, tzinfo=UTC),
        datetime(2024, 5, 13, 10, 0, tzinfo=UTC),
        datetime(2024, 5, 12, 10, 0, tzinfo=UTC),
        datetime(2024, 5, 8, 10, 0, tzinfo=UTC),
        datetime(2024, 5, 2, 10, 0, tzinfo=UTC),
        datetime(2024, 4, 20, 10, 0, tzinfo=UTC),
        datetime(2024, 3, 10, 10, 0, tzinfo=UTC),
        datetime(2023, 12, 5, 10, 0, tzinfo=UTC),
    ]

    def test_bucket_order(self):
        ideas = [make_idea(ts) for ts in self.TIMESTAMPS]
        keys = [bucket.key for bucket in group_by_time(ideas, NOW)]
        assert keys == [
            "today-morning",
            "today-afternoon",
            "yesterday-evening",
            "this-week-1",
            "this-week-0",
            "last-week-3",
            "this-month-week-1",
            "last-month",
            "older-2024-03",
            "older-2023-12",
        ]

    def test_input_order_does_not_matter(self):
        ideas = [make_idea(ts) for ts in self.TIMESTAMPS]
        shuffled = ideas[:]
        random.Random(7).shuffle(shuffled)
        assert group_by_time(shuffled, NOW) == group_by_time(ideas, NOW)

    def test_deterministic(self):
        ideas = [make_idea(ts) for ts in self.TIMESTAMPS]
        assert group_by_time(ideas, NOW) == group_by_time(ideas, NOW)

    def test_every_idea_in_exactly_one_bucket(self):
        ideas = [make_idea(ts) for ts in self.TIMESTAMPS]
        members = [idea.id for b in group_by_time(ideas, NOW) for idea in b.members]
        assert sorted(members) == sorted(idea.id for idea in ideas)

    def test_members_newest_first(self):
        early = make_idea(datetime(2024, 5, 15, 6, 0, tzinfo=UTC), "early")
        late = make_idea(datetime(2024, 5, 15, 11, 0, tzinfo=UTC), "late")
        bucket = group_by_time([early, late], NOW)[0]
        assert [idea.content for idea in bucket.members] == ["late", "early"]

    def test_no_empty_buckets(self):
        assert group_by_time([], NOW) == []
        buckets = group_by_time([make_idea(NOW)], NOW)
        assert len(buckets) == 1
        assert len(buckets[0].members) == 1

    def test_order_lists_every_fixed_key(self):
        assert len(BUCKET_ORDER) == 4 + 4 + 7 + 7 + 5 + 1
        assert len(set(BUCKET_ORDER)) == len(BUCKET_ORDER)
        assert BUCKET_ORDER[0] == "today-morning"
        assert BUCKET_ORDER[-1] == "last-month"


class TestRelativeTime:
    @pytest.mark.parametrize("delta,expected", [
        (timedelta(seconds=30), "just now"),
        (timedelta(minutes=5), "5m ago"),
        (timedelta(hours=3), "3h ago"),
        (timedelta(days=1), "yesterday"),
        (timedelta(days=3), "3 days ago"),
        (timedelta(days=8), "1 week ago"),
        (timedelta(days=20), "2 weeks ago"),
        (timedelta(days=45), "1 month ago"),
        (timedelta(days=362), "1 year ago"),
        (timedelta(days=800), "2 years ago"),
    ])
    def test_relative_time(self, delta, expected):
        assert relative_time(NOW - delta, NOW) == expected
