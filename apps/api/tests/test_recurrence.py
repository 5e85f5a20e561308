"""Weekly rule expansion over query windows."""
from __future__ import annotations

from datetime import date, datetime, timezone

from parkshare.services.intervals import Interval
from parkshare.services.recurrence import RuleSpec, expand_rule, expand_rules, sunday_weekday

# 2024-01-01 was a Monday.
MONDAY = 1
TUESDAY = 2
WEDNESDAY = 3
FRIDAY = 5


def _at(day: int, hour: int = 0) -> datetime:
    return datetime(2024, 1, day, hour, 0, tzinfo=timezone.utc)


def _office_hours(**kwargs) -> RuleSpec:
    return RuleSpec.build(
        kind="open",
        starts_at=_at(1, 9),
        ends_at=_at(1, 18),
        repeat_weekdays=[MONDAY, WEDNESDAY, FRIDAY],
        **kwargs,
    )


def test_weekday_numbers_start_on_sunday() -> None:
    assert sunday_weekday(date(2023, 12, 31)) == 0
    assert sunday_weekday(date(2024, 1, 1)) == MONDAY
    assert sunday_weekday(date(2024, 1, 6)) == 6


def test_single_rule_applies_once() -> None:
    rule = RuleSpec.build(kind="blocked", starts_at=_at(2, 8), ends_at=_at(2, 20))

    assert expand_rule(rule, Interval(_at(2, 10), _at(2, 11))) == [rule.base]
    assert expand_rule(rule, Interval(_at(2, 20), _at(2, 22))) == []
    assert expand_rule(rule, Interval(_at(9, 10), _at(9, 11))) == []


def test_weekly_rule_reapplies_time_of_day_on_matching_days() -> None:
    week = Interval(_at(8), _at(14))

    occurrences = expand_rule(_office_hours(), week)

    assert occurrences == [
        Interval(_at(8, 9), _at(8, 18)),
        Interval(_at(10, 9), _at(10, 18)),
        Interval(_at(12, 9), _at(12, 18)),
    ]


def test_repeat_until_is_an_inclusive_day_bound() -> None:
    week = Interval(_at(8), _at(14))

    occurrences = expand_rule(_office_hours(repeat_until=date(2024, 1, 10)), week)

    assert [item.start.day for item in occurrences] == [8, 10]


def test_expansion_is_deterministic() -> None:
    rule = _office_hours()
    window = Interval(_at(1), _at(31))

    assert expand_rule(rule, window) == expand_rule(rule, window)
    assert len(expand_rule(rule, window)) == 13


def test_multi_day_span_reaches_in_from_an_earlier_matching_day() -> None:
    # Monday 20:00 until Wednesday 08:00.
    rule = RuleSpec.build(
        kind="blocked",
        starts_at=_at(1, 20),
        ends_at=_at(3, 8),
        repeat_weekdays=[MONDAY],
    )

    occurrences = expand_rule(rule, Interval(_at(10, 0), _at(10, 6)))

    assert occurrences == [Interval(_at(8, 20), _at(10, 8))]


def test_consecutive_multi_day_occurrences_may_overlap() -> None:
    rule = RuleSpec.build(
        kind="open",
        starts_at=_at(1, 0),
        ends_at=_at(2, 12),
        repeat_weekdays=[MONDAY, TUESDAY],
    )

    occurrences = expand_rules([rule], Interval(_at(8), _at(10)))

    assert occurrences == [Interval(_at(8), _at(9, 12)), Interval(_at(9), _at(10, 12))]
    assert occurrences[0].overlaps(occurrences[1])


def test_empty_weekday_list_means_single_occurrence() -> None:
    rule = RuleSpec.build(kind="open", starts_at=_at(1, 9), ends_at=_at(1, 18), repeat_weekdays=[])

    assert not rule.is_recurring
    assert expand_rule(rule, Interval(_at(8, 10), _at(8, 12))) == []


def test_expansion_stops_at_the_last_representable_day() -> None:
    rule = RuleSpec.build(
        kind="open",
        starts_at=_at(1, 9),
        ends_at=_at(1, 18),
        repeat_weekdays=range(7),
    )
    window = Interval(
        datetime(9999, 12, 30, tzinfo=timezone.utc),
        datetime(9999, 12, 31, 12, 0, tzinfo=timezone.utc),
    )

    occurrences = expand_rule(rule, window)

    assert [item.start.day for item in occurrences] == [30, 31]


def test_overnight_occurrence_is_cut_at_the_end_of_time() -> None:
    rule = RuleSpec.build(
        kind="blocked",
        starts_at=_at(1, 20),
        ends_at=_at(2, 8),
        repeat_weekdays=range(7),
    )
    window = Interval(
        datetime(9999, 12, 31, 21, 0, tzinfo=timezone.utc),
        datetime(9999, 12, 31, 22, 0, tzinfo=timezone.utc),
    )

    occurrences = expand_rule(rule, window)

    assert occurrences[-1].start == datetime(9999, 12, 31, 20, 0, tzinfo=timezone.utc)
    assert occurrences[-1].end == datetime.max.replace(tzinfo=timezone.utc)


def test_spill_in_lookback_stops_at_the_first_representable_day() -> None:
    rule = RuleSpec.build(
        kind="open",
        starts_at=_at(1, 20),
        ends_at=_at(3, 8),
        repeat_weekdays=range(7),
    )
    window = Interval(datetime(1, 1, 1, 1, 0, tzinfo=timezone.utc), datetime(1, 1, 1, 2, 0, tzinfo=timezone.utc))

    assert expand_rule(rule, window) == []
