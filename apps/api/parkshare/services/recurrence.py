"""Expansion of availability rules into concrete occurrences.

A rule is either a single ``[starts_at, ends_at)`` window or a weekly pattern.
Weekly rules are unrolled one calendar day (UTC) at a time across the query
window only, so expansion always terminates and never needs an end date.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable

from .intervals import Interval

ONE_DAY = timedelta(days=1)
# Occurrences reaching past the last representable instant are cut there.
LATEST = datetime.max.replace(tzinfo=timezone.utc)


def sunday_weekday(day: date) -> int:
    """Weekday number with 0=Sunday..6=Saturday."""

    return day.isoweekday() % 7


@dataclass(frozen=True, slots=True)
class RuleSpec:
    """Storage-independent view of an availability rule."""

    kind: str
    base: Interval
    repeat_weekdays: frozenset[int] | None = None
    repeat_until: date | None = None

    @property
    def is_recurring(self) -> bool:
        return bool(self.repeat_weekdays)

    @classmethod
    def build(
        cls,
        *,
        kind: str,
        starts_at: datetime,
        ends_at: datetime,
        repeat_weekdays: Iterable[int] | None = None,
        repeat_until: date | None = None,
    ) -> "RuleSpec":
        weekdays = frozenset(int(day) for day in repeat_weekdays) if repeat_weekdays else None
        return cls(
            kind=str(getattr(kind, "value", kind)),
            base=Interval(starts_at, ends_at),
            repeat_weekdays=weekdays,
            repeat_until=repeat_until,
        )


def expand_rule(rule: RuleSpec, window: Interval) -> list[Interval]:
    """Return the rule's occurrences that intersect ``window``, ordered by start."""

    if not rule.is_recurring:
        return [rule.base] if rule.base.overlaps(window) else []

    weekdays = rule.repeat_weekdays or frozenset()
    offset = rule.base.start - datetime.combine(rule.base.start.date(), time.min, tzinfo=timezone.utc)
    span = rule.base.duration

    # An occurrence anchored on an earlier day can still reach into the window
    # when offset + span runs past midnight.
    first_day = window.start.date()
    lead_days = min((offset + span).days, (first_day - date.min).days)
    day = first_day - timedelta(days=lead_days)
    last_day = window.end.date()

    occurrences: list[Interval] = []
    while day <= last_day:
        if rule.repeat_until is not None and day > rule.repeat_until:
            break
        if sunday_weekday(day) in weekdays:
            start = datetime.combine(day, time.min, tzinfo=timezone.utc) + offset
            end = start + span if LATEST - start > span else LATEST
            if start < end:
                occurrence = Interval(start, end)
                if occurrence.overlaps(window):
                    occurrences.append(occurrence)
        if day == date.max:
            break
        day += ONE_DAY
    return occurrences


def expand_rules(rules: Iterable[RuleSpec], window: Interval) -> list[Interval]:
    """Occurrences of every rule, merged into one start-ordered list."""

    occurrences: list[Interval] = []
    for rule in rules:
        occurrences.extend(expand_rule(rule, window))
    occurrences.sort(key=lambda item: (item.start, item.end))
    return occurrences
