#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
import pytest

from lesson_calendar.recurrence.exceptions import InvalidRule
from lesson_calendar.recurrence.occurrences import (
    expand,
    has_future_occurrences,
    is_occurrence,
    last_occurrence,
    next_occurrence_after,
    occurrences_between,
    previous_occurrence_before,
)
from tests.utils import (
    MONTH_END_RULE,
    NEVER_ENDING_RULE,
    WEEKLY_RULE,
    create_test_datetime,
)

UNTIL_RULE = (
    "DTSTART:20240101T090000\nRRULE:FREQ=DAILY;INTERVAL=2;UNTIL=20240109T235959"
)


def test_weekly_count_expansion():
    expected = [create_test_datetime(2024, 1, day) for day in (1, 8, 15, 22, 29)]
    assert expand(WEEKLY_RULE) == expected
    assert last_occurrence(WEEKLY_RULE) == create_test_datetime(2024, 1, 29)


def test_until_includes_occurrence_on_last_day():
    assert expand(UNTIL_RULE)[-1] == create_test_datetime(2024, 1, 9)
    assert last_occurrence(UNTIL_RULE) == create_test_datetime(2024, 1, 9)


@pytest.mark.parametrize("rule", [WEEKLY_RULE, UNTIL_RULE])
def test_last_occurrence_is_end_of_expansion(rule: str):
    assert last_occurrence(rule) == expand(rule)[-1]


def test_never_ending_rule_has_no_last_occurrence():
    assert last_occurrence(NEVER_ENDING_RULE) is None


def test_never_ending_expansion_needs_a_limit():
    with pytest.raises(ValueError):
        expand(NEVER_ENDING_RULE)
    assert len(expand(NEVER_ENDING_RULE, limit=3)) == 3


def test_expansion_after_an_instant():
    far_ahead = create_test_datetime(2026, 1, 1)
    assert expand(NEVER_ENDING_RULE, limit=2, after=far_ahead) == [
        create_test_datetime(2026, 1, 5),
        create_test_datetime(2026, 1, 12),
    ]
    assert expand(WEEKLY_RULE, after=create_test_datetime(2024, 1, 22)) == [
        create_test_datetime(2024, 1, 29)
    ]


def test_monthly_rule_skips_short_months():
    anchor = create_test_datetime(2024, 1, 31)
    assert next_occurrence_after(MONTH_END_RULE, anchor) == create_test_datetime(
        2024, 3, 31
    )
    assert expand(MONTH_END_RULE, limit=4) == [
        create_test_datetime(2024, 1, 31),
        create_test_datetime(2024, 3, 31),
        create_test_datetime(2024, 5, 31),
        create_test_datetime(2024, 7, 31),
    ]
    assert not is_occurrence(MONTH_END_RULE, create_test_datetime(2024, 2, 29))


def test_next_occurrence_is_strictly_after():
    assert next_occurrence_after(
        WEEKLY_RULE, create_test_datetime(2024, 1, 8)
    ) == create_test_datetime(2024, 1, 15)
    assert next_occurrence_after(
        WEEKLY_RULE, create_test_datetime(2024, 1, 8, minute=1)
    ) == create_test_datetime(2024, 1, 15)
    assert next_occurrence_after(WEEKLY_RULE, create_test_datetime(2024, 1, 29)) is None


def test_previous_occurrence_is_strictly_before():
    assert previous_occurrence_before(
        WEEKLY_RULE, create_test_datetime(2024, 1, 15)
    ) == create_test_datetime(2024, 1, 8)
    first = create_test_datetime(2024, 1, 1)
    assert previous_occurrence_before(WEEKLY_RULE, first) is None


@pytest.mark.parametrize(
    "instant",
    [
        create_test_datetime(2023, 12, 25),
        create_test_datetime(2024, 1, 1),
        create_test_datetime(2024, 1, 20),
        create_test_datetime(2024, 1, 29),
        create_test_datetime(2024, 1, 29, minute=30),
        create_test_datetime(2024, 3, 1),
    ],
)
@pytest.mark.parametrize("rule", [WEEKLY_RULE, UNTIL_RULE, MONTH_END_RULE])
def test_future_occurrences_agree_with_next_occurrence(rule, instant):
    if rule == MONTH_END_RULE:
        assert has_future_occurrences(rule, instant)
    else:
        expected = next_occurrence_after(rule, instant) is not None
        assert has_future_occurrences(rule, instant) == expected


def test_never_ending_rule_always_has_future_occurrences():
    assert has_future_occurrences(NEVER_ENDING_RULE, create_test_datetime(2099, 1, 1))


def test_is_occurrence_matches_time_of_day():
    assert is_occurrence(WEEKLY_RULE, create_test_datetime(2024, 1, 22))
    assert not is_occurrence(WEEKLY_RULE, create_test_datetime(2024, 1, 22, hour=10))
    assert not is_occurrence(WEEKLY_RULE, create_test_datetime(2024, 2, 5))


def test_occurrences_between_is_inclusive():
    assert occurrences_between(
        WEEKLY_RULE, create_test_datetime(2024, 1, 8), create_test_datetime(2024, 1, 22)
    ) == [
        create_test_datetime(2024, 1, 8),
        create_test_datetime(2024, 1, 15),
        create_test_datetime(2024, 1, 22),
    ]


def test_every_query_decodes_its_rule():
    with pytest.raises(InvalidRule):
        has_future_occurrences("", create_test_datetime(2024, 1, 1))
    with pytest.raises(InvalidRule):
        expand("RRULE:FREQ=HOURLY")
