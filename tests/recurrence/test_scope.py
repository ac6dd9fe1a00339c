#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
import datetime

import pytest

from lesson_calendar.recurrence.codec import (
    Frequency,
    Never,
    RecurrenceOptions,
    Until,
    decode,
)
from lesson_calendar.recurrence.exceptions import OccurrenceNotFound
from lesson_calendar.recurrence.occurrences import expand
from lesson_calendar.recurrence.scope import (
    Action,
    Scope,
    SeriesMutation,
    resolve_split,
    truncate,
)
from tests.utils import (
    MONTH_END_RULE,
    NEVER_ENDING_RULE,
    WEEKLY_RULE,
    create_test_datetime,
)

JAN_15 = create_test_datetime(2024, 1, 15)


def test_mutation_from_action_and_scope():
    mutation = SeriesMutation.of("edit", "future")
    assert mutation == SeriesMutation.EDIT_FUTURE
    assert mutation.action == Action.EDIT
    assert mutation.scope == Scope.FUTURE
    assert {SeriesMutation.of(a, s) for a in Action for s in Scope} == set(
        SeriesMutation
    )


def test_edit_future_splits_series():
    every_other_week = RecurrenceOptions(
        frequency=Frequency.WEEKLY, interval=2, end_condition=Never()
    )
    plan = resolve_split(
        WEEKLY_RULE, JAN_15, SeriesMutation.EDIT_FUTURE, new_options=every_other_week
    )

    anchor, truncated = decode(plan.series_rule)
    assert anchor == create_test_datetime(2024, 1, 1)
    assert truncated.end_condition == Until(datetime.date(2024, 1, 8))
    assert plan.truncates
    assert not plan.replaces_whole_series

    new_anchor, new_options = decode(plan.new_rule)
    assert new_anchor == JAN_15
    assert new_options == every_other_week
    assert expand(plan.new_rule, limit=3) == [
        JAN_15,
        create_test_datetime(2024, 1, 29),
        create_test_datetime(2024, 2, 12),
    ]


def test_edit_future_anchors_new_rule_at_moved_start():
    moved = create_test_datetime(2024, 1, 16, hour=18)
    plan = resolve_split(
        WEEKLY_RULE,
        JAN_15,
        SeriesMutation.EDIT_FUTURE,
        new_options=RecurrenceOptions(),
        new_anchor=moved,
    )
    assert decode(plan.new_rule).anchor == moved


def test_edit_future_without_options_stops_recurring():
    plan = resolve_split(WEEKLY_RULE, JAN_15, SeriesMutation.EDIT_FUTURE)
    assert plan.new_rule is None
    assert decode(plan.series_rule).options.end_condition == Until(
        datetime.date(2024, 1, 8)
    )


def test_delete_future_has_no_new_rule():
    plan = resolve_split(
        WEEKLY_RULE,
        JAN_15,
        SeriesMutation.DELETE_FUTURE,
        new_options=RecurrenceOptions(interval=2),
    )
    assert plan.new_rule is None
    assert expand(plan.series_rule) == [
        create_test_datetime(2024, 1, 1),
        create_test_datetime(2024, 1, 8),
    ]


@pytest.mark.parametrize(
    "mutation", [SeriesMutation.EDIT_SINGLE, SeriesMutation.DELETE_SINGLE]
)
def test_single_scope_keeps_series_rule(mutation: SeriesMutation):
    plan = resolve_split(
        WEEKLY_RULE, JAN_15, mutation, new_options=RecurrenceOptions(interval=3)
    )
    assert plan.series_rule == WEEKLY_RULE
    assert plan.new_rule is None
    assert not plan.truncates


@pytest.mark.parametrize(
    "mutation", [SeriesMutation.EDIT_FUTURE, SeriesMutation.DELETE_FUTURE]
)
def test_future_scope_at_anchor_replaces_whole_series(mutation: SeriesMutation):
    plan = resolve_split(
        WEEKLY_RULE,
        create_test_datetime(2024, 1, 1),
        mutation,
        new_options=RecurrenceOptions(),
    )
    assert plan.series_rule is None
    assert plan.replaces_whole_series


def test_split_instant_must_be_an_occurrence():
    with pytest.raises(OccurrenceNotFound):
        resolve_split(
            WEEKLY_RULE, create_test_datetime(2024, 1, 16), SeriesMutation.DELETE_SINGLE
        )


@pytest.mark.parametrize(
    "rule, split_instant",
    [
        (WEEKLY_RULE, create_test_datetime(2024, 1, 8)),
        (WEEKLY_RULE, create_test_datetime(2024, 1, 29)),
        (NEVER_ENDING_RULE, create_test_datetime(2024, 6, 3)),
        (MONTH_END_RULE, create_test_datetime(2024, 5, 31)),
    ],
)
def test_truncation_preserves_earlier_occurrences(rule, split_instant):
    truncated = truncate(rule, split_instant)
    before_split = [o for o in expand(rule, limit=60) if o < split_instant]
    assert expand(truncated) == before_split


def test_truncate_at_anchor_leaves_nothing():
    assert truncate(WEEKLY_RULE, create_test_datetime(2024, 1, 1)) is None
