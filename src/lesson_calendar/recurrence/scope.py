#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Resolution of an edit or delete made on one occurrence of a recurring series.

An occurrence can be changed on its own (`Scope.SINGLE`) or together with every
later occurrence (`Scope.FUTURE`). The latter splits the series: the original
rule is truncated to end at the occurrence preceding the split and, for edits, a
new rule takes over from the split onwards.
"""

import datetime
from dataclasses import dataclass, replace
from enum import Enum, StrEnum, auto
from typing import Self

from lesson_calendar.recurrence import codec
from lesson_calendar.recurrence.codec import RecurrenceOptions, Until
from lesson_calendar.recurrence.exceptions import OccurrenceNotFound
from lesson_calendar.recurrence.occurrences import (
    is_occurrence,
    previous_occurrence_before,
)


class Action(StrEnum):
    EDIT = auto()
    DELETE = auto()


class Scope(StrEnum):
    SINGLE = auto()
    FUTURE = auto()


class SeriesMutation(Enum):
    """A change requested on an occurrence, one member per action and scope."""

    EDIT_SINGLE = (Action.EDIT, Scope.SINGLE)
    EDIT_FUTURE = (Action.EDIT, Scope.FUTURE)
    DELETE_SINGLE = (Action.DELETE, Scope.SINGLE)
    DELETE_FUTURE = (Action.DELETE, Scope.FUTURE)

    @property
    def action(self) -> Action:
        return self.value[0]

    @property
    def scope(self) -> Scope:
        return self.value[1]

    @classmethod
    def of(cls, action: Action | str, scope: Scope | str) -> Self:
        return cls((Action(action), Scope(scope)))


@dataclass(frozen=True)
class SplitPlan:
    """The transformation a mutation implies for a series.

    Parameters
    ----------
    mutation
        The change that was requested.
    original_rule
        The rule of the series before the change.
    split_instant
        The occurrence acted on.
    series_rule
        The rule carried by the lessons before `split_instant` once the plan is
        applied. Equal to `original_rule` for single occurrence changes. None when
        no part of the original series precedes the split, ie the whole series is
        replaced or deleted.
    new_rule
        For edits of this and later occurrences, the rule from which the target
        lesson and its successors are regenerated.
    """

    mutation: SeriesMutation
    original_rule: str
    split_instant: datetime.datetime
    series_rule: str | None
    new_rule: str | None = None

    @property
    def truncates(self) -> bool:
        return self.series_rule is not None and self.series_rule != self.original_rule

    @property
    def replaces_whole_series(self) -> bool:
        return self.mutation.scope == Scope.FUTURE and self.series_rule is None


def truncate(rule: str, split_instant: datetime.datetime) -> str | None:
    """End `rule` at the occurrence immediately preceding `split_instant`.

    Returns
    -------
    The truncated rule, keeping the anchor and shape of `rule`, or None if
    `split_instant` is the first occurrence and nothing precedes it.
    """
    previous = previous_occurrence_before(rule, split_instant)
    if previous is None:
        return None
    _, options = codec.decode(rule)
    return codec.rebind(rule, replace(options, end_condition=Until(previous.date())))


def resolve_split(
    rule: str,
    split_instant: datetime.datetime,
    mutation: SeriesMutation,
    new_options: RecurrenceOptions | None = None,
    new_anchor: datetime.datetime | None = None,
) -> SplitPlan:
    """Compute how a series changes when `mutation` is applied at `split_instant`.

    Parameters
    ----------
    rule
        The current rule of the series.
    split_instant
        The occurrence being edited or deleted.
    mutation
        The requested action and scope.
    new_options
        The edited recurrence shape for `SeriesMutation.EDIT_FUTURE`. When None,
        the edited occurrence stops recurring and no new rule is produced.
    new_anchor
        Where the regenerated series starts, if the edit moves the occurrence.
        Defaults to `split_instant`.

    Raises
    ------
    InvalidRule if `rule` cannot be decoded.
    OccurrenceNotFound if `split_instant` is not an occurrence of `rule`.
    InvalidOptions if `new_options` are invalid for the new anchor.
    """
    if not is_occurrence(rule, split_instant):
        raise OccurrenceNotFound(f"{split_instant} is not an occurrence of {rule!r}")
    if mutation.scope == Scope.SINGLE:
        return SplitPlan(
            mutation=mutation,
            original_rule=rule,
            split_instant=split_instant,
            series_rule=rule,
        )
    new_rule = None
    if mutation == SeriesMutation.EDIT_FUTURE and new_options is not None:
        anchor = new_anchor or split_instant
        new_rule = codec.encode(anchor.date(), anchor.time(), new_options)
    return SplitPlan(
        mutation=mutation,
        original_rule=rule,
        split_instant=split_instant,
        series_rule=truncate(rule, split_instant),
        new_rule=new_rule,
    )
