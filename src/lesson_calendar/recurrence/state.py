#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""The recurrence settings of a lesson being created or edited."""

import datetime
import logging
from dataclasses import dataclass, replace
from enum import StrEnum, auto
from typing import TYPE_CHECKING, Self

from lesson_calendar.recurrence import codec
from lesson_calendar.recurrence.codec import (
    AfterCount,
    EndCondition,
    Frequency,
    Never,
    RecurrenceOptions,
    Until,
)
from lesson_calendar.recurrence.exceptions import InvalidOptions, InvalidRule
from lesson_calendar.recurrence.occurrences import last_occurrence

if TYPE_CHECKING:
    from lesson_calendar.lessons import Lesson

logger = logging.getLogger(__name__)


class EndType(StrEnum):
    NEVER = auto()
    UNTIL = auto()
    COUNT = auto()


@dataclass(frozen=True)
class RecurrenceForm:
    """The recurrence fields as the user edits them. Both end condition payloads
    are kept so switching the end type back and forth does not lose input."""

    frequency: Frequency = Frequency.WEEKLY
    interval: int = 1
    end_type: EndType = EndType.NEVER
    until_date: datetime.date | None = None
    occurrence_count: int = 10

    def to_options(self) -> RecurrenceOptions:
        match self.end_type:
            case EndType.NEVER:
                end_condition = Never()
            case EndType.UNTIL:
                if self.until_date is None:
                    raise InvalidOptions("An end date is required to end the series")
                end_condition = Until(self.until_date)
            case EndType.COUNT:
                end_condition = AfterCount(self.occurrence_count)
        return RecurrenceOptions(
            frequency=self.frequency,
            interval=self.interval,
            end_condition=end_condition,
        )

    def with_end_condition(self, end_condition: EndCondition) -> Self:
        if isinstance(end_condition, Until):
            return replace(self, end_type=EndType.UNTIL, until_date=end_condition.date)
        if isinstance(end_condition, AfterCount):
            return replace(
                self, end_type=EndType.COUNT, occurrence_count=end_condition.count
            )
        return replace(self, end_type=EndType.NEVER)


class RecurrenceState:
    """Recurrence options for one editing session, plus the snapshot they were
    loaded from.

    Parameters
    ----------
    defaults
        The values a new lesson starts from.

    Notes
    -----
    1. The baseline is only set by `load_from_rule`, ie when an existing series is
    edited. It is never mutated afterwards.
    2. A count based end condition is only offered for new series. Existing count
    based series are loaded with an end date equal to their last occurrence.
    """

    def __init__(self, defaults: RecurrenceForm | None = None):
        self._defaults = defaults or RecurrenceForm()
        self._form = self._defaults
        self._baseline: RecurrenceForm | None = None
        self.is_recurring = False

    @classmethod
    def for_lesson(
        cls, lesson: "Lesson", defaults: RecurrenceForm | None = None
    ) -> Self:
        """Start an editing session for `lesson`. A lesson whose rule cannot be
        parsed is edited as a non-recurring lesson."""
        state = cls(defaults)
        if lesson.recurrence_rule is None:
            return state
        try:
            state.load_from_rule(lesson.recurrence_rule)
        except InvalidRule as e:
            logger.warning(
                f"Lesson {lesson.lesson_id} has an invalid recurrence rule, "
                f"editing it as a single lesson: {e}"
            )
        return state

    @property
    def frequency(self) -> Frequency:
        return self._form.frequency

    @frequency.setter
    def frequency(self, value: Frequency | str):
        self._form = replace(self._form, frequency=Frequency(value))

    @property
    def interval(self) -> int:
        return self._form.interval

    @interval.setter
    def interval(self, value: int):
        self._form = replace(self._form, interval=value)

    @property
    def end_type(self) -> EndType:
        return self._form.end_type

    @end_type.setter
    def end_type(self, value: EndType | str):
        value = EndType(value)
        if value == EndType.COUNT and not self.offers_count_entry:
            raise InvalidOptions(
                "A series being edited cannot be ended after a number of occurrences"
            )
        self._form = replace(self._form, end_type=value)

    @property
    def until_date(self) -> datetime.date | None:
        return self._form.until_date

    @until_date.setter
    def until_date(self, value: datetime.date | None):
        self._form = replace(self._form, until_date=value)

    @property
    def occurrence_count(self) -> int:
        return self._form.occurrence_count

    @occurrence_count.setter
    def occurrence_count(self, value: int):
        self._form = replace(self._form, occurrence_count=value)

    @property
    def end_condition(self) -> EndCondition:
        return self.current.end_condition

    @end_condition.setter
    def end_condition(self, value: EndCondition):
        if isinstance(value, AfterCount) and not self.offers_count_entry:
            raise InvalidOptions(
                "A series being edited cannot be ended after a number of occurrences"
            )
        self._form = self._form.with_end_condition(value)

    @property
    def offers_count_entry(self) -> bool:
        return self._baseline is None

    @property
    def current(self) -> RecurrenceOptions:
        """The options as currently edited.

        Raises
        ------
        InvalidOptions if an end date is selected but not given.
        """
        return self._form.to_options()

    @property
    def baseline(self) -> RecurrenceOptions | None:
        return None if self._baseline is None else self._baseline.to_options()

    def has_changed(self) -> bool:
        """Whether the recurrence shape differs from the one loaded for editing.
        Always true for a new series, and for a series whose recurrence was
        switched off."""
        if self._baseline is None or not self.is_recurring:
            return True
        return self._form != self._baseline

    def load_from_rule(self, rule: str):
        """Populate the state from an existing series and snapshot it as the
        baseline.

        Raises
        ------
        InvalidRule if `rule` cannot be decoded.
        """
        _, options = codec.decode(rule)
        if isinstance(options.end_condition, AfterCount):
            last = last_occurrence(rule)
            options = replace(options, end_condition=Until(last.date()))
        form = RecurrenceForm(
            frequency=options.frequency,
            interval=options.interval,
            occurrence_count=self._defaults.occurrence_count,
            until_date=self._defaults.until_date,
        ).with_end_condition(options.end_condition)
        self._form = form
        self._baseline = form
        self.is_recurring = True

    def to_rule(
        self, anchor_date: datetime.date | None, anchor_time: datetime.time | None
    ) -> str | None:
        """Encode the current options for a lesson starting at the given date and
        time, or return None if the lesson does not recur."""
        if not self.is_recurring:
            return None
        return codec.encode(anchor_date, anchor_time, self.current)

    def rebind(self, existing_rule: str) -> str | None:
        """Apply the current options to `existing_rule`, keeping its anchor."""
        if not self.is_recurring:
            return None
        return codec.rebind(existing_rule, self.current)

    def reset(self):
        self._form = self._defaults
        self._baseline = None
        self.is_recurring = False
