#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Lessons on the user's calendar and their expansion from recurrence rules."""

import calendar
import datetime
import logging
import uuid
from typing import NamedTuple

from pydantic import BaseModel

from lesson_calendar.recurrence.codec import decode
from lesson_calendar.recurrence.exceptions import InvalidRule
from lesson_calendar.recurrence.occurrences import (
    expand,
    has_future_occurrences,
    occurrences_between,
)

DEFAULT_LESSON_DURATION_MINUTES = 60

LessonId = str

logger = logging.getLogger(__name__)


class Lesson(BaseModel):
    """A lesson on the calendar.

    Parameters
    ----------
    lesson_id
        The unique ID of the lesson, assigned when it is stored.
    starts_at
        When the lesson starts.
    duration_minutes
        How long the lesson lasts.
    recurrence_rule
        If set, the lesson is one occurrence of the series described by the rule.
        All lessons of a series carry the same rule.
    note
        Free text attached to the lesson.
    """

    lesson_id: LessonId | None = None
    starts_at: datetime.datetime
    duration_minutes: int = DEFAULT_LESSON_DURATION_MINUTES
    recurrence_rule: str | None = None
    note: str | None = None

    @property
    def ends_at(self) -> datetime.datetime:
        return self.starts_at + datetime.timedelta(minutes=self.duration_minutes)

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_rule is not None

    def __str__(self) -> str:
        display = (
            f"Lesson starting at {self.starts_at:%Y-%m-%d %H:%M} "
            f"for {self.duration_minutes} minutes"
        )
        if self.is_recurring:
            display += " (recurring)"
        if self.note:
            display += f": {self.note}"
        return display


class LessonChanges(BaseModel):
    """Field changes made to a lesson in the editing form. Only the fields that
    were explicitly set are applied, so a note can be cleared by setting it to
    None."""

    starts_at: datetime.datetime | None = None
    duration_minutes: int | None = None
    note: str | None = None

    def apply(self, lesson: Lesson) -> Lesson:
        return lesson.model_copy(update=self.model_dump(exclude_unset=True))


def materialize(template: Lesson, rule: str, limit: int | None = None) -> list[Lesson]:
    """Create one lesson per occurrence of `rule`, copying the duration and note of
    `template`.

    Parameters
    ----------
    limit
        Cap on the number of lessons created for rules which never end, usually
        `CalendarSettings.max_unbounded_occurrences`. Required for such rules.

    Raises
    ------
    InvalidRule if `rule` cannot be decoded.
    """
    if decode(rule).options.bounded:
        limit = None
    return [
        template.model_copy(
            update={
                "lesson_id": str(uuid.uuid4()),
                "starts_at": occurrence,
                "recurrence_rule": rule,
            }
        )
        for occurrence in expand(rule, limit=limit)
    ]


def lesson_has_future_occurrences(lesson: Lesson) -> bool:
    """Whether the series `lesson` belongs to continues after it. False for
    non-recurring lessons and for lessons with an invalid rule."""
    if lesson.recurrence_rule is None:
        return False
    try:
        return has_future_occurrences(lesson.recurrence_rule, lesson.starts_at)
    except InvalidRule as e:
        logger.warning(
            f"Treating lesson {lesson.lesson_id} as non-recurring, invalid rule: {e}"
        )
        return False


class MonthWindow(NamedTuple):
    start: datetime.datetime
    end: datetime.datetime


def expand_for_window(lesson: Lesson, window: MonthWindow) -> list[datetime.datetime]:
    """The start instants of `lesson`'s series falling inside `window`.

    A lesson which does not recur, or whose rule cannot be read, contributes only
    its own start instant.
    """
    if lesson.recurrence_rule is not None:
        try:
            return occurrences_between(lesson.recurrence_rule, *window)
        except InvalidRule as e:
            logger.warning(
                f"Showing lesson {lesson.lesson_id} as a single lesson, "
                f"invalid rule: {e}"
            )
    if window.start <= lesson.starts_at <= window.end:
        return [lesson.starts_at]
    return []


def month_window(day: datetime.date) -> MonthWindow:
    """The first and last instants of the month containing `day`."""
    last_day = calendar.monthrange(day.year, day.month)[1]
    return MonthWindow(
        start=datetime.datetime(day.year, day.month, 1),
        end=datetime.datetime.combine(
            day.replace(day=last_day), datetime.time.max
        ),
    )
