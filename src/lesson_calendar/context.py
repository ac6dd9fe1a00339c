#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Self

from omegaconf import DictConfig

from lesson_calendar.lessons import Lesson
from lesson_calendar.recurrence.state import RecurrenceState
from lesson_calendar.settings import load_settings, recurrence_defaults
from lesson_calendar.store.lesson_store import LessonStore, LessonStoreProtocol


@dataclass
class CalendarContext:
    """Everything a lesson editing session works with, passed explicitly to the
    components that need it.

    Parameters
    ----------
    store
        Where lessons are read from and written to.
    settings
        The calendar settings (see `lesson_calendar.settings.CalendarSettings`).
    recurrence
        Recurrence options of the lesson currently being edited.
    on_refresh
        Called after lessons were written, so views can reload them.
    in_flight
        Lesson IDs and series rules with a store write under way. Shared by all
        coordinators working on `store`.
    """

    store: LessonStoreProtocol
    settings: DictConfig
    recurrence: RecurrenceState | None = None
    on_refresh: Callable[[], Any] | None = None
    in_flight: set[str] = field(default_factory=set)

    def __post_init__(self):
        if self.recurrence is None:
            self.recurrence = RecurrenceState(recurrence_defaults(self.settings))

    @classmethod
    def in_memory(
        cls,
        lessons: list[Lesson] | None = None,
        settings: DictConfig | None = None,
        on_refresh: Callable[[], Any] | None = None,
    ) -> Self:
        """A context backed by an in-memory `LessonStore` seeded with `lessons`."""
        if settings is None:
            settings = load_settings()
        store = LessonStore.from_lessons(
            lessons or [], write_latency=settings.store.write_latency
        )
        return cls(store=store, settings=settings, on_refresh=on_refresh)

    def begin_new_lesson(self) -> RecurrenceState:
        self.recurrence = RecurrenceState(recurrence_defaults(self.settings))
        return self.recurrence

    def begin_edit(self, lesson: Lesson) -> RecurrenceState:
        """Load the recurrence of `lesson` for editing."""
        self.recurrence = RecurrenceState.for_lesson(
            lesson, recurrence_defaults(self.settings)
        )
        return self.recurrence

    def end_session(self):
        self.recurrence.reset()
