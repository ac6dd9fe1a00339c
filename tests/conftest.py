#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
import pytest
from omegaconf import DictConfig

from lesson_calendar.context import CalendarContext
from lesson_calendar.lessons import Lesson, materialize
from lesson_calendar.settings import load_settings
from tests.utils import WEEKLY_RULE, create_test_datetime


@pytest.fixture()
def settings() -> DictConfig:
    return load_settings()


@pytest.fixture()
def weekly_lessons() -> list[Lesson]:
    template = Lesson(
        starts_at=create_test_datetime(2024, 1, 1),
        duration_minutes=45,
        note="Piano",
    )
    return materialize(template, WEEKLY_RULE)


@pytest.fixture()
def single_lesson() -> Lesson:
    return Lesson(
        lesson_id="single",
        starts_at=create_test_datetime(2024, 1, 3, hour=17),
        note="Theory",
    )


@pytest.fixture()
def refreshes() -> list[int]:
    return []


@pytest.fixture()
def calendar_context(
    weekly_lessons: list[Lesson],
    single_lesson: Lesson,
    settings: DictConfig,
    refreshes: list[int],
) -> CalendarContext:
    """A context whose store holds the five lessons of `WEEKLY_RULE` and one
    lesson which does not recur. Each refresh appends to `refreshes`."""
    return CalendarContext.in_memory(
        weekly_lessons + [single_lesson],
        settings=settings,
        on_refresh=lambda: refreshes.append(len(refreshes)),
    )
