#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""The lesson table and the batched writes applied to it."""

import asyncio
import copy
import datetime
import logging
import uuid
from typing import Any, NamedTuple, Protocol, Self, Sequence

import polars as pl

from lesson_calendar.lessons import Lesson, LessonId
from lesson_calendar.store.schemas import LESSON_SCHEMA

logger = logging.getLogger(__name__)


class LessonNotFound(KeyError):
    pass


class LessonCreate(NamedTuple):
    lesson: Lesson


class LessonUpdate(NamedTuple):
    lesson_id: LessonId
    fields: dict[str, Any]


class LessonDelete(NamedTuple):
    lesson_id: LessonId


LessonOperation = LessonCreate | LessonUpdate | LessonDelete


class LessonStoreProtocol(Protocol):
    """What the recurrence engine needs from lesson persistence."""

    def get_lesson(self, lesson_id: LessonId) -> Lesson: ...

    def series_lessons(self, rule: str) -> list[Lesson]: ...

    async def apply(self, operations: Sequence[LessonOperation]) -> None: ...


class LessonStore:
    """In-memory lesson table backed by a `polars` dataframe.

    Parameters
    ----------
    write_latency
        Seconds each batched write waits before committing, to mimic a remote
        database round trip.

    Notes
    -----
    1. `apply` is all or nothing: operations are applied to a copy of the table,
    which replaces the stored table only once every operation has succeeded.
    2. The dataframe returned by `get_database` should be treated as immutable.
    """

    schema: dict[str, Any] = LESSON_SCHEMA

    def __init__(self, write_latency: float = 0.0):
        self.write_latency = write_latency
        self._lessons = pl.DataFrame(schema=self.schema)

    @classmethod
    def from_lessons(cls, lessons: list[Lesson], write_latency: float = 0.0) -> Self:
        """Create a store seeded with `lessons`. Lessons without an ID get one."""
        store = cls(write_latency=write_latency)
        store._lessons = _apply_operations(
            store._lessons, [LessonCreate(lesson) for lesson in lessons]
        )
        return store

    def get_database(self) -> pl.DataFrame:
        return self._lessons

    def all_lessons(self) -> list[Lesson]:
        return _to_lessons(self._lessons.sort("starts_at"))

    def get_lesson(self, lesson_id: LessonId) -> Lesson:
        """Retrieve the lesson with `lesson_id`.

        Raises
        ------
        LessonNotFound if there is no such lesson.
        """
        records = _to_lessons(self._lessons.filter(pl.col("lesson_id") == lesson_id))
        if not records:
            raise LessonNotFound(f"No lesson with ID {lesson_id} was found")
        assert len(records) == 1
        return records[0]

    def series_lessons(self, rule: str) -> list[Lesson]:
        """The lessons of the series described by `rule`, in chronological order."""
        return _to_lessons(
            self._lessons.filter(pl.col("recurrence_rule") == rule).sort("starts_at")
        )

    def lessons_between(
        self, start: datetime.datetime, end: datetime.datetime
    ) -> list[Lesson]:
        """The lessons starting in the closed interval [`start`, `end`]."""
        return _to_lessons(
            self._lessons.filter(pl.col("starts_at").is_between(start, end)).sort(
                "starts_at"
            )
        )

    async def apply(self, operations: Sequence[LessonOperation]) -> None:
        """Apply a batch of operations atomically.

        Raises
        ------
        LessonNotFound if an update or delete targets a missing lesson.
        KeyError if an update names an unknown column or a created lesson ID
        already exists.
        """
        updated = _apply_operations(self._lessons, operations)
        if self.write_latency:
            await asyncio.sleep(self.write_latency)
        self._lessons = updated
        logger.debug(f"Committed {len(operations)} lesson operations")


def _to_lessons(dataframe: pl.DataFrame) -> list[Lesson]:
    return [Lesson(**record) for record in dataframe.to_dicts()]


def _apply_operations(
    dataframe: pl.DataFrame, operations: Sequence[LessonOperation]
) -> pl.DataFrame:
    """Return a copy of `dataframe` with `operations` applied in order."""
    for operation in operations:
        match operation:
            case LessonCreate(lesson=lesson):
                row = copy.deepcopy(lesson.model_dump())
                if row["lesson_id"] is None:
                    row["lesson_id"] = str(uuid.uuid4())
                existing = dataframe.filter(pl.col("lesson_id") == row["lesson_id"])
                if not existing.is_empty():
                    raise KeyError(f"Lesson {row['lesson_id']} already exists")
                dataframe = dataframe.vstack(pl.DataFrame([row], schema=LESSON_SCHEMA))
            case LessonUpdate(lesson_id=lesson_id, fields=fields):
                updatable = set(LESSON_SCHEMA) - {"lesson_id"}
                if unknown := set(fields) - updatable:
                    raise KeyError(
                        f"Only columns {updatable} can be updated. Found {unknown}"
                    )
                target = pl.col("lesson_id") == lesson_id
                if dataframe.filter(target).is_empty():
                    raise LessonNotFound(f"No lesson with ID {lesson_id} was found")
                dataframe = dataframe.with_columns(
                    [
                        pl.when(target)
                        .then(pl.lit(value, dtype=LESSON_SCHEMA[column]))
                        .otherwise(pl.col(column))
                        .alias(column)
                        for column, value in fields.items()
                    ]
                )
            case LessonDelete(lesson_id=lesson_id):
                target = pl.col("lesson_id") == lesson_id
                if dataframe.filter(target).is_empty():
                    raise LessonNotFound(f"No lesson with ID {lesson_id} was found")
                dataframe = dataframe.filter(~target)
            case _:
                raise TypeError(f"Unsupported lesson operation {operation!r}")
    return dataframe
