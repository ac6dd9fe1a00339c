#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Confirmation flow for edits and deletes of lessons, and application of the
resulting plans to the lesson store.

The coordinator is a small state machine::

    IDLE -> SCOPE_PENDING -> [RECURRENCE_CHANGE_PENDING] -> RESOLVING -> IDLE

Lessons which do not recur skip both confirmations. An edit of this and future
occurrences which also changes the recurrence shape asks for a second
confirmation, since it rewrites every later lesson of the series.
"""

import datetime
import logging
import uuid
from enum import StrEnum, auto
from typing import NamedTuple

from lesson_calendar.context import CalendarContext
from lesson_calendar.lessons import Lesson, LessonChanges, materialize
from lesson_calendar.recurrence.exceptions import (
    InvalidTransition,
    MutationInProgress,
    SeriesMutationError,
)
from lesson_calendar.recurrence.scope import (
    Action,
    Scope,
    SeriesMutation,
    SplitPlan,
    resolve_split,
)
from lesson_calendar.store.lesson_store import (
    LessonCreate,
    LessonDelete,
    LessonOperation,
    LessonUpdate,
)

logger = logging.getLogger(__name__)


class CoordinatorState(StrEnum):
    IDLE = auto()
    SCOPE_PENDING = auto()
    RECURRENCE_CHANGE_PENDING = auto()
    RESOLVING = auto()


class MutationOutcome(NamedTuple):
    """The result of an applied mutation.

    Parameters
    ----------
    mutation
        What was applied.
    plan
        The split computed for a recurring lesson. None for lessons which do not
        recur.
    operations
        The batch written to the store.
    """

    mutation: SeriesMutation
    plan: SplitPlan | None
    operations: list[LessonOperation]


class SeriesMutationCoordinator:
    """Sequence the confirmations for an edit or delete and apply it.

    Parameters
    ----------
    context
        The editing context. Its `recurrence` state holds the recurrence options
        of the lesson being edited and its `in_flight` set is shared with other
        coordinators on the same store.
    """

    def __init__(self, context: CalendarContext):
        self.context = context
        self.state = CoordinatorState.IDLE
        self._action: Action | None = None
        self._lesson: Lesson | None = None
        self._changes: LessonChanges | None = None
        self._scope: Scope | None = None

    @property
    def pending_action(self) -> Action | None:
        return self._action

    @property
    def pending_lesson(self) -> Lesson | None:
        return self._lesson

    async def create_lesson(
        self,
        starts_at: datetime.datetime,
        duration_minutes: int | None = None,
        note: str | None = None,
    ) -> list[Lesson]:
        """Add a lesson, or a whole series if the recurrence state is recurring.

        Raises
        ------
        InvalidOptions if the recurrence options cannot be encoded.
        """
        self._expect(CoordinatorState.IDLE)
        settings = self.context.settings
        template = Lesson(
            starts_at=starts_at,
            duration_minutes=duration_minutes or settings.default_duration_minutes,
            note=note,
        )
        rule = self.context.recurrence.to_rule(starts_at.date(), starts_at.time())
        if rule is None:
            lessons = [template.model_copy(update={"lesson_id": str(uuid.uuid4())})]
        else:
            lessons = materialize(
                template, rule, limit=settings.max_unbounded_occurrences
            )
        await self.context.store.apply([LessonCreate(lesson) for lesson in lessons])
        logger.info(f"Created {len(lessons)} lessons starting at {starts_at}")
        self._refresh()
        return lessons

    async def request_edit(
        self, lesson: Lesson, changes: LessonChanges | None = None
    ) -> MutationOutcome | None:
        """Ask to save `changes` to `lesson`.

        Returns
        -------
        The outcome if the lesson does not recur and the edit was applied
        straight away, otherwise None and the coordinator waits for `resolve`.
        """
        return await self._request(Action.EDIT, lesson, changes or LessonChanges())

    async def request_delete(self, lesson: Lesson) -> MutationOutcome | None:
        """Ask to delete `lesson`. See `request_edit`."""
        return await self._request(Action.DELETE, lesson, None)

    async def resolve(self, scope: Scope | str) -> MutationOutcome | None:
        """Apply the pending request to the occurrence alone (`Scope.SINGLE`) or to
        it and every later occurrence (`Scope.FUTURE`).

        Returns
        -------
        The outcome, or None if the request changes the recurrence shape of
        future occurrences and needs `confirm_recurrence_change` first.

        Raises
        ------
        SeriesMutationError if the change could not be applied. Nothing was
        written and the coordinator is idle again.
        """
        self._expect(CoordinatorState.SCOPE_PENDING)
        scope = Scope(scope)
        if (
            scope == Scope.FUTURE
            and self._action == Action.EDIT
            and self.context.recurrence.has_changed()
        ):
            self._scope = scope
            self.state = CoordinatorState.RECURRENCE_CHANGE_PENDING
            return None
        return await self._resolve(scope)

    async def confirm_recurrence_change(self) -> MutationOutcome:
        self._expect(CoordinatorState.RECURRENCE_CHANGE_PENDING)
        return await self._resolve(self._scope)

    def cancel(self):
        """Abandon the pending request. Has no effect when idle."""
        if self.state == CoordinatorState.RESOLVING:
            raise InvalidTransition("A mutation being applied cannot be cancelled")
        self._clear()

    async def _request(
        self, action: Action, lesson: Lesson, changes: LessonChanges | None
    ) -> MutationOutcome | None:
        self._expect(CoordinatorState.IDLE)
        self._check_not_in_flight(lesson.lesson_id, _guard_keys(lesson))
        self._action, self._lesson, self._changes = action, lesson, changes
        if lesson.recurrence_rule is None:
            return await self._resolve(Scope.SINGLE)
        self.state = CoordinatorState.SCOPE_PENDING
        return None

    async def _resolve(self, scope: Scope) -> MutationOutcome:
        lesson = self._lesson
        mutation = SeriesMutation.of(self._action, scope)
        claimed: set[str] = set()
        try:
            # the store is the source of truth for the rule, the view may be stale
            target = self.context.store.get_lesson(lesson.lesson_id)
            keys = _guard_keys(lesson) | _guard_keys(target)
            self._check_not_in_flight(lesson.lesson_id, keys)
            self.context.in_flight.update(keys)
            claimed = keys
            self.state = CoordinatorState.RESOLVING
            plan, operations = self._plan(mutation, target)
            await self.context.store.apply(operations)
        except MutationInProgress:
            raise
        except Exception as e:
            logger.error(
                f"Could not apply {mutation.name} to lesson {lesson.lesson_id}"
            )
            raise SeriesMutationError(
                f"Failed to {mutation.action} lesson {lesson.lesson_id}: {e}"
            ) from e
        finally:
            self.context.in_flight.difference_update(claimed)
            self._clear()
        logger.info(
            f"Applied {mutation.name} to lesson {lesson.lesson_id} "
            f"with {len(operations)} operations"
        )
        self._refresh()
        return MutationOutcome(mutation=mutation, plan=plan, operations=operations)

    def _plan(
        self, mutation: SeriesMutation, target: Lesson
    ) -> tuple[SplitPlan | None, list[LessonOperation]]:
        """Work out the store operations for `mutation` on `target`, the stored
        version of the pending lesson."""
        store = self.context.store
        recurrence = self.context.recurrence
        limit = self.context.settings.max_unbounded_occurrences
        changes = self._changes or LessonChanges()
        edited = changes.apply(target)

        if target.recurrence_rule is None:
            if mutation.action == Action.DELETE:
                return None, [LessonDelete(target.lesson_id)]
            new_rule = recurrence.to_rule(
                edited.starts_at.date(), edited.starts_at.time()
            )
            if new_rule is None:
                return None, [_update(target, edited)]
            # a single lesson turned into a series
            return None, [LessonDelete(target.lesson_id)] + _regenerate(
                edited, new_rule, target.lesson_id, limit
            )

        plan = resolve_split(
            target.recurrence_rule,
            target.starts_at,
            mutation,
            new_options=recurrence.current if recurrence.is_recurring else None,
            new_anchor=edited.starts_at,
        )
        match mutation:
            case SeriesMutation.EDIT_SINGLE:
                detached = edited.model_copy(update={"recurrence_rule": None})
                return plan, [_update(target, detached)]
            case SeriesMutation.DELETE_SINGLE:
                return plan, [LessonDelete(target.lesson_id)]
        series = store.series_lessons(target.recurrence_rule)
        operations: list[LessonOperation] = [
            LessonUpdate(lesson.lesson_id, {"recurrence_rule": plan.series_rule})
            for lesson in series
            if lesson.starts_at < plan.split_instant
        ]
        operations += [
            LessonDelete(lesson.lesson_id)
            for lesson in series
            if lesson.starts_at >= plan.split_instant
        ]
        if mutation == SeriesMutation.EDIT_FUTURE:
            if plan.new_rule is None:
                single = edited.model_copy(update={"recurrence_rule": None})
                operations.append(LessonCreate(single))
            else:
                operations += _regenerate(
                    edited, plan.new_rule, target.lesson_id, limit
                )
        return plan, operations

    def _check_not_in_flight(self, lesson_id: str, keys: set[str]):
        if busy := keys & self.context.in_flight:
            raise MutationInProgress(
                f"Lesson {lesson_id} is being updated, try again once the "
                f"current change completes ({len(busy)} conflicts)"
            )

    def _expect(self, state: CoordinatorState):
        if self.state != state:
            raise InvalidTransition(
                f"Expected state {state}, coordinator is {self.state}"
            )

    def _refresh(self):
        if self.context.on_refresh is not None:
            self.context.on_refresh()

    def _clear(self):
        self.state = CoordinatorState.IDLE
        self._action = self._lesson = self._changes = self._scope = None


def _guard_keys(lesson: Lesson) -> set[str]:
    return {key for key in (lesson.lesson_id, lesson.recurrence_rule) if key}


def _update(target: Lesson, edited: Lesson) -> LessonUpdate:
    fields = edited.model_dump(exclude={"lesson_id"})
    changed = {k: v for k, v in fields.items() if getattr(target, k) != v}
    return LessonUpdate(target.lesson_id, changed)


def _regenerate(
    template: Lesson, rule: str, first_id: str, limit: int
) -> list[LessonOperation]:
    """Create the lessons of `rule`, the first one reusing `first_id`."""
    lessons = materialize(template, rule, limit=limit)
    if lessons:
        lessons[0] = lessons[0].model_copy(update={"lesson_id": first_id})
    return [LessonCreate(lesson) for lesson in lessons]
