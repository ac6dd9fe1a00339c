#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
from lesson_calendar.recurrence.codec import (
    AfterCount,
    EndCondition,
    Frequency,
    Never,
    RecurrenceOptions,
    Until,
    decode,
    encode,
    rebind,
)
from lesson_calendar.recurrence.exceptions import (
    InvalidOptions,
    InvalidRule,
    InvalidTransition,
    MutationInProgress,
    OccurrenceNotFound,
    SeriesMutationError,
)
from lesson_calendar.recurrence.occurrences import (
    expand,
    has_future_occurrences,
    is_occurrence,
    last_occurrence,
    next_occurrence_after,
    occurrences_between,
    previous_occurrence_before,
)
from lesson_calendar.recurrence.scope import (
    Action,
    Scope,
    SeriesMutation,
    SplitPlan,
    resolve_split,
    truncate,
)
from lesson_calendar.recurrence.state import EndType, RecurrenceForm, RecurrenceState
