#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
from lesson_calendar.store.lesson_store import (
    LessonCreate,
    LessonDelete,
    LessonNotFound,
    LessonOperation,
    LessonStore,
    LessonStoreProtocol,
    LessonUpdate,
)
