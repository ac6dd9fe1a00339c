#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
import polars as pl

LESSON_SCHEMA = {
    "lesson_id": pl.String,
    "starts_at": pl.Datetime,
    "duration_minutes": pl.Int32,
    "recurrence_rule": pl.String,
    "note": pl.String,
}
