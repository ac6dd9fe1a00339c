#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
import datetime

# every Monday at 9:00 from 2024-01-01, five times
WEEKLY_RULE = "DTSTART:20240101T090000\nRRULE:FREQ=WEEKLY;COUNT=5"
NEVER_ENDING_RULE = "DTSTART:20240101T090000\nRRULE:FREQ=WEEKLY"
MONTH_END_RULE = "DTSTART:20240131T090000\nRRULE:FREQ=MONTHLY"


def create_test_datetime(
    year: int, month: int, day: int, hour: int = 9, minute: int = 0
) -> datetime.datetime:
    return datetime.datetime(year, month, day, hour, minute)
