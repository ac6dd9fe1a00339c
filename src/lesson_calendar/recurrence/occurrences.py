#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Expansion of rule strings into the concrete instants at which lessons occur.

Every function here decodes its rule with `codec.decode` and therefore raises
`InvalidRule` for malformed input. Months lacking the anchor's day of month are
skipped consistently by all of them, since they share one `dateutil` expansion.
"""

import datetime
from itertools import islice

from dateutil import rrule

from lesson_calendar.recurrence.codec import DecodedRule, decode, to_rrule


def _expansion(rule: str) -> tuple[DecodedRule, rrule.rrule]:
    decoded = decode(rule)
    return decoded, to_rrule(decoded.anchor, decoded.options)


def expand(
    rule: str, limit: int | None = None, after: datetime.datetime | None = None
) -> list[datetime.datetime]:
    """Return the occurrences of `rule` in chronological order.

    Parameters
    ----------
    limit
        Maximum number of occurrences returned. Required for rules without an
        end condition, callers pass `CalendarSettings.max_unbounded_occurrences`.
    after
        Only occurrences strictly after this instant are returned.

    Raises
    ------
    ValueError if `rule` never ends and no `limit` is given.
    """
    decoded, occurrences = _expansion(rule)
    if limit is None and not decoded.options.bounded:
        raise ValueError(f"A limit is required to expand never ending rule {rule!r}")
    if after is not None:
        return list(occurrences.xafter(after, count=limit, inc=False))
    if limit is None:
        return list(occurrences)
    return list(islice(occurrences, limit))


def last_occurrence(rule: str) -> datetime.datetime | None:
    """The final occurrence of a bounded rule, or None if the rule never ends."""
    decoded, occurrences = _expansion(rule)
    if not decoded.options.bounded:
        return None
    all_occurrences = list(occurrences)
    return all_occurrences[-1] if all_occurrences else None


def next_occurrence_after(
    rule: str, instant: datetime.datetime
) -> datetime.datetime | None:
    """The earliest occurrence strictly after `instant`, or None if the rule is
    exhausted."""
    _, occurrences = _expansion(rule)
    return occurrences.after(instant, inc=False)


def previous_occurrence_before(
    rule: str, instant: datetime.datetime
) -> datetime.datetime | None:
    """The latest occurrence strictly before `instant`, or None if `instant` is
    not after the anchor."""
    _, occurrences = _expansion(rule)
    return occurrences.before(instant, inc=False)


def is_occurrence(rule: str, instant: datetime.datetime) -> bool:
    _, occurrences = _expansion(rule)
    return instant in occurrences


def has_future_occurrences(rule: str, instant: datetime.datetime) -> bool:
    """Check whether the series continues after `instant`. A rule without an end
    condition always does."""
    decoded, occurrences = _expansion(rule)
    if not decoded.options.bounded:
        return True
    return occurrences.after(instant, inc=False) is not None


def occurrences_between(
    rule: str, start: datetime.datetime, end: datetime.datetime
) -> list[datetime.datetime]:
    """The occurrences falling in the closed interval [`start`, `end`]."""
    _, occurrences = _expansion(rule)
    return occurrences.between(start, end, inc=True)
