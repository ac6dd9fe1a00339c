#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Conversion between recurrence rule strings and structured recurrence options.

Rule strings follow a subset of RFC 5545: a ``DTSTART`` line carrying the anchor
instant and a single ``RRULE`` line with ``FREQ``, ``INTERVAL`` and at most one of
``UNTIL`` or ``COUNT``::

    DTSTART:20240101T090000
    RRULE:FREQ=WEEKLY;INTERVAL=2;UNTIL=20240131T235959

All instants are naive civil datetimes. Time zone designators found in a rule are
dropped and the wall-clock value is kept.
"""

import datetime
from dataclasses import dataclass
from enum import StrEnum, auto
from typing import NamedTuple

from dateutil import parser, rrule

from lesson_calendar.recurrence.exceptions import InvalidOptions, InvalidRule

UNTIL_CUTOFF_TIME = datetime.time(23, 59, 59)
"""An `Until` end date includes every occurrence on that civil day."""


class Frequency(StrEnum):
    DAILY = auto()
    WEEKLY = auto()
    MONTHLY = auto()


FREQUENCY_TO_RRULE = {
    Frequency.DAILY: rrule.DAILY,
    Frequency.WEEKLY: rrule.WEEKLY,
    Frequency.MONTHLY: rrule.MONTHLY,
}


@dataclass(frozen=True)
class Never:
    """The series repeats without end."""


@dataclass(frozen=True)
class Until:
    """The series ends with the last occurrence on or before `date`."""

    date: datetime.date


@dataclass(frozen=True)
class AfterCount:
    """The series ends after `count` occurrences."""

    count: int


EndCondition = Never | Until | AfterCount


@dataclass(frozen=True)
class RecurrenceOptions:
    """The shape of a recurring series, independent of its anchor.

    Parameters
    ----------
    frequency
        The unit of repetition.
    interval
        Number of `frequency` units between occurrences. For example, a WEEKLY
        frequency with an interval of 2 means once every two weeks.
    end_condition
        When the series stops.
    """

    frequency: Frequency = Frequency.WEEKLY
    interval: int = 1
    end_condition: EndCondition = Never()

    @property
    def bounded(self) -> bool:
        return not isinstance(self.end_condition, Never)


class DecodedRule(NamedTuple):
    anchor: datetime.datetime
    options: RecurrenceOptions


def validate_options(options: RecurrenceOptions, anchor_date: datetime.date):
    """Check the invariants a rule must satisfy before it is serialised.

    Raises
    ------
    InvalidOptions if the interval or count is below 1, or if the until date is
    before `anchor_date`.
    """
    if options.interval < 1:
        raise InvalidOptions(f"Interval must be at least 1, got {options.interval}")
    end = options.end_condition
    if isinstance(end, AfterCount) and end.count < 1:
        raise InvalidOptions(f"Occurrence count must be at least 1, got {end.count}")
    if isinstance(end, Until) and end.date < anchor_date:
        raise InvalidOptions(
            f"Series cannot end on {end.date}, before it starts on {anchor_date}"
        )


def to_rrule(anchor: datetime.datetime, options: RecurrenceOptions) -> rrule.rrule:
    """Build the `dateutil` rule expanding `options` from `anchor`.

    Notes
    -----
    For MONTHLY rules `dateutil` repeats on the anchor's day of month, so months
    without that day (eg the 31st in April) are skipped rather than clamped.
    """
    end = options.end_condition
    rule_params = {
        "freq": FREQUENCY_TO_RRULE[options.frequency],
        "interval": options.interval,
        "dtstart": anchor,
        "until": (
            datetime.datetime.combine(end.date, UNTIL_CUTOFF_TIME)
            if isinstance(end, Until)
            else None
        ),
        "count": end.count if isinstance(end, AfterCount) else None,
    }
    return rrule.rrule(**{k: v for k, v in rule_params.items() if v is not None})


def _serialise(anchor: datetime.datetime, options: RecurrenceOptions) -> str:
    validate_options(options, anchor.date())
    return str(to_rrule(anchor, options))


def encode(
    anchor_date: datetime.date | None,
    anchor_time: datetime.time | None,
    options: RecurrenceOptions,
    recurring: bool = True,
) -> str | None:
    """Serialise `options` into a rule string anchored at the given date and time.

    Returns
    -------
    The rule string, or None when the lesson is not recurring or when either part
    of the anchor is missing.

    Raises
    ------
    InvalidOptions if `options` violate an invariant (see `validate_options`).
    """
    if not recurring or anchor_date is None or anchor_time is None:
        return None
    anchor = datetime.datetime.combine(anchor_date, anchor_time)
    # rule strings carry second precision
    anchor = anchor.replace(tzinfo=None, microsecond=0)
    return _serialise(anchor, options)


def rebind(existing_rule: str, new_options: RecurrenceOptions) -> str:
    """Replace the shape of `existing_rule` while keeping its anchor, so that
    editing the recurrence never moves the start of the series."""
    anchor, _ = decode(existing_rule)
    return _serialise(anchor, new_options)


def _parse_instant(value: str, what: str) -> datetime.datetime:
    try:
        return parser.parse(value, ignoretz=True)
    except (ValueError, OverflowError):
        raise InvalidRule(f"Could not parse {what} instant {value!r}")


def _parse_int(value: str, what: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise InvalidRule(f"{what} must be an integer, got {value!r}")


def _split_rule_parts(value: str) -> dict[str, str]:
    parts = {}
    for item in value.strip().strip(";").split(";"):
        key, sep, part_value = item.partition("=")
        key = key.strip().upper()
        if not sep or not key:
            raise InvalidRule(f"Malformed rule part {item!r}")
        if key in parts:
            raise InvalidRule(f"Rule part {key} is repeated")
        parts[key] = part_value.strip()
    return parts


def decode(rule_string: str, anchor: datetime.datetime | None = None) -> DecodedRule:
    """Parse a rule string into its anchor instant and recurrence options.

    Parameters
    ----------
    rule_string
        The serialised rule, with or without a ``DTSTART`` line.
    anchor
        Used when `rule_string` carries no ``DTSTART`` line.

    Raises
    ------
    InvalidRule if the string is empty, names an unsupported frequency or rule
    part, has an end condition that is neither an absolute cutoff nor a positive
    count, has a cutoff before its first occurrence, or if no anchor is available.
    """
    if not rule_string or not rule_string.strip():
        raise InvalidRule("Empty recurrence rule")
    dtstart, parts = None, None
    for line in rule_string.strip().splitlines():
        line = line.strip()
        if not line:
            continue
        name, sep, value = line.partition(":")
        if not sep:
            name, value = "RRULE", line
        name = name.strip().upper()
        # parameters such as TZID are ignored
        if name.split(";")[0] == "DTSTART":
            dtstart = _parse_instant(value, "DTSTART")
        elif name == "RRULE":
            if parts is not None:
                raise InvalidRule("Only a single RRULE per series is supported")
            parts = _split_rule_parts(value)
        else:
            raise InvalidRule(f"Unsupported rule property {name!r}")
    if parts is None:
        raise InvalidRule(f"No RRULE found in {rule_string!r}")
    if dtstart is None:
        if anchor is None:
            raise InvalidRule(f"Rule {rule_string!r} is not anchored")
        dtstart = anchor.replace(tzinfo=None, microsecond=0)

    freq_token = parts.pop("FREQ", None)
    try:
        frequency = Frequency[freq_token.upper()]
    except (KeyError, AttributeError):
        raise InvalidRule(f"Unsupported frequency {freq_token!r}")
    interval = _parse_int(parts.pop("INTERVAL", "1"), "INTERVAL")
    if interval < 1:
        raise InvalidRule(f"INTERVAL must be at least 1, got {interval}")

    until_token, count_token = parts.pop("UNTIL", None), parts.pop("COUNT", None)
    if parts:
        raise InvalidRule(f"Unsupported rule parts {sorted(parts)}")
    if until_token is not None and count_token is not None:
        raise InvalidRule("UNTIL and COUNT cannot both be set")
    if until_token is not None:
        cutoff = _parse_instant(until_token, "UNTIL")
        last_day = cutoff.date()
        # occurrences share the anchor's time of day
        if cutoff.time() < dtstart.time():
            last_day -= datetime.timedelta(days=1)
        if last_day < dtstart.date():
            raise InvalidRule(f"UNTIL {until_token} ends the series before it starts")
        end_condition = Until(last_day)
    elif count_token is not None:
        count = _parse_int(count_token, "COUNT")
        if count < 0:
            raise InvalidRule(f"COUNT must be non-negative, got {count}")
        if count == 0:
            raise InvalidRule("A series with COUNT=0 has no occurrences")
        end_condition = AfterCount(count)
    else:
        end_condition = Never()
    return DecodedRule(
        anchor=dtstart,
        options=RecurrenceOptions(
            frequency=frequency, interval=interval, end_condition=end_condition
        ),
    )
