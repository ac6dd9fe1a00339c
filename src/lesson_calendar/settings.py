#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Calendar settings, validated against a structured `omegaconf` schema."""

from dataclasses import dataclass, field
from pathlib import Path

from omegaconf import DictConfig, OmegaConf

from lesson_calendar.recurrence.codec import Frequency
from lesson_calendar.recurrence.state import RecurrenceForm

CONFIGS_DIR = Path(__file__).resolve().parent / "configs"
DEFAULT_CONFIG_PATH = CONFIGS_DIR / "calendar.yaml"


@dataclass
class RecurrenceDefaults:
    """Values the recurrence section of the lesson form starts from."""

    frequency: Frequency = Frequency.WEEKLY
    interval: int = 1
    occurrence_count: int = 10


@dataclass
class StoreSettings:
    write_latency: float = 0.0


@dataclass
class CalendarSettings:
    """
    Parameters
    ----------
    recurrence
        Defaults for new recurring lessons.
    max_unbounded_occurrences
        How many lessons are created for a series which never ends.
    default_duration_minutes
        Duration of a new lesson when the user does not change it.
    store
        Settings of the in-memory lesson store.
    """

    recurrence: RecurrenceDefaults = field(default_factory=RecurrenceDefaults)
    max_unbounded_occurrences: int = 52
    default_duration_minutes: int = 60
    store: StoreSettings = field(default_factory=StoreSettings)


def resolve_settings(node: DictConfig | dict) -> DictConfig:
    """Validate `node` against the `CalendarSettings` schema, filling in defaults."""
    return OmegaConf.merge(OmegaConf.structured(CalendarSettings), node)


def load_settings(
    config_path: Path | str | None = None, overrides: list[str] | None = None
) -> DictConfig:
    """Load the calendar settings.

    Parameters
    ----------
    config_path
        YAML file with the settings. Defaults to the packaged `calendar.yaml`.
    overrides
        Dot-list overrides, eg ``["recurrence.interval=2"]``.
    """
    file_settings = OmegaConf.load(config_path or DEFAULT_CONFIG_PATH)
    return OmegaConf.merge(
        resolve_settings(file_settings), OmegaConf.from_dotlist(overrides or [])
    )


def recurrence_defaults(settings: DictConfig) -> RecurrenceForm:
    defaults = settings.recurrence
    return RecurrenceForm(
        frequency=Frequency(defaults.frequency),
        interval=defaults.interval,
        occurrence_count=defaults.occurrence_count,
    )
