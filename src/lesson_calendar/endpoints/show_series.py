#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
import datetime
import logging

import hydra
from dateutil import parser
from omegaconf import DictConfig, OmegaConf
from rich.console import Console
from rich.table import Table

from lesson_calendar.recurrence import codec
from lesson_calendar.recurrence.codec import AfterCount, EndCondition, Never, Until
from lesson_calendar.recurrence.exceptions import InvalidRule
from lesson_calendar.recurrence.occurrences import (
    expand,
    has_future_occurrences,
    last_occurrence,
    next_occurrence_after,
)
from lesson_calendar.settings import resolve_settings

logger = logging.getLogger(__name__)


def describe_end(end_condition: EndCondition) -> str:
    match end_condition:
        case Until(date=date):
            return f"until {date:%Y-%m-%d}"
        case AfterCount(count=count):
            return f"after {count} occurrences"
        case Never():
            return "never"


def occurrences_to_show(
    rule: str,
    settings: DictConfig,
    after: datetime.datetime | None = None,
    limit: int = 10,
) -> list[datetime.datetime]:
    """The first `limit` occurrences of `rule` after `after`, never more than a
    materialized series holds."""
    limit = min(limit, settings.max_unbounded_occurrences)
    return expand(rule, limit=limit, after=after)


def display_series(
    rule: str,
    occurrences: list[datetime.datetime],
    after: datetime.datetime | None = None,
):
    """Display the shape of `rule` followed by a table of `occurrences`

    ┏━━━┳━━━━━━━━━━━━━━━━━━━━━━┳━━━━━━━━━━━┓
    ┃ # ┃ Starts at            ┃ Continues ┃
    ┡━━━╇━━━━━━━━━━━━━━━━━━━━━━╇━━━━━━━━━━━┩
    """  # noqa

    anchor, options = codec.decode(rule)
    console = Console()
    console.print(
        f"[bold]{options.frequency}[/bold] every {options.interval} "
        f"from {anchor:%Y-%m-%d %H:%M}, ends {describe_end(options.end_condition)}"
    )
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right", style="cyan", no_wrap=True)
    table.add_column("Starts at", style="white")
    table.add_column("Continues", justify="center", style="green")
    for i, occurrence in enumerate(occurrences, start=1):
        continues = "yes" if has_future_occurrences(rule, occurrence) else "no"
        table.add_row(str(i), f"{occurrence:%a %Y-%m-%d %H:%M}", continues)
    console.print(table)

    last = last_occurrence(rule)
    console.print(f"Last occurrence: {last or 'none, the series never ends'}")
    if after is not None:
        upcoming = next_occurrence_after(rule, after)
        console.print(f"Next occurrence after {after}: {upcoming}")


@hydra.main(config_name="show_series", config_path="pkg://lesson_calendar.configs")
def main(cfg: DictConfig):
    settings = resolve_settings(cfg.settings)
    if cfg.debug:
        logger.info(OmegaConf.to_yaml(cfg, resolve=True))
    # line breaks are usually escaped on the command line
    rule = cfg.rule.replace("\\n", "\n")
    after = parser.parse(cfg.after, ignoretz=True) if cfg.after else None
    try:
        occurrences = occurrences_to_show(rule, settings, after=after, limit=cfg.limit)
    except InvalidRule as e:
        logger.error(f"Could not read rule {rule!r}: {e}")
        return
    display_series(rule, occurrences, after=after)
