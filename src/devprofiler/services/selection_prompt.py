"""
Optional interactive pre-flight selection.

Lets the user search and pick among the aliases (author emails) and
repositories discovered for this run. The selection is only echoed back;
it never changes what gets exported.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table

logger = logging.getLogger(__name__)


@dataclass
class SelectionOptions:
    """Choices offered to the user."""

    aliases: List[str] = field(default_factory=list)
    repos: List[str] = field(default_factory=list)

    def labelled(self) -> List[str]:
        return [f"alias: {a}" for a in self.aliases] + [
            f"repo: {r}" for r in self.repos
        ]


def filter_options(options: List[str], search_term: str) -> List[str]:
    """Keep options containing search_term (case-insensitive, empty matches all)."""
    needle = search_term.strip().lower()
    return [option for option in options if needle in option.lower()]


def parse_selection(raw: str, count: int) -> List[int]:
    """Parse "1, 3 4" into zero-based indexes, ignoring anything out of range."""
    indexes: List[int] = []
    for token in raw.replace(",", " ").split():
        if token.isdigit() and 1 <= int(token) <= count:
            index = int(token) - 1
            if index not in indexes:
                indexes.append(index)
    return indexes


def run_selection_prompt(
    options: SelectionOptions, console: Optional[Console] = None
) -> List[str]:
    """Prompt for a search term, then let the user pick matching options.

    Loops until the user declines to select more.

    Returns:
        The selected option labels, in selection order
    """
    console = console or Console()
    search_term = click.prompt("Enter search term", default="", show_default=False)
    selected: List[str] = []

    while True:
        matches = filter_options(options.labelled(), search_term)
        if not matches:
            console.print("No options available", style="yellow")
            return selected

        table = Table(show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Option")
        for number, option in enumerate(matches, start=1):
            table.add_row(str(number), option)
        console.print(table)

        raw = click.prompt(
            "Select options (numbers separated by spaces or commas)",
            default="",
            show_default=False,
        )
        for index in parse_selection(raw, len(matches)):
            console.print(f"Option {index + 1} selected: {matches[index]}")
            if matches[index] not in selected:
                selected.append(matches[index])

        if not click.confirm("Do you want to select more options?", default=False):
            break

    logger.debug(f"Pre-flight selection: {selected}")
    return selected
