from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from sweetlog.ledger import format_human_date
from sweetlog.normalizer import FixedCommit

MESSAGE_WIDTH = 50


def shorten(message: str, width: int = MESSAGE_WIDTH) -> str:
    if len(message) > width:
        return message[:width] + "..."
    return message


def fixes_table(fixes: Sequence[FixedCommit]) -> Table:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Hash", style="cyan", no_wrap=True)
    table.add_column("Message", style="white")
    table.add_column("Date", style="yellow", no_wrap=True)
    table.add_column("Fixed date", style="green", no_wrap=True)

    for fix in fixes:
        table.add_row(
            fix.record.short_hash,
            escape(shorten(fix.record.message)),
            format_human_date(fix.record.author_date),
            format_human_date(fix.author_date_fixed),
        )
    return table


def print_fixes(fixes: Sequence[FixedCommit], console: Optional[Console] = None) -> None:
    console = console or Console()
    console.print(f"{len(fixes)} commit(s) to modify")
    if fixes:
        console.print(fixes_table(fixes))
