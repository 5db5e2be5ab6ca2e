"""Rich table formatter, one table per result set."""

from __future__ import annotations

import shutil
from io import StringIO
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from audited_query.formatters.base import cell_text, registry, row_cells, separated

if TYPE_CHECKING:
    from collections.abc import Iterator

    from audited_query.core.models import QueryResult, ResultSet

_NO_RESULTS = "No results"


def _truncate(value: str, width: int) -> str:
    if len(value) <= width:
        return value
    return value[: width - 1] + "…"


class TableFormatter:
    def __init__(self, width: int = 40) -> None:
        self.width = width

    def _render(self, result_set: ResultSet) -> str:
        table = Table(show_edge=True, pad_edge=True)
        for col in result_set.column_names:
            table.add_column(col, no_wrap=True)

        for row in result_set.rows:
            table.add_row(
                *(_truncate(cell_text(v), self.width) for v in row_cells(result_set, row))
            )

        buf = StringIO()
        term_width = shutil.get_terminal_size((120, 24)).columns
        console = Console(file=buf, force_terminal=True, width=term_width)
        console.print(table)
        return buf.getvalue().rstrip("\n")

    def format(self, result: QueryResult) -> Iterator[str]:
        sets = [rs for rs in result.result_sets if rs.rows]
        if not sets:
            yield _NO_RESULTS
            return

        yield from separated([self._render(rs)] for rs in sets)


registry.register("table", TableFormatter, option="width")
