"""CSV formatter (RFC 4180); result sets are separated by a blank line."""

from __future__ import annotations

import csv
from io import StringIO
from typing import TYPE_CHECKING, Any

from audited_query.formatters.base import cell_text, registry, row_cells, separated

if TYPE_CHECKING:
    from collections.abc import Iterator

    from audited_query.core.models import QueryResult, ResultSet


def _write_row(values: list[Any]) -> str:
    buf = StringIO()
    writer = csv.writer(buf)
    writer.writerow([cell_text(v) for v in values])
    return buf.getvalue().rstrip("\r\n")


class CSVFormatter:
    def __init__(self, no_header: bool = False) -> None:
        self.no_header = no_header

    def _lines(self, result_set: ResultSet) -> Iterator[str]:
        if not self.no_header:
            yield _write_row(result_set.column_names)
        for row in result_set.rows:
            yield _write_row(row_cells(result_set, row))

    def format(self, result: QueryResult) -> Iterator[str]:
        return separated(self._lines(rs) for rs in result.result_sets)


registry.register("csv", CSVFormatter, option="no_header")
