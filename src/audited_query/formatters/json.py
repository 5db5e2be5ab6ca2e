"""JSON formatter for QueryResult output."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from audited_query.formatters.base import registry, row_cells

if TYPE_CHECKING:
    from collections.abc import Iterator

    from audited_query.core.models import QueryResult, ResultSet


def _serialize_value(val: Any) -> Any:
    if isinstance(val, (int, float, str, bool, type(None))):
        return val
    return str(val)


def _rows(result_set: ResultSet) -> list[dict[str, Any]]:
    return [
        {
            col: _serialize_value(value)
            for col, value in zip(
                result_set.column_names, row_cells(result_set, row), strict=True
            )
        }
        for row in result_set.rows
    ]


class JSONFormatter:
    """A single result set renders as a list of rows; several as a list of lists."""

    def __init__(self, compact: bool = False) -> None:
        self.compact = compact

    def format(self, result: QueryResult) -> Iterator[str]:
        sets = [_rows(rs) for rs in result.result_sets]
        payload: Any = sets[0] if len(sets) == 1 else sets

        if self.compact:
            yield json.dumps(payload, default=str)
        else:
            yield json.dumps(payload, indent=2, default=str)


registry.register("json", JSONFormatter, option="compact")
