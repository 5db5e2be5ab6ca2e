"""Formatter protocol, shared result-set helpers and the format registry."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from audited_query.core.models import QueryResult, ResultSet


@runtime_checkable
class Formatter(Protocol):
    """Turns every result set of a QueryResult into output lines."""

    def format(self, result: QueryResult) -> Iterator[str]: ...


def cell_text(value: Any) -> str:
    """NULL renders as an empty cell."""
    return "" if value is None else str(value)


def row_cells(result_set: ResultSet, row: dict[str, Any]) -> list[Any]:
    """Values of one row in the set's column order."""
    return [row.get(col) for col in result_set.column_names]


def separated(blocks: Iterable[Iterable[str]]) -> Iterator[str]:
    """Chain per-set output, with a blank line between result sets."""
    for index, block in enumerate(blocks):
        if index > 0:
            yield ""
        yield from block


class _Registration(NamedTuple):
    formatter_class: type[Formatter]
    option: str | None


class FormatterRegistry:
    """Formatters by name, each with the one CLI output option it honours."""

    def __init__(self) -> None:
        self._formatters: dict[str, _Registration] = {}

    def register(
        self, name: str, formatter_class: type[Formatter], option: str | None = None
    ) -> None:
        self._formatters[name] = _Registration(formatter_class, option)

    def get(self, name: str, **kwargs: object) -> Formatter:
        """Return a formatter instance by name.

        Raises KeyError if the format name is not registered.
        """
        if name not in self._formatters:
            available = ", ".join(sorted(self._formatters))
            msg = f"Unknown format {name!r}. Available: {available}"
            raise KeyError(msg)
        return self._formatters[name].formatter_class(**kwargs)

    def create(self, name: str, options: dict[str, object]) -> Formatter:
        """Build a formatter, passing only the option it was registered with.

        The CLI collects --width, --compact and --no-header together; each
        formatter understands at most one of them.
        """
        option = self._formatters[name].option if name in self._formatters else None
        if option is not None and option in options:
            return self.get(name, **{option: options[option]})
        return self.get(name)

    @property
    def available(self) -> list[str]:
        return sorted(self._formatters)


registry = FormatterRegistry()
