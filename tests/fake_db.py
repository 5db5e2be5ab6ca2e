"""In-memory DB-API stand-ins for executor tests.

A FakeConnection is scripted with a mapping from SQL text to the result
sets the engine would return (or an exception to raise). Every executed
statement is recorded in ``executed`` in order.
"""

from __future__ import annotations

from typing import Any


class FakeCursor:
    def __init__(self, connection: FakeConnection) -> None:
        self.connection = connection
        self.closed = False
        self._sets: list[tuple[list[str], list[tuple[Any, ...]]] | None] = []
        self._index = 0

    @property
    def description(self) -> list[tuple[Any, ...]] | None:
        if self._index >= len(self._sets) or self._sets[self._index] is None:
            return None
        columns, _ = self._sets[self._index]
        return [(name, None, None, None, None, None, None) for name in columns]

    def execute(self, sql: str) -> None:
        self.connection.executed.append(sql)
        outcome = self.connection.script.get(sql, [])
        if isinstance(outcome, BaseException):
            raise outcome
        self._sets = list(outcome)
        self._index = 0

    def fetchall(self) -> list[tuple[Any, ...]]:
        current = self._sets[self._index]
        assert current is not None
        return list(current[1])

    def nextset(self) -> bool | None:
        if self._index + 1 < len(self._sets):
            self._index += 1
            return True
        return None

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    """``script`` maps SQL to a list of (columns, rows) tuples, None for a
    row-count-only statement, or an exception instance to raise."""

    def __init__(self, script: dict[str, Any] | None = None) -> None:
        self.script = script or {}
        self.executed: list[str] = []
        self.cursors: list[FakeCursor] = []
        self.closed = False

    def cursor(self) -> FakeCursor:
        cursor = FakeCursor(self)
        self.cursors.append(cursor)
        return cursor

    def close(self) -> None:
        self.closed = True


class FakeProvider:
    def __init__(self, connection: FakeConnection | None = None, error: Exception | None = None) -> None:
        self.connection = connection or FakeConnection()
        self.error = error
        self.calls = 0

    def create_connection(self) -> FakeConnection:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.connection
