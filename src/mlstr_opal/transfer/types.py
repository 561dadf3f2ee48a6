"""Result dataclasses for table push and pull runs."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class TableTransferResult:
    """Summary of one table moved to or from the server."""

    project: str
    table: str
    n_rows: int
    n_variables: int
    created: bool
    duration_s: float


@dataclass(frozen=True)
class PushTablesResult:
    """Summary metrics produced by one table push run."""

    project: str
    project_created: bool
    tables: list[TableTransferResult]
    duration_s: float

    @property
    def table_names(self) -> list[str]:
        return [t.table for t in self.tables]


TableObserver = Callable[[TableTransferResult], None]
