"""Project, file and table transfers between local data and Opal."""

from __future__ import annotations

from .files import opal_files_pull, opal_files_push, resolve_pull_destination
from .projects import opal_project_create
from .tables import opal_tables_pull, opal_tables_push
from .types import PushTablesResult, TableObserver, TableTransferResult

__all__ = [
    "PushTablesResult",
    "TableObserver",
    "TableTransferResult",
    "opal_files_pull",
    "opal_files_push",
    "opal_project_create",
    "opal_tables_pull",
    "opal_tables_push",
    "resolve_pull_destination",
]
