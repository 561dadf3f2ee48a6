"""Structural interface of an authenticated Opal session.

`OpalClient` implements it; operations in this package only rely on these
methods, so any object providing them can stand in for a live server.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

import pandas as pd


class OpalSession(Protocol):
    def keep_alive(self) -> None: ...

    def project_exists(self, project: str) -> bool: ...

    def project_create(
        self,
        project: str,
        *,
        database: bool | str = True,
        tags: Sequence[str] | None = None,
    ) -> None: ...

    def tables(self, project: str) -> list[str]: ...

    def table_exists(self, project: str, table: str) -> bool: ...

    def table_create(self, project: str, table: str) -> None: ...

    def table_save(
        self,
        frame: pd.DataFrame,
        project: str,
        table: str,
        *,
        overwrite: bool = False,
        force: bool = False,
        id_name: str = "id",
    ) -> None: ...

    def table_get(self, project: str, table: str) -> pd.DataFrame: ...

    def table_dictionary_get(
        self, project: str, table: str
    ) -> dict[str, Any] | None: ...

    def table_dictionary_update(
        self,
        project: str,
        table: str,
        variables: pd.DataFrame,
        categories: pd.DataFrame | None = None,
    ) -> None: ...

    def taxonomies(self) -> list[dict[str, Any]]: ...

    def terms(self, taxonomy: str, vocabulary: str) -> list[dict[str, Any]]: ...

    def file_upload(self, source: str | Path, destination: str) -> None: ...

    def file_download(self, source: str, destination: str | Path) -> Path: ...
