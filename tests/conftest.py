from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import pytest


class FakeOpal:
    """In-memory Opal session implementing `OpalSession`.

    Table values are stored with their identifier column renamed to `id`, as
    the server keys value sets by entity identifier, not by column name.
    """

    def __init__(
        self,
        *,
        taxonomies: Sequence[Mapping[str, Any]] | None = None,
        terms: Mapping[tuple[str, str], Sequence[Mapping[str, Any]]] | None = None,
        files: Mapping[str, bytes] | None = None,
    ) -> None:
        self.projects: dict[str, dict[str, Any]] = {}
        self.data: dict[tuple[str, str], pd.DataFrame] = {}
        self.dictionaries: dict[tuple[str, str], dict[str, Any]] = {}
        self.taxonomy_list = [dict(t) for t in taxonomies or []]
        self.term_map = {k: [dict(t) for t in v] for k, v in (terms or {}).items()}
        self.files = dict(files or {})
        self.uploads: list[tuple[str, str]] = []
        self.calls: list[tuple[Any, ...]] = []

    # -- session / projects ------------------------------------------------

    def keep_alive(self) -> None:
        self.calls.append(("keep_alive",))

    def project_exists(self, project: str) -> bool:
        self.calls.append(("project_exists", project))
        return project in self.projects

    def project_create(self, project, *, database=True, tags=None) -> None:
        self.calls.append(("project_create", project))
        if project in self.projects:
            raise RuntimeError(f"project {project} already exists")
        self.projects[project] = {"tags": list(tags or []), "tables": []}

    # -- tables ------------------------------------------------------------

    def tables(self, project: str) -> list[str]:
        self.calls.append(("tables", project))
        return list(self.projects[project]["tables"])

    def table_exists(self, project: str, table: str) -> bool:
        self.calls.append(("table_exists", project, table))
        return project in self.projects and table in self.projects[project]["tables"]

    def table_create(self, project: str, table: str) -> None:
        self.calls.append(("table_create", project, table))
        if project not in self.projects:
            raise RuntimeError(f"project {project} does not exist")
        if table in self.projects[project]["tables"]:
            raise RuntimeError(f"table {project}.{table} already exists")
        self.projects[project]["tables"].append(table)

    def table_save(
        self,
        frame: pd.DataFrame,
        project: str,
        table: str,
        *,
        overwrite: bool = False,
        force: bool = False,
        id_name: str = "id",
    ) -> None:
        self.calls.append(("table_save", project, table, id_name))
        if project not in self.projects:
            raise RuntimeError(f"project {project} does not exist")

        stored = frame.rename(columns={id_name: "id"}).reset_index(drop=True)
        exists = table in self.projects[project]["tables"]
        if exists and not overwrite and (project, table) in self.data:
            merged = pd.concat([self.data[(project, table)], stored], ignore_index=True)
            stored = merged.drop_duplicates(subset="id", keep="last").reset_index(drop=True)
        elif not exists:
            if not (force or overwrite):
                raise ValueError(f"Table '{project}.{table}' does not exist")
            self.projects[project]["tables"].append(table)

        stored.attrs = {}
        self.data[(project, table)] = stored

    def table_get(self, project: str, table: str) -> pd.DataFrame:
        self.calls.append(("table_get", project, table))
        if (project, table) not in self.data:
            return pd.DataFrame({"id": pd.Series(dtype="object")})
        return self.data[(project, table)].copy()

    # -- dictionaries ------------------------------------------------------

    def table_dictionary_get(self, project: str, table: str):
        self.calls.append(("table_dictionary_get", project, table))
        if not self.table_exists(project, table):
            return None
        stored = self.dictionaries.get((project, table), {})
        return {
            "project": project,
            "table": table,
            "variables": stored.get("variables", pd.DataFrame({"name": []})).copy(),
            "categories": stored.get(
                "categories", pd.DataFrame({"variable": [], "name": []})
            ).copy(),
        }

    def table_dictionary_update(self, project, table, variables, categories=None):
        self.calls.append(("table_dictionary_update", project, table))
        entry = {"variables": variables.copy()}
        if categories is not None:
            entry["categories"] = categories.copy()
        self.dictionaries[(project, table)] = entry

    # -- taxonomies --------------------------------------------------------

    def taxonomies(self) -> list[dict[str, Any]]:
        self.calls.append(("taxonomies",))
        return [dict(t) for t in self.taxonomy_list]

    def terms(self, taxonomy: str, vocabulary: str) -> list[dict[str, Any]]:
        self.calls.append(("terms", taxonomy, vocabulary))
        return [dict(t) for t in self.term_map.get((taxonomy, vocabulary), [])]

    # -- files -------------------------------------------------------------

    def file_upload(self, source, destination: str) -> None:
        self.calls.append(("file_upload", str(source), destination))
        self.uploads.append((str(source), destination))

    def file_download(self, source: str, destination) -> Path:
        self.calls.append(("file_download", source, str(destination)))
        dest = Path(destination)
        dest.parent.mkdir(parents=True, exist_ok=True)
        if source not in self.files:
            dest.write_bytes(b"partial")
            raise ConnectionError(f"download of {source} interrupted")
        dest.write_bytes(self.files[source])
        return dest


def term(name: str, title: str | None = None, description: str | None = None):
    return {"name": name, "title": title, "description": description}


@pytest.fixture
def fake_opal() -> FakeOpal:
    return FakeOpal()


@pytest.fixture
def mlstr_opal_server() -> FakeOpal:
    """Server with area, scale and additional taxonomies.

    - Mlstr_area/Lifestyle_behaviours: Tobacco, Alcohol
    - Mlstr_area/Diseases: no term
    - Mlstr_habits/Tobacco: Current_smoker, Past_smoker
    - Mlstr_additional/Source: Questionnaire
    """
    taxonomies = [
        {
            "name": "Mlstr_area",
            "title": "Areas of information",
            "description": None,
            "vocabularies": ["Lifestyle_behaviours", "Diseases"],
        },
        {
            "name": "Mlstr_habits",
            "title": "Lifestyle scales",
            "description": None,
            "vocabularies": ["Tobacco"],
        },
        {
            "name": "Mlstr_additional",
            "title": "Additional information",
            "description": None,
            "vocabularies": ["Source"],
        },
    ]
    terms = {
        ("Mlstr_area", "Lifestyle_behaviours"): [
            term("Tobacco", "Tobacco", "Tobacco use"),
            term("Alcohol", "Alcohol", "Alcohol use"),
        ],
        ("Mlstr_area", "Diseases"): [],
        ("Mlstr_habits", "Tobacco"): [
            term("Current_smoker", "Current smoker"),
            term("Past_smoker", "Past smoker"),
        ],
        ("Mlstr_additional", "Source"): [term("Questionnaire", "Questionnaire")],
    }
    return FakeOpal(taxonomies=taxonomies, terms=terms)


@pytest.fixture
def make_fake_opal():
    return FakeOpal


@pytest.fixture
def make_term():
    return term
