from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd
import requests

from ..containers.value_types import infer_value_type
from ._client_helpers import (
    DEFAULT_ENTITY_TYPE,
    DEFAULT_LOCALE,
    auth_header,
    extract_label,
    flatten_variables,
    frame_to_value_sets,
    unflatten_variables,
    value_sets_to_frame,
)
from .endpoints import endpoint_path, get_endpoint_spec

logger = logging.getLogger(__name__)

VALUE_SETS_PAGE_SIZE = 1000
DOWNLOAD_CHUNK_BYTES = 1 << 16


@dataclass(frozen=True)
class OpalClient:
    """HTTP client for the Opal REST API (`<url>/ws/...`).

    The client wraps one `requests.Session` carrying the authentication
    header, and exposes the project/table/dictionary/taxonomy/file
    operations used by this package.

    Error policy:
    - No retries. Every call blocks until it returns or fails.
    - Non-2xx responses are logged and raised as `requests.HTTPError`.
    - Existence probes map HTTP 404 to `False`.

    Logging:
    - Request logs carry the method and path only, never the auth header.
    """

    url: str
    headers: Mapping[str, str] = field(default_factory=dict, repr=False)
    timeout_s: float = 30.0
    locale: str = DEFAULT_LOCALE
    session: requests.Session = field(
        default_factory=requests.Session, repr=False, compare=False
    )

    @property
    def base_url(self) -> str:
        return self.url.rstrip("/") + "/ws"

    def _request(
        self,
        endpoint: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        files: Mapping[str, Any] | None = None,
        stream: bool = False,
        **path_args: str,
    ) -> requests.Response:
        """Low-level request; raises `requests.HTTPError` on non-2xx."""
        spec = get_endpoint_spec(endpoint)
        path = endpoint_path(endpoint, **path_args)
        url = self.base_url + path

        headers = {"Accept": "application/json", **dict(self.headers)}

        logger.debug("Opal %s path=%s", spec.method, path)
        resp = self.session.request(
            spec.method,
            url,
            params=params,
            json=json,
            files=files,
            headers=headers,
            timeout=self.timeout_s,
            stream=stream,
        )

        try:
            resp.raise_for_status()
        except requests.exceptions.HTTPError:
            logger.error(
                "Opal HTTPError status=%s method=%s path=%s",
                resp.status_code,
                spec.method,
                path,
            )
            raise

        logger.debug(
            "Opal %s success status=%s path=%s",
            spec.method,
            resp.status_code,
            path,
        )
        return resp

    def _json(self, endpoint: str, **kwargs: Any) -> Any:
        resp = self._request(endpoint, **kwargs)
        if not resp.content:
            return None
        return resp.json()

    def _exists(self, endpoint: str, **path_args: str) -> bool:
        try:
            self._request(endpoint, **path_args)
        except requests.exceptions.HTTPError as e:
            r = getattr(e, "response", None)
            if r is not None and r.status_code == 404:
                return False
            raise
        return True

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def keep_alive(self) -> None:
        """No-op round trip; raises if the session is not live."""
        self._request("current_session")

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def project_exists(self, project: str) -> bool:
        return self._exists("project", project=project)

    def _default_storage_database(self) -> str | None:
        payload = self._json("storage_databases", params={"usage": "storage"}) or []
        for db in payload:
            if db.get("defaultStorage"):
                return db.get("name")
        return payload[0].get("name") if payload else None

    def project_create(
        self,
        project: str,
        *,
        database: bool | str = True,
        tags: Sequence[str] | None = None,
    ) -> None:
        """Create a project, optionally backed by a storage database.

        `database=True` selects the server's default storage database.
        """
        body: dict[str, Any] = {"name": project, "title": project}
        if database is True:
            db_name = self._default_storage_database()
            if db_name is not None:
                body["database"] = db_name
        elif isinstance(database, str):
            body["database"] = database
        if tags:
            body["tags"] = list(tags)
        self._request("project_create", json=body)

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def tables(self, project: str) -> list[str]:
        """Table names of a project, in server order."""
        payload = self._json("tables", project=project) or []
        return [str(t["name"]) for t in payload]

    def table_exists(self, project: str, table: str) -> bool:
        return self._exists("table", project=project, table=table)

    def table_create(
        self,
        project: str,
        table: str,
        *,
        entity_type: str = DEFAULT_ENTITY_TYPE,
    ) -> None:
        self._request(
            "table_create",
            json={"name": table, "entityType": entity_type},
            project=project,
        )

    def table_save(
        self,
        frame: pd.DataFrame,
        project: str,
        table: str,
        *,
        overwrite: bool = False,
        force: bool = False,
        id_name: str = "id",
        entity_type: str = DEFAULT_ENTITY_TYPE,
    ) -> None:
        """Save a frame into a table; `id_name` identifies each row.

        Replace-vs-merge policy:
        - overwrite=True: an existing table is deleted and re-created.
        - overwrite=False: values are merged into the existing table.
        - A missing table is created only when force=True.
        """
        exists = self.table_exists(project, table)

        if exists and overwrite:
            logger.info("Replacing table project=%s table=%s", project, table)
            self._request("table_delete", project=project, table=table)
            exists = False

        if not exists:
            if not (force or overwrite):
                raise ValueError(
                    f"Table '{project}.{table}' does not exist; "
                    "use force=True to create it"
                )
            self.table_create(project, table, entity_type=entity_type)

        variables = pd.DataFrame(
            {
                "name": [str(c) for c in frame.columns if c != id_name],
                "valueType": [
                    infer_value_type(frame[c]) for c in frame.columns if c != id_name
                ],
            }
        )
        known = set(self._table_variable_names(project, table))
        new_vars = variables[~variables["name"].isin(known)]
        if not new_vars.empty:
            self._request(
                "variables_update",
                json=unflatten_variables(new_vars, entity_type=entity_type),
                project=project,
                table=table,
            )

        payload = frame_to_value_sets(frame, id_name=id_name, entity_type=entity_type)
        self._request("value_sets_save", json=payload, project=project, table=table)
        logger.info(
            "Saved table project=%s table=%s rows=%d",
            project,
            table,
            len(frame),
        )

    def _table_variable_names(self, project: str, table: str) -> list[str]:
        payload = self._json("variables", project=project, table=table) or []
        return [str(v["name"]) for v in payload]

    def table_get(self, project: str, table: str, *, id_name: str = "id") -> pd.DataFrame:
        """Fetch all values of a table; the identifier is the first column."""
        pages: list[pd.DataFrame] = []
        offset = 0
        while True:
            payload = self._json(
                "value_sets",
                params={"offset": offset, "limit": VALUE_SETS_PAGE_SIZE},
                project=project,
                table=table,
            ) or {}
            page = value_sets_to_frame(payload, id_name=id_name)
            pages.append(page)
            if len(page) < VALUE_SETS_PAGE_SIZE:
                break
            offset += VALUE_SETS_PAGE_SIZE

        return pd.concat(pages, ignore_index=True) if len(pages) > 1 else pages[0]

    # ------------------------------------------------------------------
    # Dictionaries
    # ------------------------------------------------------------------

    def table_dictionary_get(self, project: str, table: str) -> dict[str, Any] | None:
        """Dictionary of a table in native shape, or None if the table is absent.

        The native shape has keys `project`, `table`, `variables` and
        `categories`.
        """
        try:
            payload = self._json("variables", project=project, table=table) or []
        except requests.exceptions.HTTPError as e:
            r = getattr(e, "response", None)
            if r is not None and r.status_code == 404:
                return None
            raise

        variables, categories = flatten_variables(payload)
        return {
            "project": project,
            "table": table,
            "variables": variables,
            "categories": categories,
        }

    def table_dictionary_update(
        self,
        project: str,
        table: str,
        variables: pd.DataFrame,
        categories: pd.DataFrame | None = None,
    ) -> None:
        self._request(
            "variables_update",
            json=unflatten_variables(variables, categories),
            project=project,
            table=table,
        )

    # ------------------------------------------------------------------
    # Taxonomies
    # ------------------------------------------------------------------

    def taxonomies(self) -> list[dict[str, Any]]:
        """Taxonomies with localized title/description and vocabulary names."""
        payload = self._json("taxonomies") or []
        out: list[dict[str, Any]] = []
        for tx in payload:
            out.append(
                {
                    "name": tx["name"],
                    "title": extract_label(tx.get("title"), self.locale),
                    "description": extract_label(tx.get("description"), self.locale),
                    "vocabularies": [
                        v["name"] for v in tx.get("vocabularies", []) or []
                    ],
                }
            )
        return out

    def terms(self, taxonomy: str, vocabulary: str) -> list[dict[str, Any]]:
        """Terms of one vocabulary with localized title/description."""
        payload = self._json(
            "vocabulary", taxonomy=taxonomy, vocabulary=vocabulary
        ) or {}
        return [
            {
                "name": t["name"],
                "title": extract_label(t.get("title"), self.locale),
                "description": extract_label(t.get("description"), self.locale),
            }
            for t in _iter_terms(payload.get("terms", []) or [])
        ]

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def file_upload(self, source: str | Path, destination: str) -> None:
        """Upload a local file into an Opal file-system folder."""
        src = Path(source)
        with src.open("rb") as f:
            self._request("file_upload", files={"file": (src.name, f)}, path=destination)
        logger.info("Uploaded file source=%s destination=%s", src, destination)

    def file_download(self, source: str, destination: str | Path) -> Path:
        """Download an Opal file (folders come back as zip archives)."""
        dest = Path(destination)
        dest.parent.mkdir(parents=True, exist_ok=True)
        resp = self._request("file_download", stream=True, path=source)
        with dest.open("wb") as f:
            for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
                if chunk:
                    f.write(chunk)
        return dest


def _iter_terms(terms: Iterable[Mapping[str, Any]]) -> Iterable[Mapping[str, Any]]:
    # Opal terms may nest child terms; flatten depth-first.
    for t in terms:
        yield t
        children = t.get("terms") or []
        if children:
            yield from _iter_terms(children)


def opal_login(
    url: str,
    *,
    username: str | None = None,
    password: str | None = None,
    token: str | None = None,
    timeout_s: float = 30.0,
    locale: str = DEFAULT_LOCALE,
) -> OpalClient:
    """Build an authenticated client and check the session is live."""
    client = OpalClient(
        url=url,
        headers=auth_header(username=username, password=password, token=token),
        timeout_s=timeout_s,
        locale=locale,
    )
    client.keep_alive()
    logger.info("Connected to Opal url=%s", url)
    return client
