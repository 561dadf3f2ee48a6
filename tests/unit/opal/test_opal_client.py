from __future__ import annotations

import importlib
import json
from pathlib import Path
from typing import Any

import pytest
import requests


def _response(status: int, payload: Any, url: str) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.url = url
    resp.reason = "OK" if status < 400 else "Error"
    if payload is None:
        resp._content = b""
    elif isinstance(payload, bytes):
        resp._content = payload
    else:
        resp._content = json.dumps(payload).encode("utf-8")
    resp._content_consumed = True
    return resp


class _FakeHTTP:
    """Routes `(method, path)` to `(status, payload)`; unknown routes are 404."""

    def __init__(self, routes: dict[tuple[str, str], tuple[int, Any]] | None = None):
        self.routes = dict(routes or {})
        self.requests: list[dict[str, Any]] = []
        self.closed = False

    def request(self, method, url, **kwargs):
        path = url.split("/ws", 1)[1]
        self.requests.append({"method": method, "path": path, **kwargs})
        status, payload = self.routes.get((method, path), (404, None))
        return _response(status, payload, url)

    def close(self) -> None:
        self.closed = True


def _client(routes=None, **kwargs):
    mod = importlib.import_module("mlstr_opal.opal.client")
    http = _FakeHTTP(routes)
    client = mod.OpalClient(
        url="https://opal.test/",
        headers={"X-Opal-Auth": "secret"},
        session=http,
        **kwargs,
    )
    return client, http


def test_keep_alive_hits_current_session() -> None:
    client, http = _client({("GET", "/auth/session/_current"): (200, {})})

    client.keep_alive()

    req = http.requests[0]
    assert req["method"] == "GET"
    assert req["path"] == "/auth/session/_current"
    assert req["headers"]["X-Opal-Auth"] == "secret"
    assert req["timeout"] == 30.0


def test_base_url_strips_trailing_slash() -> None:
    client, _ = _client()
    assert client.base_url == "https://opal.test/ws"


def test_exists_maps_404_to_false() -> None:
    client, _ = _client({("GET", "/project/p"): (200, {"name": "p"})})

    assert client.project_exists("p") is True
    assert client.project_exists("missing") is False


def test_server_errors_propagate(caplog) -> None:
    client, _ = _client({("GET", "/project/p"): (500, None)})

    with pytest.raises(requests.HTTPError):
        client.project_exists("p")

    assert any("status=500" in rec.message for rec in caplog.records)
    assert not any("secret" in rec.message for rec in caplog.records)


def test_project_create_uses_default_storage_database() -> None:
    client, http = _client(
        {
            ("GET", "/system/databases"): (
                200,
                [{"name": "sql"}, {"name": "mongo", "defaultStorage": True}],
            ),
            ("POST", "/projects"): (201, None),
        }
    )

    client.project_create("p", tags=["cohort"])

    body = http.requests[-1]["json"]
    assert body == {"name": "p", "title": "p", "database": "mongo", "tags": ["cohort"]}


def test_tables_lists_names() -> None:
    client, _ = _client(
        {("GET", "/datasource/p/tables"): (200, [{"name": "t1"}, {"name": "t2"}])}
    )
    assert client.tables("p") == ["t1", "t2"]


def test_table_save_missing_table_requires_force() -> None:
    import pandas as pd

    client, http = _client()

    with pytest.raises(ValueError, match="force=True"):
        client.table_save(pd.DataFrame({"id": [1], "age": [30]}), "p", "t")

    assert [r["method"] for r in http.requests] == ["GET"]


def test_table_save_with_force_creates_then_saves() -> None:
    import pandas as pd

    client, http = _client(
        {
            ("POST", "/datasource/p/tables"): (200, None),
            ("GET", "/datasource/p/table/t/variables"): (200, []),
            ("POST", "/datasource/p/table/t/variables"): (200, None),
            ("POST", "/datasource/p/table/t/valueSets"): (200, None),
        }
    )
    frame = pd.DataFrame({"pid": [1, 2], "age": [30, None]})

    client.table_save(frame, "p", "t", force=True, id_name="pid")

    calls = [(r["method"], r["path"]) for r in http.requests]
    assert calls == [
        ("GET", "/datasource/p/table/t"),
        ("POST", "/datasource/p/tables"),
        ("GET", "/datasource/p/table/t/variables"),
        ("POST", "/datasource/p/table/t/variables"),
        ("POST", "/datasource/p/table/t/valueSets"),
    ]
    variables = http.requests[3]["json"]
    assert [v["name"] for v in variables] == ["age"]
    assert variables[0]["valueType"] == "decimal"
    value_sets = http.requests[4]["json"]
    assert value_sets["variables"] == ["age"]
    assert value_sets["valueSets"][0] == {"identifier": "1", "values": [{"value": "30.0"}]}
    assert value_sets["valueSets"][1]["values"] == [{}]


def test_table_save_overwrite_deletes_existing_table() -> None:
    import pandas as pd

    client, http = _client(
        {
            ("GET", "/datasource/p/table/t"): (200, {"name": "t"}),
            ("DELETE", "/datasource/p/table/t"): (200, None),
            ("POST", "/datasource/p/tables"): (200, None),
            ("GET", "/datasource/p/table/t/variables"): (200, []),
            ("POST", "/datasource/p/table/t/variables"): (200, None),
            ("POST", "/datasource/p/table/t/valueSets"): (200, None),
        }
    )

    client.table_save(pd.DataFrame({"id": ["a"], "x": ["1"]}), "p", "t", overwrite=True)

    methods = [r["method"] for r in http.requests]
    assert methods[:3] == ["GET", "DELETE", "POST"]


def test_table_get_builds_frame_with_identifier_first() -> None:
    client, _ = _client(
        {
            ("GET", "/datasource/p/table/t/valueSets"): (
                200,
                {
                    "variables": ["age", "sex"],
                    "valueSets": [
                        {"identifier": "1", "values": [{"value": "30"}, {"value": "F"}]},
                        {"identifier": "2", "values": [{"value": "41"}, {}]},
                    ],
                },
            )
        }
    )

    out = client.table_get("p", "t")

    assert list(out.columns) == ["id", "age", "sex"]
    assert out["id"].tolist() == ["1", "2"]
    assert out["sex"].tolist()[0] == "F"


def test_table_dictionary_get_missing_table_returns_none() -> None:
    client, _ = _client()
    assert client.table_dictionary_get("p", "t") is None


def test_table_dictionary_get_flattens_variables() -> None:
    client, _ = _client(
        {
            ("GET", "/datasource/p/table/t/variables"): (
                200,
                [
                    {
                        "name": "sex",
                        "valueType": "text",
                        "attributes": [{"name": "label", "locale": "en", "value": "Sex"}],
                        "categories": [
                            {"name": "F", "isMissing": False},
                            {"name": "M", "isMissing": False},
                        ],
                    }
                ],
            )
        }
    )

    out = client.table_dictionary_get("p", "t")

    assert set(out) == {"project", "table", "variables", "categories"}
    assert out["variables"].loc[0, "label:en"] == "Sex"
    assert out["categories"]["name"].tolist() == ["F", "M"]
    assert out["categories"]["variable"].tolist() == ["sex", "sex"]


def test_taxonomies_resolve_preferred_locale() -> None:
    client, _ = _client(
        {
            ("GET", "/system/conf/taxonomies"): (
                200,
                [
                    {
                        "name": "Mlstr_area",
                        "title": [
                            {"locale": "fr", "text": "Domaines"},
                            {"locale": "en", "text": "Areas"},
                        ],
                        "description": [{"locale": "fr", "text": "Seulement"}],
                        "vocabularies": [{"name": "Diseases"}],
                    }
                ],
            )
        }
    )

    out = client.taxonomies()

    assert out == [
        {
            "name": "Mlstr_area",
            "title": "Areas",
            "description": "Seulement",
            "vocabularies": ["Diseases"],
        }
    ]


def test_terms_flatten_nested_terms() -> None:
    client, _ = _client(
        {
            ("GET", "/system/conf/taxonomy/Mlstr_area/vocabulary/Diseases"): (
                200,
                {
                    "terms": [
                        {
                            "name": "Cancer",
                            "title": [{"locale": "en", "text": "Cancer"}],
                            "terms": [{"name": "Breast_cancer"}],
                        },
                        {"name": "Diabetes"},
                    ]
                },
            )
        }
    )

    out = client.terms("Mlstr_area", "Diseases")

    assert [t["name"] for t in out] == ["Cancer", "Breast_cancer", "Diabetes"]
    assert out[0]["title"] == "Cancer"
    assert out[1]["title"] is None


def test_file_download_streams_to_destination(tmp_path: Path) -> None:
    client, http = _client({("GET", "/files/home/a/my%20file.txt"): (200, b"content")})

    out = client.file_download("/home/a/my file.txt", tmp_path / "sub" / "f.txt")

    assert out.read_bytes() == b"content"
    assert http.requests[0]["stream"] is True


def test_file_upload_posts_multipart(tmp_path: Path) -> None:
    src = tmp_path / "data.csv"
    src.write_text("a,b\n")
    client, http = _client({("POST", "/files/home/a"): (200, None)})

    client.file_upload(src, "/home/a")

    files = http.requests[0]["files"]
    assert files["file"][0] == "data.csv"


def test_opal_login_checks_session(monkeypatch) -> None:
    mod = importlib.import_module("mlstr_opal.opal.client")
    seen: list[str] = []
    monkeypatch.setattr(mod.OpalClient, "keep_alive", lambda self: seen.append(self.url))

    client = mod.opal_login("https://opal.test", token="tok")

    assert seen == ["https://opal.test"]
    assert client.headers == {"X-Opal-Auth": "tok"}
    client.close()
