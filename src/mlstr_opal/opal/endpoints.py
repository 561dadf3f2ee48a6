from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote


@dataclass(frozen=True)
class EndpointSpec:
    path: str
    method: str = "GET"


ENDPOINTS: dict[str, EndpointSpec] = {
    "project": EndpointSpec(path="/project/{project}"),
    "project_create": EndpointSpec(path="/projects", method="POST"),
    "storage_databases": EndpointSpec(path="/system/databases"),
    "tables": EndpointSpec(path="/datasource/{project}/tables"),
    "table": EndpointSpec(path="/datasource/{project}/table/{table}"),
    "table_create": EndpointSpec(
        path="/datasource/{project}/tables", method="POST"
    ),
    "table_delete": EndpointSpec(
        path="/datasource/{project}/table/{table}", method="DELETE"
    ),
    "variables": EndpointSpec(path="/datasource/{project}/table/{table}/variables"),
    "variables_update": EndpointSpec(
        path="/datasource/{project}/table/{table}/variables", method="POST"
    ),
    "value_sets": EndpointSpec(path="/datasource/{project}/table/{table}/valueSets"),
    "value_sets_save": EndpointSpec(
        path="/datasource/{project}/table/{table}/valueSets", method="POST"
    ),
    "taxonomies": EndpointSpec(path="/system/conf/taxonomies"),
    "vocabulary": EndpointSpec(
        path="/system/conf/taxonomy/{taxonomy}/vocabulary/{vocabulary}"
    ),
    "file_download": EndpointSpec(path="/files{path}"),
    "file_upload": EndpointSpec(path="/files{path}", method="POST"),
    "current_session": EndpointSpec(path="/auth/session/_current"),
}


def get_endpoint_spec(endpoint: str) -> EndpointSpec:
    """Return the spec (path template + method) for a supported Opal endpoint."""
    try:
        return ENDPOINTS[endpoint]
    except KeyError as e:
        supported = ", ".join(sorted(ENDPOINTS.keys()))
        raise KeyError(
            f"Unknown Opal endpoint '{endpoint}'. Supported: {supported}"
        ) from e


def endpoint_path(endpoint: str, **kwargs: str) -> str:
    """Render an endpoint path, URL-quoting every substituted segment.

    `path` arguments (Opal file-system paths) keep their slashes.
    """
    spec = get_endpoint_spec(endpoint)
    quoted: dict[str, str] = {}
    for k, v in kwargs.items():
        s = str(v)
        if k == "path":
            s = "/" + s.lstrip("/")
            quoted[k] = quote(s, safe="/")
        else:
            quoted[k] = quote(s, safe="")
    try:
        return spec.path.format(**quoted)
    except KeyError as e:
        raise ValueError(
            f"Missing path argument {e.args[0]!r} for endpoint '{endpoint}'"
        ) from e
