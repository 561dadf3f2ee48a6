from __future__ import annotations

import base64
from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd

DEFAULT_LOCALE = "en"
DEFAULT_ENTITY_TYPE = "Participant"

# Variable DTO field -> flat `Variables` column
VARIABLE_FIELDS: dict[str, str] = {
    "name": "name",
    "entityType": "entityType",
    "valueType": "valueType",
    "unit": "unit",
    "mimeType": "mimeType",
    "isRepeatable": "repeatable",
    "occurrenceGroup": "occurrenceGroup",
    "referencedEntityType": "referencedEntityType",
    "index": "index",
}

CATEGORY_FIELDS: dict[str, str] = {
    "name": "name",
    "isMissing": "missing",
}


def auth_header(
    *,
    username: str | None = None,
    password: str | None = None,
    token: str | None = None,
) -> dict[str, str]:
    """Build the Opal authentication header (token wins over credentials)."""
    if token:
        return {"X-Opal-Auth": token}
    if username is None or password is None:
        raise ValueError("Either token or username/password must be provided")
    creds = base64.b64encode(f"{username}:{password}".encode("utf-8"))
    return {"Authorization": "X-Opal-Auth " + creds.decode("ascii")}


def extract_label(
    labels: Sequence[Mapping[str, Any]] | None,
    locale: str = DEFAULT_LOCALE,
) -> str | None:
    """Pick one localized text: preferred locale first, else the first entry."""
    if not labels:
        return None
    for item in labels:
        if item.get("locale") == locale:
            return item.get("text")
    return labels[0].get("text")


def _is_missing(v: Any) -> bool:
    if v is None:
        return True
    try:
        return bool(pd.isna(v))
    except (TypeError, ValueError):
        return False


def attribute_column(attr: Mapping[str, Any]) -> str:
    """Flat column name for an attribute: `[namespace::]name[:locale]`."""
    col = str(attr.get("name", ""))
    ns = attr.get("namespace")
    if ns:
        col = f"{ns}::{col}"
    locale = attr.get("locale")
    if locale:
        col = f"{col}:{locale}"
    return col


def parse_attribute_column(col: str) -> dict[str, str]:
    """Inverse of `attribute_column`."""
    out: dict[str, str] = {}
    rest = col
    if "::" in rest:
        ns, rest = rest.split("::", 1)
        out["namespace"] = ns
    if ":" in rest:
        name, locale = rest.rsplit(":", 1)
        out["name"] = name
        out["locale"] = locale
    else:
        out["name"] = rest
    return out


def _flatten_attributes(row: dict[str, Any], attributes: Sequence[Mapping[str, Any]]):
    for attr in attributes or ():
        row[attribute_column(attr)] = attr.get("value")


def flatten_variables(
    dtos: Sequence[Mapping[str, Any]],
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Flatten Opal variable DTOs into (variables, categories) tables."""
    var_rows: list[dict[str, Any]] = []
    cat_rows: list[dict[str, Any]] = []

    for dto in dtos:
        row: dict[str, Any] = {}
        for field, col in VARIABLE_FIELDS.items():
            if field in dto:
                row[col] = dto[field]
        _flatten_attributes(row, dto.get("attributes", ()))
        var_rows.append(row)

        for cat in dto.get("categories", ()) or ():
            cat_row: dict[str, Any] = {"variable": dto.get("name")}
            for field, col in CATEGORY_FIELDS.items():
                if field in cat:
                    cat_row[col] = cat[field]
            _flatten_attributes(cat_row, cat.get("attributes", ()))
            cat_rows.append(cat_row)

    variables = pd.DataFrame(var_rows)
    if variables.empty:
        variables = pd.DataFrame({"name": pd.Series(dtype="object")})

    categories = pd.DataFrame(cat_rows)
    if categories.empty:
        categories = pd.DataFrame(
            {
                "variable": pd.Series(dtype="object"),
                "name": pd.Series(dtype="object"),
            }
        )

    return variables, categories


def _as_bool(v: Any) -> bool:
    if isinstance(v, str):
        return v.strip().lower() in {"true", "1", "yes"}
    return bool(v)


def _attributes_from_row(
    row: Mapping[str, Any],
    reserved: set[str],
) -> list[dict[str, str]]:
    attrs: list[dict[str, str]] = []
    for col, value in row.items():
        if col in reserved or _is_missing(value):
            continue
        attr = parse_attribute_column(str(col))
        attr["value"] = str(value)
        attrs.append(attr)
    return attrs


def unflatten_variables(
    variables: pd.DataFrame,
    categories: pd.DataFrame | None = None,
    *,
    entity_type: str = DEFAULT_ENTITY_TYPE,
) -> list[dict[str, Any]]:
    """Rebuild Opal variable DTOs from (variables, categories) tables."""
    if "name" not in variables.columns:
        raise ValueError("variables must contain a 'name' column")

    var_reserved = set(VARIABLE_FIELDS.values())
    cat_reserved = set(CATEGORY_FIELDS.values()) | {"variable"}

    cats_by_var: dict[str, list[dict[str, Any]]] = {}
    if categories is not None and not categories.empty:
        for rec in categories.to_dict(orient="records"):
            cat: dict[str, Any] = {
                "name": str(rec["name"]),
                "isMissing": (
                    False if _is_missing(rec.get("missing"))
                    else _as_bool(rec.get("missing"))
                ),
                "attributes": _attributes_from_row(rec, cat_reserved),
            }
            cats_by_var.setdefault(str(rec["variable"]), []).append(cat)

    dtos: list[dict[str, Any]] = []
    for i, rec in enumerate(variables.to_dict(orient="records")):
        name = str(rec["name"])
        value_type = rec.get("valueType")
        dto: dict[str, Any] = {
            "name": name,
            "entityType": (
                entity_type if _is_missing(rec.get("entityType"))
                else str(rec["entityType"])
            ),
            "valueType": "text" if _is_missing(value_type) else str(value_type),
            "isRepeatable": (
                False if _is_missing(rec.get("repeatable"))
                else _as_bool(rec.get("repeatable"))
            ),
            "index": i,
            "attributes": _attributes_from_row(rec, var_reserved),
            "categories": cats_by_var.get(name, []),
        }
        for field in ("unit", "mimeType", "occurrenceGroup", "referencedEntityType"):
            v = rec.get(VARIABLE_FIELDS[field])
            if not _is_missing(v):
                dto[field] = str(v)
        dtos.append(dto)

    return dtos


def value_sets_to_frame(
    payload: Mapping[str, Any],
    *,
    id_name: str,
) -> pd.DataFrame:
    """Convert a value-sets payload into a frame with the identifier first."""
    names = [str(v) for v in payload.get("variables", [])]
    rows: list[list[Any]] = []
    for vs in payload.get("valueSets", []) or []:
        values = vs.get("values", [])
        row: list[Any] = [vs.get("identifier")]
        row.extend(v.get("value") for v in values)
        rows.append(row)
    return pd.DataFrame(rows, columns=[id_name, *names])


def frame_to_value_sets(
    frame: pd.DataFrame,
    *,
    id_name: str,
    entity_type: str = DEFAULT_ENTITY_TYPE,
) -> dict[str, Any]:
    """Convert a frame into a value-sets payload keyed by `id_name`."""
    if id_name not in frame.columns:
        raise ValueError(f"id column {id_name!r} not found in frame")

    names = [str(c) for c in frame.columns if c != id_name]
    value_sets: list[dict[str, Any]] = []
    for rec in frame.to_dict(orient="records"):
        values: list[dict[str, str]] = []
        for name in names:
            v = rec[name]
            values.append({} if _is_missing(v) else {"value": str(v)})
        value_sets.append({"identifier": str(rec[id_name]), "values": values})

    return {
        "entityType": entity_type,
        "variables": names,
        "valueSets": value_sets,
    }
