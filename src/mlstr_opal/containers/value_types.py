"""Opal value types and their pandas counterparts."""

from __future__ import annotations

import pandas as pd

VALUE_TYPES: tuple[str, ...] = (
    "text",
    "integer",
    "decimal",
    "boolean",
    "date",
    "datetime",
)

# valueType -> pandas dtype used when materializing a column
PANDAS_DTYPES: dict[str, str] = {
    "text": "string",
    "integer": "Int64",
    "decimal": "Float64",
    "boolean": "boolean",
    "date": "datetime64[ns]",
    "datetime": "datetime64[ns]",
}

_TRUE = {"true", "t", "1", "yes"}
_FALSE = {"false", "f", "0", "no"}


def infer_value_type(series: pd.Series) -> str:
    """Map a pandas dtype onto an Opal value type."""
    if pd.api.types.is_bool_dtype(series):
        return "boolean"
    if pd.api.types.is_integer_dtype(series):
        return "integer"
    if pd.api.types.is_float_dtype(series):
        return "decimal"
    if pd.api.types.is_datetime64_any_dtype(series):
        return "datetime"
    return "text"


def _to_boolean(series: pd.Series) -> pd.Series:
    if pd.api.types.is_bool_dtype(series):
        return series.astype("boolean")

    def _one(v):
        if v is None or (not isinstance(v, str) and pd.isna(v)):
            return pd.NA
        s = str(v).strip().lower()
        if s in _TRUE:
            return True
        if s in _FALSE:
            return False
        raise ValueError(f"Cannot interpret {v!r} as a boolean")

    return series.map(_one).astype("boolean")


def cast_to_value_type(series: pd.Series, value_type: str | None) -> pd.Series:
    """Cast a column to the pandas dtype backing `value_type`.

    Unknown or missing value types leave the column untouched.
    """
    if value_type is None or value_type not in PANDAS_DTYPES:
        return series

    if value_type == "integer":
        return pd.to_numeric(series, errors="raise").astype("Int64")
    if value_type == "decimal":
        return pd.to_numeric(series, errors="raise").astype("Float64")
    if value_type == "boolean":
        return _to_boolean(series)
    if value_type in {"date", "datetime"}:
        return pd.to_datetime(series, errors="raise")
    return series.astype("string")
