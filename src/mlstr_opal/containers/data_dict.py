"""Data dictionaries: validation, extraction from datasets and application.

A data dictionary is a mapping with a `Variables` table (one row per
variable, keyed by `name`) and an optional `Categories` table (one row per
(`variable`, `name`) pair).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import pandas as pd

from ..errors import ShapeValidationError
from .dataset import COL_ID_ATTR, as_dataset
from .value_types import cast_to_value_type, infer_value_type

logger = logging.getLogger(__name__)

DataDict = dict[str, pd.DataFrame]

VARIABLES = "Variables"
CATEGORIES = "Categories"

# Value types accepted by Opal; only a subset is cast locally.
OPAL_VALUE_TYPES: frozenset[str] = frozenset(
    {
        "text",
        "integer",
        "decimal",
        "boolean",
        "date",
        "datetime",
        "binary",
        "locale",
        "point",
        "linestring",
        "polygon",
    }
)


@dataclass(frozen=True)
class TableUnit:
    """A dataset together with its data dictionary."""

    dataset: pd.DataFrame
    data_dict: DataDict


def _as_frame(obj: Any, label: str) -> pd.DataFrame:
    if isinstance(obj, pd.DataFrame):
        return obj.copy()
    try:
        return pd.DataFrame(obj)
    except (TypeError, ValueError) as e:
        raise ShapeValidationError(f"{label} cannot be read as a table") from e


def as_data_dict(data_dict: Mapping[str, Any]) -> DataDict:
    """Validate a data dictionary and return its `Variables`/`Categories`."""
    if not isinstance(data_dict, Mapping):
        raise ShapeValidationError("A data dictionary must be a mapping")
    if VARIABLES not in data_dict:
        raise ShapeValidationError("A data dictionary must contain 'Variables'")

    variables = _as_frame(data_dict[VARIABLES], VARIABLES)
    if "name" not in variables.columns:
        raise ShapeValidationError("'Variables' must contain a 'name' column")
    if variables["name"].isna().any():
        raise ShapeValidationError("'Variables' has missing variable names")

    names = variables["name"].astype(str)
    dupes = sorted(names[names.duplicated()].unique().tolist())
    if dupes:
        raise ShapeValidationError(f"'Variables' has duplicated names: {dupes}")

    out: DataDict = {VARIABLES: variables}

    if data_dict.get(CATEGORIES) is None:
        return out

    categories = _as_frame(data_dict[CATEGORIES], CATEGORIES)
    missing_cols = [c for c in ("variable", "name") if c not in categories.columns]
    if missing_cols:
        raise ShapeValidationError(
            f"'Categories' must contain columns {missing_cols}"
        )

    unknown = sorted(
        set(categories["variable"].dropna().astype(str)) - set(names)
    )
    if unknown:
        raise ShapeValidationError(
            f"'Categories' refers to variables not in 'Variables': {unknown}"
        )

    keys = categories[["variable", "name"]].astype(str)
    if keys.duplicated().any():
        raise ShapeValidationError("'Categories' has duplicated (variable, name) pairs")

    out[CATEGORIES] = categories
    return out


def as_data_dict_mlstr(data_dict: Mapping[str, Any]) -> DataDict:
    """Validate a data dictionary in the Maelstrom flavour.

    Adds a `valueType` column (default `text`) when absent and checks every
    declared value type is one Opal accepts.
    """
    out = as_data_dict(data_dict)
    variables = out[VARIABLES]

    if "valueType" not in variables.columns:
        variables["valueType"] = "text"
    variables["valueType"] = variables["valueType"].where(
        variables["valueType"].notna(), "text"
    )

    bad = sorted(set(variables["valueType"].astype(str)) - OPAL_VALUE_TYPES)
    if bad:
        raise ShapeValidationError(f"Unknown valueType(s) in 'Variables': {bad}")

    out[VARIABLES] = variables
    return out


def data_dict_extract(dataset: pd.DataFrame) -> DataDict:
    """Infer a data dictionary from dataset columns."""
    variables = pd.DataFrame(
        {
            "name": [str(c) for c in dataset.columns],
            "valueType": [infer_value_type(dataset[c]) for c in dataset.columns],
        }
    )
    out: DataDict = {VARIABLES: variables}

    cat_rows: list[dict[str, Any]] = []
    for col in dataset.columns:
        dtype = dataset[col].dtype
        if isinstance(dtype, pd.CategoricalDtype):
            for value in dtype.categories:
                cat_rows.append({"variable": str(col), "name": str(value)})

    if cat_rows:
        out[CATEGORIES] = pd.DataFrame(cat_rows)
    return out


def data_dict_apply(dataset: pd.DataFrame, data_dict: Mapping[str, Any]) -> pd.DataFrame:
    """Check `dataset` against `data_dict` and cast columns to declared types.

    Every dataset column must be declared in `Variables`. Declared variables
    absent from the dataset are ignored.
    """
    dd = as_data_dict(data_dict)
    variables = dd[VARIABLES]
    declared = dict(
        zip(
            variables["name"].astype(str),
            variables["valueType"]
            if "valueType" in variables.columns
            else [None] * len(variables),
        )
    )

    undeclared = [str(c) for c in dataset.columns if str(c) not in declared]
    if undeclared:
        raise ShapeValidationError(
            f"Dataset columns missing from the data dictionary: {undeclared}"
        )

    unused = [n for n in declared if n not in set(map(str, dataset.columns))]
    if unused:
        logger.debug("Data dictionary declares unused variables: %s", unused)

    out = dataset.copy()
    for col in out.columns:
        value_type = declared[str(col)]
        value_type = None if pd.isna(value_type) else str(value_type)
        try:
            out[col] = cast_to_value_type(out[col], value_type)
        except (TypeError, ValueError) as e:
            raise ShapeValidationError(
                f"Column {col!r} does not match valueType {value_type!r}"
            ) from e

    return as_dataset(out, dataset.attrs.get(COL_ID_ATTR))
