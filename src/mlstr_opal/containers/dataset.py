"""Dataset helpers: validation, identifier injection and empty-frame synthesis.

A dataset is a plain `pandas.DataFrame`. Its identifier column name (if any)
is kept in `frame.attrs["col_id"]`.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping

import pandas as pd

from ..errors import ShapeValidationError
from .value_types import PANDAS_DTYPES

logger = logging.getLogger(__name__)

COL_ID_ATTR = "col_id"


def as_dataset(frame: pd.DataFrame, col_id: str | None = None) -> pd.DataFrame:
    """Validate `frame` as a dataset and record its identifier column."""
    if not isinstance(frame, pd.DataFrame):
        raise ShapeValidationError(
            f"A dataset must be a pandas DataFrame, got {type(frame).__name__}"
        )

    cols = [str(c) for c in frame.columns]
    dupes = sorted({c for c in cols if cols.count(c) > 1})
    if dupes:
        raise ShapeValidationError(f"Dataset has duplicated column names: {dupes}")

    if col_id is None:
        col_id = frame.attrs.get(COL_ID_ATTR)

    if col_id is not None and col_id not in frame.columns:
        raise ShapeValidationError(
            f"Identifier column {col_id!r} not found in dataset columns"
        )

    out = frame.copy()
    out.columns = cols
    out.attrs = {COL_ID_ATTR: col_id} if col_id is not None else {}
    return out


def dataset_col_id(frame: pd.DataFrame) -> str | None:
    """Return the identifier column recorded on a dataset, if any."""
    return frame.attrs.get(COL_ID_ATTR)


def unique_index_name(frame: pd.DataFrame, prefix: str = "id_") -> str:
    """Generate an identifier column name not used by `frame`."""
    while True:
        name = f"{prefix}{uuid.uuid4().hex[:12]}"
        if name not in frame.columns:
            return name


def add_index(
    frame: pd.DataFrame,
    name_index: str = "index",
    *,
    start: int = 1,
) -> pd.DataFrame:
    """Prepend a dense integer index column (`start`, `start + 1`, ...)."""
    if name_index in frame.columns:
        raise ShapeValidationError(
            f"Column {name_index!r} already exists in dataset"
        )

    out = frame.reset_index(drop=True)
    out.insert(0, name_index, pd.RangeIndex(start, start + len(out)))
    out.attrs = {COL_ID_ATTR: name_index}
    return out


def data_extract(data_dict: Mapping[str, pd.DataFrame]) -> pd.DataFrame:
    """Build an empty dataset whose columns are the declared variables."""
    variables = data_dict["Variables"]
    value_types = (
        variables["valueType"].tolist()
        if "valueType" in variables.columns
        else [None] * len(variables)
    )

    columns: dict[str, pd.Series] = {}
    for name, value_type in zip(variables["name"].tolist(), value_types):
        dtype = PANDAS_DTYPES.get(str(value_type), "string")
        columns[str(name)] = pd.Series(dtype=dtype)

    return pd.DataFrame(columns)


def dataset_zap_data_dict(frame: pd.DataFrame) -> pd.DataFrame:
    """Drop dictionary-derived decorations (categorical codes, attrs)."""
    out = frame.copy()
    for col in out.columns:
        if isinstance(out[col].dtype, pd.CategoricalDtype):
            out[col] = out[col].astype(out[col].cat.categories.dtype)
    col_id = frame.attrs.get(COL_ID_ATTR)
    out.attrs = {COL_ID_ATTR: col_id} if col_id is not None else {}
    return out


def as_dossier(datasets: Mapping[str, pd.DataFrame]) -> dict[str, pd.DataFrame]:
    """Validate a named collection of datasets."""
    if not isinstance(datasets, Mapping):
        raise ShapeValidationError("A dossier must be a mapping of name -> dataset")

    out: dict[str, pd.DataFrame] = {}
    for name, frame in datasets.items():
        if not isinstance(name, str) or not name.strip():
            raise ShapeValidationError("Dossier names must be non-empty strings")
        out[name] = as_dataset(frame)
    return out
