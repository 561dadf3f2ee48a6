"""Taxonomy table shape contract.

A taxonomy table has one row per (taxonomy, vocabulary, term) with integer
index columns and string name/label columns. The Maelstrom-shaped table adds
`vocabulary_short` and the scale columns joined from scale taxonomies.
"""

from __future__ import annotations

import polars as pl

from ..errors import ShapeValidationError

INDEX_COLUMNS: tuple[str, ...] = (
    "index_taxonomy",
    "index_vocabulary",
    "index_term",
)

TAXONOMY_COLUMNS: tuple[str, ...] = (
    *INDEX_COLUMNS,
    "taxonomy",
    "taxonomy_title",
    "taxonomy_description",
    "vocabulary",
    "term",
    "term_title",
    "term_description",
)

SCALE_COLUMNS: tuple[str, ...] = (
    "index_term_scale",
    "taxonomy_scale",
    "taxonomy_scale_title",
    "taxonomy_scale_description",
    "vocabulary_scale",
    "term_scale",
    "term_scale_title",
    "term_scale_description",
)

MLSTR_TAXONOMY_COLUMNS: tuple[str, ...] = (
    *INDEX_COLUMNS,
    "taxonomy",
    "taxonomy_title",
    "taxonomy_description",
    "vocabulary",
    "vocabulary_short",
    "term",
    "term_title",
    "term_description",
    *SCALE_COLUMNS,
)

NAME_COLUMNS: tuple[str, ...] = ("taxonomy", "vocabulary", "term")


def taxonomy_schema(columns: tuple[str, ...] = TAXONOMY_COLUMNS) -> dict[str, pl.DataType]:
    """Polars schema for a taxonomy table with the given columns."""
    schema: dict[str, pl.DataType] = {}
    for col in columns:
        is_index = col in INDEX_COLUMNS or col == "index_term_scale"
        schema[col] = pl.Int64 if is_index else pl.String
    return schema


def empty_taxonomy() -> pl.DataFrame:
    """Zero-row taxonomy table with the full column set."""
    return pl.DataFrame(schema=taxonomy_schema())


def as_taxonomy(frame: pl.DataFrame) -> pl.DataFrame:
    """Validate a (flat or Maelstrom-shaped) taxonomy table.

    Raises
    ------
    ShapeValidationError
        If required columns are missing, index columns are not integers,
        names are null, or scale columns are only partially present.
    """
    if not isinstance(frame, pl.DataFrame):
        raise ShapeValidationError(
            f"A taxonomy must be a polars DataFrame, got {type(frame).__name__}"
        )

    cols = set(frame.columns)
    missing = [c for c in TAXONOMY_COLUMNS if c not in cols]
    if missing:
        raise ShapeValidationError(f"Taxonomy is missing columns: {missing}")

    present_scale = [c for c in SCALE_COLUMNS if c in cols]
    if present_scale and len(present_scale) != len(SCALE_COLUMNS):
        absent = [c for c in SCALE_COLUMNS if c not in cols]
        raise ShapeValidationError(f"Taxonomy has partial scale columns, missing: {absent}")

    index_cols = [*INDEX_COLUMNS, *(["index_term_scale"] if present_scale else [])]
    not_int = [c for c in index_cols if not frame.schema[c].is_integer()]
    if not_int:
        raise ShapeValidationError(f"Taxonomy index columns must be integers: {not_int}")

    if frame.height == 0:
        return frame

    null_counts = frame.select(pl.col(list(NAME_COLUMNS)).null_count()).row(0)
    null_names = [c for c, n in zip(NAME_COLUMNS, null_counts) if n]
    if null_names:
        raise ShapeValidationError(f"Taxonomy has null values in: {null_names}")

    return frame
