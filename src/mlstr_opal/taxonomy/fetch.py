from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import polars as pl

from ..containers.taxonomy import (
    INDEX_COLUMNS,
    TAXONOMY_COLUMNS,
    as_taxonomy,
    empty_taxonomy,
)
from ..errors import ConsistencyError
from ..opal.session import OpalSession
from .config import UNKNOWN_TAXONOMY, unknown_term, unknown_vocabulary

logger = logging.getLogger(__name__)

TERM_KEYS: tuple[str, ...] = ("taxonomy", "vocabulary", "term")

_LABEL_SCHEMA: dict[str, pl.DataType] = {
    "taxonomy": pl.String,
    "vocabulary": pl.String,
    "term": pl.String,
    "term_title": pl.String,
    "term_description": pl.String,
}


def dense_index(name: str, by: str | Sequence[str] | None = None) -> pl.Expr:
    """0-based row number, restarted within each `by` group."""
    expr = pl.int_range(pl.len(), dtype=pl.Int64)
    if by is not None:
        expr = expr.over(by)
    return expr.alias(name)


def _is_unknown_vocabulary(taxonomy: str, vocabulary: str) -> bool:
    return vocabulary == unknown_vocabulary(taxonomy)


def build_vocabulary_rows(taxonomies: Sequence[dict[str, Any]]) -> pl.DataFrame:
    """One row per (taxonomy, vocabulary), placeholders included and indexed.

    A synthetic `Unknown_taxonomy` is prepended, and each taxonomy gets a
    `<taxonomy>_Unknown_vocabulary` ahead of its real vocabularies.
    """
    names: list[str] = [UNKNOWN_TAXONOMY]
    titles: list[str | None] = [None]
    descriptions: list[str | None] = [None]
    vocabularies: list[list[str]] = [[unknown_vocabulary(UNKNOWN_TAXONOMY)]]

    for tx in taxonomies:
        name = str(tx["name"])
        names.append(name)
        titles.append(tx.get("title"))
        descriptions.append(tx.get("description"))
        vocabularies.append(
            [unknown_vocabulary(name), *(str(v) for v in tx.get("vocabularies", []))]
        )

    frame = pl.DataFrame(
        {
            "taxonomy": names,
            "taxonomy_title": titles,
            "taxonomy_description": descriptions,
            "vocabulary": vocabularies,
        },
        schema={
            "taxonomy": pl.String,
            "taxonomy_title": pl.String,
            "taxonomy_description": pl.String,
            "vocabulary": pl.List(pl.String),
        },
    )

    return (
        frame.with_columns(dense_index("index_taxonomy"))
        .explode("vocabulary")
        .with_columns(dense_index("index_vocabulary", by="index_taxonomy"))
    )


def explode_terms(opal: OpalSession, vocab_rows: pl.DataFrame) -> pl.DataFrame:
    """One row per term, each vocabulary led by its placeholder term.

    Synthetic unknown vocabularies are never queried.
    """
    term_lists: list[list[str]] = []
    for taxonomy, vocabulary in vocab_rows.select("taxonomy", "vocabulary").iter_rows():
        if _is_unknown_vocabulary(taxonomy, vocabulary):
            names: list[str] = []
        else:
            names = [str(t["name"]) for t in opal.terms(taxonomy, vocabulary)]
        term_lists.append([unknown_term(vocabulary), *names])

    return (
        vocab_rows.with_columns(pl.Series("term", term_lists, dtype=pl.List(pl.String)))
        .explode("term")
        .with_columns(
            dense_index("index_term", by=["index_taxonomy", "index_vocabulary"])
        )
    )


def drop_redundant_placeholders(frame: pl.DataFrame) -> pl.DataFrame:
    """Drop placeholder terms of vocabularies that have real terms.

    A vocabulary with no real term keeps its placeholder as its only row.
    """
    n_terms = pl.len().over(["index_taxonomy", "index_vocabulary"])
    return frame.filter((pl.col("index_term") != 0) | (n_terms == 1))


def gather_term_labels(opal: OpalSession, frame: pl.DataFrame) -> pl.DataFrame:
    """Fetch term titles/descriptions for every (taxonomy, vocabulary) pair.

    Placeholder terms still present in `frame` get null labels.
    """
    pairs = frame.select("taxonomy", "vocabulary").unique(maintain_order=True)
    n_pairs = pairs.height

    rows: list[dict[str, Any]] = []
    for i, (taxonomy, vocabulary) in enumerate(pairs.iter_rows(), start=1):
        if _is_unknown_vocabulary(taxonomy, vocabulary):
            continue
        logger.info(
            "Gather taxonomy labels %d/%d taxonomy=%s vocabulary=%s",
            i,
            n_pairs,
            taxonomy,
            vocabulary,
        )
        for t in opal.terms(taxonomy, vocabulary):
            rows.append(
                {
                    "taxonomy": taxonomy,
                    "vocabulary": vocabulary,
                    "term": str(t["name"]),
                    "term_title": t.get("title"),
                    "term_description": t.get("description"),
                }
            )

    placeholders = frame.filter(pl.col("index_term") == 0).select(
        *TERM_KEYS,
        pl.lit(None, dtype=pl.String).alias("term_title"),
        pl.lit(None, dtype=pl.String).alias("term_description"),
    )

    return pl.concat(
        [pl.DataFrame(rows, schema=_LABEL_SCHEMA), placeholders],
        how="vertical",
    )


def taxonomy_opal_get(
    opal: OpalSession,
    *,
    add_quality_check: bool = False,
) -> pl.DataFrame:
    """Download the server taxonomy tree as one flat, densely indexed table.

    Steps
    -----
    1. List taxonomies; an empty list returns a zero-row table.
    2. Prepend `Unknown_taxonomy` and index taxonomies (0-based, server order).
    3. Prepend `<taxonomy>_Unknown_vocabulary` to each vocabulary list, explode
       and index vocabularies per taxonomy.
    4. Fetch term names for every real vocabulary, prepend
       `<vocabulary>_Unknown_term`, explode and index terms per vocabulary.
    5. Unless `add_quality_check`, drop placeholder terms of vocabularies that
       have at least one real term.
    6. Fetch term titles/descriptions and join them by (taxonomy, vocabulary,
       term).

    Parameters
    ----------
    opal:
        Authenticated session.
    add_quality_check:
        Keep every placeholder term row (index_term == 0).

    Returns
    -------
    polars.DataFrame
        Columns `TAXONOMY_COLUMNS`, sorted by the three index columns.

    Raises
    ------
    ConsistencyError
        If the number of label rows differs from the number of term rows.
    """
    taxonomies = opal.taxonomies()
    if not taxonomies:
        logger.info("No taxonomy found on server; returning an empty taxonomy")
        return empty_taxonomy()

    logger.info("Fetching taxonomy tree taxonomies=%d", len(taxonomies))

    frame = explode_terms(opal, build_vocabulary_rows(taxonomies))
    if not add_quality_check:
        frame = drop_redundant_placeholders(frame)

    labels = gather_term_labels(opal, frame)
    if labels.height != frame.height:
        logger.error(
            "Taxonomy label mismatch term_rows=%d label_rows=%d",
            frame.height,
            labels.height,
        )
        raise ConsistencyError(
            "Problem in taxonomy: term labels do not match term rows "
            f"(term_rows={frame.height}, label_rows={labels.height})"
        )

    frame = (
        frame.join(labels, on=list(TERM_KEYS), how="left")
        .select(list(TAXONOMY_COLUMNS))
        .sort(list(INDEX_COLUMNS), maintain_order=True)
    )

    logger.info("Fetched taxonomy rows=%d", frame.height)
    return as_taxonomy(frame)
