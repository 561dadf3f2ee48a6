"""
Maelstrom reshaping of the flat Opal taxonomy.

The flat table from `taxonomy_opal_get` is split by taxonomy name, area
vocabularies get their short code, scale taxonomies are joined onto the area
terms they refine, and multi-valued scale cells are exploded into rows.

Scale rows whose area term has no area row are dropped after the join (and
counted in an INFO log) rather than kept with null area columns: every
reshaped row must carry non-null taxonomy, vocabulary and term names.
"""

from __future__ import annotations

import logging

import polars as pl

from ..containers.taxonomy import (
    INDEX_COLUMNS,
    MLSTR_TAXONOMY_COLUMNS,
    as_taxonomy,
)
from ..opal.session import OpalSession
from .config import (
    ADDITIONAL_TAXONOMY,
    AREA_TAXONOMY,
    AREA_VOCABULARY_SHORT,
    HARMO_TAXONOMY,
    NO_SCALE,
    SCALE_AREA_TERMS,
    SCALE_KEY_SEPARATOR,
    SCALE_SEPARATOR,
    SCALE_TAXONOMIES,
    UNKNOWN_TAXONOMY,
    scale_key,
)
from .fetch import taxonomy_opal_get

logger = logging.getLogger(__name__)

# Flat taxonomy column -> scale-side column
SCALE_RENAMES: dict[str, str] = {
    "index_term": "index_term_scale",
    "taxonomy": "taxonomy_scale",
    "taxonomy_title": "taxonomy_scale_title",
    "taxonomy_description": "taxonomy_scale_description",
    "vocabulary": "vocabulary_scale",
    "term": "term_scale",
    "term_title": "term_scale_title",
    "term_description": "term_scale_description",
}

# Nulled together when a row carries the NO_SCALE sentinel
NO_SCALE_COLUMNS: tuple[str, ...] = (
    "index_term_scale",
    "taxonomy_scale",
    "vocabulary_scale",
    "term_scale",
)

INTEGER_COLUMNS: frozenset[str] = frozenset((*INDEX_COLUMNS, "index_term_scale"))


def area_slice(taxonomy: pl.DataFrame) -> pl.DataFrame:
    """Area rows with `vocabulary_short` (unmapped vocabularies -> null)."""
    return taxonomy.filter(pl.col("taxonomy") == AREA_TAXONOMY).with_columns(
        pl.col("vocabulary")
        .replace_strict(AREA_VOCABULARY_SHORT, default=None, return_dtype=pl.String)
        .alias("vocabulary_short")
    )


def scale_slice(taxonomy: pl.DataFrame) -> pl.DataFrame:
    """Scale rows renamed to scale columns, with the area `term` they refine."""
    lookup = {scale_key(t, v): term for (t, v), term in SCALE_AREA_TERMS.items()}

    scales = taxonomy.filter(pl.col("taxonomy").is_in(list(SCALE_TAXONOMIES))).select(
        [pl.col(src).alias(dst) for src, dst in SCALE_RENAMES.items()]
    )
    return scales.with_columns(
        pl.concat_str(
            [pl.col("taxonomy_scale"), pl.col("vocabulary_scale")],
            separator=SCALE_KEY_SEPARATOR,
        )
        .replace_strict(lookup, default=None, return_dtype=pl.String)
        .alias("term")
    )


def join_scales_on_area(area: pl.DataFrame, scales: pl.DataFrame) -> pl.DataFrame:
    """Full join of scale rows onto area rows by `term` (all matches kept).

    Scale rows that refine no area term have no area side and are dropped.
    """
    joined = area.join(scales, on="term", how="full", coalesce=True)

    orphans = joined.filter(pl.col("taxonomy").is_null()).height
    if orphans:
        logger.info("Dropping scale rows with no matching area term rows=%d", orphans)

    return joined.filter(pl.col("taxonomy").is_not_null())


def expand_scale_terms(frame: pl.DataFrame) -> pl.DataFrame:
    """Explode comma-separated `term_scale` cells into one row per value.

    Rows whose scale term is a placeholder (`index_term_scale == 0`) first
    get a NO_SCALE value prepended; the exploded NO_SCALE rows then have
    their scale index/taxonomy/vocabulary/term nulled.
    """
    marked = frame.with_columns(
        pl.when(pl.col("index_term_scale") == 0)
        .then(
            pl.concat_str([pl.lit(NO_SCALE + SCALE_SEPARATOR), pl.col("term_scale")])
        )
        .otherwise(pl.col("term_scale"))
        .alias("term_scale")
    )

    exploded = marked.with_columns(
        pl.col("term_scale").str.split(SCALE_SEPARATOR)
    ).explode("term_scale")

    is_no_scale = pl.col("term_scale") == NO_SCALE
    return exploded.with_columns(
        [
            pl.when(is_no_scale).then(None).otherwise(pl.col(c)).alias(c)
            for c in NO_SCALE_COLUMNS
        ]
    )


def finalize_columns(frame: pl.DataFrame) -> pl.DataFrame:
    """Select output columns, cast types, blank strings to null, then sort."""
    exprs: list[pl.Expr] = []
    for col in MLSTR_TAXONOMY_COLUMNS:
        if col in INTEGER_COLUMNS:
            exprs.append(pl.col(col).cast(pl.Int64))
            continue
        s = pl.col(col).cast(pl.String)
        exprs.append(pl.when(s == "").then(None).otherwise(s).alias(col))

    return frame.select(exprs).sort(
        list(INDEX_COLUMNS),
        nulls_last=True,
        maintain_order=True,
    )


def drop_placeholder_rows(frame: pl.DataFrame) -> pl.DataFrame:
    """Drop rows whose term or scale term index is a placeholder (<= 0)."""
    keep_term = (pl.col("index_term") > 0) | pl.col("index_term").is_null()
    keep_scale = (pl.col("index_term_scale") > 0) | pl.col("index_term_scale").is_null()
    return frame.filter(keep_term & keep_scale)


def reshape_mlstr_taxonomy(
    taxonomy: pl.DataFrame,
    *,
    add_quality_check: bool = False,
) -> pl.DataFrame:
    """Derive the Maelstrom taxonomy from a flat taxonomy table.

    Pure transform (no I/O). The output carries `MLSTR_TAXONOMY_COLUMNS`:
    area rows gain `vocabulary_short` and the scale columns of every scale
    row that refines their term; unknown, additional and harmonization rows
    pass through with those columns null.

    Parameters
    ----------
    taxonomy:
        Output of `taxonomy_opal_get`.
    add_quality_check:
        Keep placeholder rows (`index_term` or `index_term_scale` <= 0).

    Raises
    ------
    ShapeValidationError
        If the input or the reshaped table violates the taxonomy shape.
    """
    taxonomy = as_taxonomy(taxonomy)
    name = pl.col("taxonomy")

    unknown = taxonomy.filter(name == UNKNOWN_TAXONOMY)
    additional = taxonomy.filter(name == ADDITIONAL_TAXONOMY)
    harmo = taxonomy.filter(name == HARMO_TAXONOMY)
    area_scales = join_scales_on_area(area_slice(taxonomy), scale_slice(taxonomy))

    combined = pl.concat(
        [unknown, additional, area_scales, harmo],
        how="diagonal_relaxed",
    ).unique(maintain_order=True)

    out = finalize_columns(expand_scale_terms(combined))

    if not add_quality_check:
        n_before = out.height
        out = drop_placeholder_rows(out)
        logger.debug(
            "Dropped placeholder rows before=%d after=%d", n_before, out.height
        )

    logger.info("Reshaped Maelstrom taxonomy rows=%d", out.height)
    return as_taxonomy(out)


def taxonomy_opal_mlstr_get(
    opal: OpalSession,
    *,
    add_quality_check: bool = False,
) -> pl.DataFrame:
    """Fetch the server taxonomy and reshape it into the Maelstrom layout."""
    taxonomy = taxonomy_opal_get(opal, add_quality_check=add_quality_check)
    return reshape_mlstr_taxonomy(taxonomy, add_quality_check=add_quality_check)
