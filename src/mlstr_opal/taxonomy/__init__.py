"""Opal taxonomy download and Maelstrom reshaping."""

from __future__ import annotations

from .fetch import taxonomy_opal_get
from .reshape import reshape_mlstr_taxonomy, taxonomy_opal_mlstr_get

__all__ = [
    "reshape_mlstr_taxonomy",
    "taxonomy_opal_get",
    "taxonomy_opal_mlstr_get",
]
