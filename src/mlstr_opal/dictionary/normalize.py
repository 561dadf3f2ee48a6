"""Normalize Opal-native data dictionaries into `Variables`/`Categories`."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pandas as pd

from ..containers.data_dict import CATEGORIES, VARIABLES
from ..errors import InputFormatError

OPAL_DICTIONARY_KEYS: frozenset[str] = frozenset({"variables", "table", "project"})


def as_character_frame(obj: Any) -> pd.DataFrame:
    """Coerce every column to string; empty strings become missing."""
    frame = obj.copy() if isinstance(obj, pd.DataFrame) else pd.DataFrame(obj)
    return frame.astype("string").replace("", pd.NA)


def normalize_opal_data_dict(data_dict: Mapping[str, Any]) -> dict[str, Any]:
    """Convert an Opal-native dictionary to the normalized two-table shape.

    The input must carry `variables`, `table` and `project` (extra keys are
    kept). `variables` becomes `Variables`; `categories` is optional and
    becomes `Categories` only when present with at least one row.

    Raises
    ------
    InputFormatError
        If one of the required native keys is absent.
    """
    if not isinstance(data_dict, Mapping):
        raise InputFormatError(
            "The data dictionary is not in the Opal format "
            f"(expected a mapping, got {type(data_dict).__name__})"
        )

    missing = sorted(OPAL_DICTIONARY_KEYS - set(data_dict.keys()))
    if missing:
        raise InputFormatError(
            f"The data dictionary is not in the Opal format; missing keys: {missing}"
        )

    out = {
        k: v for k, v in data_dict.items() if k not in {"variables", "categories"}
    }
    out[VARIABLES] = as_character_frame(data_dict["variables"])

    categories = data_dict.get("categories")
    if categories is not None:
        categories = as_character_frame(categories)
        if len(categories) > 0:
            out[CATEGORIES] = categories

    return out
