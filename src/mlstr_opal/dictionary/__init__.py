"""Data-dictionary normalization for Opal-native dictionaries."""

from __future__ import annotations

from .normalize import as_character_frame, normalize_opal_data_dict

__all__ = ["as_character_frame", "normalize_opal_data_dict"]
