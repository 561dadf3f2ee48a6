"""Move datasets, data dictionaries and taxonomies between pandas/polars and Opal."""

from __future__ import annotations

from .containers import DataDict, TableUnit
from .dictionary import normalize_opal_data_dict
from .errors import (
    ArgumentConflictError,
    ConsistencyError,
    EmptyProjectError,
    InputFormatError,
    MissingArgumentError,
    MlstrOpalError,
    ShapeValidationError,
)
from .opal import OpalClient, OpalSession, opal_login
from .taxonomy import (
    reshape_mlstr_taxonomy,
    taxonomy_opal_get,
    taxonomy_opal_mlstr_get,
)
from .transfer import (
    PushTablesResult,
    TableTransferResult,
    opal_files_pull,
    opal_files_push,
    opal_project_create,
    opal_tables_pull,
    opal_tables_push,
)

__all__ = [
    "ArgumentConflictError",
    "ConsistencyError",
    "DataDict",
    "EmptyProjectError",
    "InputFormatError",
    "MissingArgumentError",
    "MlstrOpalError",
    "OpalClient",
    "OpalSession",
    "PushTablesResult",
    "ShapeValidationError",
    "TableTransferResult",
    "TableUnit",
    "normalize_opal_data_dict",
    "opal_files_pull",
    "opal_files_push",
    "opal_login",
    "opal_project_create",
    "opal_tables_pull",
    "opal_tables_push",
    "reshape_mlstr_taxonomy",
    "taxonomy_opal_get",
    "taxonomy_opal_mlstr_get",
]
