"""Local tabular containers: datasets, data dictionaries, dossiers, taxonomies."""

from .data_dict import (
    CATEGORIES,
    VARIABLES,
    DataDict,
    TableUnit,
    as_data_dict,
    as_data_dict_mlstr,
    data_dict_apply,
    data_dict_extract,
)
from .dataset import (
    add_index,
    as_dataset,
    as_dossier,
    data_extract,
    dataset_col_id,
    dataset_zap_data_dict,
    unique_index_name,
)
from .taxonomy import (
    MLSTR_TAXONOMY_COLUMNS,
    TAXONOMY_COLUMNS,
    as_taxonomy,
    empty_taxonomy,
)

__all__ = [
    "CATEGORIES",
    "MLSTR_TAXONOMY_COLUMNS",
    "TAXONOMY_COLUMNS",
    "VARIABLES",
    "DataDict",
    "TableUnit",
    "add_index",
    "as_data_dict",
    "as_data_dict_mlstr",
    "as_dataset",
    "as_dossier",
    "as_taxonomy",
    "data_dict_apply",
    "data_dict_extract",
    "data_extract",
    "dataset_col_id",
    "dataset_zap_data_dict",
    "empty_taxonomy",
    "unique_index_name",
]
