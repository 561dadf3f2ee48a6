"""Push and pull tables (dataset + data dictionary) to and from Opal projects.

Push
----
Exactly one input form is accepted:

- `dossier`: mapping of table name -> `TableUnit`, `(dataset, data_dict)`
  pair, dataset or data dictionary (the shapes `opal_tables_pull` returns),
- `dataset` and/or `data_dict` with a single `table_name`.

Every dataset gets a synthetic, uniquely named identifier column prepended
before it is saved; the dictionary is pushed afterwards as a separate update.

Pull
----
Each table's dictionary is normalized from the Opal shape; its values are
fetched only when `dataset` content is requested. Tables are processed one at
a time, in request order.
"""

from __future__ import annotations

import logging
import time
import warnings
from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd

from ..containers.data_dict import (
    CATEGORIES,
    VARIABLES,
    DataDict,
    TableUnit,
    as_data_dict_mlstr,
    data_dict_apply,
    data_dict_extract,
)
from ..containers.dataset import (
    COL_ID_ATTR,
    add_index,
    as_dataset,
    as_dossier,
    data_extract,
    dataset_zap_data_dict,
    unique_index_name,
)
from ..dictionary.normalize import normalize_opal_data_dict
from ..errors import (
    ArgumentConflictError,
    EmptyProjectError,
    MissingArgumentError,
    ShapeValidationError,
)
from ..opal.session import OpalSession
from .projects import opal_project_create
from .types import PushTablesResult, TableObserver, TableTransferResult

logger = logging.getLogger(__name__)

CONTENT_DATASET = "dataset"
CONTENT_DATA_DICT = "data_dict"
ALLOWED_CONTENT: frozenset[str] = frozenset({CONTENT_DATASET, CONTENT_DATA_DICT})

# ----------------------------------------------------------------------------
# Private helpers
# ----------------------------------------------------------------------------


def _single_table_name(table_name: str | Sequence[str] | None) -> str | None:
    if table_name is None or isinstance(table_name, str):
        return table_name
    names = list(table_name)
    if len(names) > 1:
        raise ArgumentConflictError(
            f"Table name must be unique, got {len(names)} names: {names}"
        )
    return names[0] if names else None


def _check_push_arguments(
    *,
    dossier: Mapping[str, Any] | None,
    data_dict: Mapping[str, Any] | None,
    dataset: pd.DataFrame | None,
    table_name: str | None,
    project_name: str,
) -> None:
    if dossier is not None:
        extra = [
            n
            for n, v in (
                ("dataset", dataset),
                ("data_dict", data_dict),
                ("table_name", table_name),
            )
            if v is not None
        ]
        if extra:
            raise ArgumentConflictError(
                f"Too many arguments entered: 'dossier' cannot be combined with {extra}"
            )

    if dossier is None and dataset is None and data_dict is None:
        raise MissingArgumentError(
            "At least one of 'dossier', 'dataset' or 'data_dict' is required"
        )

    if (dataset is not None or data_dict is not None) and not table_name:
        raise MissingArgumentError("Table name is missing")

    if not isinstance(project_name, str) or not project_name.strip():
        raise MissingArgumentError("You must provide an Opal project name")


def _dossier_item(item: Any) -> tuple[pd.DataFrame | None, Mapping[str, Any] | None]:
    """Split a dossier value into (dataset, data dictionary).

    Accepts a `TableUnit`, a `(dataset, data_dict)` pair, a dataset alone or
    a data dictionary alone, i.e. any item `opal_tables_pull` returns.
    """
    if isinstance(item, TableUnit):
        return item.dataset, item.data_dict
    if isinstance(item, tuple) and len(item) == 2:
        return item[0], item[1]
    if isinstance(item, Mapping):
        return None, item
    return item, None


def _table_unit(
    dataset: pd.DataFrame | None,
    data_dict: Mapping[str, Any] | None,
) -> TableUnit:
    """Pair a dataset with its dictionary, deriving whichever is missing."""
    if dataset is None and data_dict is None:
        raise MissingArgumentError("A table needs a dataset or a data dictionary")

    dd = as_data_dict_mlstr(data_dict) if data_dict is not None else None
    if dataset is None:
        return TableUnit(dataset=data_extract(dd), data_dict=dd)

    frame = as_dataset(dataset, getattr(dataset, "attrs", {}).get(COL_ID_ATTR))
    if dd is None:
        return TableUnit(dataset=frame, data_dict=data_dict_extract(frame))
    return TableUnit(dataset=data_dict_apply(frame, dd), data_dict=dd)


def _build_push_units(
    *,
    dossier: Mapping[str, Any] | None,
    data_dict: Mapping[str, Any] | None,
    dataset: pd.DataFrame | None,
    table_name: str | None,
) -> dict[str, TableUnit]:
    """Pair each table's dataset with its dictionary (supplied or derived)."""
    if dossier is None:
        if not table_name:
            raise MissingArgumentError("Table name is missing")
        return {table_name: _table_unit(dataset, data_dict)}

    if not isinstance(dossier, Mapping):
        raise ShapeValidationError("A dossier must be a mapping of name -> table")

    units = {name: _table_unit(*_dossier_item(item)) for name, item in dossier.items()}
    as_dossier({name: unit.dataset for name, unit in units.items()})
    return units


def _with_identifier(frame: pd.DataFrame) -> pd.DataFrame:
    return add_index(frame, name_index=unique_index_name(frame))


def _empty_opal_dictionary(project: str, table: str) -> dict[str, Any]:
    return {
        "project": project,
        "table": table,
        "variables": pd.DataFrame({"name": pd.Series(dtype="string")}),
        "categories": pd.DataFrame(
            {
                "variable": pd.Series(dtype="string"),
                "name": pd.Series(dtype="string"),
            }
        ),
    }


def _merge_identifier_variable(frame: pd.DataFrame, dd: DataDict) -> DataDict:
    """Prepend the first column's variable unless the dictionary declares it."""
    if frame.shape[1] == 0:
        return dd

    id_col = str(frame.columns[0])
    variables = dd[VARIABLES]
    if id_col in set(variables["name"].astype(str)):
        return dd

    id_variables = data_dict_extract(frame[[frame.columns[0]]])[VARIABLES]
    out = dict(dd)
    out[VARIABLES] = pd.concat(
        [id_variables.astype("string"), variables],
        ignore_index=True,
    )
    return out


def _normalize_content(content: str | Sequence[str]) -> frozenset[str]:
    requested = frozenset([content] if isinstance(content, str) else content)
    if not requested:
        raise MissingArgumentError(
            f"'content' must name at least one of {sorted(ALLOWED_CONTENT)}"
        )
    unknown = sorted(requested - ALLOWED_CONTENT)
    if unknown:
        raise ValueError(
            f"Unsupported content {unknown}. Allowed: {sorted(ALLOWED_CONTENT)}"
        )
    return requested


# ----------------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------------


def opal_tables_push(
    opal: OpalSession,
    *,
    project_name: str,
    dossier: Mapping[str, Any] | None = None,
    data_dict: Mapping[str, Any] | None = None,
    dataset: pd.DataFrame | None = None,
    table_name: str | Sequence[str] | None = None,
    force: bool = False,
    overwrite: bool = False,
    on_table: TableObserver | None = None,
) -> PushTablesResult:
    """Upload datasets and their data dictionaries into an Opal project.

    Steps
    -----
    1. Check arguments and input formats (no server call before this passes).
    2. Build one (dataset, data dictionary) pair per table:
       - dataset only: dictionary inferred from the columns,
       - data_dict only: empty dataset built from the declared variables,
       - both: the dictionary is applied to the dataset.
    3. Prepend a uniquely named identifier column to every dataset.
    4. With `force`, create the project and each missing table.
    5. Save each dataset (identified by its first column), then push its
       dictionary.

    Parameters
    ----------
    opal:
        Authenticated session.
    project_name:
        Target Opal project.
    dossier:
        Mapping of table name -> `TableUnit`, `(dataset, data_dict)` pair,
        dataset or data dictionary. Exclusive with the other inputs.
    data_dict, dataset, table_name:
        Single-table form; `table_name` is required.
    force:
        Create the project and tables when they do not exist.
    overwrite:
        Replace existing tables instead of merging values into them.
    on_table:
        Called with each table's `TableTransferResult` once it is pushed.

    Raises
    ------
    ArgumentConflictError
        If `dossier` is combined with another input, or several table names
        are given for the single-table form.
    MissingArgumentError
        If no input, no table name or no project name is given.
    ShapeValidationError
        If a dataset or data dictionary is invalid.
    """
    name = _single_table_name(table_name)
    _check_push_arguments(
        dossier=dossier,
        data_dict=data_dict,
        dataset=dataset,
        table_name=name,
        project_name=project_name,
    )

    logger.info("Verification of input format")
    units = {
        table: TableUnit(dataset=_with_identifier(unit.dataset), data_dict=unit.data_dict)
        for table, unit in _build_push_units(
            dossier=dossier,
            data_dict=data_dict,
            dataset=dataset,
            table_name=name,
        ).items()
    }
    logger.info("Verification of input format done tables=%d", len(units))

    t0 = time.perf_counter()

    project_created = False
    if force and not opal.project_exists(project_name):
        project_created = bool(opal_project_create(opal, project_name))

    if overwrite:
        warnings.warn(
            "Tables will be overwritten; pass overwrite=False to merge instead",
            UserWarning,
            stacklevel=2,
        )

    results: list[TableTransferResult] = []
    for table, unit in units.items():
        t_table = time.perf_counter()

        created = False
        if force and opal.table_exists(project_name, table):
            logger.info(
                "Table already exists, not created project=%s table=%s",
                project_name,
                table,
            )
        elif force:
            opal.table_create(project_name, table)
            created = True

        frame = unit.dataset
        opal.table_save(
            frame,
            project_name,
            table,
            overwrite=overwrite,
            force=force,
            id_name=str(frame.columns[0]),
        )
        opal.table_dictionary_update(
            project_name,
            table,
            variables=unit.data_dict[VARIABLES],
            categories=unit.data_dict.get(CATEGORIES),
        )

        result = TableTransferResult(
            project=project_name,
            table=table,
            n_rows=len(frame),
            n_variables=len(unit.data_dict[VARIABLES]),
            created=created,
            duration_s=time.perf_counter() - t_table,
        )
        logger.info(
            "Table uploaded project=%s table=%s rows=%d variables=%d",
            project_name,
            table,
            result.n_rows,
            result.n_variables,
        )
        results.append(result)
        if on_table is not None:
            on_table(result)

    return PushTablesResult(
        project=project_name,
        project_created=project_created,
        tables=results,
        duration_s=time.perf_counter() - t0,
    )


def opal_tables_pull(
    opal: OpalSession,
    project: str,
    table_list: str | Sequence[str] | None = None,
    *,
    content: str | Sequence[str] = (CONTENT_DATASET, CONTENT_DATA_DICT),
    keep_as_dossier: bool = True,
    remove_id: bool = False,
    on_table: TableObserver | None = None,
) -> Any:
    """Download tables of an Opal project with their data dictionaries.

    Parameters
    ----------
    opal:
        Authenticated session.
    project:
        Source Opal project.
    table_list:
        Tables to pull, defaults to every table of the project.
    content:
        `"dataset"`, `"data_dict"` or both.
    keep_as_dossier:
        Return a mapping even when a single table is pulled.
    remove_id:
        Drop the identifier (first) column of each dataset. When kept, the
        identifier variable is added to the dictionary if it is not declared.
    on_table:
        Called with each table's `TableTransferResult` once it is pulled.

    Returns
    -------
    TableUnit | pandas.DataFrame | DataDict | dict
        Per table: a `TableUnit` when both contents are requested, otherwise
        the dataset or the data dictionary. A single table with
        `keep_as_dossier=False` is returned as is; otherwise a dict keyed by
        table name in pull order.

    Raises
    ------
    MissingArgumentError
        If `project` is empty or `content` selects nothing.
    TypeError
        If `keep_as_dossier` or `remove_id` is not a boolean.
    EmptyProjectError
        If the project has no table and no `table_list` is given.
    """
    if not isinstance(project, str) or not project.strip():
        raise MissingArgumentError("You must provide an Opal project")
    if not isinstance(keep_as_dossier, bool):
        raise TypeError("`keep_as_dossier` must be True or False")
    if not isinstance(remove_id, bool):
        raise TypeError("`remove_id` must be True or False")
    requested = _normalize_content(content)

    opal.keep_alive()

    if table_list is None:
        tables = opal.tables(project)
        if not tables:
            raise EmptyProjectError(f"The project '{project}' has no table")
    else:
        tables = [table_list] if isinstance(table_list, str) else list(table_list)

    items: dict[str, Any] = {}
    n_tables = len(tables)
    for i, table in enumerate(tables, start=1):
        t0 = time.perf_counter()
        logger.info(
            "Download %d/%d project=%s table=%s", i, n_tables, project, table
        )

        raw = opal.table_dictionary_get(project, table)
        if raw is None:
            raw = _empty_opal_dictionary(project, table)
        dd = as_data_dict_mlstr(normalize_opal_data_dict(raw))

        frame: pd.DataFrame | None = None
        if CONTENT_DATASET in requested:
            frame = opal.table_get(project, table)
            has_id = frame.shape[1] > 0
            if not has_id:
                frame = data_extract(dd)

            col_id = None
            if has_id and remove_id:
                frame = frame.iloc[:, 1:]
            elif has_id:
                dd = _merge_identifier_variable(frame, dd)
                col_id = str(frame.columns[0])

            frame = data_dict_apply(dataset_zap_data_dict(frame), dd)
            frame = as_dataset(frame, col_id=col_id)

        if requested == ALLOWED_CONTENT:
            items[table] = TableUnit(dataset=frame, data_dict=dd)
        elif CONTENT_DATASET in requested:
            items[table] = frame
        else:
            items[table] = dd

        result = TableTransferResult(
            project=project,
            table=table,
            n_rows=0 if frame is None else len(frame),
            n_variables=len(dd[VARIABLES]),
            created=False,
            duration_s=time.perf_counter() - t0,
        )
        if on_table is not None:
            on_table(result)

    if len(items) == 1 and not keep_as_dossier:
        return next(iter(items.values()))
    return items
