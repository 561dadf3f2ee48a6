from __future__ import annotations

import logging
import posixpath
from collections.abc import Sequence

from ..opal.session import OpalSession

logger = logging.getLogger(__name__)


def opal_project_create(
    opal: OpalSession,
    project: str | Sequence[str],
    *,
    tags: str | Sequence[str] | None = None,
) -> list[str]:
    """Create each project that does not exist yet.

    Only the last path segment of each name is used as the project name.
    Existing projects are left untouched.

    Returns
    -------
    list[str]
        Names of the projects actually created.
    """
    projects = [project] if isinstance(project, str) else list(project)
    tag_list = [tags] if isinstance(tags, str) else (list(tags) if tags else None)

    created: list[str] = []
    for name in projects:
        project_name = posixpath.basename(name)
        if opal.project_exists(project_name):
            logger.info(
                "Project already exists, not created project=%s", project_name
            )
            continue

        opal.project_create(project_name, database=True, tags=tag_list)
        logger.info("Project created project=%s", project_name)
        created.append(project_name)

    return created
