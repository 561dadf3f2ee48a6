"""File transfer between the local file system and the Opal file system.

`opal_files_pull` resolves the local destination from the source and target
paths:

- `report.pdf` -> `out/report.pdf`: extensions match, downloaded as is.
- `report.pdf` -> `out`: extensions differ, saved as `out/report.pdf`.
- `folder` -> `out`: no extension, saved as `out.zip`, extracted into `out`
  and the archive removed.
"""

from __future__ import annotations

import logging
import posixpath
import zipfile
from pathlib import Path

from ..errors import MissingArgumentError
from ..opal.session import OpalSession

logger = logging.getLogger(__name__)

ZIP_SUFFIX = ".zip"


def _ext(path: str) -> str:
    return posixpath.splitext(posixpath.basename(path.rstrip("/")))[1]


def resolve_pull_destination(source: str, destination: str) -> str:
    """Local path an Opal file or folder is downloaded to."""
    to = str(destination)
    if _ext(source) != _ext(to):
        to = f"{to}/{posixpath.basename(source)}"
    if _ext(to) == "":
        to = f"{to}{ZIP_SUFFIX}"
    return to.replace("/" + ZIP_SUFFIX, ZIP_SUFFIX)


def opal_files_push(opal: OpalSession, source: str | Path, destination: str) -> None:
    """Upload a local file into an Opal folder."""
    opal.file_upload(source, destination)
    logger.info("Uploaded file to Opal source=%s destination=%s", source, destination)


def opal_files_pull(opal: OpalSession, source: str, destination: str | Path) -> Path:
    """Download an Opal file or folder to the local file system.

    Folders are downloaded as a zip archive, extracted into the folder named
    after the archive, and the archive is removed. A failed download leaves
    no partial file behind.

    Returns
    -------
    Path
        The downloaded file, or the extraction folder for archives.

    Raises
    ------
    MissingArgumentError
        If `source` is empty.
    """
    if not source:
        raise MissingArgumentError("You must provide an Opal files path")

    dest = Path(resolve_pull_destination(source, str(destination)))

    try:
        opal.file_download(source, dest)
    except Exception:
        logger.error("Download failed source=%s destination=%s", source, dest)
        dest.unlink(missing_ok=True)
        raise

    if dest.suffix != ZIP_SUFFIX:
        logger.info("File downloaded file=%s folder=%s", dest.name, dest.parent)
        return dest

    folder = dest.with_suffix("")
    with zipfile.ZipFile(dest) as zf:
        zf.extractall(folder)
    dest.unlink()
    logger.info("Files extracted folder=%s", folder)
    return folder
