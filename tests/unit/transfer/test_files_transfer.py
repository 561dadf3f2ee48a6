from __future__ import annotations

import importlib
import io
import zipfile
from pathlib import Path

import pytest

from mlstr_opal.errors import MissingArgumentError


def _zip_bytes(files: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, text in files.items():
            zf.writestr(name, text)
    return buf.getvalue()


@pytest.mark.parametrize(
    ("source", "destination", "expected"),
    [
        ("/home/a/report.pdf", "out/copy.pdf", "out/copy.pdf"),
        ("/home/a/report.pdf", "out", "out/report.pdf"),
        ("/home/a/folder", "out", "out.zip"),
        ("/home/a/folder", "out/", "out.zip"),
        ("/home/a/folder", "out/data.csv", "out/data.csv/folder.zip"),
    ],
)
def test_resolve_pull_destination(source: str, destination: str, expected: str) -> None:
    mod = importlib.import_module("mlstr_opal.transfer.files")
    assert mod.resolve_pull_destination(source, destination) == expected


def test_push_forwards_paths_verbatim(fake_opal, caplog) -> None:
    mod = importlib.import_module("mlstr_opal.transfer.files")
    caplog.set_level("INFO")

    mod.opal_files_push(fake_opal, "local/data.csv", "/home/administrator")

    assert fake_opal.uploads == [("local/data.csv", "/home/administrator")]
    assert any("Uploaded file" in rec.message for rec in caplog.records)


def test_pull_single_file(make_fake_opal, tmp_path: Path) -> None:
    mod = importlib.import_module("mlstr_opal.transfer.files")
    opal = make_fake_opal(files={"/home/a/report.txt": b"hello"})

    out = mod.opal_files_pull(opal, "/home/a/report.txt", str(tmp_path / "out"))

    assert out == tmp_path / "out" / "report.txt"
    assert out.read_bytes() == b"hello"


def test_pull_folder_is_extracted(make_fake_opal, tmp_path: Path) -> None:
    mod = importlib.import_module("mlstr_opal.transfer.files")
    archive = _zip_bytes({"folder/a.csv": "x,y\n1,2\n", "folder/b.txt": "b"})
    opal = make_fake_opal(files={"/home/a/folder": archive})

    out = mod.opal_files_pull(opal, "/home/a/folder", str(tmp_path / "dl"))

    assert out == tmp_path / "dl"
    assert (out / "folder" / "a.csv").read_text() == "x,y\n1,2\n"
    assert not (tmp_path / "dl.zip").exists()


def test_pull_failure_removes_partial_file(fake_opal, tmp_path: Path) -> None:
    mod = importlib.import_module("mlstr_opal.transfer.files")

    with pytest.raises(ConnectionError, match="interrupted"):
        mod.opal_files_pull(fake_opal, "/home/a/report.txt", str(tmp_path))

    assert not (tmp_path / "report.txt").exists()


def test_pull_requires_source(fake_opal, tmp_path: Path) -> None:
    mod = importlib.import_module("mlstr_opal.transfer.files")

    with pytest.raises(MissingArgumentError, match="Opal files path"):
        mod.opal_files_pull(fake_opal, "", str(tmp_path))

    assert fake_opal.calls == []
