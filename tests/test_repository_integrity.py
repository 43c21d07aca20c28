"""Repository-level integrity checks."""

from __future__ import annotations

import re
from pathlib import Path

CONFLICT_PATTERN = re.compile(r"^(<<<<<<<|=======|>>>>>>>)", re.MULTILINE)
IGNORED_PARTS = {".git", "__pycache__", ".mypy_cache", ".pytest_cache", ".venv"}
IGNORED_SUFFIXES = {".db", ".sqlite", ".sqlite3", ".pyc"}


def _source_files(repo_root: Path):
    for path in repo_root.rglob("*"):
        if not path.is_file():
            continue
        if any(part in IGNORED_PARTS for part in path.parts):
            continue
        if path.suffix in IGNORED_SUFFIXES:
            continue
        yield path


def test_repository_has_no_merge_conflict_markers() -> None:
    """Ensure no files in the repo still contain git conflict markers."""

    repo_root = Path(__file__).resolve().parents[1]
    offending_files = [
        path.relative_to(repo_root)
        for path in _source_files(repo_root)
        if CONFLICT_PATTERN.search(path.read_text(encoding="utf-8", errors="ignore"))
    ]

    assert not offending_files, (
        "The following files still contain git conflict markers: "
        + ", ".join(str(path) for path in offending_files)
    )


def test_every_service_module_is_importable() -> None:
    """Each module under app/services must import cleanly."""

    import importlib

    services = Path(__file__).resolve().parents[1] / "app" / "services"
    for module_path in sorted(services.glob("*.py")):
        importlib.import_module(f"app.services.{module_path.stem}")
