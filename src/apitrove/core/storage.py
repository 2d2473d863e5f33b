# ABOUTME: On-disk layout of canonical documents: APIs/<provider>/<service>/<version>/<name>.
# ABOUTME: Each document is stored as an editable YAML file plus a JSON sibling.

import logging
import shutil
from pathlib import Path
from typing import Any

from apitrove.documents.serialize import dump_json
from apitrove.registry.types import CandidateKey

logger = logging.getLogger(__name__)

DEFAULT_APIS_DIR = Path("APIs")


def document_path(apis_dir: Path, key: CandidateKey, name: str) -> Path:
    """Storage path for a document; an empty service adds no directory level."""
    base = apis_dir / key.provider
    if key.service:
        base = base / key.service
    return base / key.version / name


def relocated_path(path: Path, version: str | None, name: str) -> Path:
    """Path of a stored document after changing its version directory and/or name."""
    version_dir = path.parent
    if version is not None:
        version_dir = version_dir.parent / version
    return version_dir / name


def json_sibling(path: Path) -> Path:
    return path.with_suffix(".json")


def write_document(path: Path, content: str, document: dict[str, Any]) -> None:
    """Write the YAML content and its JSON sibling."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    json_sibling(path).write_text(dump_json(document), encoding="utf-8")


def _prune_empty(directory: Path) -> None:
    if directory.is_dir() and not any(directory.iterdir()):
        directory.rmdir()


def move_document(old: Path, new: Path) -> None:
    """Move a stored document (and its JSON sibling) to a new path.

    The old version directory is removed once empty. A missing old file is
    not an error: the document is simply written at the new path later.
    """
    if old == new or not old.exists():
        return
    new.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(old, new)
    if json_sibling(old).exists():
        shutil.move(json_sibling(old), json_sibling(new))
    _prune_empty(old.parent)
    logger.info("Moved %s to %s", old, new)


def remove_document(path: Path) -> None:
    """Delete a stored document and its JSON sibling."""
    path.unlink(missing_ok=True)
    json_sibling(path).unlink(missing_ok=True)
    _prune_empty(path.parent)
