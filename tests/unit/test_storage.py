# ABOUTME: Unit tests for the on-disk document layout.
# ABOUTME: Covers path building, YAML/JSON writes, moves between version directories and removal.

import json
from pathlib import Path

import yaml

from apitrove.core.storage import (
    document_path,
    json_sibling,
    move_document,
    relocated_path,
    remove_document,
    write_document,
)
from apitrove.registry.types import CandidateKey


class TestPaths:
    """Tests for document_path and relocated_path."""

    def test_with_service(self, tmp_path: Path) -> None:
        """Services add a directory level."""
        key = CandidateKey("example.com", "maps", "1.0")
        assert document_path(tmp_path, key, "openapi.yaml") == (
            tmp_path / "example.com" / "maps" / "1.0" / "openapi.yaml"
        )

    def test_without_service(self, tmp_path: Path) -> None:
        """An empty service adds no directory level."""
        key = CandidateKey("example.com", "", "1.0")
        assert document_path(tmp_path, key, "swagger.yaml") == (
            tmp_path / "example.com" / "1.0" / "swagger.yaml"
        )

    def test_relocated_path(self) -> None:
        """Relocation swaps the version directory and optionally the name."""
        path = Path("APIs/example.com/1.0/swagger.yaml")
        assert relocated_path(path, "1.1", "openapi.yaml") == Path("APIs/example.com/1.1/openapi.yaml")
        assert relocated_path(path, None, "openapi.yaml") == Path("APIs/example.com/1.0/openapi.yaml")

    def test_json_sibling(self) -> None:
        """The JSON copy sits beside the YAML file."""
        assert json_sibling(Path("a/openapi.yaml")) == Path("a/openapi.json")


class TestFiles:
    """Tests for writing, moving and removing stored documents."""

    def test_write_document(self, tmp_path: Path) -> None:
        """Both serializations are written, creating directories."""
        path = tmp_path / "example.com" / "1.0" / "openapi.yaml"
        write_document(path, "info: {}\n", {"info": {}})
        assert path.read_text() == "info: {}\n"
        assert json.loads(json_sibling(path).read_text()) == {"info": {}}

    def test_move_document(self, tmp_path: Path) -> None:
        """Moving carries the JSON copy and prunes the empty old directory."""
        old = tmp_path / "example.com" / "1.0" / "openapi.yaml"
        new = tmp_path / "example.com" / "1.1" / "openapi.yaml"
        write_document(old, "a: 1\n", {"a": 1})
        move_document(old, new)
        assert yaml.safe_load(new.read_text()) == {"a": 1}
        assert json_sibling(new).exists()
        assert not old.parent.exists()

    def test_move_keeps_non_empty_directory(self, tmp_path: Path) -> None:
        """The old directory stays when other files remain in it."""
        old = tmp_path / "1.0" / "openapi.yaml"
        write_document(old, "a: 1\n", {"a": 1})
        (old.parent / "notes.txt").write_text("keep")
        move_document(old, tmp_path / "1.1" / "openapi.yaml")
        assert old.parent.exists()

    def test_move_missing_is_noop(self, tmp_path: Path) -> None:
        """Moving a file that does not exist does nothing."""
        new = tmp_path / "1.1" / "openapi.yaml"
        move_document(tmp_path / "1.0" / "openapi.yaml", new)
        assert not new.exists()

    def test_remove_document(self, tmp_path: Path) -> None:
        """Removal deletes both files and the empty directory."""
        path = tmp_path / "1.0" / "openapi.yaml"
        write_document(path, "a: 1\n", {"a": 1})
        remove_document(path)
        assert not path.parent.exists()
