# ABOUTME: Parsing and deterministic serialization of API description documents.
# ABOUTME: Canonical key ordering makes the YAML output stable enough to fingerprint.

import datetime
import json
from typing import Any

import yaml


class DocumentParseError(Exception):
    """Raised when document text is not a YAML or JSON mapping."""


def parse_document(text: str) -> dict[str, Any]:
    """Parse YAML or JSON text into a document mapping.

    Raises:
        DocumentParseError: On malformed text or a non-mapping top level.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise DocumentParseError(f"Cannot parse document: {exc}") from exc
    if not isinstance(data, dict):
        raise DocumentParseError(
            f"Expected a mapping at the document root, got {type(data).__name__}"
        )
    return data


def sort_document(value: Any) -> Any:
    """Return a copy of value with every mapping's keys stringified and sorted.

    YAML readers turn keys like ``200`` into ints and bare dates into
    ``datetime.date``; both are coerced to strings so the result sorts and
    serializes identically to YAML and JSON.
    """
    if isinstance(value, dict):
        items = {str(k): sort_document(v) for k, v in value.items()}
        return {k: items[k] for k in sorted(items)}
    if isinstance(value, list):
        return [sort_document(v) for v in value]
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return value


def dump_yaml(document: dict[str, Any]) -> str:
    """Serialize a document to YAML with deterministic key ordering."""
    return yaml.safe_dump(
        sort_document(document),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=4096,
    )


def dump_json(document: dict[str, Any]) -> str:
    """Serialize a document to indented JSON with deterministic key ordering."""
    return json.dumps(sort_document(document), indent=2, ensure_ascii=False) + "\n"
