# ABOUTME: Converts between CandidateMetadata dataclasses and plain dicts for the registry file.
# ABOUTME: Handles timestamp parsing and the camelCase keys used on disk.

from datetime import UTC, date, datetime
from typing import Any

from apitrove.registry.types import CandidateMetadata, SourceInfo


def _parse_timestamp(value: Any) -> datetime | None:
    """Accept ISO strings or the datetimes YAML readers produce; always return UTC-aware."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def source_to_dict(source: SourceInfo) -> dict[str, Any]:
    result: dict[str, Any] = {"url": source.url}
    if source.format is not None:
        result["format"] = source.format
    if source.version is not None:
        result["version"] = source.version
    return result


def dict_to_source(data: dict[str, Any]) -> SourceInfo:
    version = data.get("version")
    return SourceInfo(
        url=str(data.get("url", "")),
        format=data.get("format"),
        version=str(version) if version is not None else None,
    )


def metadata_to_dict(metadata: CandidateMetadata) -> dict[str, Any]:
    """Convert CandidateMetadata to the dict stored in the registry file.

    Unset optional fields are omitted. The stored document's format version
    is written under "asyncapi" for AsyncAPI documents and "openapi" otherwise.
    """
    result: dict[str, Any] = {
        "source": source_to_dict(metadata.source),
        "filename": metadata.filename,
        "name": metadata.name,
    }
    if metadata.spec_version is not None:
        version_key = "asyncapi" if metadata.name.startswith("asyncapi") else "openapi"
        result[version_key] = metadata.spec_version
    if metadata.hash is not None:
        result["hash"] = metadata.hash
    if metadata.added is not None:
        result["added"] = _format_timestamp(metadata.added)
    if metadata.updated is not None:
        result["updated"] = _format_timestamp(metadata.updated)
    result["history"] = [source_to_dict(s) for s in metadata.history]
    if metadata.patch:
        result["patch"] = metadata.patch
    if metadata.preferred is not None:
        result["preferred"] = metadata.preferred
    if metadata.status_code is not None:
        result["statusCode"] = metadata.status_code
    if metadata.media_type is not None:
        result["mediatype"] = metadata.media_type
    result["paths"] = metadata.endpoints
    if metadata.valid is not None:
        result["valid"] = metadata.valid
    if metadata.auto_upgrade:
        result["autoUpgrade"] = True
    return result


def dict_to_metadata(data: dict[str, Any]) -> CandidateMetadata:
    """Convert a registry file entry back to CandidateMetadata."""
    spec = data.get("openapi", data.get("asyncapi"))
    return CandidateMetadata(
        source=dict_to_source(data.get("source") or {}),
        filename=str(data.get("filename", "")),
        name=str(data.get("name", "")),
        spec_version=str(spec) if spec is not None else None,
        hash=data.get("hash"),
        added=_parse_timestamp(data.get("added")),
        updated=_parse_timestamp(data.get("updated")),
        history=[dict_to_source(s) for s in data.get("history") or []],
        patch=data.get("patch") or None,
        preferred=data.get("preferred"),
        status_code=data.get("statusCode"),
        media_type=data.get("mediatype"),
        endpoints=int(data.get("paths") or 0),
        valid=data.get("valid"),
        auto_upgrade=bool(data.get("autoUpgrade", False)),
    )
