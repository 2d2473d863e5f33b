# ABOUTME: Document family detection and shape helpers for OpenAPI, Swagger and AsyncAPI.
# ABOUTME: Answers "what kind of document is this" without validating it.

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class DocumentFormat(StrEnum):
    """Specification family a document declares."""

    OPENAPI = "openapi"
    SWAGGER = "swagger"
    ASYNCAPI = "asyncapi"

    @property
    def filename(self) -> str:
        """Storage filename used for documents of this family."""
        return f"{self.value}.yaml"


@dataclass(frozen=True)
class DeclaredFormat:
    """The family a document declares and the exact version string it declares."""

    format: DocumentFormat
    version: str

    @property
    def family_version(self) -> str:
        """Major.minor of the declared version (Swagger keeps its "2.0" as-is)."""
        if self.format is DocumentFormat.SWAGGER:
            return self.version
        parts = self.version.split(".")
        return ".".join(parts[:2]) if len(parts) >= 2 else f"{parts[0]}.0"

    @property
    def is_openapi3(self) -> bool:
        return self.format is DocumentFormat.OPENAPI and self.version.startswith("3.")


def detect_format(document: dict[str, Any]) -> DeclaredFormat | None:
    """Return the declared family and version, or None if the document declares none."""
    for fmt in (DocumentFormat.OPENAPI, DocumentFormat.SWAGGER, DocumentFormat.ASYNCAPI):
        declared = document.get(fmt.value)
        if declared is not None:
            return DeclaredFormat(format=fmt, version=str(declared))
    return None


def spec_version(document: dict[str, Any]) -> str | None:
    """The exact OpenAPI/Swagger/AsyncAPI version string declared by the document."""
    declared = detect_format(document)
    return declared.version if declared else None


def endpoint_count(document: dict[str, Any]) -> int:
    """Number of paths (OpenAPI/Swagger) or channels/topics (AsyncAPI)."""
    for key in ("paths", "channels", "topics"):
        value = document.get(key)
        if isinstance(value, dict):
            return len(value)
    return 0


def info_version(document: dict[str, Any]) -> str | None:
    """The document's self-declared API version from info.version."""
    info = document.get("info")
    if not isinstance(info, dict) or info.get("version") is None:
        return None
    return str(info["version"])
