# ABOUTME: The normalization pipeline: parse, resolve references, upgrade, then validate.
# ABOUTME: Returns an explicit NormalizedDocument verdict instead of raising for invalid input.

import logging
from dataclasses import dataclass
from typing import Any

from apitrove.documents.converter import ConversionError, convert_swagger2
from apitrove.documents.resolver import ResolutionCache, ResolutionError, resolve_references
from apitrove.documents.serialize import DocumentParseError, parse_document
from apitrove.documents.types import DocumentFormat, detect_format
from apitrove.documents.validator import validate_asyncapi, validate_openapi
from apitrove.fetch.http import DocumentFetcher

logger = logging.getLogger(__name__)


@dataclass
class NormalizedDocument:
    """Result of running one source document through the pipeline.

    document is the source document with external references resolved, in
    its own declared format. upgraded is the converted and patched form that
    actually passed (or failed) validation. When patches_applied is non-zero
    the source form is not valid on its own and upgraded is authoritative.
    """

    document: dict[str, Any]
    valid: bool
    upgraded: dict[str, Any] | None = None
    patches_applied: int = 0
    error: str | None = None
    context: str | None = None

    @property
    def was_patched(self) -> bool:
        """Whether validation only succeeded after structural fixes."""
        return self.patches_applied > 0

    def authoritative(self, *, auto_upgrade: bool = False) -> dict[str, Any]:
        """The document to persist.

        The upgraded form wins when this run patched the document, or when a
        previous run did (auto_upgrade).
        """
        if self.upgraded is not None and (self.was_patched or auto_upgrade):
            return self.upgraded
        return self.document


def _failed(
    document: dict[str, Any], error: str, context: str | None, patches: int = 0,
) -> NormalizedDocument:
    return NormalizedDocument(
        document=document, valid=False, patches_applied=patches, error=error, context=context,
    )


def normalize_document(
    text: str,
    source: str,
    *,
    fetcher: DocumentFetcher,
    cache: ResolutionCache,
) -> NormalizedDocument:
    """Run document text through resolution, format upgrade and validation.

    The stages always run in this order; each stage only sees the output of
    the previous one.

    Args:
        text: Raw YAML or JSON document text.
        source: Locator the text came from; relative references resolve against it.
        fetcher: Used to load externally referenced documents.
        cache: Per-provider cache of parsed external documents.

    Returns:
        NormalizedDocument; valid is False with error and context set when
        any stage fails.
    """
    try:
        raw = parse_document(text)
    except DocumentParseError as exc:
        return _failed({}, str(exc), "parse")

    try:
        resolved = resolve_references(raw, source, fetcher=fetcher, cache=cache)
    except ResolutionError as exc:
        return _failed(raw, str(exc), "resolve")

    declared = detect_format(resolved)
    if declared is None:
        return _failed(resolved, "Document declares no openapi, swagger or asyncapi version", "#/")

    if declared.format is DocumentFormat.ASYNCAPI:
        report = validate_asyncapi(resolved)
        return NormalizedDocument(
            document=resolved,
            valid=report.valid,
            upgraded=report.document,
            patches_applied=report.patches,
            error=report.error,
            context=report.context,
        )

    patches = 0
    if declared.format is DocumentFormat.SWAGGER:
        try:
            conversion = convert_swagger2(resolved)
        except ConversionError as exc:
            return _failed(resolved, str(exc), "convert")
        candidate = conversion.document
        patches = conversion.patches
    elif declared.is_openapi3:
        candidate = resolved
    else:
        return _failed(resolved, f"Unsupported OpenAPI version {declared.version}", "#/openapi")

    report = validate_openapi(candidate)
    patches += report.patches
    logger.debug(
        "Normalized %s: valid=%s patches=%d", source, report.valid, patches,
    )
    return NormalizedDocument(
        document=resolved,
        valid=report.valid,
        upgraded=report.document,
        patches_applied=patches,
        error=report.error,
        context=report.context,
    )
