# ABOUTME: Documents package: parsing, resolution, upgrade, validation and fingerprinting.
# ABOUTME: Exports the normalization pipeline and the helpers the reconciler needs.

from apitrove.documents.hashing import compute_fingerprint
from apitrove.documents.merge import deep_merge
from apitrove.documents.normalizer import NormalizedDocument, normalize_document
from apitrove.documents.resolver import ResolutionCache, ResolutionError
from apitrove.documents.serialize import (
    DocumentParseError,
    dump_json,
    dump_yaml,
    parse_document,
)
from apitrove.documents.types import (
    DeclaredFormat,
    DocumentFormat,
    detect_format,
    endpoint_count,
    info_version,
    spec_version,
)

__all__ = [
    "DeclaredFormat",
    "DocumentFormat",
    "DocumentParseError",
    "NormalizedDocument",
    "ResolutionCache",
    "ResolutionError",
    "compute_fingerprint",
    "deep_merge",
    "detect_format",
    "dump_json",
    "dump_yaml",
    "endpoint_count",
    "info_version",
    "normalize_document",
    "parse_document",
    "spec_version",
]
