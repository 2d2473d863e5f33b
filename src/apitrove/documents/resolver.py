# ABOUTME: External $ref resolution for API description documents.
# ABOUTME: Inlines references to other files/URLs, memoizing fetched documents per provider group.

import copy
import logging
import re
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import unquote, urlparse

from apitrove.documents.serialize import DocumentParseError, parse_document
from apitrove.fetch.http import (
    DocumentFetcher,
    SourceMissingError,
    SourceUnreadableError,
    join_locator,
)

logger = logging.getLogger(__name__)

# Characters not allowed in a component name.
_NAME_INVALID = re.compile(r"[^A-Za-z0-9._-]")


class ResolutionError(Exception):
    """Raised when a $ref cannot be fetched, parsed or followed."""


class ResolutionCache:
    """Parsed external documents keyed by absolute locator.

    Shared between all candidates of one provider and cleared at every
    provider boundary, so one provider's schemas are never served to another.
    """

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self.hits = 0

    def get(self, locator: str) -> dict[str, Any] | None:
        document = self._documents.get(locator)
        if document is not None:
            self.hits += 1
        return document

    def put(self, locator: str, document: dict[str, Any]) -> None:
        self._documents[locator] = document

    def clear(self) -> None:
        self._documents.clear()
        self.hits = 0

    def __contains__(self, locator: object) -> bool:
        return locator in self._documents

    def __len__(self) -> int:
        return len(self._documents)


def _follow_pointer(document: Any, pointer: str, locator: str) -> Any:
    """Walk a JSON pointer (the part after '#') through a parsed document."""
    node = document
    if not pointer or pointer == "/":
        return node
    for raw in pointer.lstrip("/").split("/"):
        token = unquote(raw).replace("~1", "/").replace("~0", "~")
        if isinstance(node, list):
            try:
                node = node[int(token)]
                continue
            except (ValueError, IndexError) as exc:
                raise ResolutionError(f"Cannot resolve #{pointer} in {locator}") from exc
        if isinstance(node, dict):
            if token in node:
                node = node[token]
                continue
            # YAML turns keys like 200 into ints
            if token.isdigit() and int(token) in node:
                node = node[int(token)]
                continue
        raise ResolutionError(f"Cannot resolve #{pointer} in {locator}")
    return node


class _Resolver:
    def __init__(
        self,
        root: dict[str, Any],
        root_locator: str,
        fetcher: DocumentFetcher,
        cache: ResolutionCache,
    ) -> None:
        self._root = root
        self._root_locator = root_locator
        self._fetcher = fetcher
        self._cache = cache
        self.container = ("definitions",) if "swagger" in root else ("components", "schemas")
        self._taken = set(_container_node(root, self.container))
        self._hoisted_refs: dict[tuple[str, str], str] = {}
        self.hoisted: dict[str, Any] = {}

    def load(self, locator: str) -> dict[str, Any]:
        if locator == self._root_locator:
            return self._root
        cached = self._cache.get(locator)
        if cached is not None:
            logger.debug("Resolution cache hit: %s", locator)
            return cached
        try:
            result = self._fetcher.retrieve(locator)
        except (SourceMissingError, SourceUnreadableError) as exc:
            raise ResolutionError(str(exc)) from exc
        if not result.ok or result.content is None:
            raise ResolutionError(f"HTTP {result.status} resolving {locator}")
        try:
            document = parse_document(result.content)
        except DocumentParseError as exc:
            raise ResolutionError(f"{locator}: {exc}") from exc
        self._cache.put(locator, document)
        return document

    def walk(
        self,
        node: Any,
        locator: str,
        document: dict[str, Any],
        seen: frozenset[tuple[str, str]],
    ) -> Any:
        if isinstance(node, list):
            return [self.walk(item, locator, document, seen) for item in node]
        if not isinstance(node, dict):
            return node

        ref = node.get("$ref")
        if not isinstance(ref, str):
            return {k: self.walk(v, locator, document, seen) for k, v in node.items()}

        target_part, _, fragment = ref.partition("#")
        if not target_part:
            if document is self._root:
                return node
            target_locator, target_document = locator, document
        else:
            target_locator = join_locator(locator, target_part)
            target_document = self.load(target_locator)

        if target_document is self._root:
            return {"$ref": f"#{fragment}"}
        key = (target_locator, fragment)
        if key in seen:
            return self._hoist(key, target_document, seen)
        target = _follow_pointer(target_document, fragment, target_locator)
        return self.walk(copy.deepcopy(target), target_locator, target_document, seen | {key})

    def _hoist(
        self,
        key: tuple[str, str],
        document: dict[str, Any],
        seen: frozenset[tuple[str, str]],
    ) -> dict[str, str]:
        """Copy a self-referencing external target into the root and point at it."""
        if key in self._hoisted_refs:
            return {"$ref": self._hoisted_refs[key]}
        locator, fragment = key
        name = self._free_name(_schema_name(locator, fragment))
        pointer = "#/" + "/".join((*self.container, name))
        self._hoisted_refs[key] = pointer
        logger.debug("Hoisting recursive %s#%s to %s", locator, fragment, pointer)
        target = _follow_pointer(document, fragment, locator)
        self.hoisted[name] = self.walk(copy.deepcopy(target), locator, document, seen)
        return {"$ref": pointer}

    def _free_name(self, name: str) -> str:
        candidate, n = name, 1
        while candidate in self._taken:
            candidate = f"{name}_{n}"
            n += 1
        self._taken.add(candidate)
        return candidate


def _container_node(document: dict[str, Any], path: tuple[str, ...]) -> dict[str, Any]:
    node: Any = document
    for part in path:
        node = node.get(part) if isinstance(node, dict) else None
    return node if isinstance(node, dict) else {}


def _schema_name(locator: str, fragment: str) -> str:
    token = fragment.rstrip("/").rsplit("/", 1)[-1] if fragment.strip("/") else ""
    if not token:
        token = PurePosixPath(urlparse(locator).path).stem
    token = unquote(token).replace("~1", "/").replace("~0", "~")
    return _NAME_INVALID.sub("_", token) or "Schema"


def resolve_references(
    document: dict[str, Any],
    source: str,
    *,
    fetcher: DocumentFetcher,
    cache: ResolutionCache,
) -> dict[str, Any]:
    """Return a copy of document with every external $ref inlined.

    References local to the document itself ("#/...") are left alone.
    References into another file or URL are resolved relative to the locator
    of the document they appear in, and local references inside such an
    external document are resolved against that external document.
    A recursive external schema is copied once into the document's own
    schema definitions, and the recursion points at that copy.

    Args:
        document: Parsed source document. Not modified.
        source: Locator the document was fetched from.
        fetcher: Fetcher used to load referenced documents.
        cache: Per-provider cache of parsed external documents.

    Raises:
        ResolutionError: If any external reference cannot be resolved.
    """
    root = copy.deepcopy(document)
    resolver = _Resolver(root, source, fetcher, cache)
    resolved = resolver.walk(root, source, root, frozenset())
    if resolver.hoisted:
        node = resolved
        for part in resolver.container:
            node = node.setdefault(part, {})
        node.update(resolver.hoisted)
    return resolved
