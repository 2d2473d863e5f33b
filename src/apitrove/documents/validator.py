# ABOUTME: Lax, patching validation of OpenAPI 3.x and AsyncAPI documents.
# ABOUTME: Silently fixes minor structural defects, counts them, then checks a JSON Schema.

import copy
import logging
from dataclasses import dataclass
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from apitrove.documents.serialize import sort_document

logger = logging.getLogger(__name__)

_HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

_REF_OR = {
    "if": {"type": "object", "required": ["$ref"]},
    "then": {"properties": {"$ref": {"type": "string"}}},
}

OPENAPI3_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["openapi", "info", "paths"],
    "properties": {
        "openapi": {"type": "string", "pattern": r"^3\.\d+(\.\d+)?"},
        "info": {
            "type": "object",
            "required": ["title", "version"],
            "properties": {
                "title": {"type": "string"},
                "version": {"type": "string"},
                "description": {"type": "string"},
                "contact": {"type": "object"},
                "license": {"type": "object", "required": ["name"]},
            },
        },
        "servers": {"type": "array", "items": {"$ref": "#/$defs/server"}},
        "paths": {
            "type": "object",
            "patternProperties": {
                "^/": {"$ref": "#/$defs/pathItem"},
                "^x-": {},
            },
            "additionalProperties": False,
        },
        "components": {
            "type": "object",
            "properties": {
                "schemas": {"type": "object"},
                "responses": {"type": "object"},
                "parameters": {"type": "object"},
                "requestBodies": {"type": "object"},
                "securitySchemes": {"type": "object"},
            },
        },
        "security": {"type": "array", "items": {"type": "object"}},
        "tags": {
            "type": "array",
            "items": {"type": "object", "required": ["name"]},
        },
    },
    "$defs": {
        "server": {
            "type": "object",
            "required": ["url"],
            "properties": {"url": {"type": "string"}},
        },
        "pathItem": {
            "type": "object",
            "properties": {
                **{method: {"$ref": "#/$defs/operation"} for method in _HTTP_METHODS},
                "parameters": {"type": "array", "items": {"$ref": "#/$defs/parameter"}},
                "servers": {"type": "array", "items": {"$ref": "#/$defs/server"}},
            },
        },
        "operation": {
            "type": "object",
            "required": ["responses"],
            "properties": {
                "operationId": {"type": "string"},
                "tags": {"type": "array", "items": {"type": "string"}},
                "parameters": {"type": "array", "items": {"$ref": "#/$defs/parameter"}},
                "requestBody": {"type": "object"},
                "responses": {
                    "type": "object",
                    "minProperties": 1,
                    "additionalProperties": {"$ref": "#/$defs/response"},
                },
                "servers": {"type": "array", "items": {"$ref": "#/$defs/server"}},
            },
        },
        "parameter": {
            "type": "object",
            **_REF_OR,
            "else": {
                "required": ["name", "in"],
                "properties": {
                    "name": {"type": "string"},
                    "in": {"enum": ["query", "header", "path", "cookie"]},
                    "required": {"type": "boolean"},
                },
            },
        },
        "response": {
            "type": "object",
            **_REF_OR,
            "else": {
                "required": ["description"],
                "properties": {
                    "description": {"type": "string"},
                    "content": {"type": "object"},
                    "headers": {"type": "object"},
                },
            },
        },
    },
}

ASYNCAPI_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["asyncapi", "info"],
    "properties": {
        "asyncapi": {"type": "string"},
        "info": {
            "type": "object",
            "required": ["title", "version"],
            "properties": {
                "title": {"type": "string"},
                "version": {"type": "string"},
            },
        },
        "channels": {"type": "object"},
        "topics": {"type": "object"},
    },
    "anyOf": [{"required": ["channels"]}, {"required": ["topics"]}],
}

Draft202012Validator.check_schema(OPENAPI3_SCHEMA)
Draft202012Validator.check_schema(ASYNCAPI_SCHEMA)
_OPENAPI3_VALIDATOR = Draft202012Validator(OPENAPI3_SCHEMA)
_ASYNCAPI_VALIDATOR = Draft202012Validator(ASYNCAPI_SCHEMA)


@dataclass
class ValidationReport:
    """Verdict of validating one document.

    document is the (possibly patched) document that was validated; context
    is a JSON pointer to the first failing location when validation failed.
    """

    document: dict[str, Any]
    valid: bool
    patches: int = 0
    error: str | None = None
    context: str | None = None


def _pointer(path: Any) -> str:
    tokens = [str(p).replace("~", "~0").replace("/", "~1") for p in path]
    return "#/" + "/".join(tokens)


def _check(validator: Draft202012Validator, document: dict[str, Any]) -> tuple[str, str] | None:
    error = best_match(validator.iter_errors(sort_document(document)))
    if error is None:
        return None
    return error.message, _pointer(error.absolute_path)


class _Patcher:
    def __init__(self) -> None:
        self.count = 0

    def info(self, document: dict[str, Any]) -> None:
        info = document.get("info")
        if not isinstance(info, dict):
            return
        if "title" not in info or info["title"] is None:
            info["title"] = ""
            self.count += 1
        version = info.get("version")
        if version is None:
            info["version"] = ""
            self.count += 1
        elif not isinstance(version, str):
            info["version"] = str(version)
            self.count += 1

    def servers(self, servers: Any) -> None:
        if not isinstance(servers, list):
            return
        for server in servers:
            if isinstance(server, dict) and server.get("url") is None:
                server["url"] = "/"
                self.count += 1

    def parameters(self, parameters: Any) -> None:
        if not isinstance(parameters, list):
            return
        for param in parameters:
            if isinstance(param, dict) and param.get("in") == "path" and param.get("required") is not True:
                param["required"] = True
                self.count += 1

    def responses(self, responses: dict[Any, Any]) -> None:
        for response in responses.values():
            if isinstance(response, dict) and "$ref" not in response and "description" not in response:
                response["description"] = ""
                self.count += 1

    def paths(self, document: dict[str, Any]) -> None:
        if document.get("paths") is None:
            document["paths"] = {}
            self.count += 1
            return
        paths = document["paths"]
        if not isinstance(paths, dict):
            return
        for item in paths.values():
            if not isinstance(item, dict):
                continue
            self.parameters(item.get("parameters"))
            self.servers(item.get("servers"))
            for method in _HTTP_METHODS:
                operation = item.get(method)
                if not isinstance(operation, dict):
                    continue
                self.parameters(operation.get("parameters"))
                if not operation.get("responses"):
                    operation["responses"] = {"default": {"description": "Default response"}}
                    self.count += 1
                elif isinstance(operation["responses"], dict):
                    self.responses(operation["responses"])

    def components(self, document: dict[str, Any]) -> None:
        components = document.get("components")
        if not isinstance(components, dict):
            return
        if isinstance(components.get("responses"), dict):
            self.responses(components["responses"])
        parameters = components.get("parameters")
        if isinstance(parameters, dict):
            self.parameters(list(parameters.values()))


def validate_openapi(document: dict[str, Any], *, patch: bool = True) -> ValidationReport:
    """Validate an OpenAPI 3.x document, patching minor defects first.

    Patches applied when patch is True: missing info.title and non-string
    info.version, server entries without a url, path parameters not marked
    required, responses without a description, operations without responses
    and a missing paths object. Server URLs are not required to be absolute.

    Args:
        document: Document to validate. Not modified.
        patch: Whether to fix minor defects before checking the schema.

    Returns:
        ValidationReport holding the patched copy and the patch count.
    """
    patched = copy.deepcopy(document)
    patcher = _Patcher()
    if patch:
        patcher.info(patched)
        patcher.servers(patched.get("servers"))
        patcher.paths(patched)
        patcher.components(patched)

    failure = _check(_OPENAPI3_VALIDATOR, patched)
    if failure is not None:
        message, context = failure
        return ValidationReport(
            document=patched, valid=False, patches=patcher.count, error=message, context=context,
        )
    if patcher.count:
        logger.debug("Validation applied %d patch(es)", patcher.count)
    return ValidationReport(document=patched, valid=True, patches=patcher.count)


def validate_asyncapi(document: dict[str, Any], *, patch: bool = True) -> ValidationReport:
    """Structurally validate an AsyncAPI document; only info fields are patched."""
    patched = copy.deepcopy(document)
    patcher = _Patcher()
    if patch:
        patcher.info(patched)
    failure = _check(_ASYNCAPI_VALIDATOR, patched)
    if failure is not None:
        message, context = failure
        return ValidationReport(
            document=patched, valid=False, patches=patcher.count, error=message, context=context,
        )
    return ValidationReport(document=patched, valid=True, patches=patcher.count)
