# ABOUTME: Upgrades Swagger 2.0 documents to OpenAPI 3.0.0.
# ABOUTME: Moves definitions into components, bodies into requestBody, and rewrites $ref targets.

import copy
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

TARGET_VERSION = "3.0.0"

_HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

# Parameter keywords that describe the value and move under `schema` in 3.0.
_SCHEMA_KEYWORDS = (
    "type",
    "format",
    "items",
    "default",
    "maximum",
    "exclusiveMaximum",
    "minimum",
    "exclusiveMinimum",
    "maxLength",
    "minLength",
    "pattern",
    "maxItems",
    "minItems",
    "uniqueItems",
    "enum",
    "multipleOf",
)

_COLLECTION_FORMATS = {
    "csv": ("form", False),
    "ssv": ("spaceDelimited", False),
    "pipes": ("pipeDelimited", False),
    "multi": ("form", True),
}

_DEFAULT_MEDIA_TYPE = "application/json"
_FORM_MEDIA_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


class ConversionError(Exception):
    """Raised when a Swagger 2.0 document cannot be upgraded."""


@dataclass
class ConversionResult:
    """An upgraded document and the number of structural fixes made on the way."""

    document: dict[str, Any]
    patches: int = 0


def _rewrite_ref(ref: str, body_parameters: set[str]) -> str:
    if ref.startswith("#/definitions/"):
        return "#/components/schemas/" + ref[len("#/definitions/"):]
    if ref.startswith("#/parameters/"):
        name = ref[len("#/parameters/"):]
        if name in body_parameters:
            return "#/components/requestBodies/" + name
        return "#/components/parameters/" + name
    if ref.startswith("#/responses/"):
        return "#/components/responses/" + ref[len("#/responses/"):]
    return ref


def _rewrite_refs(node: Any, body_parameters: set[str]) -> Any:
    if isinstance(node, dict):
        result = {}
        for key, value in node.items():
            if key == "$ref" and isinstance(value, str):
                result[key] = _rewrite_ref(value, body_parameters)
            else:
                result[key] = _rewrite_refs(value, body_parameters)
        return result
    if isinstance(node, list):
        return [_rewrite_refs(item, body_parameters) for item in node]
    return node


class _Converter:
    def __init__(self, source: dict[str, Any]) -> None:
        self.source = source
        self.patches = 0
        self.global_consumes = source.get("consumes") or [_DEFAULT_MEDIA_TYPE]
        self.global_produces = source.get("produces") or [_DEFAULT_MEDIA_TYPE]
        self.body_parameters = {
            name
            for name, param in (source.get("parameters") or {}).items()
            if isinstance(param, dict) and param.get("in") in ("body", "formData")
        }

    def convert(self) -> dict[str, Any]:
        src = _rewrite_refs(copy.deepcopy(self.source), self.body_parameters)
        result: dict[str, Any] = {"openapi": TARGET_VERSION}
        for key, value in src.items():
            if key.startswith("x-"):
                result[key] = value
        result["info"] = src.get("info") or {}
        servers = self._servers(src)
        if servers:
            result["servers"] = servers
        for key in ("tags", "externalDocs", "security"):
            if key in src:
                result[key] = src[key]

        components: dict[str, Any] = {}
        if src.get("definitions"):
            components["schemas"] = {
                name: self._schema(schema) for name, schema in src["definitions"].items()
            }
        self._convert_shared_parameters(src.get("parameters") or {}, components)
        if src.get("responses"):
            components["responses"] = {
                name: self._response(resp, self.global_produces)
                for name, resp in src["responses"].items()
            }
        if src.get("securityDefinitions"):
            components["securitySchemes"] = {
                name: self._security_scheme(scheme)
                for name, scheme in src["securityDefinitions"].items()
            }

        result["paths"] = {
            path: self._path_item(item) for path, item in (src.get("paths") or {}).items()
        }
        if components:
            result["components"] = components
        return result

    def _servers(self, src: dict[str, Any]) -> list[dict[str, str]]:
        host = src.get("host")
        base_path = src.get("basePath") or ""
        if not host:
            return [{"url": base_path}] if base_path else []
        schemes = src.get("schemes") or ["https"]
        return [{"url": f"{scheme}://{host}{base_path}"} for scheme in schemes]

    def _schema(self, schema: Any) -> Any:
        if not isinstance(schema, dict):
            return schema
        schema = dict(schema)
        if schema.get("type") == "file":
            schema["type"] = "string"
            schema["format"] = "binary"
        if "x-nullable" in schema:
            schema["nullable"] = bool(schema.pop("x-nullable"))
        discriminator = schema.get("discriminator")
        if isinstance(discriminator, str):
            schema["discriminator"] = {"propertyName": discriminator}
        for key in ("items", "additionalProperties", "not"):
            if isinstance(schema.get(key), dict):
                schema[key] = self._schema(schema[key])
        for key in ("allOf", "anyOf", "oneOf"):
            if isinstance(schema.get(key), list):
                schema[key] = [self._schema(s) for s in schema[key]]
        if isinstance(schema.get("properties"), dict):
            schema["properties"] = {
                name: self._schema(prop) for name, prop in schema["properties"].items()
            }
        return schema

    def _parameter(self, param: dict[str, Any]) -> dict[str, Any]:
        if "$ref" in param:
            return param
        result: dict[str, Any] = {}
        schema: dict[str, Any] = {}
        for key, value in param.items():
            if key in _SCHEMA_KEYWORDS:
                schema[key] = value
            elif key == "collectionFormat":
                style, explode = _COLLECTION_FORMATS.get(value, ("form", False))
                result["style"] = style
                result["explode"] = explode
            elif key == "allowEmptyValue" and param.get("in") != "query":
                self.patches += 1
            else:
                result[key] = value
        if schema:
            result["schema"] = self._schema(schema)
        if result.get("in") == "path" and result.get("required") is not True:
            result["required"] = True
            self.patches += 1
        return result

    def _request_body(
        self, params: list[dict[str, Any]], consumes: list[str],
    ) -> dict[str, Any] | None:
        body = next((p for p in params if p.get("in") == "body"), None)
        if body is not None:
            request_body: dict[str, Any] = {
                "content": {
                    media: {"schema": self._schema(body.get("schema") or {})}
                    for media in consumes
                },
            }
            if body.get("description"):
                request_body["description"] = body["description"]
            if body.get("required"):
                request_body["required"] = True
            for key, value in body.items():
                if key.startswith("x-"):
                    request_body[key] = value
            return request_body

        form = [p for p in params if p.get("in") == "formData"]
        if not form:
            return None
        properties: dict[str, Any] = {}
        required: list[str] = []
        for param in form:
            if not isinstance(param.get("name"), str):
                raise ConversionError(f"formData parameter has no name: {param!r}")
            prop = {k: v for k, v in param.items() if k in _SCHEMA_KEYWORDS}
            if param.get("description"):
                prop["description"] = param["description"]
            properties[param["name"]] = self._schema(prop)
            if param.get("required"):
                required.append(param["name"])
        schema: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        media_types = [m for m in consumes if m in _FORM_MEDIA_TYPES] or [_FORM_MEDIA_TYPES[0]]
        return {"content": {media: {"schema": schema} for media in media_types}}

    def _convert_shared_parameters(
        self, parameters: dict[str, Any], components: dict[str, Any],
    ) -> None:
        for name, param in parameters.items():
            if not isinstance(param, dict):
                raise ConversionError(f"Parameter {name!r} is not a mapping")
            if name in self.body_parameters:
                body = self._request_body([param], self.global_consumes)
                components.setdefault("requestBodies", {})[name] = body
            else:
                components.setdefault("parameters", {})[name] = self._parameter(param)

    def _response(self, response: Any, produces: list[str]) -> Any:
        if not isinstance(response, dict) or "$ref" in response:
            return response
        result: dict[str, Any] = {}
        if "description" not in response:
            result["description"] = ""
            self.patches += 1
        for key, value in response.items():
            if key == "schema":
                result["content"] = {
                    media: {"schema": self._schema(value)} for media in produces
                }
            elif key == "examples":
                content = result.setdefault("content", {})
                for media, example in value.items():
                    content.setdefault(media, {})["example"] = example
            elif key == "headers":
                result["headers"] = {
                    name: self._header(header) for name, header in value.items()
                }
            else:
                result[key] = value
        return result

    def _header(self, header: Any) -> Any:
        if not isinstance(header, dict) or "$ref" in header:
            return header
        result = {k: v for k, v in header.items() if k not in _SCHEMA_KEYWORDS}
        schema = {k: v for k, v in header.items() if k in _SCHEMA_KEYWORDS}
        if schema:
            result["schema"] = self._schema(schema)
        return result

    def _operation(
        self, operation: dict[str, Any], path_params: list[dict[str, Any]],
    ) -> dict[str, Any]:
        consumes = operation.get("consumes") or self.global_consumes
        produces = operation.get("produces") or self.global_produces
        params = [p for p in operation.get("parameters") or [] if isinstance(p, dict)]

        result: dict[str, Any] = {}
        for key, value in operation.items():
            if key in ("consumes", "produces", "parameters", "schemes", "responses"):
                continue
            result[key] = value

        plain = [p for p in params if p.get("in") not in ("body", "formData")]
        if plain:
            result["parameters"] = [self._parameter(p) for p in plain]
        body = self._request_body(params + path_params, consumes)
        if body is not None:
            result["requestBody"] = body
        ref_bodies = [
            p for p in params
            if "$ref" in p and p["$ref"].startswith("#/components/requestBodies/")
        ]
        if ref_bodies:
            result["parameters"] = [p for p in result.get("parameters", []) if p not in ref_bodies]
            if not result["parameters"]:
                del result["parameters"]
            result["requestBody"] = {"$ref": ref_bodies[0]["$ref"]}

        responses = operation.get("responses") or {}
        if not responses:
            responses = {"default": {"description": "Default response"}}
            self.patches += 1
        result["responses"] = {
            str(code): self._response(resp, produces) for code, resp in responses.items()
        }
        if operation.get("schemes"):
            host = self.source.get("host")
            if host:
                base_path = self.source.get("basePath") or ""
                result["servers"] = [
                    {"url": f"{scheme}://{host}{base_path}"} for scheme in operation["schemes"]
                ]
        return result

    def _path_item(self, item: Any) -> Any:
        if not isinstance(item, dict):
            raise ConversionError(f"Path item is not a mapping: {item!r}")
        shared = [p for p in item.get("parameters") or [] if isinstance(p, dict)]
        body_shared = [p for p in shared if p.get("in") in ("body", "formData")]
        result: dict[str, Any] = {}
        for key, value in item.items():
            if key in _HTTP_METHODS and isinstance(value, dict):
                result[key] = self._operation(value, body_shared)
            elif key == "parameters":
                plain = [p for p in shared if p not in body_shared]
                if plain:
                    result["parameters"] = [self._parameter(p) for p in plain]
            else:
                result[key] = value
        return result

    def _security_scheme(self, scheme: dict[str, Any]) -> dict[str, Any]:
        kind = scheme.get("type")
        extensions = {k: v for k, v in scheme.items() if k.startswith("x-")}
        description = {"description": scheme["description"]} if "description" in scheme else {}
        if kind == "basic":
            return {"type": "http", "scheme": "basic", **description, **extensions}
        if kind == "apiKey":
            return {
                "type": "apiKey",
                "name": scheme.get("name", ""),
                "in": scheme.get("in", "header"),
                **description,
                **extensions,
            }
        if kind == "oauth2":
            flow_name = {
                "implicit": "implicit",
                "password": "password",
                "application": "clientCredentials",
                "accessCode": "authorizationCode",
            }.get(scheme.get("flow", ""))
            if flow_name is None:
                raise ConversionError(f"Unknown oauth2 flow: {scheme.get('flow')!r}")
            flow: dict[str, Any] = {"scopes": scheme.get("scopes") or {}}
            if "authorizationUrl" in scheme:
                flow["authorizationUrl"] = scheme["authorizationUrl"]
            if "tokenUrl" in scheme:
                flow["tokenUrl"] = scheme["tokenUrl"]
            return {"type": "oauth2", "flows": {flow_name: flow}, **description, **extensions}
        raise ConversionError(f"Unknown security scheme type: {kind!r}")


def convert_swagger2(document: dict[str, Any]) -> ConversionResult:
    """Convert a Swagger 2.0 document to OpenAPI 3.0.0.

    The input is not modified. Fixes the converter has to make to produce a
    well-formed 3.0 document (missing response descriptions, optional path
    parameters, empty response maps) are counted as patches.

    Raises:
        ConversionError: If the document is not Swagger 2.0 or cannot be mapped.
    """
    if str(document.get("swagger")) != "2.0":
        raise ConversionError(f"Not a Swagger 2.0 document: swagger={document.get('swagger')!r}")
    converter = _Converter(document)
    try:
        converted = converter.convert()
    except (KeyError, TypeError, AttributeError) as exc:
        raise ConversionError(f"Malformed Swagger 2.0 document: {exc!r}") from exc
    if converter.patches:
        logger.debug("Conversion applied %d patch(es)", converter.patches)
    return ConversionResult(document=converted, patches=converter.patches)
