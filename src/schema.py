"""
Service interface schemas.

Inputs and outputs are declared as pydantic record types; this module turns
them into the name -> type-tag mappings stored with a service and into a
swagger 2.0 interface descriptor for application integration.

Type tags:
  - character   -> string
  - numeric     -> number (double)
  - data.frame  -> array of row objects
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Type

from pydantic import BaseModel

from src.api.pydantic_models import CreditRecord, ScoreResponse

CHARACTER = "character"
NUMERIC = "numeric"
DATA_FRAME = "data.frame"

OUTPUT_FIELD = "answer"
OUTPUT_SCHEMA: Dict[str, str] = {OUTPUT_FIELD: DATA_FRAME}

_PY_TO_TAG = {str: CHARACTER, float: NUMERIC, int: NUMERIC}


def input_type_tags(record_type: Type[BaseModel] = CreditRecord) -> Dict[str, str]:
    tags = {}
    for name, field in record_type.model_fields.items():
        tag = _PY_TO_TAG.get(field.annotation)
        if tag is None:
            raise ValueError(f"Unsupported field type for {name}: {field.annotation!r}")
        tags[name] = tag
    return tags


def _swagger_property(tag: str, row_type: Optional[Type[BaseModel]]) -> Dict[str, Any]:
    if tag == CHARACTER:
        return {"type": "string"}
    if tag == NUMERIC:
        return {"type": "number", "format": "double"}
    if tag == DATA_FRAME:
        items: Dict[str, Any] = {"type": "object"}
        if row_type is not None:
            items["properties"] = {
                name: _swagger_property(t, None) for name, t in input_type_tags(row_type).items()
            }
        return {"type": "array", "items": items}
    raise ValueError(f"Unknown type tag: {tag}")


def _definition(fields: Dict[str, str], row_type: Optional[Type[BaseModel]] = None) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {name: _swagger_property(tag, row_type) for name, tag in fields.items()},
    }


def build_interface_descriptor(
    name: str,
    version: str,
    inputs: Dict[str, str],
    outputs: Dict[str, str],
    description: str = "",
    row_type: Optional[Type[BaseModel]] = ScoreResponse,
) -> Dict[str, Any]:
    """Swagger 2.0 document describing how to call one published service."""
    path = f"/api/{name}/{version}"
    return {
        "swagger": "2.0",
        "info": {"title": name, "version": version, "description": description},
        "schemes": ["http", "https"],
        "consumes": ["application/json"],
        "produces": ["application/json"],
        "securityDefinitions": {
            "Bearer": {"type": "apiKey", "name": "Authorization", "in": "header"}
        },
        "paths": {
            path: {
                "post": {
                    "operationId": f"consume_{name}",
                    "security": [{"Bearer": []}],
                    "parameters": [
                        {
                            "name": "InputParameters",
                            "in": "body",
                            "required": True,
                            "schema": {"$ref": "#/definitions/InputParameters"},
                        }
                    ],
                    "responses": {
                        "200": {
                            "description": "OK",
                            "schema": {"$ref": "#/definitions/OutputParameters"},
                        },
                        "404": {"description": "Service not found"},
                    },
                }
            }
        },
        "definitions": {
            "InputParameters": {**_definition(inputs), "required": list(inputs)},
            "OutputParameters": _definition(outputs, row_type),
        },
    }
