"""Shared API documents for schema, builder and server tests."""

from __future__ import annotations

import copy
from typing import Any

import pytest

SWAGGER_DOC: dict[str, Any] = {
    "swagger": "2.0",
    "info": {"title": "Users API", "description": "Manage users", "version": "2.1.0"},
    "basePath": "/api/v1",
    "paths": {
        "/users/{id}": {
            "parameters": [{"name": "X-Tenant", "in": "header", "type": "string"}],
            "get": {
                "summary": "Get a user",
                "tags": ["users"],
                "parameters": [
                    {"name": "id", "in": "path", "type": "string", "required": True, "description": "User ID"},
                    {"name": "body", "in": "body", "schema": {"$ref": "#/definitions/User"}},
                ],
            },
            "put": {
                "summary": "Replace a user",
                "tags": ["users"],
                "parameters": [
                    {"name": "id", "in": "path", "type": "string", "required": True},
                    {"name": "body", "in": "body", "required": True, "schema": {"$ref": "#/definitions/User"}},
                ],
            },
        },
        "/users": {
            "get": {
                "description": "List users",
                "tags": ["users"],
                "parameters": [
                    {"name": "page", "in": "query", "type": "integer"},
                    {"name": "limit", "in": "query", "type": "integer"},
                ],
            },
            "post": {
                "summary": "Create a user",
                "tags": ["users"],
                "parameters": [
                    {"name": "body", "in": "body", "required": True, "schema": {"$ref": "#/definitions/User"}},
                ],
            },
        },
        "/login": {
            "post": {
                "summary": "Log in",
                "tags": ["auth"],
                "parameters": [
                    {"name": "username", "in": "formData", "type": "string", "required": True},
                    {"name": "password", "in": "formData", "type": "string", "required": True},
                ],
            },
        },
        "/health": {"get": {"summary": "Health check", "tags": ["ops"]}},
    },
    "definitions": {
        "User": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string"},
                "email": {"type": "string", "format": "email"},
                "manager": {"$ref": "#/definitions/User"},
                "roles": {"type": "array", "items": {"type": "string"}},
            },
        },
    },
}

OPENAPI_DOC: dict[str, Any] = {
    "openapi": "3.0.3",
    "info": {"title": "Pets", "version": "1.0"},
    "paths": {
        "/pets/{petId}": {
            "get": {
                "summary": "Get a pet",
                "parameters": [
                    {"name": "petId", "in": "path", "required": True, "schema": {"type": "string"}},
                    {"name": "verbose", "in": "query", "schema": {"type": "boolean"}},
                ],
            },
        },
        "/pets": {
            "post": {
                "summary": "Create a pet",
                "requestBody": {
                    "required": True,
                    "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}},
                },
            },
        },
        "/pets/upload": {
            "post": {
                "requestBody": {
                    "content": {
                        "application/x-www-form-urlencoded": {
                            "schema": {
                                "type": "object",
                                "required": ["file"],
                                "properties": {"file": {"type": "string"}, "note": {"type": "string"}},
                            },
                        },
                    },
                },
            },
        },
    },
    "components": {
        "schemas": {
            "Pet": {
                "type": "object",
                "required": ["name"],
                "properties": {"name": {"type": "string"}, "age": {"type": "integer", "minimum": 0}},
            },
        },
    },
}


@pytest.fixture
def swagger_doc() -> dict[str, Any]:
    return copy.deepcopy(SWAGGER_DOC)


@pytest.fixture
def openapi_doc() -> dict[str, Any]:
    return copy.deepcopy(OPENAPI_DOC)
