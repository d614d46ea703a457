"""
Request parsing for risk routes.

Route handlers authenticate first and only then parse the account id and the
JSON body, so a request without credentials is always answered with 401.
"""

import json
from typing import Any, Dict, Optional, Type, TypeVar

import pydantic
from fastapi import Request

from shared.errors import ValidationError


ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


async def read_json_body(request: Request) -> Optional[Dict[str, Any]]:
    """Return the JSON object body, ``{}`` when empty, ``None`` when not a JSON object."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def body_connection_ref(body: Optional[Dict[str, Any]]) -> Optional[str]:
    value = (body or {}).get("connectionRef")
    return value if isinstance(value, str) and value else None


def parse_account_id(value: str) -> int:
    if not value.isdigit():
        raise ValidationError("Invalid account ID", details={"accountId": value})
    return int(value)


def parse_body(model: Type[ModelT], body: Optional[Dict[str, Any]]) -> ModelT:
    """Validate ``body`` against ``model``; failures use the shared 400 envelope."""
    if body is None:
        raise ValidationError("Invalid request body: expected a JSON object")
    try:
        return model.model_validate(body)
    except pydantic.ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error.get("loc", ())) or "request"
        raise ValidationError(f"Invalid {field}: {error.get('msg', 'invalid value')}") from exc
