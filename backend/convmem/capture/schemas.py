from __future__ import annotations

import dataclasses
from typing import Any, List

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import InvalidPayloadError
from ..core.models import Exchange


class ExchangePayload(BaseModel):
    user: str
    assistant: str = ""
    timestamp: int = Field(default=0, ge=0)


class CaptureRequest(BaseModel):
    exchanges: List[ExchangePayload]


def _as_dict(item: Any) -> Any:
    if isinstance(item, Exchange):
        return dataclasses.asdict(item)
    return item


def _error_field(err: PydanticValidationError) -> str:
    errors = err.errors()
    if not errors:
        return "exchanges"
    return ".".join(str(part) for part in errors[0].get("loc", ())) or "exchanges"


def parse_exchanges(payload: Any, max_exchanges: int, max_chars: int) -> List[Exchange]:
    """Validate a raw capture batch and convert it to ``Exchange`` objects.

    Raises:
        InvalidPayloadError: missing, malformed, empty or oversized batch
    """
    if payload is None:
        raise InvalidPayloadError("exchanges are required")
    if not isinstance(payload, (list, tuple)):
        raise InvalidPayloadError("exchanges must be a list")
    if not payload:
        raise InvalidPayloadError("exchanges must not be empty")
    if len(payload) > max_exchanges:
        raise InvalidPayloadError(f"too many exchanges: {len(payload)} > {max_exchanges}")

    try:
        request = CaptureRequest(exchanges=[_as_dict(item) for item in payload])
    except PydanticValidationError as e:
        raise InvalidPayloadError(f"malformed exchange: {e.errors()[0].get('msg', e)}", field=_error_field(e)) from e

    exchanges: List[Exchange] = []
    for i, ex in enumerate(request.exchanges):
        if not ex.user.strip():
            raise InvalidPayloadError("user text must not be empty", field=f"exchanges.{i}.user")
        if len(ex.user) > max_chars or len(ex.assistant) > max_chars:
            raise InvalidPayloadError(f"exchange {i} exceeds {max_chars} characters", field=f"exchanges.{i}")
        exchanges.append(Exchange(user=ex.user, assistant=ex.assistant, timestamp=ex.timestamp))
    return exchanges
