"""Capture pipeline: ingestion guard, markdown writers and the live capture buffer."""

from .buffer import CaptureBuffer
from .guard import CaptureGuard, ProjectStateStore, exchange_fingerprint
from .schemas import ExchangePayload, parse_exchanges
from .writer import (
    open_for_append,
    write_conversation_chunk,
    write_decision_detail,
    write_gotcha,
    write_personal_note,
)

__all__ = [
    "CaptureBuffer",
    "CaptureGuard",
    "ExchangePayload",
    "ProjectStateStore",
    "exchange_fingerprint",
    "open_for_append",
    "parse_exchanges",
    "write_conversation_chunk",
    "write_decision_detail",
    "write_gotcha",
    "write_personal_note",
]
