"""Idempotency support for non-idempotent endpoints.

``check_idempotency`` looks at the ``Idempotency-Key`` header. If a response
was already recorded for the key it returns that response as a JSONResponse;
otherwise it returns ``None`` (no header) or an ``IdempotencyResult`` so the
endpoint can record its response with ``record_idempotency_response`` once it
succeeds. A request that fails releases its key so the client may retry it.
"""

from dataclasses import dataclass
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from coupon_manager.repositories.idempotency_repository import IdempotencyRepository

REPLAY_HEADER = "Idempotency-Replayed"


@dataclass
class IdempotencyResult:
    """Holds pending idempotency key info for later recording."""

    key: str
    method: str
    path: str


def check_idempotency(request: Request, db: Session) -> JSONResponse | IdempotencyResult | None:
    """Check the ``Idempotency-Key`` header for a cached response.

    Returns:
        - ``None`` if no ``Idempotency-Key`` header is present.
        - A ``JSONResponse`` replaying the recorded response, with an
          ``Idempotency-Replayed: true`` header, if one exists.
        - An ``IdempotencyResult`` for a new key that should be recorded
          after processing.
    """
    key = request.headers.get("Idempotency-Key")
    if not key:
        return None

    repo = IdempotencyRepository(db)
    existing = repo.get_by_key(key)

    if existing is not None and existing.is_complete:
        response = JSONResponse(
            content=existing.response_body,
            status_code=int(existing.response_status),
        )
        response.headers[REPLAY_HEADER] = "true"
        return response

    if existing is None:
        repo.reserve(key, request.method, request.url.path)

    return IdempotencyResult(key=key, method=request.method, path=request.url.path)


def record_idempotency_response(db: Session, key: str, status: int, body: dict[str, Any]) -> None:
    """Persist the endpoint response so subsequent calls return the cached result."""
    repo = IdempotencyRepository(db)
    record = repo.get_by_key(key)
    if record is not None:
        repo.complete(record, status, body)


def release_idempotency_key(db: Session, key: str) -> None:
    """Forget a key whose request was rejected, so the client can retry it."""
    repo = IdempotencyRepository(db)
    record = repo.get_by_key(key)
    if record is not None and not record.is_complete:
        repo.release(record)
