"""Storage for Idempotency-Key reservations and their recorded responses."""

from datetime import timedelta
from typing import Any

from sqlalchemy.orm import Session

from coupon_manager.models.idempotency_record import IdempotencyRecord
from coupon_manager.models.shared import utc_now


class IdempotencyRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_key(self, idempotency_key: str) -> IdempotencyRecord | None:
        return (
            self.db.query(IdempotencyRecord)
            .filter(IdempotencyRecord.idempotency_key == idempotency_key)
            .first()
        )

    def reserve(self, idempotency_key: str, method: str, path: str) -> IdempotencyRecord:
        """Store a key with no response yet."""
        record = IdempotencyRecord(
            idempotency_key=idempotency_key,
            request_method=method,
            request_path=path,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def complete(
        self,
        record: IdempotencyRecord,
        status: int,
        body: dict[str, Any],
    ) -> IdempotencyRecord:
        """Attach the response that later requests with the same key replay."""
        record.response_status = status  # type: ignore[assignment]
        record.response_body = body  # type: ignore[assignment]
        record.completed_at = utc_now()  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(record)
        return record

    def release(self, record: IdempotencyRecord) -> None:
        self.db.delete(record)
        self.db.commit()

    def purge_older_than(self, hours: int = 24) -> int:
        """Delete records created more than ``hours`` ago; returns how many."""
        cutoff = utc_now() - timedelta(hours=hours)
        count = (
            self.db.query(IdempotencyRecord)
            .filter(IdempotencyRecord.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return int(count)
