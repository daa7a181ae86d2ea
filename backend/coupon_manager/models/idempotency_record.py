"""IdempotencyRecord model for replay-safe coupon usage requests."""

from sqlalchemy import JSON, Column, DateTime, Integer, String, func

from coupon_manager.core.database import Base
from coupon_manager.models.shared import UUIDType, generate_uuid


class IdempotencyRecord(Base):
    """One ``Idempotency-Key`` seen on a use request.

    The row is written when the key first arrives and completed with the
    response once the request succeeds. A row without a response is still in
    flight (or was released after a rejected request).
    """

    __tablename__ = "idempotency_records"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    idempotency_key = Column(String(255), nullable=False, unique=True, index=True)
    request_method = Column(String(10), nullable=False)
    request_path = Column(String(500), nullable=False)
    response_status = Column(Integer, nullable=True)
    response_body = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_complete(self) -> bool:
        return self.response_status is not None
