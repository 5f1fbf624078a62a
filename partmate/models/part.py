import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, Numeric, String

from partmate.database.base import Base


def _utcnow():
    return datetime.now(timezone.utc)


class SparePart(Base):
    __tablename__ = "spare_parts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False)

    part_id = Column(String, nullable=False)
    name = Column(String, nullable=False)

    quantity = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    image_url = Column(String)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_spare_parts_user_created", "user_id", "created_at"),
        Index("idx_spare_parts_part_id", "part_id"),
    )


__all__ = ["SparePart"]
