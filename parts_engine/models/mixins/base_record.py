# parts_engine/models/mixins/base_record.py
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class BaseRecordMixin:
    """
    Base mixin for organization-scoped records (Part / Supplier).

    Invariants:
    - Immutable identity
    - Belongs to exactly one organization
    - created_at is written once, by the application, with microsecond resolution
    """
    # =========
    # Identity & tenant
    # =========
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id, comment="Record UUID")

    organization_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True, comment="Owning organization ID"
    )

    # =========
    # ⏱ Timestamps
    # =========
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Creation timestamp, survivor priority during compaction"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Last update timestamp"
    )
