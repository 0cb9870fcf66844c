# parts_engine/models/audit_log.py
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, Enum, JSON

from parts_engine.db.base import Base
from parts_engine.db.enums import AuditEntityType, AuditAction
from parts_engine.models.mixins.base_record import utcnow
from sqlalchemy.orm import Mapped, mapped_column


class AuditLog(Base):
    __tablename__ = "audit_logs"

    # =========
    # 🔒 Immutable fields (no update, no delete)
    # =========
    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Audit log UUID")

    organization_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True, comment="Owning organization ID")

    entity_type: Mapped[AuditEntityType] = mapped_column(
        Enum(AuditEntityType, name="audit_entity_type"),
        nullable=False,
        comment="Type of the audited entity"
    )

    entity_id: Mapped[str] = mapped_column(String(36), nullable=False, comment="UUID of the audited entity")

    action: Mapped[AuditAction] = mapped_column(
        Enum(AuditAction, name="audit_action"),
        nullable=False,
        comment="Type of action performed on the entity"
    )

    changed_attribute: Mapped[str] = mapped_column(String(100), nullable=False, comment="Attribute that was changed")

    before_value: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, comment="Value before the change")  # create 没有前值
    after_value: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, comment="Value after the change")    # delete 没有后值

    operator_id: Mapped[str] = mapped_column(String(36), nullable=False, comment="Operator who performed the action")

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Timestamp when the action was performed"
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog entity={self.entity_type.value} "
            f"entity_id={self.entity_id} "
            f"action={self.action.value}>"
        )
