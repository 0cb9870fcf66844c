# parts_engine/models/part.py
from typing import Optional

from sqlalchemy import String, Integer, Float, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from parts_engine.db.base import Base
from parts_engine.models.mixins.base_record import BaseRecordMixin
from parts_engine.models.supplier import Supplier


class Part(Base, BaseRecordMixin):
    """
    Inventory part (one stock line).

    sku / legacy_id are NOT unique at the table level; uniqueness of the trimmed sku
    within an organization is maintained by the dedup engine.
    """

    __tablename__ = "parts"

    # =========
    # 🔤 Identity signals
    # =========
    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Part name")

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Free text description")

    sku: Mapped[Optional[str]] = mapped_column(
        String(128), nullable=True, index=True, comment="Business key, compared trimmed"
    )

    legacy_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True, comment="Identifier carried over from an external source"
    )

    # =========
    # 🔢 Quantity
    # =========
    stock_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Quantity on hand")

    reorder_point: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Safety stock threshold")

    # =========
    # 💰 Cost
    # =========
    unit_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="Unit cost")

    total_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="Total cost")

    # =========
    # 📍 Physical / supplier
    # =========
    barcode: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, comment="QR / bar code")

    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="Storage location")

    supplier_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("suppliers.id", ondelete="SET NULL"),
        nullable=True,
        comment="Supplier ID",
    )

    supplier: Mapped[Optional["Supplier"]] = relationship("Supplier", lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<Part id={self.id} "
            f"name={self.name} "
            f"sku={self.sku} "
            f"stock={self.stock_level}>"
        )
