# parts_engine/models/supplier.py
from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from parts_engine.db.base import Base
from parts_engine.models.mixins.base_record import BaseRecordMixin


class Supplier(Base, BaseRecordMixin):
    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Vendor name")

    contact_info: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="Contact name")

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name}>"
