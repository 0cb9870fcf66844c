from datetime import datetime
from typing import Optional

from parts_engine.models.part import Part
from parts_engine.schemas.dto.base_dto import BaseDTO


class SupplierSummaryDTO(BaseDTO):
    id: str
    name: str


class PartDTO(BaseDTO):
    id: str
    organization_id: str
    name: str
    description: Optional[str]
    sku: Optional[str]
    legacy_id: Optional[str]
    stock_level: int
    reorder_point: int
    unit_cost: Optional[float]
    total_cost: Optional[float]
    barcode: Optional[str]
    location: Optional[str]
    supplier_id: Optional[str]
    supplier: Optional[SupplierSummaryDTO]
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_orm_model(cls, part: Part) -> "PartDTO":
        return cls(
            id=part.id,
            organization_id=part.organization_id,
            name=part.name,
            description=part.description,
            sku=part.sku,
            legacy_id=part.legacy_id,
            stock_level=part.stock_level,
            reorder_point=part.reorder_point,
            unit_cost=part.unit_cost,
            total_cost=part.total_cost,
            barcode=part.barcode,
            location=part.location,
            supplier_id=part.supplier_id,
            supplier=(
                SupplierSummaryDTO(id=part.supplier.id, name=part.supplier.name)
                if part.supplier else None
            ),
            is_low_stock=part.stock_level <= part.reorder_point,
            created_at=part.created_at,
            updated_at=part.updated_at,
        )
