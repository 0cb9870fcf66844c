# parts_engine/schemas/part_schemas.py
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Part 上可以被写入的业务字段（不含 id / created_at / updated_at）
PART_FIELDS = (
    "organization_id",
    "name",
    "description",
    "sku",
    "legacy_id",
    "stock_level",
    "reorder_point",
    "unit_cost",
    "total_cost",
    "barcode",
    "location",
    "supplier_id",
)

# 身份字段：写入前统一去除首尾空白（含 \t \n），查重时直接比较存储值
IDENTITY_FIELDS = ("name", "sku", "legacy_id")


def _coerce_id(v: Any) -> Any:
    # 导入文件里的 ID 常常是数字
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(int(v)) if float(v).is_integer() else str(v)
    return v


def strip_text(v: Any) -> Any:
    return v.strip() if isinstance(v, str) else v


class PartInput(BaseModel):
    '''
    一条待写入的 Part（新建或合并的输入）

    所有系统字段（id / created_at / updated_at）都不在这里。
    同时接受 snake_case 与 camelCase 字段名（旧客户端使用 camelCase）。
    '''
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    organization_id: str
    name: Optional[str] = None
    description: Optional[str] = None
    sku: Optional[str] = None
    legacy_id: Optional[str] = None

    stock_level: Optional[int] = Field(default=None, ge=0)
    reorder_point: Optional[int] = Field(default=None, ge=0)

    unit_cost: Optional[float] = None
    total_cost: Optional[float] = None

    barcode: Optional[str] = None
    location: Optional[str] = None
    supplier_id: Optional[str] = None

    @field_validator("organization_id", "legacy_id", "supplier_id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Any:
        return _coerce_id(v)

    @field_validator("name", "sku", "legacy_id")
    @classmethod
    def _strip_identity(cls, v: Optional[str]) -> Optional[str]:
        return strip_text(v)

    def to_record_fields(self) -> dict[str, Any]:
        """Fields to persist for a brand-new record."""
        return {field: getattr(self, field) for field in PART_FIELDS}


class PartSnapshot(PartInput):
    '''
    已持久化 Part 的只读快照，合并计算在快照上进行，不直接改 ORM 对象
    '''
    id: str
    name: str = ""
    stock_level: int = 0
    reorder_point: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_orm_model(cls, part) -> "PartSnapshot":
        return cls(
            id=part.id,
            created_at=part.created_at,
            updated_at=part.updated_at,
            **{field: getattr(part, field) for field in PART_FIELDS},
        )


class PartUpdate(BaseModel):
    '''
    普通字段编辑（不经过合并逻辑）。id / organization_id / created_at 不可编辑。
    '''
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    name: Optional[str] = None
    description: Optional[str] = None
    sku: Optional[str] = None
    legacy_id: Optional[str] = None
    stock_level: Optional[int] = Field(default=None, ge=0)
    reorder_point: Optional[int] = Field(default=None, ge=0)
    unit_cost: Optional[float] = None
    total_cost: Optional[float] = None
    barcode: Optional[str] = None
    location: Optional[str] = None
    supplier_id: Optional[str] = None

    @field_validator("legacy_id", "supplier_id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Any:
        return _coerce_id(v)

    @field_validator("name", "sku", "legacy_id")
    @classmethod
    def _strip_identity(cls, v: Optional[str]) -> Optional[str]:
        return strip_text(v)
