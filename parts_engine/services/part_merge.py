# parts_engine/services/part_merge.py
"""
Field-level merge policy and identity keys for Part deduplication.

Everything here is pure: no Session, no I/O. The matcher, the upsert path and the
compaction pass all share these helpers so they agree on what "the same part" means.
"""
from datetime import datetime, timezone
from typing import Optional

from parts_engine.schemas.part_schemas import PartInput, PartSnapshot

# 合并后需要写回存储的字段（id / organization_id / created_at 永不改变）
MERGEABLE_FIELDS = (
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


def _has_text(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def _prefer_text(incoming: Optional[str], existing: Optional[str]) -> Optional[str]:
    return incoming if _has_text(incoming) else existing


def _prefer_value(incoming, existing):
    return incoming if incoming is not None else existing


def sku_key(sku: Optional[str]) -> str:
    """Trimmed sku; empty string means "no sku"."""
    return sku.strip() if sku else ""


def name_description_key(name: Optional[str], description: Optional[str]) -> tuple[str, str]:
    '''
    名称+描述的身份键：名称去首尾空格，描述缺失视为空字符串
    '''
    return (name or "").strip(), description or ""


def merge_parts(
    existing: PartSnapshot,
    incoming: PartInput,
    *,
    now: Optional[datetime] = None,
) -> PartSnapshot:
    '''
    把 incoming 合并进 existing，返回新的快照（existing 不会被修改）

    - 文本字段（name / description / sku）：incoming 非空则用 incoming
    - stock_level：相加（同一库存被记录了两次）
    - reorder_point：取较大值（更保守）
    - 成本、条码、位置、供应商：incoming 非 None 则用 incoming
    - organization_id / id / created_at：永远来自 existing
    - legacy_id：existing 有则保留，否则取 incoming
    - updated_at：合并时刻

    :param existing: 存活记录（survivor）的快照
    :type existing: PartSnapshot
    :param incoming: 被合并进来的数据，可以是新输入，也可以是另一条记录的快照
    :type incoming: PartInput
    :param now: 合并时刻，默认当前 UTC 时间
    :return: 合并后的快照
    :rtype: PartSnapshot
    '''
    return existing.model_copy(
        update={
            "name": _prefer_text(incoming.name, existing.name),
            "description": _prefer_text(incoming.description, existing.description),
            "sku": _prefer_text(incoming.sku, existing.sku),
            "stock_level": (existing.stock_level or 0) + (incoming.stock_level or 0),
            "reorder_point": max(existing.reorder_point or 0, incoming.reorder_point or 0),
            "unit_cost": _prefer_value(incoming.unit_cost, existing.unit_cost),
            "total_cost": _prefer_value(incoming.total_cost, existing.total_cost),
            "barcode": _prefer_value(incoming.barcode, existing.barcode),
            "location": _prefer_value(incoming.location, existing.location),
            "supplier_id": _prefer_value(incoming.supplier_id, existing.supplier_id),
            "legacy_id": existing.legacy_id if _has_text(existing.legacy_id) else incoming.legacy_id,
            "updated_at": now or datetime.now(timezone.utc),
        }
    )
