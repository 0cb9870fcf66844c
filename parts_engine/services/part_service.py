# parts_engine/services/part_service.py
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from sqlalchemy.orm import Session

from parts_engine.db.enums import AuditEntityType, MatchTier, MergeAction
from parts_engine.db.part_store import PartStore
from parts_engine.errors import InsufficientStockError, PartNotFoundError
from parts_engine.models.part import Part
from parts_engine.schemas.part_schemas import PartInput, PartSnapshot, PartUpdate
from parts_engine.services.audit_log_service import AuditLogService
from parts_engine.services.duplicate_matcher import DuplicateMatcher
from parts_engine.services.part_merge import MERGEABLE_FIELDS, merge_parts

logger = logging.getLogger(__name__)

SYSTEM_OPERATOR = "SYSTEM"


@dataclass
class UpsertOutcome:
    action: MergeAction
    part: Part
    tier: Optional[MatchTier] = None


class PartService:
    """
    Service for the Part lifecycle.

    Responsibilities:
    - create-or-merge a single incoming record (the unit of work of every import path)
    - organization-checked read / edit / delete / stock adjustment
    - record audit logs for every persisted change

    Never commits and never swallows store errors: the caller owns the transaction.
    """

    def __init__(
        self,
        db: Session,
        audit_log_service: AuditLogService,
        store: Optional[PartStore] = None,
    ):
        self.db = db
        self.audit_log_service = audit_log_service
        self.store = store or PartStore(db)
        self.matcher = DuplicateMatcher(self.store)

    # =========
    # Upsert
    # =========
    def upsert_part(self, data: PartInput, *, operator_id: str = SYSTEM_OPERATOR) -> UpsertOutcome:
        '''
        查重 -> 合并或新建，并报告实际执行的动作

        :param data: 待写入的 Part
        :type data: PartInput
        :param operator_id: 操作者ID
        :type operator_id: str
        :return: 动作（created / merged）、结果记录、命中的规则
        :rtype: UpsertOutcome
        '''
        match = self.matcher.match(data, data.organization_id)

        if match is None:
            if not data.name:
                raise ValueError("Part name is required to create a new part")
            part = self.store.create(self._new_record_fields(data))
            self.audit_log_service.record_create(
                organization_id=part.organization_id,
                entity_type=AuditEntityType.Part,
                entity_id=part.id,
                operator_id=operator_id,
            )
            logger.info("Created new part: %s (SKU: %s) id=%s", part.name, part.sku, part.id)
            return UpsertOutcome(action=MergeAction.created, part=part)

        existing = match.part
        logger.info(
            "Duplicate part found by %s: %s (SKU: %s). Merging with existing part ID: %s",
            match.tier.value, data.name, data.sku, existing.id,
        )
        merged = merge_parts(PartSnapshot.from_orm_model(existing), data)
        self.apply_merged_fields(existing, merged, operator_id=operator_id)
        return UpsertOutcome(action=MergeAction.merged, part=existing, tier=match.tier)

    def create_or_merge_part(self, data: PartInput, *, operator_id: str = SYSTEM_OPERATOR) -> Part:
        return self.upsert_part(data, operator_id=operator_id).part

    def create_part(self, data: PartInput, *, operator_id: str = SYSTEM_OPERATOR) -> Part:
        # 单条新建同样先查重，重复则合并
        return self.create_or_merge_part(data, operator_id=operator_id)

    def apply_merged_fields(
        self,
        part: Part,
        merged: PartSnapshot,
        *,
        operator_id: str = SYSTEM_OPERATOR,
    ) -> Part:
        '''
        把合并结果写回 survivor，逐字段记录审计日志（值未变化的字段不记录）
        '''
        changes = {}
        for field in MERGEABLE_FIELDS:
            old_value = getattr(part, field)
            new_value = getattr(merged, field)
            if old_value == new_value:
                continue
            changes[field] = new_value
            self.audit_log_service.record_update(
                organization_id=part.organization_id,
                entity_type=AuditEntityType.Part,
                entity_id=part.id,
                changed_attribute=field,
                before_value=old_value,
                after_value=new_value,
                operator_id=operator_id,
            )
        # stock 相加为 0 等情况下字段可能都没变，仍然刷新 updated_at
        changes["updated_at"] = merged.updated_at
        return self.store.update(part, changes)

    def _new_record_fields(self, data: PartInput) -> dict[str, Any]:
        fields = data.to_record_fields()
        fields["stock_level"] = data.stock_level or 0
        fields["reorder_point"] = data.reorder_point or 0
        return fields

    # =========
    # Read
    # =========
    def get_part(self, part_id: str, organization_id: str) -> Part:
        part = self.store.get(part_id, organization_id)
        if part is None:
            raise PartNotFoundError(part_id)
        return part

    def list_parts(self, organization_id: str) -> List[Part]:
        return self.store.list_by_name(organization_id)

    def list_low_stock_parts(self, organization_id: str) -> List[Part]:
        return self.store.list_low_stock(organization_id)

    def list_recent_activity(self, organization_id: str, limit: int = 10) -> List[Part]:
        return self.store.list_recently_updated(organization_id, limit)

    # =========
    # Edit
    # =========
    def update_part(
        self,
        *,
        part_id: str,
        organization_id: str,
        updates: Mapping[str, Any],
        operator_id: str = SYSTEM_OPERATOR,
    ) -> Part:
        '''
        普通字段编辑（白名单由 PartUpdate 决定），逐字段记录审计日志

        :param updates: 字段更新，未出现的字段保持不变
        :type updates: Mapping[str, Any]
        '''
        part = self.get_part(part_id, organization_id)
        validated = PartUpdate.model_validate(updates).model_dump(exclude_unset=True)
        if "name" in validated and not validated["name"]:
            raise ValueError("Part name cannot be empty")

        changes = {}
        for field, new_value in validated.items():
            old_value = getattr(part, field)
            if old_value == new_value:
                continue
            changes[field] = new_value
            self.audit_log_service.record_update(
                organization_id=organization_id,
                entity_type=AuditEntityType.Part,
                entity_id=part.id,
                changed_attribute=field,
                before_value=old_value,
                after_value=new_value,
                operator_id=operator_id,
            )

        if not changes:
            return part  # 无需更新
        return self.store.update(part, changes)

    def update_stock_level(
        self,
        *,
        part_id: str,
        organization_id: str,
        quantity: int,
        operator_id: str = SYSTEM_OPERATOR,
    ) -> Part:
        '''
        库存增减：quantity 为正表示入库，为负表示出库，结果不得小于 0
        '''
        part = self.get_part(part_id, organization_id)
        new_level = part.stock_level + quantity
        if new_level < 0:
            raise InsufficientStockError(
                f"Insufficient stock for part {part_id}: on hand {part.stock_level}, requested {-quantity}"
            )

        self.audit_log_service.record_update(
            organization_id=organization_id,
            entity_type=AuditEntityType.Part,
            entity_id=part.id,
            changed_attribute="stock_level",
            before_value=part.stock_level,
            after_value=new_level,
            operator_id=operator_id,
        )
        return self.store.update(part, {"stock_level": new_level})

    def delete_part(
        self,
        *,
        part_id: str,
        organization_id: str,
        operator_id: str = SYSTEM_OPERATOR,
    ) -> None:
        part = self.get_part(part_id, organization_id)
        self.store.delete(part)
        self.audit_log_service.record_delete(
            organization_id=organization_id,
            entity_type=AuditEntityType.Part,
            entity_id=part_id,
            operator_id=operator_id,
        )
