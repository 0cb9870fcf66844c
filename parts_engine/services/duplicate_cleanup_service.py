# parts_engine/services/duplicate_cleanup_service.py
import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from sqlalchemy.orm import Session

from parts_engine.db.enums import AuditEntityType, MatchTier
from parts_engine.db.part_store import PartStore
from parts_engine.models.part import Part
from parts_engine.schemas.part_schemas import PartSnapshot
from parts_engine.services.audit_log_service import AuditLogService
from parts_engine.services.part_merge import merge_parts, name_description_key, sku_key
from parts_engine.services.part_service import PartService, SYSTEM_OPERATOR

logger = logging.getLogger(__name__)


@dataclass
class DuplicateGroup:
    primary: Part
    duplicates: List[Part]
    tier: MatchTier


@dataclass
class CompactionResult:
    groups_processed: int = 0
    parts_merged: int = 0
    parts_deleted: int = 0
    errors: int = 0
    # 失败分组的 primary id，便于排查
    failed_groups: List[str] = field(default_factory=list)


def partition_duplicate_groups(parts: Sequence[Part]) -> List[DuplicateGroup]:
    '''
    把按 created_at 升序排列的 parts 划分为重复分组

    1) SKU 轮：每个非空 sku 都会被认领（即使没有重复），同 sku 的所有记录归为一组
    2) 名称+描述轮：只处理没有 sku 的记录，同键的记录归为一组
    每组第一个元素（最早创建）就是 primary；只返回含重复项的分组

    :param parts: 同一组织的全部 Part，最早创建的在前
    :type parts: Sequence[Part]
    :rtype: List[DuplicateGroup]
    '''
    groups: List[DuplicateGroup] = []
    claimed_ids = set()

    # 1. SKU pass
    claimed_skus = set()
    for part in parts:
        key = sku_key(part.sku)
        if not key or key in claimed_skus:
            continue
        claimed_skus.add(key)
        members = [p for p in parts if sku_key(p.sku) == key]
        claimed_ids.update(p.id for p in members)
        if len(members) > 1:
            groups.append(DuplicateGroup(primary=members[0], duplicates=members[1:], tier=MatchTier.sku))

    # 2. name + description pass
    claimed_names = set()
    for part in parts:
        if part.id in claimed_ids:
            continue
        key = name_description_key(part.name, part.description)
        if key in claimed_names:
            continue
        claimed_names.add(key)
        members = [
            p for p in parts
            if p.id not in claimed_ids and name_description_key(p.name, p.description) == key
        ]
        claimed_ids.update(p.id for p in members)
        if len(members) > 1:
            groups.append(
                DuplicateGroup(primary=members[0], duplicates=members[1:], tier=MatchTier.name_description)
            )

    return groups


class DuplicateCleanupService:
    """
    Whole-dataset compaction for one organization.

    Loads every part oldest-first, partitions it into duplicate groups, folds each
    group into its oldest member and deletes the rest. Each group runs in its own
    SAVEPOINT; a failing group is rolled back, counted in `errors`, and skipped.
    Running it twice in a row finds nothing the second time.
    """

    def __init__(
        self,
        db: Session,
        audit_log_service: AuditLogService,
        part_service: PartService,
    ):
        self.db = db
        self.audit_log_service = audit_log_service
        self.part_service = part_service
        self.store: PartStore = part_service.store

    def compact(self, organization_id: str, *, operator_id: str = SYSTEM_OPERATOR) -> CompactionResult:
        logger.info("Starting duplicate cleanup for organization %s", organization_id)

        # 初始读取失败直接抛出：此时尚未做任何修改
        parts = self.store.list_for_organization(organization_id)
        groups = partition_duplicate_groups(parts)

        result = CompactionResult()
        for group in groups:
            try:
                with self.db.begin_nested():
                    self._merge_group(group, operator_id)
            except Exception:
                logger.exception(
                    "Error merging group for part \"%s\" (ID: %s)", group.primary.name, group.primary.id
                )
                result.errors += 1
                result.failed_groups.append(group.primary.id)
                continue

            logger.info(
                "Merged %s duplicates into part \"%s\" (ID: %s) by %s",
                len(group.duplicates), group.primary.name, group.primary.id, group.tier.value,
            )
            result.groups_processed += 1
            result.parts_merged += len(group.duplicates)
            result.parts_deleted += len(group.duplicates)

        logger.info(
            "Cleanup complete: %s groups processed, %s parts merged, %s duplicates removed, %s errors",
            result.groups_processed, result.parts_merged, result.parts_deleted, result.errors,
        )
        return result

    def _merge_group(self, group: DuplicateGroup, operator_id: str) -> None:
        merged = PartSnapshot.from_orm_model(group.primary)
        for duplicate in group.duplicates:
            merged = merge_parts(merged, PartSnapshot.from_orm_model(duplicate))

        self.part_service.apply_merged_fields(group.primary, merged, operator_id=operator_id)

        for duplicate in group.duplicates:
            duplicate_id = duplicate.id
            self.store.delete(duplicate)
            self.audit_log_service.record_delete(
                organization_id=group.primary.organization_id,
                entity_type=AuditEntityType.Part,
                entity_id=duplicate_id,
                operator_id=operator_id,
                merged_into=group.primary.id,
            )
