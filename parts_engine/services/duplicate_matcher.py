# parts_engine/services/duplicate_matcher.py
from dataclasses import dataclass
from typing import Optional

from parts_engine.db.enums import MatchTier
from parts_engine.db.part_store import PartStore
from parts_engine.models.part import Part
from parts_engine.schemas.part_schemas import PartInput
from parts_engine.services.part_merge import sku_key, name_description_key


@dataclass
class DuplicateMatch:
    part: Part
    tier: MatchTier


class DuplicateMatcher:
    """
    Finds at most one existing Part that is "the same" as a candidate.

    Tiers, first hit wins:
    1. exact trimmed sku
    2. exact legacy_id
    3. trimmed name + description (missing description == "")

    Lookups are never cached: every call re-reads the store.
    """

    def __init__(self, store: PartStore):
        self.store = store

    def match(self, candidate: PartInput, organization_id: str) -> Optional[DuplicateMatch]:
        # 1. SKU：命中即返回，不再降级到更弱的规则
        sku = sku_key(candidate.sku)
        if sku:
            part = self.store.find_by_sku(organization_id, sku)
            if part is not None:
                return DuplicateMatch(part=part, tier=MatchTier.sku)

        # 2. legacy_id：为导入旧系统数据而存在
        if candidate.legacy_id:
            part = self.store.find_by_legacy_id(organization_id, candidate.legacy_id)
            if part is not None:
                return DuplicateMatch(part=part, tier=MatchTier.legacy_id)

        # 3. 名称 + 描述：手工录入数据的兜底规则
        name, description = name_description_key(candidate.name, candidate.description)
        part = self.store.find_by_name_description(organization_id, name, description)
        if part is not None:
            return DuplicateMatch(part=part, tier=MatchTier.name_description)

        return None

    def find_duplicate(self, candidate: PartInput, organization_id: str) -> Optional[Part]:
        match = self.match(candidate, organization_id)
        return match.part if match else None
