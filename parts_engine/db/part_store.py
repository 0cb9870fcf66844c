# parts_engine/db/part_store.py
from typing import Any, List, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from parts_engine.models.part import Part
from parts_engine.schemas.part_schemas import IDENTITY_FIELDS, strip_text


class PartStore:
    """
    Organization-scoped record store for Part.

    Responsibilities:
    - Exact-field lookups used by the duplicate matcher
    - Oldest-first scans used by compaction
    - create / update / delete by primary key

    Identity fields (name / sku / legacy_id) are stored stripped, so lookups compare
    stored values directly and agree with the Python-side keys used by compaction.

    Does NOT commit: the caller owns the transaction. No uniqueness is enforced here.
    """

    def __init__(self, db: Session):
        self.db = db

    def _scoped(self, organization_id: str):
        return self.db.query(Part).filter(Part.organization_id == organization_id)

    def get(self, part_id: str, organization_id: str) -> Optional[Part]:
        return self._scoped(organization_id).filter(Part.id == part_id).one_or_none()

    def find_by_sku(self, organization_id: str, sku: str) -> Optional[Part]:
        '''
        按 sku 精确匹配（存储值已去空白）；多条命中时返回最早创建的一条
        :param sku: 已去空格的 sku
        :type sku: str
        '''
        return (
            self._scoped(organization_id)
            .filter(Part.sku == sku)
            .order_by(Part.created_at.asc(), Part.id.asc())
            .first()
        )

    def find_by_legacy_id(self, organization_id: str, legacy_id: str) -> Optional[Part]:
        return (
            self._scoped(organization_id)
            .filter(Part.legacy_id == legacy_id)
            .order_by(Part.created_at.asc(), Part.id.asc())
            .first()
        )

    def find_by_name_description(
        self,
        organization_id: str,
        name: str,
        description: str,
    ) -> Optional[Part]:
        '''
        名称（存储值已去空白）+ 描述（缺失视为空字符串）精确匹配
        :param name: 已去空格的名称
        :param description: 描述，缺失时传空字符串
        '''
        return (
            self._scoped(organization_id)
            .filter(
                Part.name == name,
                func.coalesce(Part.description, "") == description,
            )
            .order_by(Part.created_at.asc(), Part.id.asc())
            .first()
        )

    def list_for_organization(self, organization_id: str) -> List[Part]:
        # 最早创建的排在最前：合并时它就是 survivor
        return (
            self._scoped(organization_id)
            .order_by(Part.created_at.asc(), Part.id.asc())
            .all()
        )

    def list_by_name(self, organization_id: str) -> List[Part]:
        return self._scoped(organization_id).order_by(Part.name.asc()).all()

    def list_low_stock(self, organization_id: str) -> List[Part]:
        return (
            self._scoped(organization_id)
            .filter(Part.stock_level <= Part.reorder_point)
            .order_by(Part.stock_level.asc())
            .all()
        )

    def list_recently_updated(self, organization_id: str, limit: int) -> List[Part]:
        return (
            self._scoped(organization_id)
            .order_by(Part.updated_at.desc())
            .limit(limit)
            .all()
        )

    def create(self, fields: Mapping[str, Any]) -> Part:
        part = Part(**self._normalize(fields))
        self.db.add(part)
        self.db.flush()
        return part

    def update(self, part: Part, fields: Mapping[str, Any]) -> Part:
        for field, value in self._normalize(fields).items():
            setattr(part, field, value)
        self.db.flush()
        return part

    def delete(self, part: Part) -> None:
        self.db.delete(part)
        self.db.flush()

    def _normalize(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        return {k: strip_text(v) if k in IDENTITY_FIELDS else v for k, v in fields.items()}
