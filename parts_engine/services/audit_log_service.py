from typing import Any, Optional, Union
from uuid import uuid4
from datetime import datetime, date, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from parts_engine.models.audit_log import AuditLog
from parts_engine.db.enums import AuditEntityType, AuditAction


class AuditLogService:
    """
    Centralized service for recording all auditable actions.
    This service is the ONLY place where AuditLog records can be created.
    """

    def __init__(self, db: Session):
        self.db = db

    def serialize_audit_value(self, value) -> Any:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, (int, float, str, bool)):
            return value
        return str(value)  # 兜底

    def _normalize_entity_type(self, entity_type: Union[str, AuditEntityType]) -> AuditEntityType:
        """
        将字符串或枚举值转换为 AuditEntityType 枚举
        支持："part" / "Part" / AuditEntityType.Part
        """
        if isinstance(entity_type, AuditEntityType):
            return entity_type

        entity_type_str = str(entity_type).strip().lower()
        for enum_member in AuditEntityType:
            if entity_type_str in (enum_member.value, enum_member.name.lower()):
                return enum_member

        raise ValueError(f"Unknown entity_type: {entity_type}. Valid values: {[e.value for e in AuditEntityType]}")

    def _record(
        self,
        *,
        organization_id: str,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        action: AuditAction,
        changed_attribute: str,
        before_value: Any,
        after_value: Any,
        operator_id: str,
    ) -> None:
        log = AuditLog(
            id=str(uuid4()),
            organization_id=organization_id,
            entity_type=self._normalize_entity_type(entity_type),
            entity_id=entity_id,
            action=action,
            changed_attribute=changed_attribute,
            before_value=before_value,
            after_value=after_value,
            operator_id=operator_id,
            timestamp=datetime.now(timezone.utc),
        )
        self.db.add(log)

    def record_create(
        self,
        *,
        organization_id: str,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        operator_id: str,
    ) -> None:
        '''
        创建一条创建操作的审计日志

        :param organization_id: 所属组织ID
        :type organization_id: str
        :param entity_type: 实体类型：可以是字符串或 AuditEntityType 枚举
        :type entity_type: Union[str, AuditEntityType]
        :param entity_id: 所属实体唯一id
        :type entity_id: str
        :param operator_id: 操作者ID，系统行为为 "SYSTEM"
        :type operator_id: str
        '''
        self._record(
            organization_id=organization_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=AuditAction.create,
            changed_attribute="__all__",
            before_value=None,
            after_value=None,
            operator_id=operator_id,
        )

    def record_update(
        self,
        *,
        organization_id: str,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        changed_attribute: str,
        before_value: Any,
        after_value: Any,
        operator_id: str,
    ) -> None:
        '''
        创建一条更新操作的审计日志（一次只记录一个属性）
        合并（merge）和人工编辑都通过这里记录字段变化

        :param changed_attribute: 变更的属性名称
        :type changed_attribute: str
        :param before_value: 修改前的值
        :type before_value: Any
        :param after_value: 修改后的值
        :type after_value: Any
        '''
        self._record(
            organization_id=organization_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=AuditAction.update,
            changed_attribute=changed_attribute,
            before_value=self.serialize_audit_value(before_value),
            after_value=self.serialize_audit_value(after_value),
            operator_id=operator_id,
        )

    def record_delete(
        self,
        *,
        organization_id: str,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        operator_id: str,
        merged_into: Optional[str] = None,
    ) -> None:
        '''
        创建一条删除操作的审计日志
        去重合并时被吸收的记录，merged_into 为 survivor 的 id
        '''
        self._record(
            organization_id=organization_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=AuditAction.delete,
            changed_attribute="__all__",
            before_value=None,
            after_value={"merged_into": merged_into} if merged_into else None,
            operator_id=operator_id,
        )
