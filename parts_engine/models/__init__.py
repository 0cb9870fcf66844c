# 导入所有表，确保 Base.metadata 完整
from parts_engine.models.supplier import Supplier
from parts_engine.models.part import Part
from parts_engine.models.audit_log import AuditLog

__all__ = ["Supplier", "Part", "AuditLog"]
