# parts_engine/db/enums.py
import enum


# Dedup / merge related enums
class MatchTier(enum.Enum):
    sku = "sku"
    legacy_id = "legacy_id"
    name_description = "name_description"


class MergeAction(enum.Enum):
    created = "created"
    merged = "merged"


# AuditLog related enums
class AuditEntityType(enum.Enum):
    Part = "part"
    Supplier = "supplier"


class AuditAction(enum.Enum):
    create = "create"
    update = "update"
    delete = "delete"
