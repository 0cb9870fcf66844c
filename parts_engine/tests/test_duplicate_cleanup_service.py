from sqlalchemy.exc import OperationalError

from parts_engine.db.enums import AuditAction, MatchTier
from parts_engine.db.part_store import PartStore
from parts_engine.models.audit_log import AuditLog
from parts_engine.models.part import Part
from parts_engine.services.duplicate_cleanup_service import (
    DuplicateCleanupService,
    partition_duplicate_groups,
)
from parts_engine.services.part_service import PartService
from parts_engine.tests.conftest import ORG, OTHER_ORG


class FlakyDeleteStore(PartStore):
    """第一次 delete 时模拟存储故障"""

    def __init__(self, db):
        super().__init__(db)
        self.failed = False

    def delete(self, part):
        if not self.failed:
            self.failed = True
            raise OperationalError("DELETE FROM parts", {}, Exception("disk I/O error"))
        super().delete(part)


def build_service(db, audit_log_service, store=None):
    part_service = PartService(db, audit_log_service, store=store)
    return DuplicateCleanupService(db, audit_log_service, part_service)


def test_three_way_sku_group_collapses_into_oldest(db, audit_log_service, make_part):
    t1 = make_part(1, name="Pump", sku="SKU-2", stock_level=2, reorder_point=1)
    t2 = make_part(2, name="Pump v2", sku="SKU-2 ", stock_level=3, reorder_point=5)
    t3 = make_part(3, name="Pump", sku="SKU-2", stock_level=4)
    t2_id, t3_id = t2.id, t3.id

    result = build_service(db, audit_log_service).compact(ORG)

    assert result.groups_processed == 1
    assert result.parts_merged == 2
    assert result.parts_deleted == 2
    assert result.errors == 0

    survivor = db.query(Part).one()
    assert survivor.id == t1.id
    assert survivor.stock_level == 9
    assert survivor.reorder_point == 5
    assert survivor.name == "Pump"

    deletes = db.query(AuditLog).filter(AuditLog.action == AuditAction.delete).all()
    assert {log.entity_id for log in deletes} == {t2_id, t3_id}
    assert all(log.after_value == {"merged_into": t1.id} for log in deletes)


def test_name_description_pass_only_sees_parts_without_claimed_sku(db, audit_log_service, make_part):
    with_sku = make_part(1, name="Bolt", description="M6", sku="B-1", stock_level=1)
    plain_1 = make_part(2, name="Bolt", description="M6", stock_level=2)
    make_part(3, name=" Bolt ", description="M6", stock_level=3)
    other = make_part(4, name="Bolt", description="M8", stock_level=4)

    result = build_service(db, audit_log_service).compact(ORG)

    assert result.groups_processed == 1
    remaining = {p.id: p.stock_level for p in db.query(Part).all()}
    assert remaining == {with_sku.id: 1, plain_1.id: 5, other.id: 4}


def test_second_run_finds_nothing(db, audit_log_service, make_part):
    make_part(1, name="Pump", sku="SKU-2", stock_level=2)
    make_part(2, name="Pump", sku="SKU-2", stock_level=3)
    make_part(3, name="Pump", stock_level=1)
    make_part(4, name="Pump", stock_level=1)
    make_part(5, name="Valve", sku="V-1")

    service = build_service(db, audit_log_service)
    first = service.compact(ORG)
    second = service.compact(ORG)

    assert first.groups_processed == 2
    assert second.groups_processed == 0
    assert second.parts_deleted == 0
    assert db.query(Part).count() == 3


def test_failing_group_is_isolated(db, audit_log_service, make_part):
    a1 = make_part(1, name="A", sku="A-1", stock_level=1)
    a2 = make_part(2, name="A", sku="A-1", stock_level=1)
    b1 = make_part(3, name="B", sku="B-1", stock_level=2)
    make_part(4, name="B", sku="B-1", stock_level=2)

    store = FlakyDeleteStore(db)
    result = build_service(db, audit_log_service, store=store).compact(ORG)

    assert result.errors == 1
    assert result.failed_groups == [a1.id]
    assert result.groups_processed == 1

    # 失败分组整体回滚：survivor 库存未被改动，重复项仍在
    assert db.get(Part, a1.id).stock_level == 1
    assert db.get(Part, a2.id) is not None
    assert db.get(Part, b1.id).stock_level == 4
    assert db.query(Part).count() == 3

    audited = {log.entity_id for log in db.query(AuditLog).all()}
    assert a1.id not in audited
    assert a2.id not in audited


def test_compaction_is_scoped_to_one_organization(db, audit_log_service, make_part):
    make_part(1, organization_id=OTHER_ORG, sku="SKU-1")
    make_part(2, organization_id=OTHER_ORG, sku="SKU-1")

    result = build_service(db, audit_log_service).compact(ORG)

    assert result.groups_processed == 0
    assert db.query(Part).count() == 2


def test_partition_claims_every_sku(make_part):
    single = make_part(1, name="Bolt", sku="B-1")
    plain = make_part(2, name="Bolt")
    dup_1 = make_part(3, name="Nut", sku="N-1")
    dup_2 = make_part(4, name="Nut", sku=" N-1")

    groups = partition_duplicate_groups([single, plain, dup_1, dup_2])

    assert len(groups) == 1
    assert groups[0].tier == MatchTier.sku
    assert groups[0].primary is dup_1
    assert groups[0].duplicates == [dup_2]
