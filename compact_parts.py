# compact_parts.py
# 管理员维护脚本：合并一个组织内的所有重复 Part
import argparse
import os

from dotenv import load_dotenv

from parts_engine.db.session import get_session
from parts_engine.logger import get_logger
from parts_engine.services.audit_log_service import AuditLogService
from parts_engine.services.duplicate_cleanup_service import DuplicateCleanupService
from parts_engine.services.part_service import PartService

logger = get_logger("parts_engine")


def compact(organization_id: str) -> None:
    db = get_session()
    try:
        audit_log_service = AuditLogService(db)
        part_service = PartService(db, audit_log_service)
        cleanup_service = DuplicateCleanupService(db, audit_log_service, part_service)

        result = cleanup_service.compact(organization_id)
        db.commit()

        logger.info(
            "Compaction finished for %s: %s groups, %s parts removed, %s errors",
            organization_id, result.groups_processed, result.parts_deleted, result.errors,
        )
    except Exception:
        db.rollback()
        logger.exception("Compaction failed for %s", organization_id)
        raise
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Merge duplicate parts of one organization")
    parser.add_argument("organization_id")
    args = parser.parse_args()

    load_dotenv()
    os.environ.setdefault("DATABASE_URL", "sqlite:///./parts_engine.db")
    compact(args.organization_id)


if __name__ == "__main__":
    main()
