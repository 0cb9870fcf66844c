# import_parts.py
# 从导出文件（csv / xlsx）批量导入 Part，重复的 Part 自动合并
import argparse
import os

from dotenv import load_dotenv

from parts_engine.db.auto_init import auto_init
from parts_engine.db.session import get_session
from parts_engine.logger import get_logger
from parts_engine.services.audit_log_service import AuditLogService
from parts_engine.services.batch_import_service import BatchImportService
from parts_engine.services.part_file_ingest_service import PartFileIngestService
from parts_engine.services.part_service import PartService

logger = get_logger("parts_engine")


def import_parts(organization_id: str, path: str) -> None:
    db = get_session()
    try:
        audit_log_service = AuditLogService(db)
        part_service = PartService(db, audit_log_service)
        ingest_service = PartFileIngestService(db, BatchImportService(db, part_service))

        result = ingest_service.ingest(storage_path=path, organization_id=organization_id)
        db.commit()

        logger.info(
            "Imported %s: %s created, %s merged, %s failed (total %s)",
            path, result.created, result.merged, len(result.failures), result.total,
        )
        for failure in result.failures:
            logger.warning("Row %s (%s) failed: %s", failure.index, failure.name, failure.message)

    except Exception:
        db.rollback()
        logger.exception("Import failed: %s", path)
        raise
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Import parts from a CSV / Excel export")
    parser.add_argument("organization_id")
    parser.add_argument("path")
    args = parser.parse_args()

    load_dotenv()
    os.environ.setdefault("DATABASE_URL", "sqlite:///./parts_engine.db")
    auto_init()
    import_parts(args.organization_id, args.path)


if __name__ == "__main__":
    main()
