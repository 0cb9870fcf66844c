# parts_engine/services/part_file_ingest_service.py
import logging
import math
import os
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from parts_engine.errors import FileIngestError
from parts_engine.models.supplier import Supplier
from parts_engine.services.batch_import_service import BatchImportResult, BatchImportService
from parts_engine.services.part_service import SYSTEM_OPERATOR

logger = logging.getLogger(__name__)

# 导出文件列名 -> PartInput 字段
COLUMN_MAP = {
    "Name": "name",
    "Description": "description",
    "Part Numbers": "sku",
    "Quantity in Stock": "stock_level",
    "Minimum Quantity": "reorder_point",
    "ID": "legacy_id",
    "Location": "location",
    "QR/Bar code": "barcode",
    "Unit Cost": "unit_cost",
    "Total Cost": "total_cost",
}
REQUIRED_COLUMNS = ["Name"]
SUPPLIER_COLUMN = "Vendors"
INTEGER_FIELDS = {"stock_level", "reorder_point"}


class PartFileIngestService:
    """
    Parse a parts export (.csv / .xlsx / .xls) and hand the rows to the batch importer.

    Responsibility:
    - Read the file
    - Check column structure
    - Map export columns to PartInput fields, resolve Vendors -> supplier_id
    - Run BatchImportService (per-row isolation happens there)

    A file that cannot be read or lacks required columns imports nothing.
    """

    def __init__(self, db: Session, batch_import_service: BatchImportService):
        self.db = db
        self.batch_import_service = batch_import_service

    def ingest(
        self,
        *,
        storage_path: str,
        organization_id: str,
        operator_id: str = SYSTEM_OPERATOR,
        original_name: Optional[str] = None,
    ) -> BatchImportResult:
        '''
        解析文件并批量导入

        :param storage_path: 文件路径
        :type storage_path: str
        :param organization_id: 目标组织
        :type organization_id: str
        :param original_name: 原始文件名（用于判断格式），默认取 storage_path
        :return: 批量导入结果
        :rtype: BatchImportResult
        '''
        df = self._load_table(storage_path, original_name or storage_path)
        self._check_columns(df)

        rows = self._rows_to_inputs(df, organization_id)
        logger.info("[parts] df rows=%s file=%s org=%s", len(df), original_name or storage_path, organization_id)

        return self.batch_import_service.import_batch(
            rows,
            organization_id=organization_id,
            operator_id=operator_id,
        )

    def _load_table(self, storage_path: str, file_name: str) -> pd.DataFrame:
        """
        Load CSV / Excel into DataFrame.
        """
        ext = os.path.splitext(file_name)[1].lower()
        try:
            if ext == ".csv":
                return pd.read_csv(storage_path, dtype=str, keep_default_na=False, na_values=[""])
            if ext in (".xlsx", ".xls"):
                return pd.read_excel(storage_path, dtype=str)
        except Exception as e:
            raise FileIngestError(f"Failed to read parts file: {e}")
        raise FileIngestError(f"Unsupported file type: {ext or file_name}")

    def _check_columns(self, df: pd.DataFrame) -> None:
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise FileIngestError(f"Missing required columns: {missing}")

    def _rows_to_inputs(self, df: pd.DataFrame, organization_id: str) -> List[Dict[str, Any]]:
        suppliers = self._supplier_lookup(organization_id)
        rows: List[Dict[str, Any]] = []

        for _, row in df.iterrows():
            record: Dict[str, Any] = {"organization_id": organization_id}
            for column, field in COLUMN_MAP.items():
                if column not in df.columns:
                    continue
                value = self._clean(row.get(column))
                if value is None:
                    continue
                if field in INTEGER_FIELDS:
                    value = self._to_int(value)
                record[field] = value

            vendor = self._clean(row.get(SUPPLIER_COLUMN)) if SUPPLIER_COLUMN in df.columns else None
            if vendor is not None and vendor in suppliers:
                record["supplier_id"] = suppliers[vendor]

            rows.append(record)
        return rows

    def _supplier_lookup(self, organization_id: str) -> Dict[str, str]:
        suppliers = self.db.query(Supplier).filter(Supplier.organization_id == organization_id).all()
        return {s.name: s.id for s in suppliers}

    def _clean(self, value: Any) -> Optional[str]:
        # 空单元格 / NaN 视为缺失
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return None
        text = str(value).strip()
        return text or None

    def _to_int(self, value: str) -> Any:
        # "5" / "5.0" -> 5；小数、inf、无法解析的值原样交给 PartInput 校验（该行单独失败）
        try:
            number = float(value)
        except ValueError:
            return value
        return int(number) if number.is_integer() else value
