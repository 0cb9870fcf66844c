import pytest

from parts_engine.errors import ErrorType, FileIngestError
from parts_engine.models.part import Part
from parts_engine.models.supplier import Supplier
from parts_engine.services.batch_import_service import BatchImportService
from parts_engine.services.part_file_ingest_service import PartFileIngestService
from parts_engine.tests.conftest import ORG

EXPORT_CSV = (
    "ID,Name,Description,Part Numbers,Quantity in Stock,Minimum Quantity,Location,Vendors,Unit Cost\n"
    "101,Filter A,Oil filter,SKU-1,5,2,Shelf 1,Acme,12.5\n"
    "102,Filter B,,SKU-2,1,,Shelf 2,Unknown Co,\n"
    "103,Filter A again,Oil filter,SKU-1,3,4,,,\n"
)


def build_ingest(db, part_service):
    return PartFileIngestService(db, BatchImportService(db, part_service))


def test_csv_export_is_imported_and_deduplicated(db, part_service, tmp_path):
    acme = Supplier(organization_id=ORG, name="Acme")
    db.add(acme)
    db.flush()
    path = tmp_path / "parts.csv"
    path.write_text(EXPORT_CSV, encoding="utf-8")

    result = build_ingest(db, part_service).ingest(storage_path=str(path), organization_id=ORG)

    assert (result.total, result.created, result.merged) == (3, 2, 1)
    assert result.failures == []

    filter_a = db.query(Part).filter(Part.sku == "SKU-1").one()
    assert filter_a.legacy_id == "101"
    assert filter_a.stock_level == 8
    assert filter_a.reorder_point == 4
    assert filter_a.unit_cost == 12.5
    assert filter_a.location == "Shelf 1"
    assert filter_a.supplier_id == acme.id

    filter_b = db.query(Part).filter(Part.sku == "SKU-2").one()
    assert filter_b.description is None
    assert filter_b.reorder_point == 0
    assert filter_b.supplier_id is None


def test_bad_row_fails_alone(db, part_service, tmp_path):
    path = tmp_path / "parts.csv"
    path.write_text("Name,Quantity in Stock\nBolt,many\nNut,4\n", encoding="utf-8")

    result = build_ingest(db, part_service).ingest(storage_path=str(path), organization_id=ORG)

    assert result.created == 1
    assert [f.name for f in result.failures] == ["Bolt"]


def test_missing_name_column_imports_nothing(db, part_service, tmp_path):
    path = tmp_path / "parts.csv"
    path.write_text("Part Numbers,Quantity in Stock\nSKU-1,5\n", encoding="utf-8")

    with pytest.raises(FileIngestError):
        build_ingest(db, part_service).ingest(storage_path=str(path), organization_id=ORG)
    assert db.query(Part).count() == 0


def test_unsupported_extension_is_rejected(db, part_service, tmp_path):
    path = tmp_path / "parts.txt"
    path.write_text("Name\nBolt\n", encoding="utf-8")

    with pytest.raises(FileIngestError):
        build_ingest(db, part_service).ingest(storage_path=str(path), organization_id=ORG)


def test_xlsx_export_is_read(db, part_service, tmp_path):
    import pandas as pd

    path = tmp_path / "parts.xlsx"
    pd.DataFrame(
        {"Name": ["Gasket", "Gasket"], "Part Numbers": ["G-1", "G-1"], "Quantity in Stock": [2, 3]}
    ).to_excel(path, index=False)

    result = build_ingest(db, part_service).ingest(storage_path=str(path), organization_id=ORG)

    assert (result.created, result.merged) == (1, 1)
    assert db.query(Part).one().stock_level == 5


def test_fractional_quantity_is_rejected_not_truncated(db, part_service, tmp_path):
    path = tmp_path / "parts.csv"
    path.write_text("Name,Quantity in Stock\nBolt,2.7\nNut,3.0\n", encoding="utf-8")

    result = build_ingest(db, part_service).ingest(storage_path=str(path), organization_id=ORG)

    assert [f.name for f in result.failures] == ["Bolt"]
    assert db.query(Part).one().stock_level == 3


def test_infinite_quantity_fails_only_its_row(db, part_service, tmp_path):
    path = tmp_path / "parts.csv"
    path.write_text("Name,Quantity in Stock\nNut,1\nWasher,inf\nSpring,1e400\n", encoding="utf-8")

    result = build_ingest(db, part_service).ingest(storage_path=str(path), organization_id=ORG)

    assert result.created == 1
    assert [f.name for f in result.failures] == ["Washer", "Spring"]
    assert all(f.error_type == ErrorType.INPUT_ERROR for f in result.failures)
