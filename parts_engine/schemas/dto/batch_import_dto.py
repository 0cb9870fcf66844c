from typing import List, Optional

from pydantic import BaseModel

from parts_engine.schemas.dto.part_dto import PartDTO
from parts_engine.services.batch_import_service import BatchImportResult, ImportDetail, ImportFailure


class ImportDetailDTO(BaseModel):
    index: int
    action: str  # "created" | "merged"
    matched_by: Optional[str]  # "sku" | "legacy_id" | "name_description"
    part: PartDTO


class ImportFailureDTO(BaseModel):
    index: int
    name: Optional[str]
    sku: Optional[str]
    error_type: str
    message: str


class BatchImportResultDTO(BaseModel):
    created: int
    merged: int
    failed: int
    total: int
    details: List[ImportDetailDTO]
    failures: List[ImportFailureDTO]

    @classmethod
    def from_domain_model(cls, result: BatchImportResult) -> "BatchImportResultDTO":

        def convert_detail(detail: ImportDetail):
            return ImportDetailDTO(
                index=detail.index,
                action=detail.action.value,
                matched_by=detail.tier.value if detail.tier else None,
                part=PartDTO.from_orm_model(detail.part),
            )

        def convert_failure(failure: ImportFailure):
            return ImportFailureDTO(
                index=failure.index,
                name=failure.name,
                sku=failure.sku,
                error_type=failure.error_type.value,
                message=failure.message,
            )

        return cls(
            created=result.created,
            merged=result.merged,
            failed=len(result.failures),
            total=result.total,
            details=[convert_detail(d) for d in result.details],
            failures=[convert_failure(f) for f in result.failures],
        )
