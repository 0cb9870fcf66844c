from typing import List

from pydantic import BaseModel

from parts_engine.services.duplicate_cleanup_service import CompactionResult


class CompactionResultDTO(BaseModel):
    groups_processed: int
    parts_merged: int
    parts_deleted: int
    errors: int
    failed_groups: List[str]

    @classmethod
    def from_domain_model(cls, result: CompactionResult) -> "CompactionResultDTO":
        return cls(
            groups_processed=result.groups_processed,
            parts_merged=result.parts_merged,
            parts_deleted=result.parts_deleted,
            errors=result.errors,
            failed_groups=list(result.failed_groups),
        )
