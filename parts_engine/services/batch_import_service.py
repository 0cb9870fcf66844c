# parts_engine/services/batch_import_service.py
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Union

from sqlalchemy.orm import Session

from parts_engine.db.enums import MatchTier, MergeAction
from parts_engine.errors import ErrorType, classify_error
from parts_engine.models.part import Part
from parts_engine.schemas.part_schemas import PartInput
from parts_engine.services.part_service import PartService, SYSTEM_OPERATOR

logger = logging.getLogger(__name__)


@dataclass
class ImportDetail:
    index: int
    action: MergeAction
    part: Part
    tier: Optional[MatchTier] = None


@dataclass
class ImportFailure:
    index: int
    name: Optional[str]
    sku: Optional[str]
    error_type: ErrorType
    message: str


@dataclass
class BatchImportResult:
    total: int
    created: int = 0
    merged: int = 0
    details: List[ImportDetail] = field(default_factory=list)
    failures: List[ImportFailure] = field(default_factory=list)

    def add(self, outcome: Union[ImportDetail, ImportFailure]) -> None:
        if isinstance(outcome, ImportFailure):
            self.failures.append(outcome)
            return
        if outcome.action == MergeAction.created:
            self.created += 1
        else:
            self.merged += 1
        self.details.append(outcome)


class BatchImportService:
    """
    Apply create-or-merge to a sequence of incoming parts, in order.

    Each item runs inside its own SAVEPOINT: a failing item is rolled back alone,
    logged, reported in `failures`, and the batch moves on. Items that already
    succeeded are never undone. Item N sees the effects of items 1..N-1.
    """

    def __init__(self, db: Session, part_service: PartService):
        self.db = db
        self.part_service = part_service

    def import_batch(
        self,
        inputs: Iterable[Union[PartInput, Mapping[str, Any]]],
        *,
        organization_id: Optional[str] = None,
        operator_id: str = SYSTEM_OPERATOR,
    ) -> BatchImportResult:
        '''
        批量查重导入

        :param inputs: 待导入的 Part（PartInput 或原始字典；字典在各自的隔离边界内校验）
        :param organization_id: 若提供，强制所有条目归属该组织
        :type organization_id: Optional[str]
        :param operator_id: 操作者ID
        :type operator_id: str
        :return: created / merged / total / details / failures
        :rtype: BatchImportResult
        '''
        items = list(inputs)
        result = BatchImportResult(total=len(items))

        for index, raw in enumerate(items):
            result.add(self._process_item(index, raw, organization_id, operator_id))

        logger.info(
            "Batch processing complete: %s created, %s merged, %s failed out of %s parts",
            result.created, result.merged, len(result.failures), result.total,
        )
        return result

    def _process_item(
        self,
        index: int,
        raw: Union[PartInput, Mapping[str, Any]],
        organization_id: Optional[str],
        operator_id: str,
    ) -> Union[ImportDetail, ImportFailure]:
        try:
            data = self._to_input(raw, organization_id)
            with self.db.begin_nested():
                outcome = self.part_service.upsert_part(data, operator_id=operator_id)
        except Exception as e:
            error_type, message = classify_error(e)
            name, sku = self._describe(raw)
            logger.exception("Error processing part #%s %s (SKU: %s): %s", index, name, sku, message)
            return ImportFailure(index=index, name=name, sku=sku, error_type=error_type, message=message)

        return ImportDetail(index=index, action=outcome.action, part=outcome.part, tier=outcome.tier)

    def _to_input(self, raw: Union[PartInput, Mapping[str, Any]], organization_id: Optional[str]) -> PartInput:
        if isinstance(raw, PartInput):
            if organization_id is not None and raw.organization_id != organization_id:
                return raw.model_copy(update={"organization_id": organization_id})
            return raw

        payload = dict(raw)
        if organization_id is not None:
            payload.pop("organizationId", None)
            payload["organization_id"] = organization_id
        return PartInput.model_validate(payload)

    def _describe(self, raw: Union[PartInput, Mapping[str, Any], Any]) -> tuple[Optional[str], Optional[str]]:
        if isinstance(raw, PartInput):
            return raw.name, raw.sku
        if isinstance(raw, Mapping):
            return raw.get("name"), raw.get("sku")
        return None, None
