# parts_engine/errors.py
from enum import Enum

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError


class ErrorType(str, Enum):
    '''
    执行过程中可能出现的问题的结构化分类

    INPUT_ERROR: 输入不符合要求（字段缺失、类型错误、文件无法解析）
    NOT_FOUND: 实体不存在，或不属于当前组织
    BUSINESS_RULE_ERROR: 操作违反业务规则（例如库存扣减为负）
    DATABASE_ERROR: 存储层失败（连接、约束冲突、超时等）
    SYSTEM_ERROR: 未分类异常
    '''
    INPUT_ERROR = "INPUT_ERROR"
    NOT_FOUND = "NOT_FOUND"
    BUSINESS_RULE_ERROR = "BUSINESS_RULE_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    SYSTEM_ERROR = "SYSTEM_ERROR"


class PartNotFoundError(ValueError):
    def __init__(self, part_id: str):
        super().__init__("Part not found or access denied")
        self.part_id = part_id


class InsufficientStockError(ValueError):
    pass


class FileIngestError(ValueError):
    pass


def classify_error(e: Exception) -> tuple[ErrorType, str]:
    """
    把 service 抛出的异常映射为 ErrorType。
    """
    msg = str(e)

    if isinstance(e, PartNotFoundError):
        return ErrorType.NOT_FOUND, msg
    if isinstance(e, InsufficientStockError):
        return ErrorType.BUSINESS_RULE_ERROR, msg
    if isinstance(e, ValidationError):
        return ErrorType.INPUT_ERROR, msg
    # --- DB/系统类 ---
    if isinstance(e, SQLAlchemyError):
        return ErrorType.DATABASE_ERROR, msg
    # 其余 ValueError 视为输入问题（文件格式、字段缺失等）
    if isinstance(e, ValueError):
        return ErrorType.INPUT_ERROR, msg

    return ErrorType.SYSTEM_ERROR, msg
