# parts_engine/routes/parts.py
import logging
import os
import tempfile
import time

from flask import Blueprint, current_app, jsonify, request, session
from werkzeug.utils import secure_filename

from parts_engine.db.session import get_session
from parts_engine.errors import ErrorType, classify_error
from parts_engine.schemas.dto.batch_import_dto import BatchImportResultDTO
from parts_engine.schemas.dto.compaction_dto import CompactionResultDTO
from parts_engine.schemas.dto.part_dto import PartDTO
from parts_engine.schemas.part_schemas import PartInput
from parts_engine.services.audit_log_service import AuditLogService
from parts_engine.services.batch_import_service import BatchImportService
from parts_engine.services.duplicate_cleanup_service import DuplicateCleanupService
from parts_engine.services.part_file_ingest_service import PartFileIngestService
from parts_engine.services.part_service import PartService, SYSTEM_OPERATOR

logger = logging.getLogger(__name__)

parts_bp = Blueprint('parts', __name__, url_prefix='/parts')

STATUS_BY_ERROR_TYPE = {
    ErrorType.INPUT_ERROR: 400,
    ErrorType.NOT_FOUND: 404,
    ErrorType.BUSINESS_RULE_ERROR: 409,
    ErrorType.DATABASE_ERROR: 500,
    ErrorType.SYSTEM_ERROR: 500,
}

ALLOWED_EXTENSIONS = {'csv', 'xlsx', 'xls'}


def require_organization():
    """检查会话中的组织"""
    if not session.get('organization_id'):
        return None, (jsonify({'error': 'Organization ID required', 'error_type': ErrorType.INPUT_ERROR.value}), 400)
    return str(session['organization_id']), None


def current_operator() -> str:
    return str(session.get('user_id') or SYSTEM_OPERATOR)


def error_response(e: Exception, action: str):
    error_type, msg = classify_error(e)
    status = STATUS_BY_ERROR_TYPE[error_type]
    if status >= 500:
        logger.exception("Error %s", action)
        msg = f"Failed to {action}"
    return jsonify({'error': msg, 'error_type': error_type.value}), status


def build_part_service(db) -> PartService:
    return PartService(db, AuditLogService(db))


def allowed_file(filename):
    """检查文件扩展名"""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


@parts_bp.route('', methods=['GET'])
def list_parts():
    organization_id, denied = require_organization()
    if denied:
        return denied

    db = get_session()
    try:
        parts = build_part_service(db).list_parts(organization_id)
        return jsonify([PartDTO.from_orm_model(p).model_dump(mode='json') for p in parts])
    except Exception as e:
        return error_response(e, 'fetch parts')
    finally:
        db.close()


@parts_bp.route('/low-stock', methods=['GET'])
def list_low_stock_parts():
    organization_id, denied = require_organization()
    if denied:
        return denied

    db = get_session()
    try:
        parts = build_part_service(db).list_low_stock_parts(organization_id)
        return jsonify([PartDTO.from_orm_model(p).model_dump(mode='json') for p in parts])
    except Exception as e:
        return error_response(e, 'fetch low stock parts')
    finally:
        db.close()


@parts_bp.route('/activity', methods=['GET'])
def recent_activity():
    organization_id, denied = require_organization()
    if denied:
        return denied

    limit = request.args.get('limit', 10, type=int)
    db = get_session()
    try:
        parts = build_part_service(db).list_recent_activity(organization_id, limit=limit)
        return jsonify([PartDTO.from_orm_model(p).model_dump(mode='json') for p in parts])
    except Exception as e:
        return error_response(e, 'fetch recent activity')
    finally:
        db.close()


@parts_bp.route('/<part_id>', methods=['GET'])
def get_part(part_id):
    organization_id, denied = require_organization()
    if denied:
        return denied

    db = get_session()
    try:
        part = build_part_service(db).get_part(part_id, organization_id)
        return jsonify(PartDTO.from_orm_model(part).model_dump(mode='json'))
    except Exception as e:
        return error_response(e, 'fetch part')
    finally:
        db.close()


@parts_bp.route('', methods=['POST'])
def create_part():
    """新建 Part；若已存在相同 Part 则合并"""
    organization_id, denied = require_organization()
    if denied:
        return denied

    db = get_session()
    try:
        payload = dict(request.get_json(silent=True) or {})
        payload.pop('organizationId', None)
        payload['organization_id'] = organization_id  # 组织永远取自会话
        data = PartInput.model_validate(payload)

        part = build_part_service(db).create_part(data, operator_id=current_operator())
        db.commit()
        return jsonify(PartDTO.from_orm_model(part).model_dump(mode='json')), 201
    except Exception as e:
        db.rollback()
        return error_response(e, 'create part')
    finally:
        db.close()


@parts_bp.route('/batch', methods=['POST'])
def batch_create_or_merge():
    organization_id, denied = require_organization()
    if denied:
        return denied

    body = request.get_json(silent=True)
    items = body.get('parts') if isinstance(body, dict) else body
    if not isinstance(items, list):
        return jsonify({'error': 'Request body must be a list of parts', 'error_type': ErrorType.INPUT_ERROR.value}), 400

    db = get_session()
    try:
        part_service = build_part_service(db)
        result = BatchImportService(db, part_service).import_batch(
            items,
            organization_id=organization_id,
            operator_id=current_operator(),
        )
        db.commit()
        return jsonify(BatchImportResultDTO.from_domain_model(result).model_dump(mode='json'))
    except Exception as e:
        db.rollback()
        return error_response(e, 'process batch')
    finally:
        db.close()


@parts_bp.route('/import', methods=['POST'])
def import_parts_file():
    """上传导出文件（csv / xlsx / xls）并批量导入"""
    organization_id, denied = require_organization()
    if denied:
        return denied

    file = request.files.get('file')
    if file is None or not file.filename:
        return jsonify({'error': 'No file uploaded', 'error_type': ErrorType.INPUT_ERROR.value}), 400
    if not allowed_file(file.filename):
        return jsonify({'error': 'Only .csv, .xlsx and .xls files are supported', 'error_type': ErrorType.INPUT_ERROR.value}), 400

    filename = secure_filename(file.filename)
    upload_dir = current_app.config.get('UPLOAD_FOLDER') or tempfile.gettempdir()
    os.makedirs(upload_dir, exist_ok=True)
    timestamp = str(int(time.time() * 1000))
    file_path = os.path.join(upload_dir, f"{organization_id}_{timestamp}_{filename}")
    file.save(file_path)

    db = get_session()
    try:
        part_service = build_part_service(db)
        ingest_service = PartFileIngestService(db, BatchImportService(db, part_service))
        result = ingest_service.ingest(
            storage_path=file_path,
            organization_id=organization_id,
            operator_id=current_operator(),
            original_name=filename,
        )
        db.commit()
        return jsonify(BatchImportResultDTO.from_domain_model(result).model_dump(mode='json'))
    except Exception as e:
        db.rollback()
        return error_response(e, 'import parts file')
    finally:
        db.close()
        # 导入完成后不再需要上传的文件
        if os.path.exists(file_path):
            os.remove(file_path)


@parts_bp.route('/cleanup-duplicates', methods=['POST'])
def cleanup_duplicates():
    """管理员维护操作：合并组织内所有重复 Part"""
    organization_id, denied = require_organization()
    if denied:
        return denied

    db = get_session()
    try:
        audit_log_service = AuditLogService(db)
        part_service = PartService(db, audit_log_service)
        result = DuplicateCleanupService(db, audit_log_service, part_service).compact(
            organization_id,
            operator_id=current_operator(),
        )
        db.commit()
        return jsonify(CompactionResultDTO.from_domain_model(result).model_dump(mode='json'))
    except Exception as e:
        db.rollback()
        return error_response(e, 'clean up duplicates')
    finally:
        db.close()


@parts_bp.route('/<part_id>', methods=['PUT'])
def update_part(part_id):
    organization_id, denied = require_organization()
    if denied:
        return denied

    db = get_session()
    try:
        part = build_part_service(db).update_part(
            part_id=part_id,
            organization_id=organization_id,
            updates=request.get_json(silent=True) or {},
            operator_id=current_operator(),
        )
        db.commit()
        return jsonify(PartDTO.from_orm_model(part).model_dump(mode='json'))
    except Exception as e:
        db.rollback()
        return error_response(e, 'update part')
    finally:
        db.close()


@parts_bp.route('/<part_id>/stock', methods=['PATCH'])
def update_stock_level(part_id):
    organization_id, denied = require_organization()
    if denied:
        return denied

    body = request.get_json(silent=True) or {}
    quantity = body.get('quantity')
    if not isinstance(quantity, int) or isinstance(quantity, bool):
        return jsonify({'error': 'quantity must be an integer', 'error_type': ErrorType.INPUT_ERROR.value}), 400

    db = get_session()
    try:
        part = build_part_service(db).update_stock_level(
            part_id=part_id,
            organization_id=organization_id,
            quantity=quantity,
            operator_id=current_operator(),
        )
        db.commit()
        return jsonify(PartDTO.from_orm_model(part).model_dump(mode='json'))
    except Exception as e:
        db.rollback()
        return error_response(e, 'update stock level')
    finally:
        db.close()


@parts_bp.route('/<part_id>', methods=['DELETE'])
def delete_part(part_id):
    organization_id, denied = require_organization()
    if denied:
        return denied

    db = get_session()
    try:
        build_part_service(db).delete_part(
            part_id=part_id,
            organization_id=organization_id,
            operator_id=current_operator(),
        )
        db.commit()
        return '', 204
    except Exception as e:
        db.rollback()
        return error_response(e, 'delete part')
    finally:
        db.close()
