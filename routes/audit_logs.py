from flask import Blueprint, jsonify, request

from models.audit_log import AuditLog
from security.rbac import require_owner
from utils.audit import serialize_audit_row

audit_bp = Blueprint("audit", __name__)


@audit_bp.get("/audit-logs")
@require_owner
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))

    q = AuditLog.query
    if request.args.get("action"):
        q = q.filter(AuditLog.action == request.args["action"])
    if request.args.get("actor"):
        q = q.filter(AuditLog.actor == request.args["actor"])

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([serialize_audit_row(r) for r in rows]), 200


@audit_bp.get("/bookings/<int:booking_id>/history")
@require_owner
def booking_history(booking_id: int):
    rows = (
        AuditLog.query
        .filter_by(entity="booking", entity_id=str(booking_id))
        .order_by(AuditLog.timestamp.asc(), AuditLog.id.asc())
        .all()
    )
    return jsonify([serialize_audit_row(r) for r in rows]), 200
