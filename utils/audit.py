import json
from flask import request, has_request_context
from models import db
from models.audit_log import AUDIT_ACTORS, AuditLog


def log_event(action: str, actor="customer", entity=None, entity_id=None, metadata=None):
    if actor not in AUDIT_ACTORS:
        raise ValueError(f"Unknown audit actor {actor!r}")

    ip = None
    user_agent = None
    # scheduler sweeps run without a request
    if has_request_context():
        ip = request.headers.get("X-Forwarded-For", request.remote_addr)
        user_agent = request.headers.get("User-Agent", "")

    db.session.add(AuditLog(
        actor=actor,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
    ))
    db.session.commit()


def serialize_audit_row(row) -> dict:
    return {
        "id": row.id,
        "timestamp": row.timestamp.isoformat() if row.timestamp else None,
        "actor": row.actor,
        "action": row.action,
        "entity": row.entity,
        "entity_id": row.entity_id,
        "ip": row.ip,
        "metadata": json.loads(row.metadata_json) if row.metadata_json else None,
    }
