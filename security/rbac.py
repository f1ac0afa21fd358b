from functools import wraps

import bcrypt
from flask import current_app, jsonify, request


def hash_owner_key(plain_key: str, rounds: int = 12) -> str:
    """bcrypt hash for OWNER_KEY_HASH; see `flask hash-owner-key`."""
    if not isinstance(plain_key, str) or not plain_key:
        raise ValueError("Owner key must be a non-empty string")
    return bcrypt.hashpw(plain_key.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def is_owner() -> bool:
    """True when the request carries a valid owner key."""
    header = current_app.config.get("OWNER_KEY_HEADER", "X-Owner-Key")
    presented = request.headers.get(header)
    key_hash = current_app.config.get("OWNER_KEY_HASH")
    if not presented or not key_hash:
        return False
    try:
        return bcrypt.checkpw(presented.encode("utf-8"), key_hash.encode("utf-8"))
    except ValueError:
        # malformed hash in config
        current_app.logger.error("OWNER_KEY_HASH is not a valid bcrypt hash")
        return False


def require_owner(fn):
    """
    Usage: @require_owner
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        header = current_app.config.get("OWNER_KEY_HEADER", "X-Owner-Key")
        if not request.headers.get(header):
            return jsonify(error="Authentication required"), 401
        if not is_owner():
            return jsonify(error="Forbidden"), 403
        return fn(*args, **kwargs)
    return wrapper
