"""
Model Utilities

Identifier/code generators and the small generic query helpers used by the
resource handlers.
"""

import secrets
import uuid


def generate_uuid():
    """Generate a string UUID primary key"""
    return str(uuid.uuid4())


def generate_verification_code():
    """Generate a 6-digit numeric one-time code"""
    return str(100000 + secrets.randbelow(900000))


def generate_card_token():
    """Generate an opaque card token reference"""
    return 'token_' + secrets.token_urlsafe(16)


def get_or_none(model, record_id, **filters):
    """Fetch a row by primary key, optionally constrained by extra column filters."""
    if record_id is None:
        return None
    query = model.query.filter_by(id=str(record_id), **filters)
    return query.first()


def apply_updates(record, data, allowed_fields):
    """Copy whitelisted keys from `data` onto `record`. Returns the changed field names."""
    changed = []
    for field in allowed_fields:
        if field in data:
            setattr(record, field, data[field])
            changed.append(field)
    return changed


def paginate_query(query, limit=10, offset=0, max_limit=100):
    """Apply bounded limit/offset to a query and return (rows, total)."""
    total = query.order_by(None).count()
    limit = max(1, min(int(limit), max_limit))
    offset = max(0, int(offset))
    return query.limit(limit).offset(offset).all(), total
