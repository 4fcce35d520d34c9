# Overview: Request decorators for store-scoped API routes.

from functools import wraps
from flask import jsonify

from .services.tenant_service import TenantAccessError, require_store


def store_scoped(f):
    """
    Resolve the <store_id> path segment before the view runs.

    Unknown stores get a 404 so the route never sees an invalid tenant.
    The view still receives the plain store_id and passes it explicitly
    to every service call.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            require_store(kwargs["store_id"])
        except TenantAccessError as exc:
            return jsonify({"error": str(exc)}), 404
        return f(*args, **kwargs)

    return decorated_function
