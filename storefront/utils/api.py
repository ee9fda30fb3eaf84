# --- storefront/utils/api.py ---
from flask import jsonify, current_app

from ..extensions import db
from ..services.errors import StoreError


def api_ok(**payload):
    return {"ok": True, **payload}


def api_error(message, reason=None, **extra):
    body = {"ok": False, "error": message}
    if reason:
        body["reason"] = reason
    body.update(extra)
    return body


def ok(http_status=200, **payload):
    # payload keys are body fields; "status" may be one of them
    r = jsonify(api_ok(**payload)); r.status_code = http_status; return r


def err(message, http_status=400, reason=None, **extra):
    r = jsonify(api_error(message, reason, **extra)); r.status_code = http_status; return r


def no_store(resp):
    resp.headers["Cache-Control"] = "no-store"
    return resp


def register_error_handlers(app):
    @app.errorhandler(StoreError)
    def handle_store_error(e):
        db.session.rollback()
        current_app.logger.info("request rejected: %s (%s)", e.reason, e.message)
        return no_store(err(e.message, e.status, e.reason))

    @app.errorhandler(ValueError)
    def handle_value_error(e):
        return err(str(e), 422, "INVALID_REQUEST")
