from flask import jsonify

from gigmarket.utils.exceptions import ConflictError


def success_response(payload=None, message=None, status=200):
    resp = {"success": True}
    if payload is not None:
        resp.update(payload if isinstance(payload, dict) else {"data": payload})
    if message:
        resp["message"] = message
    return jsonify(resp), status

def error_response(code, message, details=None, status=400):
    err = {
        "error": {
            "code": code,
            "message": message,
            "details": details or {}
        }
    }
    return jsonify(err), status

def service_error_response(exc):
    return error_response(exc.code, exc.message, exc.details, status=exc.status)

def rejection_response(error):
    """
    Render a lifecycle rejection. A conflict means another session already
    did it, so the caller gets a no-op success and should just refresh.
    """
    if isinstance(error, ConflictError):
        return jsonify({
            "success": True,
            "noop": True,
            "code": error.code,
            "message": error.message,
        }), 200
    return service_error_response(error)
