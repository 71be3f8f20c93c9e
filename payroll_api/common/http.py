# payroll_api/common/http.py
from flask import jsonify


def ok(data=None, status=200, **meta):
    """Success envelope; list endpoints pass paging info through **meta."""
    body = {"success": True, "data": data}
    if meta:
        body["meta"] = meta
    return jsonify(body), status


def created(data):
    return ok(data, 201)


def fail(message="Bad Request", status=400, code=None, detail=None):
    error = {"message": message, "code": code or "ERROR"}
    if detail is not None:
        error["detail"] = detail
    return jsonify({"success": False, "error": error}), status
