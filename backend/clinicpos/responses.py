from __future__ import annotations

from typing import Any

from flask import jsonify, request


def ok(data: Any = None, message: str | None = None, status: int = 200):
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return jsonify(body), status


def paginated(items: list, pagination: dict):
    return jsonify({"success": True, "data": items, "pagination": pagination}), 200


def request_payload() -> dict:
    """JSON body, or the form fields of a multipart/form-data post."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def flag_arg(name: str) -> bool:
    return request.args.get(name, "false").strip().lower() in ("1", "true", "yes")
