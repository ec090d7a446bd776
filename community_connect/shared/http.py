"""
Small request/response helpers used by every blueprint.
"""

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, jsonify, request

from community_connect.shared.schemas import ValidationError


def json_body() -> Dict[str, Any]:
    """The request's JSON object, or {} for a missing or non-object body."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def validation_error(error: ValidationError) -> Tuple[Response, int]:
    return jsonify(error.to_dict()), 400


def add_request_logging(bp: Blueprint, label: str) -> None:
    """
    Log every request method/path and the response status for `bp`.

    Headers and bodies are left out: they carry the session cookie and
    passwords.
    """

    @bp.before_request
    def before_request() -> None:
        logging.info(f"[{label}] Incoming {request.method} {request.path}")

    @bp.after_request
    def after_request(response: Response) -> Response:
        logging.info(f"[{label}] Response {response.status}")
        return response
