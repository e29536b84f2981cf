import json
from decimal import Decimal
from typing import Any, Dict

from aiohttp import web

from .errors import ErrorCode


def _json_default(value: Any):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if hasattr(value, "to_json_dict"):
        return value.to_json_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def json_dumps(obj: Any) -> str:
    return json.dumps(obj, default=_json_default)


def obj_to_response(obj: Any) -> web.Response:
    return web.json_response(obj, dumps=json_dumps)


def error_dict(code: ErrorCode, message: str) -> Dict[str, Any]:
    return {"error_code": int(code), "error_message": message}


def error_response(code: ErrorCode, message: str, status: int = 200) -> web.Response:
    return web.json_response(error_dict(code, message), status=status)
