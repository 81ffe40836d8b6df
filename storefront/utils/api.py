# --- storefront/utils/api.py ---
from datetime import datetime, timedelta, timezone

from flask import jsonify, request

from ..messages import pick_language, translate

IST = timezone(timedelta(hours=5, minutes=30))


def _api_time():
    return datetime.now(IST).strftime("%Y-%m-%d %H:%M:%S")


def api_ok(message, data=None):
    return {
        "status": True,
        "message": message,
        "data": {
            **(data or {}),
            "API_TIME_HUMAN": _api_time(),
        },
    }

def api_error(message, data=None):
    return {
        "status": False,
        "message": message,
        "data": {
            **(data or {}),
            "API_TIME_HUMAN": _api_time(),
        },
    }


# ---- standard API response format ------------------------------------------
def request_language():
    return pick_language(request.headers.get("Accept-Language"))

def msg(code, **params):
    return translate(code, request_language(), **params)

def ok(message, data=None, status=200):
    r = jsonify(api_ok(message, data)); r.status_code = status; return r

def err(message, status=400, data=None):
    r = jsonify(api_error(message, data)); r.status_code = status; return r

def body():
    return request.get_json(silent=True) or {}
