from flask import Blueprint, request

from payroll_api.common.client import client_ip, device_from_user_agent
from payroll_api.common.http import ok

bp = Blueprint("client_info", __name__, url_prefix="/api/v1")


@bp.get("/client-ip")
def client_info():
    ua = request.headers.get("User-Agent") or ""
    return ok({
        "ip": client_ip(request),
        "user_agent": ua,
        "device_info": device_from_user_agent(ua),
    })
