# payroll_api/common/client.py
from flask import Request

LOCAL_ADDRESSES = {"::1", "127.0.0.1"}

# first match wins; order matters (android UAs also contain "linux")
_DEVICE_RULES = (
    ("android", "Android device"),
    ("iphone", "iPhone"),
    ("ipad", "iPad"),
    ("ipod", "iPod"),
    ("windows", "Windows device"),
    ("macintosh", "Mac device"),
    ("mac os x", "Mac device"),
    ("linux", "Linux device"),
    ("mobile", "Mobile device"),
    ("tablet", "Tablet device"),
)


def client_ip(req: Request) -> str:
    """
    Best-effort caller address:
    X-Forwarded-For (first hop) > X-Real-IP > CF-Connecting-IP > remote_addr.
    """
    forwarded = req.headers.get("X-Forwarded-For", "")
    ip = forwarded.split(",")[0].strip() if forwarded else ""
    if not ip:
        ip = (req.headers.get("X-Real-IP") or "").strip()
    if not ip:
        ip = (req.headers.get("CF-Connecting-IP") or "").strip()
    if not ip:
        ip = req.remote_addr or ""
    if ip in LOCAL_ADDRESSES:
        return "local"
    return ip


def device_from_user_agent(user_agent: str | None) -> str:
    if not user_agent:
        return "Unknown device"
    low = user_agent.lower()
    for needle, label in _DEVICE_RULES:
        if needle in low:
            return label
    return "Unknown device"


def capture_metadata(req: Request, body: dict | None = None) -> dict:
    """Signature capture metadata; values supplied in the body take precedence."""
    body = body or {}
    ua = body.get("user_agent") or req.headers.get("User-Agent") or ""
    return {
        "ip_address": body.get("ip_address") or client_ip(req),
        "user_agent": ua,
        "device_info": body.get("device_info") or device_from_user_agent(ua),
    }
