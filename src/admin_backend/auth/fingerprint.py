"""
Client fingerprint recorded with every session.
"""

import ipaddress
from typing import Optional

from fastapi import Request
from pydantic import BaseModel
from user_agents import parse as parse_ua

UNKNOWN = "unknown"


class ClientInfo(BaseModel):
    ip: str = UNKNOWN
    location: str = UNKNOWN
    os: str = UNKNOWN
    browser: str = UNKNOWN
    device: str = UNKNOWN


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    if request.client is not None and request.client.host:
        return request.client.host
    return UNKNOWN


def resolve_location(ip: str) -> str:
    """Only private and loopback addresses can be placed without a geo database."""
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return UNKNOWN
    if address.is_private or address.is_loopback:
        return "LAN"
    return UNKNOWN


def _device_type(ua) -> str:
    if ua.is_mobile:
        return "mobile"
    elif ua.is_tablet:
        return "tablet"
    elif ua.is_bot:
        return "bot"
    return "desktop"


def parse_client(user_agent: Optional[str], ip: str) -> ClientInfo:
    if not user_agent:
        return ClientInfo(ip=ip, location=resolve_location(ip))

    ua = parse_ua(user_agent)
    return ClientInfo(
        ip=ip,
        location=resolve_location(ip),
        os=f"{ua.os.family} {ua.os.version_string}".strip(),
        browser=f"{ua.browser.family} {ua.browser.version_string}".strip(),
        device=_device_type(ua),
    )


def client_info(request: Request) -> ClientInfo:
    return parse_client(request.headers.get("User-Agent"), client_ip(request))
