from __future__ import annotations

from fastapi import Request

from shiftrecon.models import AuditActorType

DEFAULT_ACTOR_ID = "system"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent")


def request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def actor_id(request: Request) -> str:
    value = getattr(request.state, "actor_id", None) or request.headers.get("x-actor-id")
    value = (value or "").strip()
    return value[:255] if value else DEFAULT_ACTOR_ID


def actor_type(actor: str) -> AuditActorType:
    if actor == DEFAULT_ACTOR_ID:
        return AuditActorType.SYSTEM
    return AuditActorType.MANAGER
