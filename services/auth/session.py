"""Request-scoped session identity.

Authentication itself is delegated to the gateway in front of the app; it
forwards the resolved tenant and user as headers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request

ADMIN_ROLES = {"admin", "director"}


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() in ADMIN_ROLES


class SessionProvider:
    """Tenant context plus the user used to stamp uploads."""

    def __init__(self, company_id: str, user: Optional[CurrentUser] = None) -> None:
        self.company_id = company_id
        self._user = user

    async def get_current_user(self) -> Optional[CurrentUser]:
        return self._user


def session_from_request(request: Request) -> SessionProvider:
    """Build a SessionProvider from `X-Company-Id` / `X-User-Id` / `X-User-Role` headers.

    Raises:
        HTTPException(401): If the company header is missing.
    """
    company_id = (request.headers.get("x-company-id") or "").strip()
    if not company_id:
        raise HTTPException(status_code=401, detail="X-Company-Id header is required.")
    user_id = (request.headers.get("x-user-id") or "").strip()
    role = (request.headers.get("x-user-role") or "").strip() or None
    user = CurrentUser(id=user_id, role=role) if user_id else None
    return SessionProvider(company_id, user)
