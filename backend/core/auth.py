"""
Bearer-token authentication against Supabase.

Tokens are not decoded locally: every request asks `{SUPABASE_URL}/auth/v1/user`
with the service secret as `apikey`, and any non-2xx answer is a 401.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Depends, HTTPException, Request, status

from core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class AuthUser:
    id: str
    email: Optional[str] = None
    token: Optional[str] = None


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization") or ""
    if not header.startswith("Bearer "):
        return None
    token = header.split(" ", 1)[1].strip()
    return token or None


class SupabaseAuth:
    def __init__(
        self,
        base_url: Optional[str] = None,
        secret_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.supabase_url).rstrip("/")
        self.secret_key = secret_key if secret_key is not None else settings.supabase_secret_key
        self._transport = transport

    async def verify(self, token: str) -> Optional[AuthUser]:
        """Return the user owning `token`, or None if Supabase rejects it or is unreachable."""
        if not self.base_url:
            logger.warning("SUPABASE_URL is not configured; rejecting request")
            return None
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(
                    f"{self.base_url}/auth/v1/user",
                    headers={"apikey": self.secret_key, "Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as e:
            logger.warning("Supabase auth request failed: %s", e)
            return None
        if response.status_code != 200:
            return None
        try:
            body = response.json()
        except ValueError:
            return None
        user_id = body.get("id") if isinstance(body, dict) else None
        if not user_id:
            return None
        return AuthUser(id=str(user_id), email=body.get("email"), token=token)


def get_supabase_auth() -> SupabaseAuth:
    return SupabaseAuth()


async def current_active_user(
    request: Request,
    auth: SupabaseAuth = Depends(get_supabase_auth),
) -> AuthUser:
    token = _bearer_token(request)
    if not token:
        raise _unauthorized()
    user = await auth.verify(token)
    if user is None:
        raise _unauthorized()
    return user
