from __future__ import annotations

import hashlib
import logging
import secrets
from typing import Any, Dict, Optional

import httpx

from .auth import AuthBackendError, AuthSession
from .settings import Settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class InMemoryAuthBackend:
    """
    Process-local account registry, suitable for testing and default runtime.
    Captcha tokens are accepted as-is; verifying them is the hosted backend's job.
    """

    def __init__(self) -> None:
        self._accounts: Dict[str, str] = {}

    @staticmethod
    def _digest(password: str) -> str:
        return hashlib.sha256(password.encode("utf-8")).hexdigest()

    async def sign_up(self, email: str, password: str, captcha_token: str) -> None:
        key = email.lower()
        if key in self._accounts:
            raise AuthBackendError("User already registered")
        self._accounts[key] = self._digest(password)

    async def sign_in(self, email: str, password: str, captcha_token: str) -> AuthSession:
        stored = self._accounts.get(email.lower())
        if stored is None or stored != self._digest(password):
            raise AuthBackendError("Invalid login credentials")
        return AuthSession(email=email, access_token=secrets.token_urlsafe(24))


def _error_message(resp: httpx.Response) -> str:
    try:
        body: Any = resp.json()
    except ValueError:
        return resp.text[:300]
    if isinstance(body, dict):
        for key in ("msg", "error_description", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return resp.text[:300]


# PUBLIC_INTERFACE
class SupabaseAuthBackend:
    """
    Email/password auth against a Supabase (GoTrue) project.

    - sign in: POST {url}/auth/v1/token?grant_type=password
    - sign up: POST {url}/auth/v1/signup
    The captcha token travels in gotrue_meta_security.captcha_token.
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.anon_key}",
        }

    async def _post(self, path: str, email: str, password: str, captcha_token: str, params=None) -> Dict[str, Any]:
        payload = {
            "email": email,
            "password": password,
            "gotrue_meta_security": {"captcha_token": captcha_token},
        }
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, json=payload, params=params, headers=self._headers())
        except httpx.TimeoutException as e:
            raise AuthBackendError("Authentication service timed out") from e
        except httpx.HTTPError as e:
            logger.error("Auth request to %s failed: %s", path, e)
            raise AuthBackendError("Authentication service is unreachable") from e

        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.info("Auth request to %s rejected (%d)", path, resp.status_code)
            raise AuthBackendError(message)
        try:
            data = resp.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def sign_in(self, email: str, password: str, captcha_token: str) -> AuthSession:
        data = await self._post(
            "/auth/v1/token", email, password, captcha_token, params={"grant_type": "password"}
        )
        return AuthSession(email=email, access_token=data.get("access_token"))

    async def sign_up(self, email: str, password: str, captcha_token: str) -> None:
        await self._post("/auth/v1/signup", email, password, captcha_token)


# PUBLIC_INTERFACE
def get_auth_backend(settings: Settings):
    """
    Factory to return the configured auth backend based on settings.
    - memory: InMemoryAuthBackend
    - supabase: SupabaseAuthBackend (requires SUPABASE_URL and SUPABASE_ANON_KEY)
    """
    if settings.auth_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_anon_key:
            raise ValueError("AUTH_BACKEND=supabase requires SUPABASE_URL and SUPABASE_ANON_KEY")
        return SupabaseAuthBackend(
            settings.supabase_url,
            settings.supabase_anon_key,
            timeout=settings.auth_timeout_seconds,
        )
    return InMemoryAuthBackend()
