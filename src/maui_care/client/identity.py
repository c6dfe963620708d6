"""
maui_care.client.identity

Client-side identity provider.

Responsibilities:
- Resolve the current principal (or None before login).
- Hold the bearer token attached to every remote call.
- Notify listeners on logout so principal-scoped caches can be dropped.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import httpx

from maui_care.client.errors import CareApiError, ErrorKind, from_response, from_transport
from maui_care.observability.logging import get_logger

log = get_logger(__name__)

LogoutListener = Callable[[str], None]


@dataclass(frozen=True, slots=True)
class IdentitySession:
    principal: str
    token: str


class IdentityProvider:
    def __init__(self, *, http: httpx.AsyncClient) -> None:
        self._http = http
        self._session: IdentitySession | None = None
        self._logout_listeners: list[LogoutListener] = []

    def current_principal(self) -> str | None:
        return self._session.principal if self._session is not None else None

    def auth_headers(self) -> dict[str, str]:
        if self._session is None:
            return {}
        return {"Authorization": f"Bearer {self._session.token}"}

    def use_token(self, *, principal: str, token: str) -> None:
        # Tokens minted elsewhere (SSO, tests) are adopted as-is.
        if self._session is not None and self._session.principal != principal:
            self.logout()
        self._session = IdentitySession(principal=principal, token=token)
        log.info("identity_login", principal=principal)

    async def login(self, subject: str, roles: list[str] | None = None) -> str:
        """
        Obtain a token from the service's dev token endpoint and adopt it.
        """

        try:
            r = await self._http.post(
                "/v1/dev/token",
                json={"subject": subject, "roles": roles if roles is not None else ["user"]},
            )
        except httpx.HTTPError as e:
            raise from_transport(e) from e
        if r.is_error:
            raise from_response(r)
        token = r.json().get("access_token")
        if not isinstance(token, str) or not token:
            raise CareApiError(ErrorKind.unknown, "Token endpoint returned no token")
        self.use_token(principal=subject, token=token)
        return subject

    def logout(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        log.info("identity_logout", principal=session.principal)
        for listener in list(self._logout_listeners):
            listener(session.principal)

    def on_logout(self, listener: LogoutListener) -> None:
        self._logout_listeners.append(listener)
