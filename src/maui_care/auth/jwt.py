"""
maui_care.auth.jwt

JWT issuing and validation helpers.

Responsibilities:
- Issue short-lived JWTs for local/dev scenarios and tests.
- Decode and validate JWTs with strict claim requirements (iss/aud/exp/iat/sub).

Note:
- Production deployments usually front this with an identity provider (RS256 + JWKS);
  HS256 keeps the dev loop self-contained.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError

from maui_care.settings import Settings


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    issuer: str
    audience: str
    secret: str

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtConfig:
        return cls(
            alg=settings.jwt_alg,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            secret=settings.jwt_secret,
        )


class JwtValidationError(Exception):
    pass


def issue_token(
    *,
    cfg: JwtConfig,
    subject: str,
    roles: list[str],
    ttl: timedelta = timedelta(hours=1),
) -> str:
    now = datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": subject,
        "roles": roles,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def decode_and_validate(*, cfg: JwtConfig, token: str) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            options={
                "require": ["exp", "iat", "iss", "aud", "sub"],
            },
        )
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e


# --- Module Notes -----------------------------------------------------------
# Token issuing is used by `api/routers/dev_auth.py` and by the test suite.
