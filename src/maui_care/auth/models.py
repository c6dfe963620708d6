"""
maui_care.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
- Define the caller role vocabulary.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class UserRole(enum.StrEnum):
    admin = "admin"
    user = "user"
    guest = "guest"


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity.
    """

    subject: str
    roles: frozenset[str]

    @property
    def is_admin(self) -> bool:
        return UserRole.admin in self.roles

    @property
    def role(self) -> UserRole:
        # Highest role wins; a token without recognised roles is a guest.
        if self.is_admin:
            return UserRole.admin
        if UserRole.user in self.roles:
            return UserRole.user
        return UserRole.guest

    def can_manage(self, owner: str) -> bool:
        return self.is_admin or self.subject == owner


# --- Module Notes -----------------------------------------------------------
# `subject` is the opaque principal id; the client cache namespaces data by it.
