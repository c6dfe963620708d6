from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from maui_care.db.models import RoleAssignment, UserProfile


class ProfileRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, principal: str) -> UserProfile | None:
        return await self._session.get(UserProfile, principal)

    async def save(self, *, principal: str, name: str) -> UserProfile:
        profile = await self._session.get(UserProfile, principal)
        if profile is None:
            profile = UserProfile(principal=principal, name=name)
            self._session.add(profile)
        else:
            profile.name = name
        await self._session.flush()
        return profile

    async def assigned_role(self, principal: str) -> str | None:
        assignment = await self._session.get(RoleAssignment, principal)
        return assignment.role if assignment is not None else None

    async def assign_role(self, *, principal: str, role: str, assigned_by: str) -> RoleAssignment:
        assignment = await self._session.get(RoleAssignment, principal)
        if assignment is None:
            assignment = RoleAssignment(principal=principal, role=role, assigned_by=assigned_by)
            self._session.add(assignment)
        else:
            assignment.role = role
            assignment.assigned_by = assigned_by
        await self._session.flush()
        return assignment
