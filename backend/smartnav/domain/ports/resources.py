from __future__ import annotations

from typing import Any, Mapping, Protocol


class OwnedResourceLookup(Protocol):
    """Loads a resource carrying an owner field (createdBy / created_by)."""

    async def get(self, resource_id: str) -> Any | None:
        ...


class UserProfilePort(Protocol):
    """Reads the stored user profile (name, role) keyed by auth uid."""

    async def get_profile(self, uid: str) -> Mapping[str, Any] | None:
        ...
