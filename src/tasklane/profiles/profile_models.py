# src/tasklane/profiles/profile_models.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class Profile:
    id: str
    email: str | None
    full_name: str | None
    avatar_url: str | None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Profile:
        return cls(
            id=str(row["id"]),
            email=row.get("email"),
            full_name=row.get("full_name"),
            avatar_url=row.get("avatar_url"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass(slots=True)
class ProfileFormValues:
    full_name: str = ""
    avatar_url: str | None = None

    @classmethod
    def from_profile(cls, profile: Profile) -> ProfileFormValues:
        return cls(full_name=profile.full_name or "", avatar_url=profile.avatar_url or "")
