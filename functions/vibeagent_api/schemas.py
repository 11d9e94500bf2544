"""
Pydantic schemas for request bodies and responses.

Request models list the known fields of each entity. Unknown fields are
kept and stored alongside them.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

# Fields owned by the server. Values sent by callers are dropped.
SERVER_MANAGED_FIELDS = frozenset({"id", "created_at", "updated_at"})


class EntityWrite(BaseModel):
    model_config = ConfigDict(extra="allow")

    def supplied_fields(self) -> dict[str, Any]:
        """Returns only the fields present in the request body."""
        data = self.model_dump()
        supplied = set(self.model_fields_set) | set(self.model_extra or {})
        return {
            name: data[name]
            for name in supplied
            if name in data and name not in SERVER_MANAGED_FIELDS
        }


class UserWrite(EntityWrite):
    phone: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    household_ids: Optional[list[str]] = None


class HouseholdWrite(EntityWrite):
    address: Optional[str] = None
    timezone: Optional[str] = None
    owner_user_id: Optional[str] = None


class JobWrite(EntityWrite):
    household_id: Optional[str] = None
    user_id: Optional[str] = None
    title: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class UserDetailResponse(BaseModel):
    user: dict
    households: list[dict]
    activeJobs: list[dict]
