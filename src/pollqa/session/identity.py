"""Roles and join identities for meeting sessions."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class SessionRole(StrEnum):
    """Privilege level a session joins with."""

    MODERATOR = "moderator"
    ATTENDEE = "attendee"


class JoinIdentity(BaseModel):
    """Who joins, and which meeting. Attendees must carry the moderator's meeting id."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    full_name: str = Field(min_length=1)
    meeting_id: str | None = None
