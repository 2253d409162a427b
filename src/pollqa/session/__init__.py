"""
Participant sessions.

Provides:
- SessionHandle protocol consumed by actions and assertions
- MeetingSession, the Playwright implementation
- MeetingApi for provisioning meetings
"""

from pollqa.session.handle import MeetingSession, SessionHandle
from pollqa.session.identity import JoinIdentity, SessionRole
from pollqa.session.meeting_api import MeetingApi, new_meeting_id

__all__ = [
    "JoinIdentity",
    "MeetingApi",
    "MeetingSession",
    "SessionHandle",
    "SessionRole",
    "new_meeting_id",
]
