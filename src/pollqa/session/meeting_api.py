"""
Meeting server API client used to provision scenario meetings.

Calls are signed with ``sha1(call_name + query_string + shared_secret)``.
"""

from __future__ import annotations

import hashlib
import uuid
import xml.etree.ElementTree as ET
from urllib.parse import urlencode

import httpx
import structlog

from pollqa.config import PollQASettings
from pollqa.errors import SessionSetupError

logger = structlog.get_logger(__name__)

MODERATOR_PASSWORD = "mp"
ATTENDEE_PASSWORD = "ap"


def new_meeting_id() -> str:
    """Generate a random meeting id for a scenario run."""
    return f"pollqa-{uuid.uuid4().hex[:12]}"


class MeetingApi:
    """Builds signed API URLs and creates meetings."""

    def __init__(
        self,
        settings: PollQASettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = f"{settings.server_url}api/"
        self._secret = settings.shared_secret.get_secret_value()
        self._timeout = settings.element_wait_extra_long_ms / 1000
        self._transport = transport
        self._log = logger.bind(component="meeting_api")

    def checksum(self, call: str, query: str) -> str:
        """Compute the request checksum for an API call."""
        return hashlib.sha1(f"{call}{query}{self._secret}".encode()).hexdigest()

    def url(self, call: str, params: dict[str, str]) -> str:
        """Build a signed URL for an API call."""
        query = urlencode(params)
        return f"{self._base_url}{call}?{query}&checksum={self.checksum(call, query)}"

    async def create_meeting(self, meeting_id: str, name: str | None = None) -> str:
        """
        Create a meeting and return its id.

        Raises:
            SessionSetupError: If the server is unreachable or refuses the call
        """
        params = {
            "name": name or meeting_id,
            "meetingID": meeting_id,
            "moderatorPW": MODERATOR_PASSWORD,
            "attendeePW": ATTENDEE_PASSWORD,
            "record": "false",
        }
        self._log.info("Creating meeting", meeting_id=meeting_id)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(self.url("create", params))
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise SessionSetupError(
                "Meeting server request failed",
                target="create",
                details={"error": str(e)},
            ) from e

        return_code, message = self._parse_response(response.text)
        if return_code != "SUCCESS":
            raise SessionSetupError(
                "Meeting creation refused",
                target="create",
                expected="SUCCESS",
                actual=return_code,
                details={"message": message},
            )
        return meeting_id

    def join_url(self, full_name: str, meeting_id: str, is_moderator: bool) -> str:
        """Build the signed join URL for a participant."""
        return self.url(
            "join",
            {
                "fullName": full_name,
                "meetingID": meeting_id,
                "password": MODERATOR_PASSWORD if is_moderator else ATTENDEE_PASSWORD,
                "redirect": "true",
            },
        )

    @staticmethod
    def _parse_response(body: str) -> tuple[str | None, str | None]:
        try:
            root = ET.fromstring(body)
        except ET.ParseError as e:
            raise SessionSetupError(
                "Meeting server returned malformed XML",
                details={"body": body[:200]},
            ) from e
        return root.findtext("returncode"), root.findtext("message")
