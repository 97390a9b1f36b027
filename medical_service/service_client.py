"""
HTTP clients for the sibling user and communication services.

Both forward the caller's bearer token. Lookups raise NotFoundError on 404 and
ServiceUnavailableError on any other failure; notifications never raise.
"""

import sys
from typing import Any, Dict, Iterable, List, Optional

import requests

from medical_service.config import (
    COMMUNICATION_SERVICE_URL,
    SERVICE_TIMEOUT_SECONDS,
    USER_SERVICE_URL,
)
from medical_service.errors import NotFoundError, ServiceUnavailableError
from medical_service.models import normalize_id


def _auth_headers(token: Optional[str]) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class UserServiceClient:
    """Identity resolver backed by the user service."""

    def __init__(self, base_url: str = USER_SERVICE_URL, token: Optional[str] = None,
                 timeout: float = SERVICE_TIMEOUT_SECONDS, session=None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str, what: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.get(url, headers=_auth_headers(self.token), timeout=self.timeout)
        except requests.RequestException as e:
            print(f"[ERROR] Error getting {what}: {e}", file=sys.stderr)
            raise ServiceUnavailableError(f"Failed to get {what}: {e}") from e

        if resp.status_code == 404:
            raise NotFoundError(f"{what[0].upper()}{what[1:]} not found")
        if resp.status_code >= 400:
            print(f"[ERROR] Error getting {what}: HTTP {resp.status_code}", file=sys.stderr)
            raise ServiceUnavailableError(f"Failed to get {what}: HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise ServiceUnavailableError(f"Failed to get {what}: invalid JSON response") from e

    def get_user(self, user_id: Any) -> Dict[str, Any]:
        """Return the user record with its team normalised under ``team_id``."""
        data = self._get(f"/api/users/{user_id}", f"user {user_id}")
        if not isinstance(data, dict):
            raise ServiceUnavailableError(f"Failed to get user {user_id}: unexpected payload")
        user = dict(data)
        team = data.get("teamId", data.get("team_id"))
        user["team_id"] = normalize_id(team)
        return user

    def get_team(self, team_id: Any) -> Dict[str, Any]:
        data = self._get(f"/api/teams/{team_id}", f"team {team_id}")
        if not isinstance(data, dict):
            raise ServiceUnavailableError(f"Failed to get team {team_id}: unexpected payload")
        team = dict(data)
        team["coach_id"] = normalize_id(data.get("coachId", data.get("coach_id")))
        return team

    def get_team_members(self, team_id: Any) -> List[str]:
        """Return the ids of all players on a team."""
        data = self._get(f"/api/teams/{team_id}/players", f"players for team {team_id}")
        if isinstance(data, dict):
            data = data.get("players", [])
        members = []
        for entry in data or []:
            member_id = entry.get("id") if isinstance(entry, dict) else entry
            member_id = normalize_id(member_id)
            if member_id is not None:
                members.append(member_id)
        return members


class NotificationClient:
    """Fire-and-forget notification dispatcher backed by the communication service."""

    def __init__(self, base_url: str = COMMUNICATION_SERVICE_URL, token: Optional[str] = None,
                 sender: Optional[str] = None, timeout: float = SERVICE_TIMEOUT_SECONDS,
                 session=None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.sender = normalize_id(sender)
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, recipients: Iterable[Any], notification: Dict[str, Any]) -> bool:
        """Post a notification; returns False instead of raising on any failure."""
        ids = [normalize_id(r) for r in recipients]
        unique = list(dict.fromkeys(i for i in ids if i is not None))
        if not unique:
            return False

        payload = dict(notification)
        payload["recipients"] = unique
        payload.setdefault("type", "medical")
        if self.sender is not None:
            payload.setdefault("sender", self.sender)

        try:
            resp = self.session.post(
                f"{self.base_url}/api/notifications",
                json=payload,
                headers=_auth_headers(self.token),
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except Exception as e:
            print(f"[WARN] Failed to send notification '{payload.get('title')}': {e}",
                  file=sys.stderr)
            return False
        return True
