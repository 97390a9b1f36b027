"""
Domain dataclasses and enums used across the application.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class Role(str, Enum):
    PLAYER = "player"
    COACH = "coach"
    TEAM_ADMIN = "team-admin"
    MEDICAL = "medical"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        """Return the matching Role, or None for anything unrecognised."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class ResourceKind(str, Enum):
    INJURY = "injury"
    TREATMENT = "treatment"
    REHAB_PLAN = "rehab_plan"
    PROGRESS_NOTE = "progress_note"
    MEDICAL_REPORT = "medical_report"


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STATUS_CHANGE = "status-change"


STAFF_ROLES = frozenset({Role.ADMIN, Role.MEDICAL})
TEAM_ROLES = frozenset({Role.COACH, Role.TEAM_ADMIN})

REHAB_STATUSES = ("planned", "in-progress", "completed", "cancelled")
PROGRESS_STATUSES = ("improved", "stable", "worsened", "unknown")
CONFIDENTIALITY_LEVELS = ("standard", "sensitive", "restricted")


def normalize_id(value: Any) -> Optional[str]:
    """User and team ids arrive as ints or UUID strings; compare them as str."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Actor:
    """The authenticated caller."""
    identity: str
    role: str                   # raw role claim; see Role.parse
    team: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "Actor":
        """Build an Actor from decoded JWT claims."""
        identity = (
            claims.get("userId")
            or claims.get("identity")
            or claims.get("sub")
        )
        team = claims.get("teamId")
        if team is None:
            team = claims.get("team")
        return cls(
            identity=normalize_id(identity),
            role=str(claims.get("role", "")).strip().lower(),
            team=normalize_id(team),
        )


@dataclass(frozen=True)
class ResourceRef:
    """
    The (player, team) pair a record resolves to.

    ``team_resolved`` is False for records without a direct team (medical
    reports, or injuries stored with a NULL team and the rows under them);
    their team is looked up from the owning player on demand.
    """
    owner_player_id: Optional[str]
    team_id: Optional[str] = None
    created_by: Optional[str] = None
    team_resolved: bool = True
