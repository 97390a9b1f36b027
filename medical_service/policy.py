"""
Access policy engine – read/write decisions and list scoping.

One rule table replaces the per-endpoint permission checks. Every decision is
taken against a resolved ResourceRef (owning player, team, creator); the only
I/O the engine performs is team resolution through the identity resolver,
which must expose ``get_user(user_id) -> {"team_id": ...}`` and
``get_team_members(team_id) -> [ids]`` and raise NotFoundError /
ServiceUnavailableError.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from medical_service.errors import ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from medical_service.models import (
    STAFF_ROLES,
    TEAM_ROLES,
    Action,
    Actor,
    ResourceKind,
    ResourceRef,
    Role,
    normalize_id,
)

# ── Deny reasons ─────────────────────────────────────────────────────
UNAUTHENTICATED = "unauthenticated"
UNKNOWN_ROLE = "unknown role"
NOT_OWN_DATA = "not own data"
NOT_SAME_TEAM = "not same team"
NOT_CREATOR = "not creator"
ROLE_NOT_PERMITTED = "role not permitted"
ACTION_NOT_PERMITTED = "action not permitted"

LIST_FILTER_KEYS = frozenset({
    "player_id", "team_id", "injury_id", "rehab_plan_id",
    "type", "status", "is_active", "date_from", "date_to",
})

ALL_ROLES = frozenset(Role)

_UNKNOWN_TEAM = object()


@dataclass(frozen=True)
class Decision:
    """Outcome of a policy check."""
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(False, reason)


def enforce(decision: Decision, message: Optional[str] = None) -> None:
    """Raise the error a denied decision maps to; do nothing on allow."""
    if decision.allowed:
        return
    if decision.reason == UNAUTHENTICATED:
        raise UnauthorizedError(message or "Authentication required")
    raise ForbiddenError(message or f"Access denied: {decision.reason}")


@dataclass(frozen=True)
class WriteRule:
    """Who may perform one action on one resource kind."""
    staff: FrozenSet[Role] = frozenset()        # always allowed
    team_scoped: FrozenSet[Role] = frozenset()  # allowed on team match
    owner: bool = False                         # owning player allowed
    creator: FrozenSet[Role] = frozenset()      # allowed on records they created


_STAFF_OR_TEAM = WriteRule(staff=STAFF_ROLES, team_scoped=TEAM_ROLES)
_NOTE_EDIT = WriteRule(staff=STAFF_ROLES, team_scoped=TEAM_ROLES, creator=ALL_ROLES)
_REPORT_EDIT = WriteRule(staff=STAFF_ROLES, creator=TEAM_ROLES)

WRITE_RULES: Dict[Tuple[ResourceKind, Action], WriteRule] = {
    (ResourceKind.INJURY, Action.CREATE): WriteRule(staff=STAFF_ROLES),
    (ResourceKind.INJURY, Action.UPDATE): WriteRule(staff=STAFF_ROLES),
    (ResourceKind.INJURY, Action.DELETE): WriteRule(staff=frozenset({Role.ADMIN})),
    (ResourceKind.INJURY, Action.STATUS_CHANGE): WriteRule(staff=STAFF_ROLES),

    (ResourceKind.TREATMENT, Action.CREATE): _STAFF_OR_TEAM,
    (ResourceKind.TREATMENT, Action.UPDATE): _STAFF_OR_TEAM,
    (ResourceKind.TREATMENT, Action.DELETE): _STAFF_OR_TEAM,

    (ResourceKind.REHAB_PLAN, Action.CREATE): _STAFF_OR_TEAM,
    (ResourceKind.REHAB_PLAN, Action.UPDATE): _STAFF_OR_TEAM,
    (ResourceKind.REHAB_PLAN, Action.DELETE): WriteRule(staff=STAFF_ROLES),

    (ResourceKind.PROGRESS_NOTE, Action.CREATE): WriteRule(
        staff=STAFF_ROLES, team_scoped=TEAM_ROLES, owner=True
    ),
    (ResourceKind.PROGRESS_NOTE, Action.UPDATE): _NOTE_EDIT,
    (ResourceKind.PROGRESS_NOTE, Action.DELETE): _NOTE_EDIT,

    (ResourceKind.MEDICAL_REPORT, Action.CREATE): _STAFF_OR_TEAM,
    (ResourceKind.MEDICAL_REPORT, Action.UPDATE): _REPORT_EDIT,
    (ResourceKind.MEDICAL_REPORT, Action.DELETE): _REPORT_EDIT,
}


@dataclass(frozen=True)
class ListScope:
    """
    Scoping predicate for a list query.

    ``filters`` are the caller's own filters (sorted key/value pairs);
    ``player_ids`` and ``team_id`` are forced by the policy and are ANDed
    with them. ``empty`` means nothing is visible and no query should run.
    """
    kind: ResourceKind
    filters: Tuple[Tuple[str, Any], ...] = ()
    player_ids: Optional[FrozenSet[str]] = None
    team_id: Optional[str] = None
    empty: bool = False

    def filter_dict(self) -> Dict[str, Any]:
        return dict(self.filters)


def _same(a: Any, b: Any) -> bool:
    a, b = normalize_id(a), normalize_id(b)
    return a is not None and a == b


def _freeze(filters: Mapping[str, Any]) -> Tuple[Tuple[str, Any], ...]:
    return tuple(sorted(filters.items(), key=lambda kv: kv[0]))


class AccessPolicyEngine:
    """Table-driven authorization for every resource kind."""

    def __init__(self, resolver=None):
        self.resolver = resolver

    # ── Reads ────────────────────────────────────────────────────────

    def authorize_read(self, actor: Optional[Actor], resource: ResourceRef) -> Decision:
        role, denial = self._check_actor(actor)
        if denial:
            return denial
        if role in STAFF_ROLES:
            return Decision.allow()
        if role == Role.PLAYER:
            return self._owner_decision(actor, resource)
        return self._team_decision(actor, resource)

    # ── Writes ───────────────────────────────────────────────────────

    def authorize_write(
        self,
        actor: Optional[Actor],
        kind: ResourceKind,
        action: Action,
        resource: ResourceRef,
    ) -> Decision:
        role, denial = self._check_actor(actor)
        if denial:
            return denial

        rule = WRITE_RULES.get((ResourceKind(kind), Action(action)))
        if rule is None:
            return Decision.deny(ACTION_NOT_PERMITTED)

        if role in rule.staff:
            return Decision.allow()
        if role in rule.creator and _same(resource.created_by, actor.identity):
            return Decision.allow()
        if rule.owner and role == Role.PLAYER:
            return self._owner_decision(actor, resource)
        if role in rule.team_scoped:
            return self._team_decision(actor, resource)
        if role in rule.creator:
            return Decision.deny(NOT_CREATOR)
        return Decision.deny(ROLE_NOT_PERMITTED)

    # ── Lists ────────────────────────────────────────────────────────

    def scope_list_query(
        self,
        actor: Optional[Actor],
        kind: ResourceKind,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> ListScope:
        """Return the predicate restricting a list of *kind* to what *actor* may see."""
        role, denial = self._check_actor(actor)
        if denial:
            enforce(denial)

        kind = ResourceKind(kind)
        explicit = {k: v for k, v in (filters or {}).items() if v is not None}
        unknown = set(explicit) - LIST_FILTER_KEYS
        if unknown:
            raise ValidationError(f"Unsupported filter: {', '.join(sorted(unknown))}")

        if role in STAFF_ROLES:
            return ListScope(kind, _freeze(explicit))

        if role == Role.PLAYER:
            explicit.pop("player_id", None)
            return ListScope(kind, _freeze(explicit), player_ids=frozenset({actor.identity}))

        if actor.team is None:
            return ListScope(kind, _freeze(explicit), empty=True)

        if kind == ResourceKind.MEDICAL_REPORT:
            members = self._team_members(actor.team)
            if not members:
                return ListScope(kind, _freeze(explicit), empty=True)
            return ListScope(kind, _freeze(explicit), player_ids=members)

        return ListScope(kind, _freeze(explicit), team_id=actor.team)

    # ── Internals ────────────────────────────────────────────────────

    def _check_actor(self, actor: Optional[Actor]):
        if actor is None or actor.identity is None:
            return None, Decision.deny(UNAUTHENTICATED)
        role = Role.parse(actor.role)
        if role is None:
            return None, Decision.deny(UNKNOWN_ROLE)
        return role, None

    def _owner_decision(self, actor: Actor, resource: ResourceRef) -> Decision:
        if _same(resource.owner_player_id, actor.identity):
            return Decision.allow()
        return Decision.deny(NOT_OWN_DATA)

    def _team_decision(self, actor: Actor, resource: ResourceRef) -> Decision:
        if actor.team is None:
            return Decision.deny(NOT_SAME_TEAM)
        team = self._resource_team(resource)
        if team is _UNKNOWN_TEAM:
            return Decision.deny(NOT_SAME_TEAM)
        if team is None or _same(team, actor.team):
            return Decision.allow()
        return Decision.deny(NOT_SAME_TEAM)

    def _resource_team(self, resource: ResourceRef):
        if resource.team_resolved:
            return normalize_id(resource.team_id)
        if resource.owner_player_id is None:
            return None
        try:
            user = self._require_resolver().get_user(resource.owner_player_id)
        except NotFoundError:
            return _UNKNOWN_TEAM
        return normalize_id((user or {}).get("team_id"))

    def _team_members(self, team_id: str) -> FrozenSet[str]:
        try:
            members = self._require_resolver().get_team_members(team_id)
        except NotFoundError:
            return frozenset()
        ids = (normalize_id(m) for m in members or [])
        return frozenset(i for i in ids if i is not None)

    def _require_resolver(self):
        if self.resolver is None:
            raise RuntimeError("Team resolution needs an identity resolver")
        return self.resolver
