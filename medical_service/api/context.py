"""
Per-request wiring shared by the route modules.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from flask import request

from medical_service.config import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from medical_service.errors import ValidationError
from medical_service.models import ResourceKind
from medical_service.policy import AccessPolicyEngine
from medical_service.store import ResourceStore
from medical_service.validators import parse_list_args, parse_paging


@dataclass
class ServiceContext:
    """
    Collaborators handed to the route modules.

    ``identity_factory(token)`` builds an identity resolver and
    ``notifier_factory(token, sender_id)`` a notification dispatcher; both are
    bound to the caller's bearer token for the duration of one request.
    """
    store: ResourceStore
    identity_factory: Callable[[Optional[str]], Any]
    notifier_factory: Callable[[Optional[str], Optional[str]], Any]

    def resolver(self):
        return self.identity_factory(request.token)

    def policy(self) -> AccessPolicyEngine:
        return AccessPolicyEngine(self.resolver())

    def notifier(self):
        return self.notifier_factory(request.token, request.actor.identity)

    def list_scoped(self, kind: ResourceKind, arg_names: Dict[str, str],
                    forced: Optional[Dict[str, Any]] = None):
        """Parse list filters from the query string, scope them and run the query."""
        filters = parse_list_args(request.args, arg_names)
        filters.update(forced or {})
        limit, offset = parse_paging(request.args, DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)
        scope = self.policy().scope_list_query(request.actor, kind, filters)
        return self.store.list(scope, limit, offset)


def json_body() -> Dict[str, Any]:
    """Return the JSON object sent with the request."""
    if not request.is_json:
        raise ValidationError("Content-Type must be application/json")
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
