"""
Notification messages sent after successful writes.

Every helper here is best-effort: lookup or delivery failures are logged and
never reach the caller, so a committed write is always reported as a success.
"""

import sys
from typing import Any, Dict, Optional

from medical_service.errors import ServiceError
from medical_service.models import normalize_id


def _team_coach(resolver, team_id: Optional[str], player_id: Optional[str]) -> Optional[str]:
    """Find the coach of the record's team, falling back to the player's own team."""
    try:
        if team_id is None and player_id is not None:
            team_id = resolver.get_user(player_id).get("team_id")
        if team_id is None:
            return None
        return normalize_id(resolver.get_team(team_id).get("coach_id"))
    except ServiceError as e:
        print(f"[WARN] Could not resolve team coach for notification: {e}", file=sys.stderr)
        return None


def notify_injury(notifier, resolver, injury: Dict[str, Any], action: str) -> bool:
    """Tell the player (and the team coach, when known) about an injury change."""
    recipients = [injury.get("player_id")]
    coach = _team_coach(resolver, injury.get("team_id"), injury.get("player_id"))
    if coach:
        recipients.append(coach)
    return notifier.send(recipients, {
        "title": f"Injury {action}",
        "message": f"Your injury record has been {action}: {injury.get('injury_type')}",
        "data": {
            "injury_id": injury.get("id"),
            "action": action,
            "injury_type": injury.get("injury_type"),
        },
    })


def notify_treatment(notifier, treatment: Dict[str, Any], action: str) -> bool:
    return notifier.send([treatment.get("player_id")], {
        "title": f"Treatment {action}",
        "message": (
            f"A treatment has been {action} for your {treatment.get('injury_title')} "
            f"injury: {treatment.get('treatment_type')}"
        ),
        "data": {
            "treatment_id": treatment.get("id"),
            "injury_id": treatment.get("injury_id"),
            "action": action,
            "treatment_type": treatment.get("treatment_type"),
        },
    })


def notify_rehab_plan_created(notifier, plan: Dict[str, Any]) -> bool:
    return notifier.send([plan.get("player_id")], {
        "title": "New Rehabilitation Plan",
        "message": f"A rehabilitation plan has been created for your injury: {plan.get('injury_title')}",
        "data": {"rehab_plan_id": plan.get("id"), "injury_id": plan.get("injury_id")},
    })


def notify_rehab_status(notifier, plan: Dict[str, Any]) -> bool:
    return notifier.send([plan.get("player_id")], {
        "title": "Rehabilitation Plan Updated",
        "message": f"Your rehabilitation plan status has been updated to: {plan.get('status')}",
        "data": {"rehab_plan_id": plan.get("id"), "injury_id": plan.get("injury_id")},
    })


def notify_progress_note(notifier, resolver, note: Dict[str, Any], author_id: str,
                         author_is_player: bool) -> None:
    """
    Staff-written notes go to the player; player-written notes go to the
    team's coach.
    """
    player_id = note.get("player_id")
    data = {"progress_note_id": note.get("id"), "rehab_plan_id": note.get("rehab_plan_id")}

    if normalize_id(author_id) != normalize_id(player_id):
        notifier.send([player_id], {
            "title": "New Progress Note",
            "message": "A new progress note has been added to your rehabilitation plan",
            "data": data,
        })

    if author_is_player and note.get("team_id"):
        coach = _team_coach(resolver, note.get("team_id"), player_id)
        if coach:
            notifier.send([coach], {
                "title": "New Progress Note from Player",
                "message": "A player has added a new progress note to their rehabilitation plan",
                "data": dict(data, player_id=player_id),
            })


def notify_report_created(notifier, report: Dict[str, Any]) -> bool:
    return notifier.send([report.get("user_id")], {
        "title": "New Medical Report",
        "message": f"A new medical report has been created: {report.get('title')}",
        "data": {"report_id": report.get("id")},
    })
