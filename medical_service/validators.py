"""
Input validation for request bodies and query strings.

Each validator collects every problem before raising a single
ValidationError, and returns a sanitised dict ready for the store. With
``partial=True`` required-field checks are skipped and only the fields that
were sent are returned (used by the PUT endpoints that patch a row).
"""

import json
import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from medical_service.errors import ValidationError
from medical_service.models import (
    CONFIDENTIALITY_LEVELS,
    PROGRESS_STATUSES,
    REHAB_STATUSES,
    normalize_id,
)

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ── Field helpers ────────────────────────────────────────────────────

def parse_date(value: Any) -> Optional[date]:
    """Parse a YYYY-MM-DD string; None if it is not a valid calendar date."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes"}:
            return True
        if lowered in {"false", "0", "no"}:
            return False
    return None


def _present(data: Mapping[str, Any], key: str) -> bool:
    return data.get(key) not in (None, "")


def _id_field(data, key, label, out, errors, required=False, numeric=False):
    if not _present(data, key):
        if required:
            errors.append(f"{label} is required")
        return
    value = data[key]
    if numeric:
        try:
            out[key] = int(value)
        except (TypeError, ValueError):
            errors.append(f"{label} must be a number")
        return
    out[key] = normalize_id(value)


def _date_field(data, key, label, out, errors, required=False):
    if not _present(data, key):
        if required:
            errors.append(f"{label} is required")
        return
    parsed = parse_date(data[key])
    if parsed is None:
        errors.append(f"{label} must be in YYYY-MM-DD format")
    else:
        out[key] = parsed


def _text_field(data, key, label, out, errors, required=False, max_len=None):
    if not _present(data, key):
        if required:
            errors.append(f"{label} is required")
        return
    value = data[key]
    if not isinstance(value, str):
        errors.append(f"{label} must be a string")
    elif max_len is not None and len(value) > max_len:
        errors.append(f"{label} must be a string with {max_len} characters maximum")
    else:
        out[key] = value


def _choice_field(data, key, label, choices, out, errors, required=False):
    if not _present(data, key):
        if required:
            errors.append(f"{label} is required")
        return
    if data[key] not in choices:
        errors.append(f"{label} must be one of: {', '.join(choices)}")
    else:
        out[key] = data[key]


def _level_field(data, key, label, out, errors):
    if key not in data:
        return
    if data[key] is None:
        out[key] = None
        return
    raw = data[key]
    try:
        level = int(raw)
    except (TypeError, ValueError):
        level = None
    if isinstance(raw, float) and not raw.is_integer():
        level = None
    if level is None or isinstance(raw, bool) or not 0 <= level <= 10:
        errors.append(f"{label} must be a number between 0 and 10")
    else:
        out[key] = level


def _raise_if(errors: List[str], what: str) -> None:
    if errors:
        raise ValidationError(f"Invalid {what} data", errors)


def _require_mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be a JSON object")
    return data


# ── Entity validators ────────────────────────────────────────────────

def validate_injury(data: Any, partial: bool = False) -> Dict[str, Any]:
    data = _require_mapping(data)
    errors: List[str] = []
    out: Dict[str, Any] = {}
    required = not partial

    _id_field(data, "player_id", "Player ID", out, errors, required=required)
    _id_field(data, "team_id", "Team ID", out, errors)
    _date_field(data, "injury_date", "Injury date", out, errors, required=required)
    _date_field(data, "return_date", "Return date", out, errors)
    _text_field(data, "injury_type", "Injury type", out, errors, required=required, max_len=100)
    _text_field(data, "injury_description", "Injury description", out, errors)
    if "is_active" in data:
        flag = parse_bool(data["is_active"])
        if flag is None:
            errors.append("Is active must be a boolean")
        else:
            out["is_active"] = flag

    _raise_if(errors, "injury")
    return out


def validate_treatment(data: Any, partial: bool = False) -> Dict[str, Any]:
    data = _require_mapping(data)
    errors: List[str] = []
    out: Dict[str, Any] = {}
    required = not partial

    _id_field(data, "injury_id", "Injury ID", out, errors, required=required, numeric=True)
    _date_field(data, "treatment_date", "Treatment date", out, errors, required=required)
    _text_field(data, "treatment_type", "Treatment type", out, errors, required=required, max_len=100)
    _text_field(data, "treatment_description", "Treatment description", out, errors)
    _id_field(data, "treated_by", "Treated by", out, errors)
    _text_field(data, "notes", "Notes", out, errors)

    _raise_if(errors, "treatment")
    return out


def validate_rehab_plan(data: Any, partial: bool = False) -> Dict[str, Any]:
    data = _require_mapping(data)
    errors: List[str] = []
    out: Dict[str, Any] = {}
    required = not partial

    _id_field(data, "injury_id", "Injury ID", out, errors, required=required, numeric=True)
    _text_field(data, "title", "Title", out, errors, required=required, max_len=255)
    _text_field(data, "description", "Description", out, errors)
    _date_field(data, "start_date", "Start date", out, errors, required=required)
    _date_field(data, "end_date", "End date", out, errors)
    _choice_field(data, "status", "Status", REHAB_STATUSES, out, errors)
    _id_field(data, "created_by", "Created by", out, errors, required=required)

    if "start_date" in out and "end_date" in out and out["end_date"] < out["start_date"]:
        errors.append("End date must not be before start date")

    _raise_if(errors, "rehab plan")
    return out


def validate_progress_note(data: Any, partial: bool = False) -> Dict[str, Any]:
    data = _require_mapping(data)
    errors: List[str] = []
    out: Dict[str, Any] = {}
    required = not partial

    _id_field(data, "rehab_plan_id", "Rehab plan ID", out, errors, required=required, numeric=True)
    _date_field(data, "note_date", "Note date", out, errors, required=required)
    _text_field(data, "content", "Content", out, errors, required=required)
    _choice_field(data, "progress_status", "Progress status", PROGRESS_STATUSES,
                  out, errors, required=required)
    _level_field(data, "pain_level", "Pain level", out, errors)
    _level_field(data, "mobility_level", "Mobility level", out, errors)
    _level_field(data, "strength_level", "Strength level", out, errors)
    _id_field(data, "created_by", "Created by", out, errors, required=required)

    _raise_if(errors, "progress note")
    return out


def validate_medical_report(data: Any, partial: bool = False) -> Dict[str, Any]:
    data = _require_mapping(data)
    errors: List[str] = []
    out: Dict[str, Any] = {}
    required = not partial

    _id_field(data, "user_id", "User ID", out, errors, required=required)
    _text_field(data, "title", "Title", out, errors, required=required, max_len=255)
    _date_field(data, "report_date", "Report date", out, errors, required=required)
    _text_field(data, "content", "Content", out, errors, required=required)
    _text_field(data, "report_type", "Report type", out, errors, required=required, max_len=100)
    _choice_field(data, "confidentiality_level", "Confidentiality level",
                  CONFIDENTIALITY_LEVELS, out, errors)
    if _present(data, "attachments"):
        attachments = data["attachments"]
        if isinstance(attachments, str):
            try:
                out["attachments"] = json.loads(attachments)
            except ValueError:
                errors.append("Attachments must be valid JSON")
        else:
            out["attachments"] = attachments
    _id_field(data, "created_by", "Created by", out, errors, required=required)

    _raise_if(errors, "medical report")
    return out


# ── Query strings ────────────────────────────────────────────────────

def parse_list_args(args: Mapping[str, Any], names: Mapping[str, str]) -> Dict[str, Any]:
    """
    Translate query-string arguments into list filters.

    *names* maps a query parameter to a filter key; ``from`` / ``to`` become
    ``date_from`` / ``date_to`` and ``active`` becomes ``is_active``.
    """
    errors: List[str] = []
    filters: Dict[str, Any] = {}
    for param, key in names.items():
        raw = args.get(param)
        if raw in (None, ""):
            continue
        if key in ("date_from", "date_to"):
            parsed = parse_date(raw)
            if parsed is None:
                errors.append(f"'{param}' must be in YYYY-MM-DD format")
            else:
                filters[key] = parsed
        elif key == "is_active":
            flag = parse_bool(raw)
            if flag is None:
                errors.append(f"'{param}' must be true or false")
            else:
                filters[key] = flag
        elif key in ("injury_id", "rehab_plan_id"):
            try:
                filters[key] = int(raw)
            except (TypeError, ValueError):
                errors.append(f"'{param}' must be a number")
        else:
            filters[key] = normalize_id(raw) if key.endswith("_id") else raw
    _raise_if(errors, "query")
    return filters


def parse_paging(args: Mapping[str, Any], default_limit: int, max_limit: int):
    """Return (limit, offset) from the query string, capping limit at *max_limit*."""
    errors: List[str] = []
    values = {}
    for name, default in (("limit", default_limit), ("offset", 0)):
        raw = args.get(name)
        if raw in (None, ""):
            values[name] = default
            continue
        try:
            values[name] = int(raw)
        except (TypeError, ValueError):
            errors.append(f"'{name}' must be a number")
            continue
        if values[name] < 0:
            errors.append(f"'{name}' must not be negative")
    _raise_if(errors, "query")
    return min(values["limit"], max_limit), values["offset"]
