"""
Resource store – transactional CRUD for every medical record table.

Each public method runs in exactly one transaction. Rows come back as plain
dicts with dates rendered in ISO format, ready for ``jsonify``.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import and_, false, func, select, true
from sqlalchemy.engine import Engine

from medical_service.config import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from medical_service.database import create_tables
from medical_service.errors import NotFoundError, ValidationError
from medical_service.models import ResourceKind, ResourceRef, normalize_id
from medical_service.policy import ListScope
from medical_service.tables import (
    injuries,
    medical_reports,
    progress_notes,
    rehab_plans,
    treatments,
)


@dataclass(frozen=True)
class _KindView:
    """How one resource kind is selected, filtered and resolved."""
    label: str
    table: Any
    source: Any             # FROM clause joining through to the owning injury
    query: Any              # SELECT including the resolved owner/team columns
    owner: Any
    team: Any
    date: Any
    filters: Dict[str, Any]
    creator: Any
    writable: frozenset


_VIEWS: Dict[ResourceKind, _KindView] = {
    ResourceKind.INJURY: _KindView(
        label="Injury",
        table=injuries,
        source=injuries,
        query=select(injuries),
        owner=injuries.c.player_id,
        team=injuries.c.team_id,
        date=injuries.c.injury_date,
        filters={
            "player_id": injuries.c.player_id,
            "team_id": injuries.c.team_id,
            "type": injuries.c.injury_type,
            "is_active": injuries.c.is_active,
        },
        creator=injuries.c.reported_by,
        writable=frozenset({
            "player_id", "team_id", "injury_date", "return_date", "injury_type",
            "injury_description", "is_active", "reported_by",
        }),
    ),
    ResourceKind.TREATMENT: _KindView(
        label="Treatment",
        table=treatments,
        source=treatments.join(injuries),
        query=select(
            treatments,
            injuries.c.player_id,
            injuries.c.team_id,
            injuries.c.injury_type.label("injury_title"),
        ).select_from(treatments.join(injuries)),
        owner=injuries.c.player_id,
        team=injuries.c.team_id,
        date=treatments.c.treatment_date,
        filters={
            "player_id": injuries.c.player_id,
            "team_id": injuries.c.team_id,
            "injury_id": treatments.c.injury_id,
            "type": treatments.c.treatment_type,
        },
        creator=treatments.c.treated_by,
        writable=frozenset({
            "injury_id", "treatment_date", "treatment_type",
            "treatment_description", "treated_by", "notes",
        }),
    ),
    ResourceKind.REHAB_PLAN: _KindView(
        label="Rehabilitation plan",
        table=rehab_plans,
        source=rehab_plans.join(injuries),
        query=select(
            rehab_plans,
            injuries.c.player_id,
            injuries.c.team_id,
            injuries.c.injury_type.label("injury_title"),
        ).select_from(rehab_plans.join(injuries)),
        owner=injuries.c.player_id,
        team=injuries.c.team_id,
        date=rehab_plans.c.start_date,
        filters={
            "player_id": injuries.c.player_id,
            "team_id": injuries.c.team_id,
            "injury_id": rehab_plans.c.injury_id,
            "status": rehab_plans.c.status,
        },
        creator=rehab_plans.c.created_by,
        writable=frozenset({
            "injury_id", "title", "description", "start_date", "end_date",
            "status", "created_by",
        }),
    ),
    ResourceKind.PROGRESS_NOTE: _KindView(
        label="Progress note",
        table=progress_notes,
        source=progress_notes.join(rehab_plans).join(injuries),
        query=select(
            progress_notes,
            rehab_plans.c.title.label("rehab_plan_title"),
            injuries.c.player_id,
            injuries.c.team_id,
            injuries.c.injury_type.label("injury_title"),
        ).select_from(progress_notes.join(rehab_plans).join(injuries)),
        owner=injuries.c.player_id,
        team=injuries.c.team_id,
        date=progress_notes.c.note_date,
        filters={
            "player_id": injuries.c.player_id,
            "team_id": injuries.c.team_id,
            "injury_id": rehab_plans.c.injury_id,
            "rehab_plan_id": progress_notes.c.rehab_plan_id,
            "status": progress_notes.c.progress_status,
        },
        creator=progress_notes.c.created_by,
        writable=frozenset({
            "rehab_plan_id", "note_date", "content", "progress_status",
            "pain_level", "mobility_level", "strength_level", "created_by",
        }),
    ),
    ResourceKind.MEDICAL_REPORT: _KindView(
        label="Medical report",
        table=medical_reports,
        source=medical_reports,
        query=select(medical_reports),
        owner=medical_reports.c.user_id,
        team=None,
        date=medical_reports.c.report_date,
        filters={
            "player_id": medical_reports.c.user_id,
            "type": medical_reports.c.report_type,
        },
        creator=medical_reports.c.created_by,
        writable=frozenset({
            "user_id", "title", "report_date", "content", "report_type",
            "confidentiality_level", "attachments", "created_by",
        }),
    ),
}


def _jsonable(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def row_to_dict(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a result row mapping into a JSON-friendly dict."""
    return {key: _jsonable(value) for key, value in row.items()}


class ResourceStore:
    """CRUD over the medical tables; the engine is injected, never global."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def create_tables(self) -> None:
        create_tables(self.engine)

    # ── Resolution ───────────────────────────────────────────────────

    def resolve(self, kind: ResourceKind, record_id: int) -> ResourceRef:
        """Return the (owner, team, creator) triple the policy engine decides on."""
        view = _VIEWS[ResourceKind(kind)]
        team_col = view.team
        columns = [view.owner, view.creator]
        if team_col is not None:
            columns.append(team_col)
        sql = select(*columns).select_from(view.source).where(view.table.c.id == record_id)
        with self.engine.begin() as conn:
            row = conn.execute(sql).first()
        if row is None:
            raise NotFoundError(f"{view.label} with ID {record_id} not found")

        team_id = normalize_id(row[2]) if team_col is not None else None
        # no team on the row: the policy looks it up from the owning player
        return ResourceRef(
            owner_player_id=normalize_id(row[0]),
            created_by=normalize_id(row[1]),
            team_id=team_id,
            team_resolved=team_id is not None,
        )

    # ── CRUD ─────────────────────────────────────────────────────────

    def get(self, kind: ResourceKind, record_id: int) -> Dict[str, Any]:
        view = _VIEWS[ResourceKind(kind)]
        with self.engine.begin() as conn:
            return self._fetch(conn, view, record_id)

    def create(self, kind: ResourceKind, values: Mapping[str, Any]) -> Dict[str, Any]:
        view = _VIEWS[ResourceKind(kind)]
        data = self._writable(view, values)
        with self.engine.begin() as conn:
            result = conn.execute(view.table.insert().values(**data))
            new_id = result.inserted_primary_key[0]
            return self._fetch(conn, view, new_id)

    def update(self, kind: ResourceKind, record_id: int, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Update the given columns only; an empty update is a validation error."""
        view = _VIEWS[ResourceKind(kind)]
        data = self._writable(view, values)
        if not data:
            raise ValidationError("No fields to update")
        data["updated_at"] = func.now()
        with self.engine.begin() as conn:
            result = conn.execute(
                view.table.update().where(view.table.c.id == record_id).values(**data)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"{view.label} with ID {record_id} not found")
            return self._fetch(conn, view, record_id)

    def delete(self, kind: ResourceKind, record_id: int) -> None:
        """Delete a row; dependent rows go with it through ON DELETE CASCADE."""
        view = _VIEWS[ResourceKind(kind)]
        with self.engine.begin() as conn:
            result = conn.execute(view.table.delete().where(view.table.c.id == record_id))
        if result.rowcount == 0:
            raise NotFoundError(f"{view.label} with ID {record_id} not found")

    def set_injury_status(self, injury_id: int, is_active: bool,
                          return_date: Optional[date] = None) -> Dict[str, Any]:
        values = {"is_active": bool(is_active)}
        if return_date is not None:
            values["return_date"] = return_date
        return self.update(ResourceKind.INJURY, injury_id, values)

    # ── Detail views ─────────────────────────────────────────────────

    def get_injury_detail(self, injury_id: int) -> Dict[str, Any]:
        """Injury with its treatments and rehab plans embedded."""
        with self.engine.begin() as conn:
            injury = self._fetch(conn, _VIEWS[ResourceKind.INJURY], injury_id)
            injury["treatments"] = self._children(
                conn, ResourceKind.TREATMENT, treatments.c.injury_id == injury_id
            )
            injury["rehab_plans"] = self._children(
                conn, ResourceKind.REHAB_PLAN, rehab_plans.c.injury_id == injury_id
            )
        return injury

    def get_rehab_plan_detail(self, plan_id: int) -> Dict[str, Any]:
        """Rehab plan with its progress notes embedded."""
        with self.engine.begin() as conn:
            plan = self._fetch(conn, _VIEWS[ResourceKind.REHAB_PLAN], plan_id)
            plan["progress"] = self._children(
                conn, ResourceKind.PROGRESS_NOTE, progress_notes.c.rehab_plan_id == plan_id
            )
        return plan

    def list_plan_progress(self, plan_id: int) -> List[Dict[str, Any]]:
        with self.engine.begin() as conn:
            return self._children(
                conn, ResourceKind.PROGRESS_NOTE, progress_notes.c.rehab_plan_id == plan_id
            )

    # ── Lists ────────────────────────────────────────────────────────

    def list(self, scope: ListScope, limit: int = DEFAULT_LIST_LIMIT,
             offset: int = 0) -> List[Dict[str, Any]]:
        """Run a scoped list query, newest first."""
        if scope.empty:
            return []
        view = _VIEWS[scope.kind]
        limit = max(0, min(int(limit), MAX_LIST_LIMIT))
        offset = max(0, int(offset))
        sql = (
            view.query
            .where(self.where_clause(scope))
            .order_by(view.date.desc(), view.table.c.id.desc())
            .limit(limit)
            .offset(offset)
        )
        with self.engine.begin() as conn:
            return [row_to_dict(r) for r in conn.execute(sql).mappings()]

    def where_clause(self, scope: ListScope):
        """Compile a ListScope into a SQL boolean expression."""
        view = _VIEWS[scope.kind]
        if scope.empty:
            return false()

        clauses = []
        for key, value in scope.filters:
            if key == "date_from":
                clauses.append(view.date >= value)
            elif key == "date_to":
                clauses.append(view.date <= value)
            elif key in view.filters:
                column = view.filters[key]
                clauses.append(column == (bool(value) if key == "is_active" else value))
            else:
                raise ValidationError(f"Filter '{key}' is not supported for {view.label.lower()} lists")

        if scope.player_ids is not None:
            clauses.append(view.owner.in_(sorted(scope.player_ids)))
        if scope.team_id is not None:
            if view.team is None:
                return false()
            clauses.append(view.team == scope.team_id)
        return and_(*clauses) if clauses else true()

    # ── Internals ────────────────────────────────────────────────────

    def _fetch(self, conn, view: _KindView, record_id: int) -> Dict[str, Any]:
        row = conn.execute(view.query.where(view.table.c.id == record_id)).mappings().first()
        if row is None:
            raise NotFoundError(f"{view.label} with ID {record_id} not found")
        return row_to_dict(row)

    def _children(self, conn, kind: ResourceKind, condition) -> List[Dict[str, Any]]:
        view = _VIEWS[kind]
        sql = view.query.where(condition).order_by(view.date.desc(), view.table.c.id.desc())
        return [row_to_dict(r) for r in conn.execute(sql).mappings()]

    def _writable(self, view: _KindView, values: Mapping[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in values.items() if k in view.writable}
