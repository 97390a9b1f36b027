#!/usr/bin/env python3
"""
Seed the medical tables with fake injuries, treatments, rehab plans,
progress notes and medical reports.

Uses DB_URI from the environment (or .env); tables are created if missing.
Needs the seed extra: pip install -e .[seed]
"""

import random
from datetime import date, timedelta

from faker import Faker

from medical_service.database import create_tables, init_engine
from medical_service.models import CONFIDENTIALITY_LEVELS, PROGRESS_STATUSES, REHAB_STATUSES
from medical_service.tables import (
    injuries,
    medical_reports,
    progress_notes,
    rehab_plans,
    treatments,
)

# --------------------------------------------------------------------
# CONFIG
# --------------------------------------------------------------------
NUM_TEAMS = 3
PLAYERS_PER_TEAM = 12
MEDICAL_STAFF = ["90", "91", "92"]

# min, max rows per parent
PER_PARENT = {
    "injuries": (0, 2),         # per player
    "treatments": (1, 4),       # per injury
    "rehab_plans": (0, 1),      # per injury
    "progress_notes": (0, 5),   # per plan
    "medical_reports": (0, 2),  # per player
}

INJURY_TYPES = [
    "Hamstring strain", "Ankle sprain", "ACL tear", "Concussion",
    "Shoulder dislocation", "Groin strain", "Shin splints", "Tennis elbow",
]
TREATMENT_TYPES = ["Physiotherapy", "Ice therapy", "Massage", "Surgery", "Rest", "Ultrasound"]
REPORT_TYPES = ["Pre-season screening", "Follow-up", "Imaging", "Clearance"]

# --------------------------------------------------------------------
# SETUP
# --------------------------------------------------------------------
fake = Faker()
random.seed(42)
Faker.seed(42)


def per_parent_count(table_name):
    lo, hi = PER_PARENT.get(table_name, (0, 0))
    return random.randint(lo, hi)


def random_date_within(days_back=365):
    return date.today() - timedelta(days=random.randint(0, days_back))


def maybe_level():
    return random.randint(0, 10) if random.random() < 0.8 else None


# --------------------------------------------------------------------
# SEED FUNCTIONS
# --------------------------------------------------------------------
def seed_injuries(conn, players):
    ids = []
    for player_id, team_id in players:
        for _ in range(per_parent_count("injuries")):
            injury_date = random_date_within(365)
            healed = random.random() < 0.5
            result = conn.execute(injuries.insert().values(
                player_id=player_id,
                team_id=team_id,
                injury_date=injury_date,
                return_date=injury_date + timedelta(days=random.randint(7, 120)) if healed else None,
                injury_type=random.choice(INJURY_TYPES),
                injury_description=fake.text(max_nb_chars=200),
                is_active=not healed,
                reported_by=random.choice(MEDICAL_STAFF),
            ))
            ids.append((result.inserted_primary_key[0], injury_date))
    return ids


def seed_treatments(conn, injury_ids):
    rows = []
    for injury_id, injury_date in injury_ids:
        for _ in range(per_parent_count("treatments")):
            rows.append({
                "injury_id": injury_id,
                "treatment_date": injury_date + timedelta(days=random.randint(0, 60)),
                "treatment_type": random.choice(TREATMENT_TYPES),
                "treatment_description": fake.sentence(),
                "treated_by": random.choice(MEDICAL_STAFF),
                "notes": fake.text(max_nb_chars=100) if random.random() < 0.5 else None,
            })
    if rows:
        conn.execute(treatments.insert(), rows)


def seed_rehab_plans(conn, injury_ids):
    ids = []
    for injury_id, injury_date in injury_ids:
        for _ in range(per_parent_count("rehab_plans")):
            start = injury_date + timedelta(days=random.randint(1, 14))
            result = conn.execute(rehab_plans.insert().values(
                injury_id=injury_id,
                title=f"{fake.word().title()} recovery programme",
                description=fake.text(max_nb_chars=200),
                start_date=start,
                end_date=start + timedelta(days=random.randint(14, 90)),
                status=random.choice(REHAB_STATUSES),
                created_by=random.choice(MEDICAL_STAFF),
            ))
            ids.append((result.inserted_primary_key[0], start))
    return ids


def seed_progress_notes(conn, plan_ids):
    rows = []
    for plan_id, start in plan_ids:
        for i in range(per_parent_count("progress_notes")):
            rows.append({
                "rehab_plan_id": plan_id,
                "note_date": start + timedelta(days=7 * i),
                "content": fake.text(max_nb_chars=150),
                "progress_status": random.choice(PROGRESS_STATUSES),
                "pain_level": maybe_level(),
                "mobility_level": maybe_level(),
                "strength_level": maybe_level(),
                "created_by": random.choice(MEDICAL_STAFF),
            })
    if rows:
        conn.execute(progress_notes.insert(), rows)


def seed_medical_reports(conn, players):
    rows = []
    for player_id, _team_id in players:
        for _ in range(per_parent_count("medical_reports")):
            rows.append({
                "user_id": player_id,
                "title": fake.sentence(nb_words=4).rstrip("."),
                "report_date": random_date_within(365),
                "content": fake.text(max_nb_chars=400),
                "report_type": random.choice(REPORT_TYPES),
                "confidentiality_level": random.choice(CONFIDENTIALITY_LEVELS),
                "attachments": [{"name": fake.file_name(extension="pdf")}] if random.random() < 0.3 else None,
                "created_by": random.choice(MEDICAL_STAFF),
            })
    if rows:
        conn.execute(medical_reports.insert(), rows)


# --------------------------------------------------------------------
# MAIN
# --------------------------------------------------------------------
def main():
    engine = init_engine()
    create_tables(engine)

    players = [
        (str(100 * team + n), str(team))
        for team in range(1, NUM_TEAMS + 1)
        for n in range(1, PLAYERS_PER_TEAM + 1)
    ]

    with engine.begin() as conn:
        print("Seeding injuries...")
        injury_ids = seed_injuries(conn, players)

        print("Seeding treatments...")
        seed_treatments(conn, injury_ids)

        print("Seeding rehab plans...")
        plan_ids = seed_rehab_plans(conn, injury_ids)

        print("Seeding progress notes...")
        seed_progress_notes(conn, plan_ids)

        print("Seeding medical reports...")
        seed_medical_reports(conn, players)

        print("Done!")


if __name__ == "__main__":
    main()
