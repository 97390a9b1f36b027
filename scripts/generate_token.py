#!/usr/bin/env python3
"""
Mint development JWT tokens for every role.

Tokens are signed with JWT_SECRET_KEY from the environment (or .env), so the
running service accepts them. Useful with scripts/smoke_api.py or curl.

    python scripts/generate_token.py                 # one token per role
    python scripts/generate_token.py coach 17 5      # role, user id, team id
    python scripts/generate_token.py secret          # fresh JWT_SECRET_KEY line
"""

import secrets
import sys

from medical_service.api.auth import generate_token
from medical_service.models import Role

# user id / team id pairs used when no arguments are given
SAMPLE_USERS = {
    Role.PLAYER: ("42", "5"),
    Role.COACH: ("17", "5"),
    Role.TEAM_ADMIN: ("18", "5"),
    Role.MEDICAL: ("90", None),
    Role.ADMIN: ("1", None),
}


def new_secret_line() -> str:
    """A JWT_SECRET_KEY= line for the .env file of every service."""
    return f"JWT_SECRET_KEY={secrets.token_hex(32)}"


def main(argv):
    if argv and argv[0] == "secret":
        print(new_secret_line())
        return

    if argv:
        role = Role.parse(argv[0])
        if role is None:
            print(f"ERROR: unknown role '{argv[0]}'", file=sys.stderr)
            print(f"Roles: {', '.join(r.value for r in Role)}", file=sys.stderr)
            sys.exit(1)
        user_id = argv[1] if len(argv) > 1 else SAMPLE_USERS[role][0]
        team_id = argv[2] if len(argv) > 2 else SAMPLE_USERS[role][1]
        print(generate_token(user_id, role.value, team_id))
        return

    print("=" * 70)
    print("Development Tokens")
    print("=" * 70)
    for role, (user_id, team_id) in SAMPLE_USERS.items():
        print(f"\n{role.value} (user {user_id}, team {team_id or '-'}):")
        print(f"  {generate_token(user_id, role.value, team_id)}")
    print("\n" + "=" * 70)
    print("Send as: Authorization: Bearer <token>")
    print("=" * 70)


if __name__ == "__main__":
    main(sys.argv[1:])
