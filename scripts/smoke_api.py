#!/usr/bin/env python3
"""
Smoke checks against a running medical service.
Start the server first: python -m medical_service.api.app
Then run this: python scripts/smoke_api.py [base_url]

Tokens are minted locally, so JWT_SECRET_KEY must match the server's.
"""

import json
import sys

import requests

from medical_service.api.auth import generate_token

BASE_URL = "http://localhost:3005"


def show(title, response):
    print("\n" + "=" * 50)
    print(f"CHECK: {title}")
    print("=" * 50)
    print(f"Status Code: {response.status_code}")
    if response.content:
        print(f"Response: {json.dumps(response.json(), indent=2)[:800]}")


def check_health():
    response = requests.get(f"{BASE_URL}/health")
    show("Health", response)
    return response.status_code == 200


def check_no_token():
    response = requests.get(f"{BASE_URL}/api/injuries")
    show("List Injuries Without Token", response)
    return response.status_code == 401


def check_injury_lifecycle(admin_token, player_token, other_token):
    auth = {"Authorization": f"Bearer {admin_token}"}
    response = requests.post(f"{BASE_URL}/api/injuries", headers=auth, json={
        "player_id": "42",
        "team_id": "5",
        "injury_date": "2024-03-01",
        "injury_type": "Hamstring strain",
        "injury_description": "Smoke check injury",
    })
    show("Create Injury (admin)", response)
    if response.status_code != 201:
        return {"Create Injury": False}
    injury_id = response.json()["id"]

    results = {"Create Injury": True}

    response = requests.get(f"{BASE_URL}/api/injuries/{injury_id}",
                            headers={"Authorization": f"Bearer {player_token}"})
    show("Read Own Injury (player 42)", response)
    results["Player Reads Own Injury"] = response.status_code == 200

    response = requests.get(f"{BASE_URL}/api/injuries/{injury_id}",
                            headers={"Authorization": f"Bearer {other_token}"})
    show("Read Foreign Injury (player 43)", response)
    results["Player Denied Foreign Injury"] = response.status_code == 403

    response = requests.patch(f"{BASE_URL}/api/injuries/{injury_id}/status", headers=auth,
                              json={"is_active": False, "return_date": "2024-04-01"})
    show("Mark Injury Healed", response)
    results["Status Change"] = response.status_code == 200

    response = requests.delete(f"{BASE_URL}/api/injuries/{injury_id}", headers=auth)
    show("Delete Injury", response)
    results["Delete Injury"] = response.status_code == 204

    response = requests.get(f"{BASE_URL}/api/injuries/{injury_id}", headers=auth)
    show("Read Deleted Injury", response)
    results["Deleted Injury Is 404"] = response.status_code == 404
    return results


def main():
    global BASE_URL
    if len(sys.argv) > 1:
        BASE_URL = sys.argv[1].rstrip("/")

    print("=" * 50)
    print("Medical Service Smoke Checks")
    print("=" * 50)
    print(f"Base URL: {BASE_URL}")

    admin_token = generate_token("1", "admin")
    player_token = generate_token("42", "player", "5")
    other_token = generate_token("43", "player", "5")

    results = {}
    try:
        results["Health"] = check_health()
        results["No Token"] = check_no_token()
        results.update(check_injury_lifecycle(admin_token, player_token, other_token))
    except requests.RequestException as e:
        print(f"\n\nERROR: {e}")
        results["Server Reachable"] = False

    print("\n" + "=" * 50)
    print("SUMMARY")
    print("=" * 50)
    passed = sum(1 for v in results.values() if v)
    for check, result in results.items():
        status = "✓ PASS" if result else "✗ FAIL"
        print(f"{status}: {check}")
    print(f"\nTotal: {passed}/{len(results)} checks passed")
    print("=" * 50)


if __name__ == "__main__":
    main()
