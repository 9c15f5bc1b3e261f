# scripts/test/simulate_reservation.py
"""
Drive one loaner through its full lifecycle against a running backend:
add vehicle → reserve → check out → check in.
Usage: python scripts/test/simulate_reservation.py --url http://localhost:8080
"""

import argparse
import random
import requests
from datetime import date, timedelta


def call(method, url, **kwargs):
    resp = requests.request(method, url, timeout=10, **kwargs)
    print(f"{'✅' if resp.ok else '❌'} {method} {url} → HTTP {resp.status_code}")
    body = resp.json()
    if not resp.ok:
        print(f"   {body}")
        raise SystemExit(1)
    return body


def simulate(base_url, vehicle_type, days, miles, api_key=None):
    api = f"{base_url.rstrip('/')}/api/v1"
    headers = {"X-API-Key": api_key} if api_key else {}

    plate = f"SIM-{random.randint(1000, 9999)}"
    vehicle = call("POST", f"{api}/loaners/fleet", headers=headers, json={
        "make": "Toyota", "model": "Camry", "year": date.today().year - 1,
        "license_plate": plate, "vehicle_type": vehicle_type, "features": ["bluetooth"],
        "mileage": 12000,
    })
    print(f"   vehicle {vehicle['vehicle_number']} ({plate})")

    pickup = date.today()
    reserved = call("POST", f"{api}/loaners/reserve", headers=headers, json={
        "customer_id": "CUST-SIM",
        "repair_order_id": "RO-SIM",
        "pickup_date": pickup.isoformat(),
        "expected_return_date": (pickup + timedelta(days=days)).isoformat(),
        "vehicle_preferences": {"vehicle_type": vehicle_type, "features": ["bluetooth"]},
        "actor_id": "sim",
    })
    reservation_id = reserved["reservation"]["id"]
    print(f"   reservation {reserved['confirmation_number']} → {reserved['vehicle']['vehicle_number']}")

    odometer = reserved["vehicle"]["current_odometer"] or 0
    call("POST", f"{api}/loaners/check-out", headers=headers, json={
        "reservation_id": reservation_id,
        "checkout_inspection": {"fuel_level": 100, "odometer_reading": odometer},
        "customer_agreement": {"terms_accepted": True, "insurance_verified": True, "license_checked": True},
        "actor_id": "sim",
    })

    returned = call("POST", f"{api}/loaners/check-in", headers=headers, json={
        "reservation_id": reservation_id,
        "return_inspection": {"fuel_level": 80, "odometer_reading": odometer + miles},
        "actor_id": "sim",
    })
    print(f"   usage: {returned['usage_summary']}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulate a loaner reservation lifecycle")
    parser.add_argument("--url", default="http://localhost:8080")
    parser.add_argument("--type", default="sedan")
    parser.add_argument("--days", type=int, default=3)
    parser.add_argument("--miles", type=int, default=245)
    parser.add_argument("--api-key", default=None)
    args = parser.parse_args()

    simulate(args.url, args.type, args.days, args.miles, args.api_key)
