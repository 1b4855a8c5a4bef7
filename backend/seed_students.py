"""
Data Loader Script - Loads sample_students.json into the platform via API.

Registers each student, then replays their payments, consumed lessons and
measurements through the same endpoints the UI uses, so history entries
are generated exactly as in normal operation.

Usage:
    python seed_students.py                              # Uses default URL
    python seed_students.py http://localhost:8000         # Custom API URL
    python seed_students.py http://backend:8000           # Inside Docker network
"""

import json
import os
import sys

import httpx


def main():
    api_url = sys.argv[1] if len(sys.argv) > 1 else os.getenv("API_URL", "http://localhost:8000")

    data_file = os.path.join(os.path.dirname(os.path.abspath(__file__)), "sample_students.json")
    if not os.path.exists(data_file):
        print("Error: Could not find sample_students.json")
        sys.exit(1)

    print(f"Loading data from: {data_file}")
    with open(data_file, "r", encoding="utf-8") as f:
        samples = json.load(f)

    print(f"Found {len(samples)} students to register")
    print(f"Sending to: {api_url}")
    print()

    with httpx.Client(base_url=api_url, timeout=30.0) as client:
        for sample in samples:
            resp = client.post("/api/students", json={
                "name": sample["name"],
                "phone": sample.get("phone"),
                "total_lessons": sample["total_lessons"],
                "balance": sample.get("initial_payment", 0),
                "total_fee": sample.get("total_fee"),
            })
            resp.raise_for_status()
            student_id = resp.json()["id"]

            for amount in sample.get("payments", []):
                client.post(f"/api/students/{student_id}/payments",
                            json={"amount": amount}).raise_for_status()
            for _ in range(sample.get("lessons_taken", 0)):
                client.post(f"/api/students/{student_id}/lessons/consume").raise_for_status()
            for measurement in sample.get("measurements", []):
                client.post(f"/api/students/{student_id}/measurements",
                            json=measurement).raise_for_status()

            print(f"  ✅ {sample['name']} ({student_id[:8]}...)")

        dashboard = client.get("/api/dashboard").json()

    stats = dashboard["stats"]
    print()
    print("=" * 60)
    print("DASHBOARD SUMMARY")
    print("=" * 60)
    print(f"  Students:               {stats['total_students']}")
    print(f"  Total Revenue:          {stats['total_revenue']}")
    print(f"  Avg Remaining Lessons:  {stats['avg_remaining_lessons']}")
    print("=" * 60)
    for item in dashboard["attention"]:
        icon = "🔴" if item["priority"] == 1 else "🟡"
        print(f"  {icon} {item['student']['name']}: {item['message']}")
    print()


if __name__ == "__main__":
    main()
