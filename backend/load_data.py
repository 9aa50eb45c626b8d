"""
Data Loader Script - uploads a roster file into the gradebook via the API.

Acts as the import collaborator: reads a JSON list of students, teachers
or homeroom teachers (or a text file of pasted student rows) and sends it
to the bulk endpoint as the administrator.

Usage:
    python load_data.py students roster.json                   # replace students
    python load_data.py teachers teachers.json http://host:8000
    python load_data.py paste students.txt                     # append pasted rows
"""

import json
import os
import sys

import httpx

ADMIN_HEADERS = {"X-Role": "admin"}


def post_json(url, data):
    with httpx.Client(timeout=30.0) as client:
        resp = client.post(url, json=data, headers=ADMIN_HEADERS)
        if resp.status_code >= 400:
            body = resp.json()
            print(f"HTTP Error {resp.status_code}: {body.get('detail')}")
            for error in body.get("errors", []):
                print(f"  line {error.get('line', '?')}: {error.get('reason', error)}")
            sys.exit(1)
        return resp.json()


def main():
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)

    target, data_file = sys.argv[1], sys.argv[2]
    api_url = sys.argv[3] if len(sys.argv) > 3 else os.getenv("API_URL", "http://localhost:8000")

    if target not in ("students", "teachers", "homeroom", "paste"):
        print(f"Error: unknown target '{target}'")
        sys.exit(1)
    if not os.path.exists(data_file):
        print(f"Error: Could not find {data_file}")
        sys.exit(1)

    print(f"Loading data from: {data_file}")
    with open(data_file, "r", encoding="utf-8") as f:
        if target == "paste":
            url = f"{api_url}/api/bulk/students/paste"
            payload = {"text": f.read()}
        else:
            url = f"{api_url}/api/bulk/{target}"
            payload = json.load(f)
            print(f"Found {len(payload)} {target} records")

    print(f"Sending to: {url}")
    result = post_json(url, payload)

    print("=" * 60)
    print(f"  {result.get('action')}: {result.get('details')}")
    print(f"  History depth: {result.get('depth')} (undo available: {result.get('can_undo')})")
    print("=" * 60)


if __name__ == "__main__":
    main()
