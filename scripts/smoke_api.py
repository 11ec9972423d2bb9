#!/usr/bin/env python3
"""
Smoke check for a running Kystobservatørene API.
Walks the public, profile and admin endpoints in positive flow.

Run: python -m scripts.smoke_api
Env: API_BASE_URL, ACCESS_TOKEN (user JWT, optional), ADMIN_API_KEY (optional)
"""

import os
import sys
from typing import Optional

import requests

BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
API_BASE = f"{BASE_URL}/api/v1"
TIMEOUT = 10

class Colors:
    GREEN = '\033[92m'
    RED = '\033[91m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    END = '\033[0m'

def print_section(name: str):
    print(f"\n{Colors.BLUE}=== {name} ==={Colors.END}")

def print_success(msg: str):
    print(f"{Colors.GREEN}✓ {msg}{Colors.END}")

def print_error(msg: str):
    print(f"{Colors.RED}✗ {msg}{Colors.END}")

def print_info(msg: str):
    print(f"{Colors.YELLOW}ℹ {msg}{Colors.END}")

def check_health() -> bool:
    """Root and /health endpoints."""
    print_section("Health Checks")

    try:
        r = requests.get(f"{BASE_URL}/", timeout=TIMEOUT)
        r.raise_for_status()
        assert r.json()["status"] == "healthy"
        print_success("GET / - Root health check")
    except (requests.RequestException, AssertionError, KeyError) as e:
        print_error(f"GET / - {e}")
        return False

    try:
        r = requests.get(f"{BASE_URL}/health", timeout=TIMEOUT)
        r.raise_for_status()
        data = r.json()
        print_success("GET /health - Detailed health check")
        print_info(f"Database: {data.get('database', 'unknown')}")
    except requests.RequestException as e:
        print_error(f"GET /health - {e}")
        return False

    return True

def check_public() -> bool:
    """Feeds, map and static tables that need no login."""
    print_section("Public Endpoints")
    ok = True

    for path, key in [
        ("/submissions/list", "data"),
        ("/submissions/week", "data"),
        ("/map", "data"),
        ("/badges/definitions", "badges"),
    ]:
        try:
            r = requests.get(f"{API_BASE}{path}", timeout=TIMEOUT)
            r.raise_for_status()
            items = r.json()[key]
            print_success(f"GET {path} - {len(items)} item(s)")
        except (requests.RequestException, KeyError) as e:
            print_error(f"GET {path} - {e}")
            ok = False

    try:
        r = requests.get(f"{API_BASE}/levels", timeout=TIMEOUT)
        r.raise_for_status()
        levels = r.json()
        print_success(f"GET /levels - {len(levels)} levels, top: {levels[-1]['title']}")
    except (requests.RequestException, KeyError, IndexError) as e:
        print_error(f"GET /levels - {e}")
        ok = False

    return ok

def check_profile(token: Optional[str]) -> bool:
    """Stats, badges and XP for the token's user."""
    print_section("Profile")

    r = requests.get(f"{API_BASE}/profile/badges", timeout=TIMEOUT)
    if r.status_code in (401, 403):
        print_success("GET /profile/badges - anonymous caller rejected")
    else:
        print_error(f"GET /profile/badges - expected 401/403 without token, got {r.status_code}")
        return False

    if not token:
        print_info("ACCESS_TOKEN not set, skipping logged-in profile checks")
        return True

    headers = {"Authorization": f"Bearer {token}"}
    try:
        r = requests.get(f"{API_BASE}/profile/stats", headers=headers, timeout=TIMEOUT)
        r.raise_for_status()
        stats = r.json()
        print_success("GET /profile/stats")
        print_info(f"Total: {stats['total']}, streak: {stats['streak']} day(s), badges: {stats['badges']}")

        r = requests.get(f"{API_BASE}/profile/badges", headers=headers, timeout=TIMEOUT)
        r.raise_for_status()
        badges = r.json()
        print_success(f"GET /profile/badges - {badges['earned_count']}/{badges['total_count']} earned")

        r = requests.get(f"{API_BASE}/profile/xp", headers=headers, timeout=TIMEOUT)
        r.raise_for_status()
        xp = r.json()
        assert xp["total_xp"] == xp["submission_xp"] + xp["badge_xp"]
        print_success(f"GET /profile/xp - {xp['total_xp']} XP, level {xp['current_level']['level']}")
    except (requests.RequestException, AssertionError, KeyError) as e:
        print_error(f"Profile - {e}")
        return False

    return True

def check_admin(api_key: Optional[str]) -> bool:
    """Review console listing and CSV export."""
    print_section("Admin")

    if not api_key:
        print_info("ADMIN_API_KEY not set, skipping admin checks")
        return True

    headers = {"X-ADMIN-API-KEY": api_key}
    try:
        r = requests.get(f"{API_BASE}/admin/submissions", headers=headers, timeout=TIMEOUT)
        r.raise_for_status()
        print_success(f"GET /admin/submissions - {len(r.json()['data'])} row(s)")

        r = requests.get(f"{API_BASE}/admin/users", headers=headers, timeout=TIMEOUT)
        r.raise_for_status()
        print_success(f"GET /admin/users - {len(r.json()['data'])} submitter(s)")

        r = requests.get(f"{API_BASE}/admin/submissions/export.csv", headers=headers, timeout=TIMEOUT)
        r.raise_for_status()
        assert r.headers.get("content-type", "").startswith("text/csv")
        print_success("GET /admin/submissions/export.csv")
    except (requests.RequestException, AssertionError, KeyError) as e:
        print_error(f"Admin - {e}")
        return False

    return True

def main():
    """Run all checks."""
    print(f"\n{Colors.BLUE}{'='*60}")
    print("Kystobservatørene API - Smoke Check")
    print(f"{'='*60}{Colors.END}\n")

    print_info(f"Checking against: {BASE_URL}")
    print_info("Make sure the API is running before starting\n")

    if not check_health():
        print_error("\nHealth checks failed. Is the API running?")
        sys.exit(1)

    results = [
        check_public(),
        check_profile(os.getenv("ACCESS_TOKEN")),
        check_admin(os.getenv("ADMIN_API_KEY")),
    ]

    if all(results):
        print(f"\n{Colors.GREEN}{'='*60}")
        print("All checks passed!")
        print(f"{'='*60}{Colors.END}\n")
    else:
        print_error("\nSome checks failed.")
        sys.exit(1)

if __name__ == "__main__":
    main()
