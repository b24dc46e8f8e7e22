#!/usr/bin/env python3
"""
Demo seed script — registers sample CRM users for demos.

!! NOT FOR PRODUCTION !!
Creates users with known passwords through the running API, then logs each
one in once to confirm the credentials work.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Delete the SQLite database (restart the server to recreate tables):
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

Promote the first user afterwards with demo/promote_admin.py.

Login credentials after seeding:
    ┌──────────────────────────────┬───────────────────┐
    │ Email                        │ Password          │
    ├──────────────────────────────┼───────────────────┤
    │ admin@crmdemo.com            │ AdminDemo123!     │
    │ alice.chen@example.com       │ AliceDemo123!     │
    │ bob.martinez@example.com     │ BobDemo123!       │
    │ carol.nguyen@example.com     │ CarolDemo123!     │
    └──────────────────────────────┴───────────────────┘
"""

import argparse
import asyncio
import os

import httpx

USERS = [
    {"email": "admin@crmdemo.com", "password": "AdminDemo123!",
     "firstName": "Admin", "lastName": "User"},
    {"email": "alice.chen@example.com", "password": "AliceDemo123!",
     "firstName": "Alice", "lastName": "Chen"},
    {"email": "bob.martinez@example.com", "password": "BobDemo123!",
     "firstName": "Bob", "lastName": "Martinez"},
    {"email": "carol.nguyen@example.com", "password": "CarolDemo123!",
     "firstName": "Carol", "lastName": "Nguyen"},
]


def log(msg: str) -> None:
    print(f"  {msg}")


async def register(client: httpx.AsyncClient, user: dict) -> None:
    resp = await client.post("/auth/register", json=user)
    if resp.status_code == 409:
        log(f"{user['email']} already registered, skipping")
        return
    resp.raise_for_status()
    log(f"Registered {user['email']}")


async def login(client: httpx.AsyncClient, user: dict) -> None:
    resp = await client.post(
        "/auth/login",
        json={"email": user["email"], "password": user["password"]},
    )
    resp.raise_for_status()
    log(f"Logged in {user['email']} (role {resp.json()['user']['role']})")


async def seed(base_url: str) -> None:
    print("\n  Seeding CRM users\n")
    async with httpx.AsyncClient(base_url=base_url) as client:
        for user in USERS:
            await register(client, user)
            await login(client, user)
    print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "crm.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script — NOT FOR PRODUCTION",
        epilog="Registers sample CRM users.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await seed(args.base_url)


if __name__ == "__main__":
    asyncio.run(main())
