"""
Seed script for the submissions collection (local development only).
Run: python -m scripts.seed_demo_submissions --user-id <uuid> [--days 14]

Creates a streak of daily observations along the west coast so the
profile badges and XP pages have something to show.
"""

import argparse
import asyncio
import os
import random
from datetime import datetime, timedelta, timezone

import certifi
from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient

from app.submissions.service import round_coord

load_dotenv()

MONGO_URL = os.getenv("MONGO_URI", "mongodb://localhost:27017")
DB_NAME = os.getenv("MONGO_DB_NAME", "kystobservatorene")

SPOTS = [
    ("Bergen", 60.3913, 5.3221),
    ("Stavanger", 58.9700, 5.7331),
    ("Ålesund", 62.4722, 6.1495),
    ("Florø", 61.5996, 5.0328),
]
DIRECTIONS = ["N", "NØ", "Ø", "SØ", "S", "SV", "V", "NV"]


def get_mongo_client(uri: str) -> AsyncIOMotorClient:
    """Create Mongo client with TLS if needed."""
    client_kwargs = {}
    if "mongodb+srv://" in uri or "ssl=true" in uri.lower():
        client_kwargs["tlsCAFile"] = certifi.where()
    return AsyncIOMotorClient(uri, **client_kwargs)


def build_submissions(user_id: str, days: int, rng: random.Random) -> list:
    now = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
    docs = []
    for i in range(days):
        name, lat, lng = rng.choice(SPOTS)
        lat += rng.uniform(-0.03, 0.03)
        lng += rng.uniform(-0.03, 0.03)
        level = rng.choice([1, 1, 2])
        docs.append({
            "user_id": user_id,
            "display_name": "Demo",
            "level": level,
            "comment": f"Demo-observasjon ved {name}",
            "valg": None,
            "wind_dir": rng.choice(DIRECTIONS) if rng.random() < 0.7 else None,
            "wave_dir": rng.choice(DIRECTIONS) if rng.random() < 0.5 else None,
            "lat": lat,
            "lng": lng,
            "lat_public": round_coord(lat, 4),
            "lng_public": round_coord(lng, 4),
            "media_type": "photo" if level == 1 else "video",
            "media_path_original": f"demo/{user_id}/{i}.jpg",
            "is_public": True,
            "created_at": now - timedelta(days=i),
            "deleted_at": None,
        })
    return docs


async def seed_submissions(user_id: str, days: int, replace: bool, seed: int):
    """Insert demo submissions for one user."""
    client = get_mongo_client(MONGO_URL)
    collection = client[DB_NAME]["submissions"]

    print(f"Connected to MongoDB: {MONGO_URL}/{DB_NAME}")

    if replace:
        result = await collection.delete_many({"user_id": user_id, "display_name": "Demo"})
        print(f"Removed {result.deleted_count} earlier demo submissions")

    docs = build_submissions(user_id, days, random.Random(seed))
    result = await collection.insert_many(docs)
    print(f"Inserted {len(result.inserted_ids)} submissions for {user_id}")

    client.close()
    print("\n✅ Seed complete!")


def main():
    parser = argparse.ArgumentParser(description="Seed demo observations for one user")
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--days", type=int, default=14)
    parser.add_argument("--replace", action="store_true", help="remove earlier demo rows first")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()
    asyncio.run(seed_submissions(args.user_id, args.days, args.replace, args.seed))


if __name__ == "__main__":
    main()
