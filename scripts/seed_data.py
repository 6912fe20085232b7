#!/usr/bin/env python3
"""
Seed script — creates a realistic dataset for trying out the network API.

Creates:
  • 8 users with filled-in profiles (password: password123)
  • 3 posts per user
  • Random likes and comments across posts
  • Connection requests between users, most accepted, some rejected,
    a few left pending

Run against a running API:
  python scripts/seed_data.py --api-url http://localhost:8000

Everything goes through the public HTTP endpoints, so counters and
connection states end up exactly as real traffic would leave them.
"""
import argparse
import json
import random
import time
import urllib.request
import urllib.error
from dataclasses import dataclass
from typing import Optional


PASSWORD = "password123"

BASE_USERS = [
    ("Sarah Chen", "sarah.chen@techcorp.com", "Senior Software Engineer", "Google", "San Francisco, CA"),
    ("Michael Rodriguez", "michael.rodriguez@startup.io", "Senior Product Manager", "Stripe", "New York, NY"),
    ("Emily Johnson", "emily.johnson@design.co", "Lead UX Designer", "Airbnb", "Seattle, WA"),
    ("David Kim", "david.kim@datalab.ai", "Data Scientist", "OpenData Labs", "Austin, TX"),
    ("Priya Patel", "priya.patel@cloudops.dev", "Site Reliability Engineer", "Datadog", "Boston, MA"),
    ("James Wilson", "james.wilson@ventures.vc", "Principal", "Northstar Ventures", "Palo Alto, CA"),
    ("Aisha Mohammed", "aisha.mohammed@health.org", "Engineering Manager", "CareFirst", "Chicago, IL"),
    ("Lucas Silva", "lucas.silva@mobile.app", "iOS Developer", "Spotify", "Remote"),
]

SAMPLE_POSTS = [
    "Excited to share that our team just shipped a major redesign of the onboarding flow! 🎉",
    "Three lessons from five years of mentoring junior engineers: ask questions early, write things down, ship small.",
    "Hiring! We are looking for a backend engineer who enjoys distributed systems. DM me.",
    "Just got back from the conference. The keynote on AI ethics was the highlight for me.",
    "Accessibility is not a feature, it is a baseline. Audit your product this week.",
    "Our on-call rotation got 40% quieter after we invested in better alerting. Worth every hour.",
    "Grateful for a team that celebrates failures as loudly as wins.",
    "Reading list for the weekend: Designing Data-Intensive Applications, again.",
    "Product tip: talk to five customers before writing a single line of a spec.",
    "Small pull requests get reviewed. Large pull requests get approved. Choose wisely.",
    "Celebrating 3 years at the company today. Time flies when the problems are interesting.",
    "We open-sourced our internal feature-flag tool. Feedback welcome!",
]

SAMPLE_COMMENTS = [
    "Congratulations on this achievement! Well deserved! 🎉",
    "This is inspiring! Thanks for sharing.",
    "Great insights! Would love to connect and learn more.",
    "Couldn't agree more.",
    "Bookmarking this for my team.",
    "How long did the rollout take?",
]


@dataclass
class ApiClient:
    base_url: str

    def _send(self, method: str, path: str, data: Optional[dict], token: Optional[str]) -> dict:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        body = json.dumps(data).encode() if data is not None else None
        req = urllib.request.Request(url, data=body, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on {method} {path}: {e.read().decode()}")
            return {}

    def post(self, path: str, data: dict, token: Optional[str] = None) -> dict:
        return self._send("POST", path, data, token)

    def put(self, path: str, data: dict, token: Optional[str] = None) -> dict:
        return self._send("PUT", path, data, token)

    def get(self, path: str, token: Optional[str] = None) -> dict:
        return self._send("GET", path, None, token)


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for i in range(retries):
        try:
            result = client.get("/health")
            if result.get("status") == "ok":
                print("  API is ready!\n")
                return
        except OSError:
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


def sign_in(client: ApiClient, name: str, email: str) -> dict:
    result = client.post("/auth/signup", {"name": name, "email": email, "password": PASSWORD})
    if not result:
        # Already seeded on a previous run
        result = client.post("/auth/login", {"email": email, "password": PASSWORD})
    return result


def main(api_url: str) -> None:
    client = ApiClient(api_url)
    wait_for_api(client)

    # ── Create users ─────────────────────────────────────────────────────
    print("Creating users...")
    tokens: dict[int, str] = {}
    for name, email, position, company, location in BASE_USERS:
        result = sign_in(client, name, email)
        user = result.get("user")
        if not user:
            print(f"  ✗ Failed to create {email}")
            continue
        uid = user["id"]
        tokens[uid] = result["token"]
        seed = name.replace(" ", "")
        client.put(
            "/users/profile",
            {
                "headline": f"{position} at {company}",
                "position": position,
                "company": company,
                "location": location,
                "avatar": f"https://api.dicebear.com/7.x/avataaars/svg?seed={seed}",
            },
            token=tokens[uid],
        )
        print(f"  ✓ {name} (id={uid})")

    user_ids = list(tokens)
    if len(user_ids) < 2:
        print("Not enough users created, aborting")
        return

    # ── Create posts ──────────────────────────────────────────────────────
    print("\nCreating posts...")
    post_ids: list[int] = []
    pool = SAMPLE_POSTS[:]
    random.shuffle(pool)
    idx = 0
    for user_id in user_ids:
        for _ in range(3):
            content = pool[idx % len(pool)]
            idx += 1
            result = client.post("/posts/", {"content": content}, token=tokens[user_id])
            if result.get("id"):
                post_ids.append(result["id"])
    print(f"  ✓ {len(post_ids)} posts created")

    # ── Likes & comments ──────────────────────────────────────────────────
    print("\nAdding likes and comments...")
    likes = comments = 0
    for post_id in post_ids:
        for user_id in random.sample(user_ids, k=random.randint(0, min(5, len(user_ids)))):
            client.post(f"/posts/{post_id}/like", {}, token=tokens[user_id])
            likes += 1
        for user_id in random.sample(user_ids, k=random.randint(0, 2)):
            client.post(
                f"/posts/{post_id}/comments",
                {"content": random.choice(SAMPLE_COMMENTS)},
                token=tokens[user_id],
            )
            comments += 1
    print(f"  ✓ {likes} likes, {comments} comments added")

    # ── Connections ───────────────────────────────────────────────────────
    print("\nCreating connections...")
    outcomes = {"accepted": 0, "rejected": 0, "pending": 0}
    for i, requester in enumerate(user_ids):
        for target in user_ids[i + 1:]:
            if random.random() < 0.4:
                continue
            conn = client.post(
                "/connections/request", {"connected_user_id": target}, token=tokens[requester]
            )
            if not conn:
                continue
            roll = random.random()
            if roll < 0.7:
                client.post("/connections/accept", {"connection_id": conn["id"]}, token=tokens[target])
                outcomes["accepted"] += 1
            elif roll < 0.85:
                client.post("/connections/reject", {"connection_id": conn["id"]}, token=tokens[target])
                outcomes["rejected"] += 1
            else:
                outcomes["pending"] += 1
    print(
        f"  ✓ {outcomes['accepted']} accepted, {outcomes['rejected']} rejected, "
        f"{outcomes['pending']} pending"
    )

    # ── Print summary ─────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    u = user_ids[0]
    print(f"# Sign in as '{BASE_USERS[0][0]}':")
    print(f"  curl -s -X POST '{api_url}/auth/login' \\")
    print(f"    -H 'Content-Type: application/json' \\")
    print(f"    -d '{{\"email\": \"{BASE_USERS[0][1]}\", \"password\": \"{PASSWORD}\"}}' | python3 -m json.tool\n")
    print(f"# Read the feed with that user's token:")
    print(f"  curl -s '{api_url}/feed/' -H 'Authorization: Bearer {tokens[u]}' | python3 -m json.tool\n")
    print(f"# Check Jaeger traces: http://localhost:16686")
    print(f"# Check Prometheus: http://localhost:9090")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Social Network API")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
