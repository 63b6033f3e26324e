#!/usr/bin/env python3
"""
Seed script: creates a small community for trying out the hub.

Creates:
  • 8 users
  • 3 groups, each user joining 1-3 of them
  • 3 posts per user, some inside a group
  • likes, comments and chat messages across them

Run against a running API:
  python scripts/seed_data.py --api-url http://localhost:8000

Joins and likes are sent twice on purpose: the second call must be a no-op.
"""
import argparse
import json
import random
import time
import urllib.request
import urllib.error
from dataclasses import dataclass


BASE_USERS = [
    ("Alice Chen", "alice@example.com", "Reads mostly sci-fi"),
    ("Bob Martinez", "bob@example.com", "Weekend hiker"),
    ("Carol Singh", "carol@example.com", "Runs the book club"),
    ("Dave Kim", "dave@example.com", ""),
    ("Eve Johnson", "eve@example.com", "Photography and coffee"),
    ("Frank Williams", "frank@example.com", ""),
    ("Grace Li", "grace@example.com", "Trail runner"),
    ("Henry Brown", "henry@example.com", "Amateur astronomer"),
]

BASE_GROUPS = [
    ("Readers", "Books we are reading this month"),
    ("Runners", "Weekend long runs and race reports"),
    ("Cooks", "Recipes that worked (and some that did not)"),
]

SAMPLE_POSTS = [
    "Finished the last chapter at 2am. No regrets.",
    "Anyone up for a 10k on Saturday morning?",
    "Sourdough attempt number four: finally some oven spring.",
    "Short stories are underrated. Recommendations welcome.",
    "New personal best on the hill loop today.",
    "Tried the lentil soup from last week. Added lemon, much better.",
    "Book club meets Thursday, bring snacks.",
    "Rest days are training days too.",
    "What is everyone cooking this weekend?",
]

SAMPLE_MESSAGES = [
    "Count me in!",
    "Great idea.",
    "I can bring the coffee.",
    "Same here, loved it.",
    "Does anyone have a spare copy?",
]


@dataclass
class ApiClient:
    base_url: str

    def post(self, path: str, data: dict) -> dict:
        url = f"{self.base_url}{path}"
        body = json.dumps(data).encode()
        req = urllib.request.Request(
            url, data=body, headers={"Content-Type": "application/json"}, method="POST"
        )
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            body = e.read().decode()
            print(f"  HTTP {e.code} on POST {path}: {body}")
            return {}

    def get(self, path: str) -> dict:
        url = f"{self.base_url}{path}"
        req = urllib.request.Request(url, method="GET")
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on GET {path}")
            return {}


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for i in range(retries):
        try:
            result = client.get("/health")
            if result.get("status") == "ok":
                print("  API is ready!\n")
                return
        except (urllib.error.URLError, OSError):
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


def main(api_url: str) -> None:
    client = ApiClient(api_url)
    wait_for_api(client)

    # ── Create users ─────────────────────────────────────────────────────
    print("Creating users...")
    user_ids: list[str] = []
    for name, email, bio in BASE_USERS:
        result = client.post(
            "/users/", {"name": name, "email": email, "profile": {"bio": bio}}
        )
        uid = result.get("id", "")
        if uid:
            user_ids.append(uid)
            print(f"  ✓ {name} ({uid})")
        else:
            print(f"  ✗ Failed to create {name}")

    if not user_ids:
        print("No users created, aborting")
        return

    # ── Create groups and memberships ─────────────────────────────────────
    print("\nCreating groups...")
    group_ids: list[str] = []
    for name, description in BASE_GROUPS:
        result = client.post("/groups/", {"name": name, "description": description})
        gid = result.get("id", "")
        if gid:
            group_ids.append(gid)
            print(f"  ✓ {name} ({gid})")

    joins = 0
    for user_id in user_ids:
        for group_id in random.sample(group_ids, k=random.randint(1, len(group_ids))):
            for _ in range(2):
                client.post(f"/groups/{group_id}/join", {"user_id": user_id})
            joins += 1
    print(f"  ✓ {joins} memberships created")

    # ── Create posts ──────────────────────────────────────────────────────
    print("\nCreating posts...")
    post_ids: list[str] = []
    for user_id in user_ids:
        for content in random.sample(SAMPLE_POSTS, k=3):
            body = {"author_id": user_id, "content": content}
            if group_ids and random.random() < 0.5:
                body["group_id"] = random.choice(group_ids)
            result = client.post("/posts/", body)
            pid = result.get("id", "")
            if pid:
                post_ids.append(pid)
    print(f"  ✓ {len(post_ids)} posts created")

    # ── Likes, comments and chat ──────────────────────────────────────────
    print("\nAdding likes, comments and chat messages...")
    likes = comments = messages = 0
    for post_id in post_ids:
        for user_id in random.sample(user_ids, k=random.randint(0, 4)):
            for _ in range(2):
                client.post(f"/posts/{post_id}/like", {"user_id": user_id})
            likes += 1
        if random.random() < 0.4:
            client.post(
                f"/posts/{post_id}/comments",
                {"author_id": random.choice(user_ids), "content": random.choice(SAMPLE_MESSAGES)},
            )
            comments += 1
    for group_id in group_ids:
        members = client.get(f"/groups/{group_id}").get("members", [])
        for author_id in members[:4]:
            client.post(
                f"/groups/{group_id}/messages",
                {"author_id": author_id, "content": random.choice(SAMPLE_MESSAGES)},
            )
            messages += 1
    print(f"  ✓ {likes} likes, {comments} comments, {messages} chat messages")

    # ── Print summary ─────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    u = user_ids[0]
    print(f"# Inspect '{BASE_USERS[0][0]}' (groups + liked posts):")
    print(f"  curl -s '{api_url}/users/{u}' | python3 -m json.tool\n")
    if group_ids:
        g = group_ids[0]
        print(f"# Group members and chat history:")
        print(f"  curl -s '{api_url}/groups/{g}' | python3 -m json.tool")
        print(f"  curl -s '{api_url}/groups/{g}/messages' | python3 -m json.tool\n")
    print(f"# Check Jaeger traces: http://localhost:16686")
    print(f"# Check Prometheus metrics: {api_url}/metrics")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Social Hub")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
