"""Demo: onboard a creator, gate a channel by tier, then unlock it.

Run with:
    python scripts/demo_onboarding_flow.py
"""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID, uuid4

from fastapi.testclient import TestClient

from creatorhub.core.config import SETTINGS
from creatorhub.main import app
from creatorhub.repos.store import membership_repo
from creatorhub.services import token_service


def _bearer(user_id) -> dict[str, str]:
    token = token_service.create_access_token(sub=str(user_id))
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    client = TestClient(app)
    creator_id = uuid4()
    fan_id = uuid4()

    # ── Step 1: complete the wizard without signing in ──────────────
    wizard = {
        "displayName": "Pastor Jo",
        "organizationName": "Grace Church",
        "useCase": "church",
        "features": ["community", "courses"],
        "subdomain": "grace",
    }
    r = client.post("/v1/onboarding/complete", json=wizard)
    print(f"1. POST /v1/onboarding/complete (anon)   → {r.status_code}")

    # ── Step 2: complete the wizard as the creator ──────────────────
    r = client.post(
        "/v1/onboarding/complete", json=wizard, headers=_bearer(creator_id)
    )
    created = r.json()
    org_id = UUID(created["organizationId"])
    print(
        f"2. POST /v1/onboarding/complete          → {r.status_code}  "
        f"url={created['url']}  channels={created['channels']}"
    )
    tenant = {"X-Forwarded-Host": f"{created['slug']}.{SETTINGS.subdomain_base}"}

    # ── Step 3: add a paid tier and a channel gated by it ───────────
    r = client.post(
        f"/v1/orgs/{org_id}/tiers",
        json={"name": "Gold", "price": "10.00"},
        headers=_bearer(creator_id),
    )
    gold_id = r.json()["id"]
    print(f"3. POST /v1/orgs/…/tiers                 → {r.status_code}  Gold")
    r = client.post(
        f"/v1/orgs/{org_id}/channels",
        json={"name": "Gold Lounge", "access_tier_ids": [gold_id]},
        headers=_bearer(creator_id),
    )
    lounge = r.json()["slug"]
    print(f"4. POST /v1/orgs/…/channels              → {r.status_code}  #{lounge}")

    # ── Step 4: a fan joins on the free tier and hits the gate ──────
    r = client.post("/v1/join", headers={**tenant, **_bearer(fan_id)})
    joined = r.json()
    print(f"5. POST /v1/join                         → {r.status_code}  {joined['status']}")
    r = client.get(
        f"/v1/community/channels/{lounge}", headers={**tenant, **_bearer(fan_id)}
    )
    print(f"6. GET  /v1/community/channels/{lounge} → {r.status_code}  {r.json()}")

    r = client.get("/v1/upgrade", headers={**tenant, **_bearer(fan_id)})
    options = [
        (o["tier"]["name"], o["is_current"], o["is_upgrade"])
        for o in r.json()["options"]
    ]
    print(f"7. GET  /v1/upgrade                      → {r.status_code}  {options}")

    # ── Step 5: upgrade, then read the channel ──────────────────────
    m = membership_repo.get(org_id, fan_id)
    membership_repo.update(replace(m, tier_id=UUID(gold_id)))
    r = client.get(
        f"/v1/community/channels/{lounge}", headers={**tenant, **_bearer(fan_id)}
    )
    print(f"8. GET  /v1/community/channels/{lounge} → {r.status_code}  (unlocked)")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
