"""
Integration tests for API endpoints using the SQLite test DB.
"""
from decimal import Decimal

from sqlalchemy import update

from greenloop.models import ClaimStatus, PointTransaction, User, UserLevelReward


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert r.json()["db"] == "ok"


class TestIdentity:
    def test_missing_header(self, client):
        r = client.get("/users/me")
        assert r.status_code == 401
        assert r.json()["error"]["code"] == "UNAUTHENTICATED"

    def test_non_numeric_header(self, client):
        r = client.get("/users/me", headers={"X-User-Id": "abc"})
        assert r.status_code == 401

    def test_unknown_user(self, client):
        r = client.get("/users/me", headers={"X-User-Id": "999999"})
        assert r.status_code == 401

    def test_inactive_user(self, client, make_user, auth):
        inactive = make_user(is_active=False)
        r = client.get("/users/me", headers=auth(inactive))
        assert r.status_code == 403
        assert r.json()["error"]["code"] == "FORBIDDEN"


class TestProfile:
    def test_me_includes_derived_level(self, client, make_user, auth):
        user = make_user(points=300)
        r = client.get("/users/me", headers=auth(user))
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["points"] == 300
        assert data["level"] == 2
        assert data["next_level"] == 3
        assert data["points_to_next_level"] == 200

    def test_action_history_newest_first(self, client, user, make_user, auth, make_action):
        first = make_action(title="Compost")
        second = make_action(title="Cold wash", verification_required=True)
        other = make_user()
        client.post("/actions/log", json={"action_id": first.id}, headers=auth(user))
        client.post("/actions/log", json={"action_id": second.id}, headers=auth(user))
        client.post("/actions/log", json={"action_id": first.id}, headers=auth(other))

        r = client.get("/users/me/actions", headers=auth(user))

        assert r.status_code == 200
        page = r.json()["data"]
        assert page["total"] == 2
        assert [log["action_id"] for log in page["items"]] == [second.id, first.id]
        assert [log["verification_status"] for log in page["items"]] == ["pending", "approved"]

        r = client.get("/users/me/actions?limit=1&offset=1", headers=auth(user))
        assert [log["action_id"] for log in r.json()["data"]["items"]] == [first.id]

    def test_notifications_after_claim(self, client, make_user, auth, make_reward):
        user = make_user(points=150)
        reward = make_reward(level=1, title="Eco Starter Badge")
        client.post("/rewards/claim", json={"level_reward_id": reward.id}, headers=auth(user))

        r = client.get("/users/me/notifications", headers=auth(user))

        assert r.status_code == 200
        page = r.json()["data"]
        assert page["total"] == 1
        note = page["items"][0]
        assert note["kind"] == "reward_claimed"
        assert note["is_read"] is False
        assert note["payload"]["reward_title"] == "Eco Starter Badge"

        r = client.get("/users/me/notifications?unread_only=true", headers=auth(user))
        assert r.json()["data"]["total"] == 1

    def test_history_requires_identity(self, client):
        assert client.get("/users/me/actions").status_code == 401
        assert client.get("/users/me/notifications").status_code == 401


class TestActions:
    def test_list_and_get(self, client, user, auth, make_action):
        action = make_action(title="Compost")
        make_action(title="Hidden", is_active=False)

        r = client.get("/actions", headers=auth(user))
        assert r.status_code == 200
        page = r.json()["data"]
        assert page["total"] == 1
        assert page["items"][0]["title"] == "Compost"

        r = client.get(f"/actions/{action.id}", headers=auth(user))
        assert r.status_code == 200
        assert r.json()["data"]["id"] == action.id

    def test_get_missing(self, client, user, auth):
        r = client.get("/actions/999999", headers=auth(user))
        assert r.status_code == 404
        assert r.json()["error"]["code"] == "NOT_FOUND"

    def test_include_inactive_ignored_for_users(self, client, user, admin, auth, make_action):
        make_action(is_active=False)
        r = client.get("/actions?include_inactive=true", headers=auth(user))
        assert r.json()["data"]["total"] == 0
        r = client.get("/actions?include_inactive=true", headers=auth(admin))
        assert r.json()["data"]["total"] == 1

    def test_admin_crud(self, client, admin, auth):
        body = {"title": "Unplug chargers", "points_value": 10, "co2_impact": "0.1", "category": "energy"}
        r = client.post("/actions", json=body, headers=auth(admin))
        assert r.status_code == 201
        action_id = r.json()["data"]["id"]

        r = client.put(f"/actions/{action_id}", json={"points_value": 12}, headers=auth(admin))
        assert r.status_code == 200
        assert r.json()["data"]["points_value"] == 12
        assert r.json()["data"]["title"] == "Unplug chargers"

        r = client.delete(f"/actions/{action_id}", headers=auth(admin))
        assert r.status_code == 200
        assert r.json()["data"] == {"id": action_id, "deleted": True}

    def test_create_requires_admin(self, client, user, auth):
        body = {"title": "X", "points_value": 10, "co2_impact": "0"}
        r = client.post("/actions", json=body, headers=auth(user))
        assert r.status_code == 403
        assert r.json()["error"]["code"] == "FORBIDDEN"

    def test_create_out_of_range(self, client, admin, auth):
        body = {"title": "X", "points_value": 5000, "co2_impact": "0"}
        r = client.post("/actions", json=body, headers=auth(admin))
        assert r.status_code == 422
        assert r.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_delete_logged_action_conflict(self, client, user, admin, auth, make_action):
        action = make_action()
        client.post("/actions/log", json={"action_id": action.id}, headers=auth(user))
        r = client.delete(f"/actions/{action.id}", headers=auth(admin))
        assert r.status_code == 409
        assert r.json()["error"]["code"] == "INVALID_STATE"

    def test_put_null_on_required_column(self, client, admin, auth, make_action):
        action = make_action(instructions="Lock it up")

        r = client.put(f"/actions/{action.id}", json={"description": None}, headers=auth(admin))
        assert r.status_code == 422
        assert r.json()["error"]["details"] == {"fields": ["description"]}

        r = client.put(f"/actions/{action.id}", json={"instructions": None}, headers=auth(admin))
        assert r.status_code == 200
        assert r.json()["data"]["instructions"] is None
        assert r.json()["data"]["description"] == "Cycle instead of driving."

    def test_put_cannot_publish_pending_submission(self, client, user, admin, auth):
        body = {"title": "Cold wash", "points_value": 20, "co2_impact": "0.5", "category": "energy"}
        submitted = client.post("/actions/submissions", json=body, headers=auth(user)).json()["data"]

        r = client.put(f"/actions/{submitted['id']}", json={"is_active": True}, headers=auth(admin))
        assert r.status_code == 409
        assert r.json()["error"]["code"] == "INVALID_STATE"

        r = client.post(
            "/admin/actions/approve",
            json={"kind": "submission", "action_id": submitted["id"]},
            headers=auth(admin),
        )
        assert r.status_code == 200
        assert client.get("/users/me", headers=auth(user)).json()["data"]["points"] == 20


class TestLogAction:
    def test_log_credits_points(self, client, db, user, auth, make_action):
        action = make_action(points_value=150, co2_impact="2.000")

        r = client.post("/actions/log", json={"action_id": action.id, "notes": "sunny"}, headers=auth(user))

        assert r.status_code == 201
        data = r.json()["data"]
        assert data["verification_status"] == "approved"
        assert data["points_earned"] == 150
        assert Decimal(data["co2_saved"]) == Decimal("2")

        me = client.get("/users/me", headers=auth(user)).json()["data"]
        assert me["points"] == 150
        assert me["level"] == 1

        txs = client.get("/users/me/transactions", headers=auth(user)).json()["data"]
        assert txs["total"] == 1
        assert txs["items"][0]["points"] == 150
        assert txs["items"][0]["transaction_type"] == "earned"

    def test_duplicate_is_conflict(self, client, user, auth, make_action):
        action = make_action()
        client.post("/actions/log", json={"action_id": action.id}, headers=auth(user))
        r = client.post("/actions/log", json={"action_id": action.id}, headers=auth(user))
        assert r.status_code == 409
        assert r.json()["error"]["code"] == "DUPLICATE_ACTION"

    def test_21st_request_rate_limited(self, client, user, auth):
        for _ in range(20):
            r = client.post("/actions/log", json={"action_id": 999999}, headers=auth(user))
            assert r.status_code == 404
        r = client.post("/actions/log", json={"action_id": 999999}, headers=auth(user))
        assert r.status_code == 429
        assert r.json()["error"]["code"] == "RATE_LIMITED"
        assert int(r.headers["Retry-After"]) >= 1

    def test_body_validation(self, client, user, auth):
        r = client.post("/actions/log", json={}, headers=auth(user))
        assert r.status_code == 422
        err = r.json()["error"]
        assert err["code"] == "VALIDATION_ERROR"
        assert err["details"]["errors"][0]["field"] == "action_id"

    def test_malformed_requests_count_toward_limit(self, client, user, auth, make_action):
        action = make_action()
        for _ in range(20):
            r = client.post("/actions/log", json={"notes": "no action id"}, headers=auth(user))
            assert r.status_code == 422

        r = client.post("/actions/log", json={"action_id": action.id}, headers=auth(user))

        assert r.status_code == 429
        assert r.json()["error"]["code"] == "RATE_LIMITED"
        assert client.get("/users/me", headers=auth(user)).json()["data"]["points"] == 0


class TestAdminReview:
    def test_approve_log(self, client, user, admin, auth, make_action):
        action = make_action(points_value=90, verification_required=True)
        log = client.post("/actions/log", json={"action_id": action.id}, headers=auth(user)).json()["data"]
        assert log["verification_status"] == "pending"

        pending = client.get("/admin/actions/pending", headers=auth(admin)).json()["data"]
        assert pending["logs"]["total"] == 1

        r = client.post(
            "/admin/actions/approve",
            json={"kind": "log", "action_log_id": log["id"]},
            headers=auth(admin),
        )
        assert r.status_code == 200
        assert r.json()["data"]["action_log"]["verification_status"] == "approved"
        assert client.get("/users/me", headers=auth(user)).json()["data"]["points"] == 90

        r = client.post(
            "/admin/actions/approve",
            json={"kind": "log", "action_log_id": log["id"]},
            headers=auth(admin),
        )
        assert r.status_code == 409
        assert r.json()["error"]["code"] == "ALREADY_PROCESSED"

    def test_reject_log(self, client, user, admin, auth, make_action):
        action = make_action(verification_required=True)
        log = client.post("/actions/log", json={"action_id": action.id}, headers=auth(user)).json()["data"]

        r = client.post(
            "/admin/actions/reject",
            json={"kind": "log", "action_log_id": log["id"], "reason": "No evidence"},
            headers=auth(admin),
        )
        assert r.status_code == 200
        assert r.json()["data"]["action_log"]["notes"] == "No evidence"

    def test_reject_without_reason(self, client, admin, auth):
        r = client.post(
            "/admin/actions/reject",
            json={"kind": "log", "action_log_id": 1, "reason": "  "},
            headers=auth(admin),
        )
        assert r.status_code == 422

    def test_kind_requires_matching_id(self, client, admin, auth):
        r = client.post("/admin/actions/approve", json={"kind": "submission"}, headers=auth(admin))
        assert r.status_code == 422

    def test_log_approval_refuses_submission_values(self, client, user, admin, auth, make_action):
        action = make_action(points_value=90, verification_required=True)
        log = client.post("/actions/log", json={"action_id": action.id}, headers=auth(user)).json()["data"]

        r = client.post(
            "/admin/actions/approve",
            json={"kind": "log", "action_log_id": log["id"], "points_value": 500},
            headers=auth(admin),
        )

        assert r.status_code == 422
        assert r.json()["error"]["code"] == "VALIDATION_ERROR"
        pending = client.get("/admin/actions/pending", headers=auth(admin)).json()["data"]
        assert pending["logs"]["total"] == 1
        assert client.get("/users/me", headers=auth(user)).json()["data"]["points"] == 0

    def test_submission_flow(self, client, user, admin, auth):
        body = {"title": "Cold wash", "points_value": 20, "co2_impact": "0.5", "category": "energy"}
        r = client.post("/actions/submissions", json=body, headers=auth(user))
        assert r.status_code == 201
        submitted = r.json()["data"]
        assert submitted["is_active"] is False
        assert submitted["is_user_created"] is True

        pending = client.get("/admin/actions/pending", headers=auth(admin)).json()["data"]
        assert [a["id"] for a in pending["submissions"]] == [submitted["id"]]

        r = client.post(
            "/admin/actions/approve",
            json={"kind": "submission", "action_id": submitted["id"], "points_value": 25},
            headers=auth(admin),
        )
        assert r.status_code == 200
        assert r.json()["data"]["action_log"]["points_earned"] == 25
        assert client.get("/users/me", headers=auth(user)).json()["data"]["points"] == 25

    def test_review_requires_admin(self, client, user, auth):
        r = client.get("/admin/actions/pending", headers=auth(user))
        assert r.status_code == 403


class TestRewards:
    def test_claim_approve_deliver(self, client, db, make_user, admin, auth, make_reward):
        user = make_user(points=150)
        reward = make_reward(level=1)

        overview = client.get("/rewards", headers=auth(user)).json()["data"]
        assert overview["current_level"] == 1
        assert overview["user_rewards"] == []

        r = client.post("/rewards/claim", json={"level_reward_id": reward.id}, headers=auth(user))
        assert r.status_code == 201
        claim = r.json()["data"]
        assert claim["claim_status"] == "pending"
        assert claim["user_email"] == user.email

        r = client.post("/admin/rewards/approve", json={"claim_id": claim["id"]}, headers=auth(admin))
        assert r.status_code == 200
        assert r.json()["data"]["claim_status"] == "approved"

        r = client.post(
            "/admin/rewards/deliver",
            json={"claim_id": claim["id"], "admin_notes": "Handed over"},
            headers=auth(admin),
        )
        assert r.status_code == 200
        assert r.json()["data"]["claim_status"] == "delivered"

        r = client.post(
            "/admin/rewards/reject",
            json={"claim_id": claim["id"], "admin_notes": "too late"},
            headers=auth(admin),
        )
        assert r.status_code == 409
        assert r.json()["error"]["code"] == "INVALID_STATE"

        assert db.get(UserLevelReward, claim["id"]).claim_status == ClaimStatus.delivered

    def test_claim_level_not_reached(self, client, user, auth, make_reward):
        reward = make_reward(level=4)
        r = client.post("/rewards/claim", json={"level_reward_id": reward.id}, headers=auth(user))
        assert r.status_code == 403
        body = r.json()["error"]
        assert body["code"] == "LEVEL_NOT_REACHED"
        assert body["details"]["required_level"] == 4

    def test_claim_twice(self, client, make_user, auth, make_reward):
        user = make_user(points=100)
        reward = make_reward(level=1)
        client.post("/rewards/claim", json={"level_reward_id": reward.id}, headers=auth(user))
        r = client.post("/rewards/claim", json={"level_reward_id": reward.id}, headers=auth(user))
        assert r.status_code == 409
        assert r.json()["error"]["code"] == "ALREADY_CLAIMED"

    def test_admin_list_and_put(self, client, make_user, admin, auth, make_reward):
        user = make_user(points=100)
        reward = make_reward(level=1)
        claim = client.post(
            "/rewards/claim", json={"level_reward_id": reward.id}, headers=auth(user)
        ).json()["data"]

        r = client.get("/admin/rewards?status=pending", headers=auth(admin))
        assert r.status_code == 200
        assert r.json()["data"]["total"] == 1

        r = client.put(
            "/admin/rewards",
            json={"claim_id": claim["id"], "status": "rejected"},
            headers=auth(admin),
        )
        assert r.status_code == 422

        r = client.put(
            "/admin/rewards",
            json={"claim_id": claim["id"], "status": "rejected", "admin_notes": "Out of stock"},
            headers=auth(admin),
        )
        assert r.status_code == 200
        assert r.json()["data"]["claim_status"] == "rejected"

    def test_admin_endpoints_require_admin(self, client, user, auth):
        r = client.get("/admin/rewards", headers=auth(user))
        assert r.status_code == 403


class TestLedgerAdmin:
    def test_adjust_and_check(self, client, db, user, admin, auth):
        r = client.post(
            f"/admin/users/{user.id}/adjust-points",
            json={"delta": 40, "reason": "Volunteer day"},
            headers=auth(admin),
        )
        assert r.status_code == 201
        assert r.json()["data"]["transaction_type"] == "adjusted"

        r = client.get(f"/admin/users/{user.id}/ledger", headers=auth(admin))
        assert r.status_code == 200
        assert r.json()["data"] == {
            "user_id": user.id,
            "cached_points": 40,
            "ledger_points": 40,
            "consistent": True,
        }
        assert db.query(PointTransaction).filter(PointTransaction.user_id == user.id).count() == 1

    def test_adjust_below_zero(self, client, user, admin, auth):
        r = client.post(
            f"/admin/users/{user.id}/adjust-points",
            json={"delta": -1, "reason": "oops"},
            headers=auth(admin),
        )
        assert r.status_code == 422

    def test_strict_check_reports_divergence_as_error(self, client, db, user, admin, auth):
        with db.get_bind().begin() as conn:
            conn.execute(update(User.__table__).where(User.__table__.c.id == user.id).values(points=30))

        r = client.get(f"/admin/users/{user.id}/ledger", headers=auth(admin))
        assert r.status_code == 200
        assert r.json()["data"]["consistent"] is False

        r = client.get(f"/admin/users/{user.id}/ledger?strict=true", headers=auth(admin))
        assert r.status_code == 500
        err = r.json()["error"]
        assert err["code"] == "LEDGER_INCONSISTENT"
        assert err["details"]["cached_points"] == 30
        assert err["details"]["ledger_points"] == 0

    def test_strict_check_passes_when_consistent(self, client, user, admin, auth):
        r = client.get(f"/admin/users/{user.id}/ledger?strict=true", headers=auth(admin))
        assert r.status_code == 200
        assert r.json()["data"]["consistent"] is True
