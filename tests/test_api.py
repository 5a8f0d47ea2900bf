"""HTTP surface: routes, auth and the error payload."""

from decimal import Decimal

from src.models.ledger import ReferenceType
from src.services.credit_service import CreditService
from tests.factories import as_user, fund, make_claim, make_project


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_missing_identity_is_unauthenticated(client):
    response = await client.get("/api/credits/balance")
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHENTICATED"


class TestTransferEndpoint:
    async def test_transfer(self, client, db, alice, bob):
        await fund(db, alice, genesis="10", earned="50")
        alice_id, bob_id = alice.id, bob.id

        response = await client.post(
            "/api/transfer",
            json={"recipient_id": bob_id, "amount": 25, "message": "for the stream"},
            headers=as_user(alice),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert Decimal(body["amount_transferred"]) == Decimal("25")
        assert Decimal(body["genesis_burned"]) == Decimal("10")
        assert Decimal(body["earned_spent"]) == Decimal("15")
        assert body["recipient_name"] == "Bob"

        recipient = await CreditService(db).get_balances(bob_id)
        assert recipient.earned == Decimal("25")
        sender = await CreditService(db).get_balances(alice_id)
        assert sender.total == Decimal("35")

    async def test_insufficient_balance_payload(self, client, db, alice, bob):
        await fund(db, alice, genesis="5")

        response = await client.post(
            "/api/transfer", json={"recipient_id": bob.id, "amount": 6}, headers=as_user(alice)
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "INSUFFICIENT_BALANCE"
        assert body["error"] == "Insufficient balance. You have 5 LC but need 6 LC."

    async def test_self_transfer(self, client, alice):
        response = await client.post(
            "/api/transfer", json={"recipient_id": alice.id, "amount": 1}, headers=as_user(alice)
        )
        assert response.status_code == 400
        assert response.json()["code"] == "SELF_TRANSFER"

    async def test_zero_amount(self, client, alice, bob):
        response = await client.post(
            "/api/transfer", json={"recipient_id": bob.id, "amount": 0}, headers=as_user(alice)
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_AMOUNT"

    async def test_non_numeric_amount(self, client, alice, bob):
        response = await client.post(
            "/api/transfer", json={"recipient_id": bob.id, "amount": "lots"}, headers=as_user(alice)
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_AMOUNT"

    async def test_amount_beyond_maximum(self, client, db, alice, bob):
        await fund(db, alice, earned="50")

        response = await client.post(
            "/api/transfer",
            json={"recipient_id": bob.id, "amount": "100000000000000000000"},
            headers=as_user(alice),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_AMOUNT"

    async def test_unknown_recipient(self, client, alice):
        response = await client.post(
            "/api/transfer", json={"recipient_id": 4242, "amount": 1}, headers=as_user(alice)
        )
        assert response.status_code == 404
        assert response.json()["code"] == "RECIPIENT_NOT_FOUND"


class TestVerifyEndpoint:
    async def test_verify_contribution(self, client, db, alice, admin):
        claim = await make_claim(db, alice, amount="50")

        response = await client.post(
            "/api/verify-contribution",
            json={"contribution_id": claim.id, "action": "verify"},
            headers=as_user(admin),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "verified"
        assert Decimal(body["amount_awarded"]) == Decimal("50")
        assert body["was_capped"] is False

    async def test_reject_then_verify_conflicts(self, client, db, alice, admin):
        claim = await make_claim(db, alice, amount="50")
        payload = {"contribution_id": claim.id, "action": "reject"}

        rejected = await client.post("/api/verify-contribution", json=payload, headers=as_user(admin))
        assert rejected.json() == {
            "success": True,
            "status": "rejected",
            "amount_awarded": None,
            "was_capped": None,
        }

        payload["action"] = "verify"
        again = await client.post("/api/verify-contribution", json=payload, headers=as_user(admin))
        assert again.status_code == 409
        assert again.json()["code"] == "ALREADY_RESOLVED"

    async def test_forbidden_verifier(self, client, db, alice, bob):
        claim = await make_claim(db, alice)
        response = await client.post(
            "/api/verify-contribution",
            json={"contribution_id": claim.id, "action": "verify"},
            headers=as_user(bob),
        )
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    async def test_unknown_action_is_validation_error(self, client, alice):
        response = await client.post(
            "/api/verify-contribution",
            json={"contribution_id": 1, "action": "approve"},
            headers=as_user(alice),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestContributionEndpoints:
    async def test_submit_and_list(self, client, db, alice, bob):
        project = await make_project(db, bob)

        created = await client.post(
            "/api/contributions",
            json={
                "contribution_type": "project_work",
                "amount_requested": "30",
                "reference_type": "project",
                "reference_id": str(project.id),
            },
            headers=as_user(alice),
        )
        assert created.status_code == 201
        assert created.json()["status"] == "pending"

        mine = await client.get("/api/contributions", headers=as_user(alice))
        assert mine.json()["total"] == 1

        pending = await client.get(
            "/api/contributions/pending",
            params={"reference_type": "project", "reference_id": str(project.id)},
            headers=as_user(bob),
        )
        assert pending.status_code == 200
        assert [c["id"] for c in pending.json()["items"]] == [created.json()["id"]]

    async def test_half_reference_rejected(self, client, alice):
        response = await client.post(
            "/api/contributions",
            json={"contribution_type": "mentorship", "amount_requested": 5, "reference_type": "event"},
            headers=as_user(alice),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestCreditEndpoints:
    async def test_balance_and_ledger(self, client, db, alice):
        await fund(db, alice, genesis="12", earned="3")

        balance = (await client.get("/api/credits/balance", headers=as_user(alice))).json()
        assert Decimal(balance["genesis_balance"]) == Decimal("12")
        assert Decimal(balance["earned_balance"]) == Decimal("3")
        assert Decimal(balance["balance"]) == Decimal("15")

        ledger = await client.get(
            "/api/credits/ledger", params={"credit_type": "genesis"}, headers=as_user(alice)
        )
        body = ledger.json()
        assert body["total"] == 1
        assert body["items"][0]["type"] == "purchase"

    async def test_limits(self, client, alice):
        body = (await client.get("/api/credits/limits", headers=as_user(alice))).json()
        assert Decimal(body["daily_remaining"]) == Decimal("200")
        assert Decimal(body["weekly_remaining"]) == Decimal("1000")
        assert Decimal(body["reputation_multiplier"]) == 1

    async def test_spend(self, client, db, alice, bob):
        await fund(db, alice, genesis="4", earned="10")
        bob_id = bob.id

        response = await client.post(
            "/api/credits/spend",
            json={
                "amount": 6,
                "reference_type": "stream_tip",
                "reference_id": "stream-88",
                "payee_id": bob_id,
            },
            headers=as_user(alice),
        )

        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["genesis_burned"]) == Decimal("4")
        assert Decimal(body["earned_spent"]) == Decimal("2")
        assert Decimal(body["balance_after"]) == Decimal("8")
        assert Decimal(body["payee_credited"]) == Decimal("6")
        assert Decimal(body["platform_fee"]) == 0
        host = await CreditService(db).get_balances(bob_id)
        assert host.earned == Decimal("6")

    async def test_spend_to_unknown_payee(self, client, db, alice):
        await fund(db, alice, earned="10")

        response = await client.post(
            "/api/credits/spend",
            json={
                "amount": 5,
                "reference_type": "order",
                "reference_id": "order-1",
                "payee_id": 4242,
            },
            headers=as_user(alice),
        )

        assert response.status_code == 404
        assert response.json()["code"] == "RECIPIENT_NOT_FOUND"

    async def test_payout(self, client, db, alice, admin):
        await fund(db, alice, genesis="5", earned="20")
        project = await make_project(db, admin)

        response = await client.post(
            "/api/credits/payout",
            json={"amount": 12, "project_id": project.id},
            headers=as_user(alice),
        )

        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["amount_converted"]) == Decimal("12")
        assert Decimal(body["earned_balance"]) == Decimal("8")
        assert Decimal(body["balance_after"]) == Decimal("13")

    async def test_payout_of_genesis_refused(self, client, db, alice):
        await fund(db, alice, genesis="30")

        response = await client.post(
            "/api/credits/payout", json={"amount": 10}, headers=as_user(alice)
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INSUFFICIENT_BALANCE"


class TestAdminEndpoints:
    async def test_member_cannot_grant(self, client, alice, bob):
        response = await client.post(
            "/api/admin/credits/genesis",
            json={"user_id": bob.id, "amount": 10},
            headers=as_user(alice),
        )
        assert response.status_code == 403

    async def test_grant_award_and_reconcile(self, client, db, admin, alice):
        alice_id = alice.id
        granted = await client.post(
            "/api/admin/credits/genesis",
            json={"user_id": alice_id, "amount": 100},
            headers=as_user(admin),
        )
        assert granted.status_code == 201
        assert granted.json()["credit_type"] == "genesis"
        assert granted.json()["reference_type"] == ReferenceType.GRANT.value

        awarded = await client.post(
            "/api/admin/credits/award",
            json={"user_id": alice_id, "amount": 7, "description": "Moderation"},
            headers=as_user(admin),
        )
        assert awarded.status_code == 201
        assert awarded.json()["type"] == "earn"

        reconcile = await client.get(
            f"/api/admin/credits/{alice_id}/reconcile", headers=as_user(admin)
        )
        body = reconcile.json()
        assert body["entry_count"] == 2
        assert body["matches"] is True

        notifications = await client.get("/api/notifications", headers=as_user(alice))
        assert [n["type"] for n in notifications.json()["items"]] == ["credits_awarded"]

    async def test_set_multiplier(self, client, admin, alice):
        response = await client.put(
            f"/api/admin/credits/{alice.id}/multiplier",
            json={"reputation_multiplier": "1.5"},
            headers=as_user(admin),
        )
        assert response.status_code == 200
        assert Decimal(response.json()["reputation_multiplier"]) == Decimal("1.5")

