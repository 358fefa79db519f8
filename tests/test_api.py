"""
End-to-end tests through the HTTP API.

These tests verify:
1. Signup, login and refresh issue tokens the API accepts
2. Policies move between the active book and the trash over HTTP
3. A deletion request is approved once; a second review is refused
4. Team members only reach the pages they were granted
5. Locked and expired accounts are turned away with their own status codes
6. Renewal reminders, lapsed policies and group heads work over HTTP
7. Auto-fill sessions extract one file at a time and save through the API
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest
from httpx import AsyncClient

from policy_desk.api.extraction import get_extraction_client
from policy_desk.core.config import Settings
from policy_desk.models import AppUser, Policy, TeamMember
from policy_desk.services.extraction import ExtractionClient

from factories import AGENT_PASSWORD, MEMBER_PASSWORD, auth_headers, member_headers

API = "/api/v1"

POLICY_BODY = {
    "policyholderName": "Kiran Rao",
    "policyNumber": "POL-100",
    "productType": "FOUR WHEELER",
    "startDate": "2024-04-01",
    "expiryDate": "2025-03-31",
    "premiumAmount": "12500.50",
}


# =============================================================================
# AUTH
# =============================================================================


class TestAuth:
    """Tests for the token endpoints."""

    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_signup_then_me(self, client: AsyncClient):
        response = await client.post(
            f"{API}/auth/signup",
            json={"email": "new@agency.in", "password": "secret1", "displayName": "New Agent"},
        )
        assert response.status_code == 201
        tokens = response.json()
        assert tokens["accountKind"] == "user"

        me = await client.get(
            f"{API}/auth/me",
            headers={"Authorization": f"Bearer {tokens['accessToken']}"},
        )
        assert me.status_code == 200
        body = me.json()
        assert body["email"] == "new@agency.in"
        assert body["subscriptionStatus"] == "trial"
        assert body["daysRemaining"] == 15
        assert body["canAccessSystem"] is True

    async def test_signup_duplicate_email(self, client: AsyncClient, agent: AppUser):
        response = await client.post(
            f"{API}/auth/signup",
            json={"email": agent.email, "password": "secret1", "displayName": "Dup"},
        )
        assert response.status_code == 409

    async def test_login_and_refresh(self, client: AsyncClient, agent: AppUser):
        login = await client.post(
            f"{API}/auth/login",
            json={"email": agent.email, "password": AGENT_PASSWORD},
        )
        assert login.status_code == 200
        tokens = login.json()
        assert tokens["effectiveUserId"] == str(agent.id)

        refreshed = await client.post(
            f"{API}/auth/refresh",
            json={"refreshToken": tokens["refreshToken"]},
        )
        assert refreshed.status_code == 200
        assert refreshed.json()["effectiveUserId"] == str(agent.id)

    async def test_access_token_cannot_refresh(self, client: AsyncClient, agent: AppUser):
        login = await client.post(
            f"{API}/auth/login",
            json={"email": agent.email, "password": AGENT_PASSWORD},
        )
        response = await client.post(
            f"{API}/auth/refresh",
            json={"refreshToken": login.json()["accessToken"]},
        )
        assert response.status_code == 401

    async def test_wrong_password(self, client: AsyncClient, agent: AppUser):
        response = await client.post(
            f"{API}/auth/login",
            json={"email": agent.email, "password": "wrong"},
        )
        assert response.status_code == 401

    async def test_team_member_login(self, client: AsyncClient, admin: AppUser, team_member: TeamMember):
        response = await client.post(
            f"{API}/auth/login",
            json={"email": team_member.email, "password": MEMBER_PASSWORD},
        )
        assert response.status_code == 200
        assert response.json()["accountKind"] == "team_member"
        assert response.json()["effectiveUserId"] == str(admin.id)

    async def test_missing_token(self, client: AsyncClient):
        response = await client.get(f"{API}/policies")
        assert response.status_code == 401


# =============================================================================
# POLICIES
# =============================================================================


class TestPolicyEndpoints:
    """Tests for the active book, the trash and claims over HTTP."""

    async def test_create_and_list(self, client: AsyncClient, agent: AppUser):
        headers = auth_headers(agent)

        created = await client.post(f"{API}/policies", json=POLICY_BODY, headers=headers)
        assert created.status_code == 201
        assert created.json()["policyNumber"] == "POL-100"

        listed = await client.get(f"{API}/policies", headers=headers)
        assert [p["policyNumber"] for p in listed.json()] == ["POL-100"]

    async def test_duplicate_number(self, client: AsyncClient, agent: AppUser):
        headers = auth_headers(agent)
        await client.post(f"{API}/policies", json=POLICY_BODY, headers=headers)

        response = await client.post(f"{API}/policies", json=POLICY_BODY, headers=headers)

        assert response.status_code == 409

    async def test_other_owner_cannot_read(self, client: AsyncClient, admin: AppUser, agent_policy: Policy):
        response = await client.get(f"{API}/policies/{agent_policy.id}", headers=auth_headers(admin))
        assert response.status_code == 404

    async def test_trash_round_trip(self, client: AsyncClient, agent: AppUser, agent_policy: Policy):
        headers = auth_headers(agent)

        deleted = await client.delete(f"{API}/policies/{agent_policy.id}", headers=headers)
        assert deleted.status_code == 200
        deleted_id = deleted.json()["id"]
        assert (await client.get(f"{API}/policies", headers=headers)).json() == []

        trash = await client.get(f"{API}/policies/deleted", headers=headers)
        assert [p["id"] for p in trash.json()] == [deleted_id]

        restored = await client.post(f"{API}/policies/deleted/{deleted_id}/restore", headers=headers)
        assert restored.status_code == 200
        assert restored.json()["id"] == str(agent_policy.id)

    async def test_permanent_delete_needs_admin(
        self,
        client: AsyncClient,
        admin: AppUser,
        agent: AppUser,
    ):
        admin_headers = auth_headers(admin)
        created = await client.post(f"{API}/policies", json=POLICY_BODY, headers=admin_headers)
        deleted = await client.delete(f"{API}/policies/{created.json()['id']}", headers=admin_headers)
        deleted_id = deleted.json()["id"]

        refused = await client.delete(f"{API}/policies/deleted/{deleted_id}", headers=auth_headers(agent))
        assert refused.status_code == 403

        erased = await client.delete(f"{API}/policies/deleted/{deleted_id}", headers=admin_headers)
        assert erased.status_code == 204
        assert (await client.get(f"{API}/policies/deleted", headers=admin_headers)).json() == []

    async def test_agent_cannot_erase_own_trash(self, client: AsyncClient, agent: AppUser, agent_policy: Policy):
        headers = auth_headers(agent)
        deleted = await client.delete(f"{API}/policies/{agent_policy.id}", headers=headers)

        response = await client.delete(f"{API}/policies/deleted/{deleted.json()['id']}", headers=headers)

        assert response.status_code == 403

    async def test_settle_claim(self, client: AsyncClient, agent: AppUser, agent_policy: Policy):
        headers = auth_headers(agent)

        opened = await client.post(f"{API}/policies/{agent_policy.id}/claim/in-progress", headers=headers)
        assert opened.json()["claimStatus"] == "in-progress"

        settled = await client.post(
            f"{API}/policies/{agent_policy.id}/claim/settle",
            json={"settledAmount": "45000", "settlementDate": "2024-08-01"},
            headers=headers,
        )
        assert settled.status_code == 200
        assert settled.json()["claimStatus"] == "settled"

        again = await client.post(
            f"{API}/policies/{agent_policy.id}/claim/settle",
            json={"settledAmount": "1", "settlementDate": "2024-08-02"},
            headers=headers,
        )
        assert again.status_code == 409

    async def test_settle_claim_requires_positive_amount(
        self,
        client: AsyncClient,
        agent: AppUser,
        agent_policy: Policy,
    ):
        response = await client.post(
            f"{API}/policies/{agent_policy.id}/claim/settle",
            json={"settledAmount": "0", "settlementDate": "2024-08-01"},
            headers=auth_headers(agent),
        )
        assert response.status_code == 400

    async def test_settle_claim_with_numeric_amount(
        self,
        client: AsyncClient,
        agent: AppUser,
        agent_policy: Policy,
    ):
        response = await client.post(
            f"{API}/policies/{agent_policy.id}/claim/settle",
            json={"settledAmount": 45000.5, "settlementDate": "2024-08-01"},
            headers=auth_headers(agent),
        )
        assert response.status_code == 200
        assert Decimal(response.json()["settledAmount"]) == Decimal("45000.5")

    @pytest.mark.parametrize(
        "body",
        [
            {"policyholderName": None},
            {"policyNumber": None},
            {"isOneTimePolicy": None},
            {"documents": None},
            {"contactNo": "+91 98765 43210 / 022-2345678"},
        ],
    )
    async def test_update_rejects_null_and_over_long_values(
        self,
        client: AsyncClient,
        agent: AppUser,
        agent_policy: Policy,
        body,
    ):
        response = await client.patch(
            f"{API}/policies/{agent_policy.id}",
            json=body,
            headers=auth_headers(agent),
        )
        assert response.status_code == 422

    async def test_update_can_clear_optional_fields(
        self,
        client: AsyncClient,
        agent: AppUser,
        agent_policy: Policy,
    ):
        headers = auth_headers(agent)
        await client.patch(f"{API}/policies/{agent_policy.id}", json={"contactNo": "9876543210"}, headers=headers)

        response = await client.patch(
            f"{API}/policies/{agent_policy.id}",
            json={"contactNo": None},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["contactNo"] is None
        assert response.json()["policyholderName"] == agent_policy.policyholder_name

    async def test_policy_activity(self, client: AsyncClient, agent: AppUser):
        headers = auth_headers(agent)
        created = await client.post(f"{API}/policies", json=POLICY_BODY, headers=headers)
        policy_id = created.json()["id"]
        await client.patch(f"{API}/policies/{policy_id}", json={"contactNo": "9876543210"}, headers=headers)

        activity = await client.get(f"{API}/policies/{policy_id}/activity", headers=headers)

        assert sorted(entry["action"] for entry in activity.json()) == ["CREATE", "UPDATE"]


# =============================================================================
# DELETION REQUESTS
# =============================================================================


class TestDeletionRequestEndpoints:
    """Tests for the two-person deletion flow over HTTP."""

    async def request_deletion(self, client: AsyncClient, agent: AppUser, policy: Policy) -> dict:
        response = await client.post(
            f"{API}/deletion-requests",
            json={"policyId": str(policy.id), "reason": "Customer cancelled", "password": AGENT_PASSWORD},
            headers=auth_headers(agent),
        )
        assert response.status_code == 201
        return response.json()

    async def test_approve_once(
        self,
        client: AsyncClient,
        agent: AppUser,
        reviewer: AppUser,
        agent_policy: Policy,
    ):
        request = await self.request_deletion(client, agent, agent_policy)
        assert request["status"] == "pending"

        pending = await client.get(f"{API}/deletion-requests/pending", headers=auth_headers(reviewer))
        assert [r["id"] for r in pending.json()] == [request["id"]]

        approved = await client.post(
            f"{API}/deletion-requests/{request['id']}/approve",
            json={"comments": "Confirmed with customer", "policyId": str(agent_policy.id)},
            headers=auth_headers(reviewer),
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"

        again = await client.post(
            f"{API}/deletion-requests/{request['id']}/approve",
            json={"policyId": str(agent_policy.id)},
            headers=auth_headers(reviewer),
        )
        assert again.status_code == 409

        gone = await client.get(f"{API}/policies/{agent_policy.id}", headers=auth_headers(agent))
        assert gone.status_code == 404

    async def test_wrong_password(self, client: AsyncClient, agent: AppUser, agent_policy: Policy):
        response = await client.post(
            f"{API}/deletion-requests",
            json={"policyId": str(agent_policy.id), "reason": "Duplicate", "password": "wrong"},
            headers=auth_headers(agent),
        )
        assert response.status_code == 400

    async def test_requester_cannot_review(self, client: AsyncClient, agent: AppUser, agent_policy: Policy):
        request = await self.request_deletion(client, agent, agent_policy)

        response = await client.post(
            f"{API}/deletion-requests/{request['id']}/approve",
            json={"policyId": str(agent_policy.id)},
            headers=auth_headers(agent),
        )

        assert response.status_code == 403

    async def test_reject(
        self,
        client: AsyncClient,
        agent: AppUser,
        reviewer: AppUser,
        agent_policy: Policy,
    ):
        request = await self.request_deletion(client, agent, agent_policy)

        rejected = await client.post(
            f"{API}/deletion-requests/{request['id']}/reject",
            json={"comments": "Keep it"},
            headers=auth_headers(reviewer),
        )

        assert rejected.json()["status"] == "rejected"
        still_there = await client.get(f"{API}/policies/{agent_policy.id}", headers=auth_headers(agent))
        assert still_there.status_code == 200

    async def test_listing_is_scoped(
        self,
        client: AsyncClient,
        agent: AppUser,
        admin: AppUser,
        reviewer: AppUser,
        agent_policy: Policy,
    ):
        await self.request_deletion(client, agent, agent_policy)

        own = await client.get(f"{API}/deletion-requests", headers=auth_headers(agent))
        everyone = await client.get(f"{API}/deletion-requests", headers=auth_headers(reviewer))

        assert len(own.json()) == 1
        assert len(everyone.json()) == 1


# =============================================================================
# ACCESS CONTROL
# =============================================================================


class TestAccessControl:
    """Tests for page access, locking and subscription expiry."""

    async def test_team_member_page_access(self, client: AsyncClient, team_member: TeamMember):
        headers = member_headers(team_member)

        leads = await client.get(f"{API}/leads", headers=headers)
        policies = await client.get(f"{API}/policies", headers=headers)

        assert leads.status_code == 200
        assert policies.status_code == 403
        assert policies.json()["detail"] == "You do not have access to /policies"

    async def test_team_member_cannot_manage_team(self, client: AsyncClient, team_member: TeamMember):
        response = await client.get(f"{API}/team-members", headers=member_headers(team_member))
        assert response.status_code == 403

    async def test_admin_adds_team_member(self, client: AsyncClient, admin: AppUser):
        response = await client.post(
            f"{API}/team-members",
            json={
                "email": "clerk@agency.in",
                "password": "secret1",
                "fullName": "Clerk",
                "pageAccess": ["/leads", "/leads"],
            },
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        assert response.json()["pageAccess"] == ["/leads"]

    async def test_unknown_page_is_refused(self, client: AsyncClient, admin: AppUser):
        response = await client.post(
            f"{API}/team-members",
            json={"email": "clerk@agency.in", "password": "secret1", "fullName": "Clerk", "pageAccess": ["/bank"]},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    async def test_locked_account(self, client: AsyncClient, admin: AppUser, agent: AppUser):
        locked = await client.post(
            f"{API}/admin/users/{agent.id}/lock",
            json={"reason": "Unpaid invoice"},
            headers=auth_headers(admin),
        )
        assert locked.status_code == 200

        response = await client.get(f"{API}/policies", headers=auth_headers(agent))
        assert response.status_code == 423
        assert "Unpaid invoice" in response.json()["detail"]

        login = await client.post(
            f"{API}/auth/login",
            json={"email": agent.email, "password": AGENT_PASSWORD},
        )
        assert login.status_code == 423

        await client.post(f"{API}/admin/users/{agent.id}/unlock", headers=auth_headers(admin))
        assert (await client.get(f"{API}/policies", headers=auth_headers(agent))).status_code == 200

    async def test_non_admin_cannot_lock(self, client: AsyncClient, admin: AppUser, agent: AppUser):
        response = await client.post(
            f"{API}/admin/users/{admin.id}/lock",
            json={"reason": "x"},
            headers=auth_headers(agent),
        )
        assert response.status_code == 403

    async def test_expired_trial(self, client: AsyncClient, session, agent: AppUser):
        agent.trial_end_date = datetime.now(timezone.utc) - timedelta(days=1)
        await session.commit()

        response = await client.get(f"{API}/policies", headers=auth_headers(agent))
        assert response.status_code == 402

        me = await client.get(f"{API}/auth/me", headers=auth_headers(agent))
        assert me.status_code == 200
        assert me.json()["subscriptionStatus"] == "expired"
        assert me.json()["canAccessSystem"] is False


# =============================================================================
# LEADS AND ACTIVITY
# =============================================================================


class TestLeadEndpoints:
    """Tests for leads, follow-ups and the activity log over HTTP."""

    async def test_lead_follow_up_flow(self, client: AsyncClient, agent: AppUser):
        headers = auth_headers(agent)

        created = await client.post(
            f"{API}/leads",
            json={"customerName": "Priya Shah", "followUpDate": "2024-07-10"},
            headers=headers,
        )
        assert created.status_code == 201
        lead_id = created.json()["id"]

        recorded = await client.post(
            f"{API}/leads/{lead_id}/follow-ups",
            json={"status": "completed", "notes": "Sent quote", "nextFollowUpDate": "2024-07-15"},
            headers=headers,
        )
        assert recorded.status_code == 201

        lead = await client.get(f"{API}/leads/{lead_id}", headers=headers)
        assert lead.json()["followUpDate"] == "2024-07-15"

        history = await client.get(f"{API}/leads/{lead_id}/follow-ups", headers=headers)
        assert [entry["notes"] for entry in history.json()] == ["Sent quote"]

    async def test_custom_bucket(self, client: AsyncClient, agent: AppUser):
        headers = auth_headers(agent)
        for name, day in (("Early", "2024-07-01"), ("Inside", "2024-07-12"), ("Late", "2024-08-01")):
            await client.post(
                f"{API}/leads",
                json={"customerName": name, "followUpDate": day},
                headers=headers,
            )

        response = await client.get(
            f"{API}/leads/follow-ups",
            params={"bucket": "custom", "start": "2024-07-10", "end": "2024-07-20"},
            headers=headers,
        )

        assert [lead["customerName"] for lead in response.json()] == ["Inside"]

    async def test_statistics(self, client: AsyncClient, agent: AppUser):
        headers = auth_headers(agent)
        await client.post(f"{API}/leads", json={"customerName": "A", "status": "won"}, headers=headers)
        await client.post(f"{API}/leads", json={"customerName": "B", "status": "new"}, headers=headers)

        stats = (await client.get(f"{API}/leads/statistics", headers=headers)).json()

        assert stats["total"] == 2
        assert stats["won"] == 1
        assert stats["conversionRate"] == pytest.approx(50.0)

    @pytest.mark.parametrize("field", ["customerName", "status", "priority", "followUpDate"])
    async def test_update_rejects_null_for_required_fields(self, client: AsyncClient, agent: AppUser, field):
        headers = auth_headers(agent)
        created = await client.post(f"{API}/leads", json={"customerName": "Priya Shah"}, headers=headers)

        response = await client.patch(
            f"{API}/leads/{created.json()['id']}",
            json={field: None},
            headers=headers,
        )

        assert response.status_code == 422

    async def test_activity_pagination(self, client: AsyncClient, agent: AppUser):
        headers = auth_headers(agent)
        for index in range(3):
            await client.post(f"{API}/leads", json={"customerName": f"Lead {index}"}, headers=headers)

        page = await client.get(f"{API}/activity-logs", params={"page": 2, "page_size": 2}, headers=headers)

        body = page.json()
        assert body["total"] == 3
        assert body["totalPages"] == 2
        assert len(body["items"]) == 1


# =============================================================================
# RENEWALS AND GROUP HEADS
# =============================================================================


class TestRenewalEndpoints:
    """Tests for reminders and lapsed policies over HTTP."""

    async def test_reminders(self, client: AsyncClient, agent: AppUser):
        headers = auth_headers(agent)
        soon = (date.today() + timedelta(days=5)).isoformat()
        for number, expiry, one_time in (("SOON", soon, False), ("ONCE", soon, True), ("LATER", "2099-01-01", False)):
            await client.post(
                f"{API}/policies",
                json={**POLICY_BODY, "policyNumber": number, "expiryDate": expiry, "isOneTimePolicy": one_time},
                headers=headers,
            )

        response = await client.get(f"{API}/renewals/reminders", headers=headers)

        assert response.status_code == 200
        [reminder] = response.json()
        assert reminder["policy"]["policyNumber"] == "SOON"
        assert reminder["daysRemaining"] == 5
        assert reminder["alertLevel"] == "critical"
        assert "Days Remaining: 5 days" in reminder["message"]

    async def test_lapse_and_reactivate(self, client: AsyncClient, agent: AppUser, agent_policy: Policy):
        headers = auth_headers(agent)

        lapsed = await client.post(
            f"{API}/renewals/{agent_policy.id}/lapse",
            json={"reason": "Customer switched insurer"},
            headers=headers,
        )
        assert lapsed.status_code == 200
        assert lapsed.json()["lapsedReason"] == "Customer switched insurer"
        assert (await client.get(f"{API}/policies", headers=headers)).json() == []

        listed = await client.get(f"{API}/renewals/lapsed", headers=headers)
        lapsed_id = listed.json()[0]["id"]

        reactivated = await client.post(f"{API}/renewals/lapsed/{lapsed_id}/reactivate", headers=headers)
        assert reactivated.status_code == 200
        assert reactivated.json()["id"] == str(agent_policy.id)
        assert (await client.get(f"{API}/renewals/lapsed", headers=headers)).json() == []

    async def test_remove_lapsed_needs_admin(self, client: AsyncClient, agent: AppUser, agent_policy: Policy):
        headers = auth_headers(agent)
        lapsed = await client.post(f"{API}/renewals/{agent_policy.id}/lapse", json={}, headers=headers)

        response = await client.delete(f"{API}/renewals/lapsed/{lapsed.json()['id']}", headers=headers)

        assert response.status_code == 403

    async def test_lapse_unknown_policy(self, client: AsyncClient, agent: AppUser):
        response = await client.post(
            f"{API}/renewals/00000000-0000-0000-0000-000000000000/lapse",
            json={},
            headers=auth_headers(agent),
        )
        assert response.status_code == 404

    async def test_team_member_needs_reminders_page(self, client: AsyncClient, team_member: TeamMember):
        response = await client.get(f"{API}/renewals/reminders", headers=member_headers(team_member))
        assert response.status_code == 403


class TestGroupHeadEndpoints:
    """Tests for group heads over HTTP."""

    async def test_group_roll_up(self, client: AsyncClient, agent: AppUser):
        headers = auth_headers(agent)
        created = await client.post(
            f"{API}/group-heads",
            json={"groupHeadName": "Sharma Family", "contactNo": "9876543210"},
            headers=headers,
        )
        assert created.status_code == 201
        group_id = created.json()["id"]
        assert created.json()["totalPolicies"] == 0

        await client.post(
            f"{API}/policies",
            json={**POLICY_BODY, "memberOf": group_id, "totalPremium": "15000"},
            headers=headers,
        )

        group = (await client.get(f"{API}/group-heads/{group_id}", headers=headers)).json()
        assert group["totalPolicies"] == 1
        assert Decimal(group["totalPremiumAmount"]) == Decimal("15000")

        policies = await client.get(f"{API}/group-heads/{group_id}/policies", headers=headers)
        assert [p["policyNumber"] for p in policies.json()] == ["POL-100"]

    async def test_delete_detaches_policies(self, client: AsyncClient, agent: AppUser):
        headers = auth_headers(agent)
        group_id = (
            await client.post(f"{API}/group-heads", json={"groupHeadName": "Verma"}, headers=headers)
        ).json()["id"]
        policy = await client.post(f"{API}/policies", json={**POLICY_BODY, "memberOf": group_id}, headers=headers)

        deleted = await client.delete(f"{API}/group-heads/{group_id}", headers=headers)

        assert deleted.status_code == 204
        detached = await client.get(f"{API}/policies/{policy.json()['id']}", headers=headers)
        assert detached.json()["memberOf"] is None
        assert (await client.get(f"{API}/group-heads/{group_id}", headers=headers)).status_code == 404

    @pytest.mark.parametrize("field", ["groupHeadName", "relationshipType"])
    async def test_update_rejects_null_for_required_fields(self, client: AsyncClient, agent: AppUser, field):
        headers = auth_headers(agent)
        group_id = (
            await client.post(f"{API}/group-heads", json={"groupHeadName": "Verma"}, headers=headers)
        ).json()["id"]

        response = await client.patch(f"{API}/group-heads/{group_id}", json={field: None}, headers=headers)

        assert response.status_code == 422

    async def test_other_owner_cannot_read(self, client: AsyncClient, agent: AppUser, admin: AppUser):
        group_id = (
            await client.post(
                f"{API}/group-heads", json={"groupHeadName": "Verma"}, headers=auth_headers(agent)
            )
        ).json()["id"]

        response = await client.get(f"{API}/group-heads/{group_id}", headers=auth_headers(admin))

        assert response.status_code == 404


# =============================================================================
# AUTO-FILL
# =============================================================================


class TestAutoFillEndpoints:
    """Tests for the auto-fill session endpoints."""

    @pytest.fixture
    def uploads(self, app):
        names: list[str] = []

        def respond(request: httpx.Request) -> httpx.Response:
            body = request.content
            number = "AF-1" if b"first.pdf" in body else "AF-2"
            names.append(number)
            payload = [{"output": {"customer_name": f"Holder {number}", "policy_no": number, "type": "Health"}}]
            return httpx.Response(200, json=payload)

        def client_override() -> ExtractionClient:
            return ExtractionClient(
                Settings(extraction_webhook_url="http://extract.test/webhook/policy"),
                client=httpx.AsyncClient(transport=httpx.MockTransport(respond)),
            )

        app.dependency_overrides[get_extraction_client] = client_override
        return names

    def files(self, *names: str) -> list:
        return [("files", (name, b"%PDF-1.4 test", "application/pdf")) for name in names]

    async def test_one_file_at_a_time(self, client: AsyncClient, agent: AppUser, uploads):
        headers = auth_headers(agent)

        started = await client.post(
            f"{API}/extraction/sessions",
            files=self.files("first.pdf", "second.pdf"),
            headers=headers,
        )
        assert started.status_code == 201
        state = started.json()
        assert uploads == ["AF-1"]
        assert state["form"]["policyNumber"] == "AF-1"

        saved = await client.post(
            f"{API}/extraction/sessions/{state['id']}/save",
            json=state["form"],
            headers=headers,
        )
        assert saved.status_code == 200
        assert saved.json()["policy"]["policyNumber"] == "AF-1"
        assert uploads == ["AF-1", "AF-2"]
        assert saved.json()["session"]["currentIndex"] == 1

        listed = await client.get(f"{API}/policies", headers=headers)
        assert [p["policyNumber"] for p in listed.json()] == ["AF-1"]

    async def test_invalid_form_is_a_400_and_keeps_the_session(
        self,
        client: AsyncClient,
        agent: AppUser,
        uploads,
    ):
        headers = auth_headers(agent)
        started = await client.post(
            f"{API}/extraction/sessions",
            files=self.files("first.pdf", "second.pdf"),
            headers=headers,
        )
        state = started.json()
        form = dict(state["form"], contactNo="+91 98765 43210 / 022-2345678")

        response = await client.post(
            f"{API}/extraction/sessions/{state['id']}/save",
            json=form,
            headers=headers,
        )

        assert response.status_code == 400
        assert uploads == ["AF-1"]
        current = await client.get(f"{API}/extraction/sessions/{state['id']}", headers=headers)
        assert current.json()["currentIndex"] == 0
        assert current.json()["processedCount"] == 0

    async def test_non_pdf_files_are_rejected(self, client: AsyncClient, agent: AppUser, uploads):
        response = await client.post(
            f"{API}/extraction/sessions",
            files=[("files", ("notes.txt", b"hello", "text/plain"))],
            headers=auth_headers(agent),
        )
        assert response.status_code == 400
        assert uploads == []

    async def test_not_configured(self, client: AsyncClient, agent: AppUser):
        response = await client.post(
            f"{API}/extraction/extract",
            files=[("file", ("first.pdf", b"%PDF-1.4 test", "application/pdf"))],
            headers=auth_headers(agent),
        )
        assert response.status_code == 503

    async def test_session_belongs_to_caller(
        self,
        client: AsyncClient,
        agent: AppUser,
        admin: AppUser,
        uploads,
    ):
        started = await client.post(
            f"{API}/extraction/sessions",
            files=self.files("first.pdf"),
            headers=auth_headers(agent),
        )

        response = await client.get(
            f"{API}/extraction/sessions/{started.json()['id']}",
            headers=auth_headers(admin),
        )
        assert response.status_code == 404
