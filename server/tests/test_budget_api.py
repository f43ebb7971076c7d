"""预算管理接口测试"""

from datetime import date

import pytest

from tests.conftest import MONTH_END, MONTH_START, add_budget, add_preference, add_transaction


def _payload(user_id, category_id, **overrides):
    payload = {
        "user_id": user_id,
        "category_id": category_id,
        "name": "Groceries",
        "amount": 300,
        "period_type": "monthly",
        "start_date": MONTH_START.isoformat(),
        "end_date": MONTH_END.isoformat(),
        "currency": "usd",
    }
    payload.update(overrides)
    return payload


class TestCreateBudget:

    @pytest.mark.asyncio
    async def test_create(self, client, seeded):
        user, _, _ = seeded
        resp = await client.post("/budgets", json=_payload(user.id, None, name="Everything"))
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["name"] == "Everything"
        assert data["currency"] == "USD"
        assert data["status"] == "normal"
        assert data["total_spent"] == 0
        assert data["remaining"] == 300
        assert data["period_start"] == MONTH_START.isoformat()

    @pytest.mark.asyncio
    async def test_overlap_conflict(self, client, seeded):
        user, food, _ = seeded
        resp = await client.post("/budgets", json=_payload(user.id, food.id))
        assert resp.status_code == 409
        assert "Monthly Food" in resp.json()["message"]

    @pytest.mark.asyncio
    async def test_overlap_allowed_explicitly(self, client, seeded):
        user, food, _ = seeded
        resp = await client.post(
            "/budgets", json=_payload(user.id, food.id, allow_overlapping=True)
        )
        assert resp.status_code == 201

    @pytest.mark.asyncio
    async def test_invalid_dates(self, client, seeded):
        user, _, _ = seeded
        resp = await client.post("/budgets", json=_payload(
            user.id, None, start_date=MONTH_END.isoformat(), end_date=MONTH_START.isoformat()
        ))
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_non_positive_amount(self, client, seeded):
        user, _, _ = seeded
        resp = await client.post("/budgets", json=_payload(user.id, None, amount=0))
        assert resp.status_code == 400


class TestReadBudgets:

    @pytest.mark.asyncio
    async def test_list_and_detail(self, client, seeded):
        user, _, budget = seeded
        listed = (await client.get(f"/budgets/{user.id}")).json()["data"]
        assert [b["id"] for b in listed] == [budget.id]
        assert listed[0]["category_name"] == "Food"

        detail = await client.get(f"/budgets/{user.id}/{budget.id}")
        assert detail.status_code == 200
        assert detail.json()["data"]["amount"] == 500

    @pytest.mark.asyncio
    async def test_not_found(self, client, seeded):
        user, _, _ = seeded
        resp = await client.get(f"/budgets/{user.id}/missing")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Budget not found"

    @pytest.mark.asyncio
    async def test_spending_without_snapshot(self, client, seeded):
        user, _, budget = seeded
        resp = await client.get(f"/budgets/{user.id}/{budget.id}/spending")
        assert resp.status_code == 404


class TestUpdateDeleteBudget:

    @pytest.mark.asyncio
    async def test_update_amount_changes_status(self, client, seeded, session_factory):
        user, food, budget = seeded
        async with session_factory() as s:
            await add_transaction(s, user.id, food.id, "200")
            await s.commit()

        resp = await client.put(f"/budgets/{user.id}/{budget.id}", json={"amount": 220})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["amount"] == 220
        assert data["total_spent"] == 200
        assert data["status"] == "warning"

    @pytest.mark.asyncio
    async def test_update_without_fields(self, client, seeded):
        user, _, budget = seeded
        resp = await client.put(f"/budgets/{user.id}/{budget.id}", json={})
        assert resp.status_code == 400
        assert resp.json()["message"] == "No valid fields to update"

    @pytest.mark.asyncio
    async def test_update_bad_dates(self, client, seeded):
        user, _, budget = seeded
        resp = await client.put(
            f"/budgets/{user.id}/{budget.id}", json={"end_date": "2026-02-01"}
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_is_soft(self, client, seeded):
        user, _, budget = seeded
        resp = await client.delete(f"/budgets/{user.id}/{budget.id}")
        assert resp.status_code == 200

        assert (await client.get(f"/budgets/{user.id}/{budget.id}")).status_code == 404
        assert (await client.delete(f"/budgets/{user.id}/{budget.id}")).status_code == 404
        assert (await client.get(f"/budgets/{user.id}")).json()["data"] == []


class TestBudgetOverview:

    @pytest.mark.asyncio
    async def test_overview_totals(self, client, seeded, session_factory):
        user, food, food_budget = seeded
        async with session_factory() as s:
            general = await add_budget(
                s, user.id, None, amount="100", name="Weekly Everything", period_type="weekly"
            )
            await add_transaction(s, user.id, food.id, "450")
            await s.commit()
            general_id = general.id

        for budget_id in (food_budget.id, general_id):
            resp = await client.post(f"/budgets/{user.id}/{budget_id}/recalculate")
            assert resp.status_code == 200

        resp = await client.get(f"/budgets/{user.id}/overview")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["total_budgets"] == 2
        assert data["active_budgets"] == 2
        assert data["total_budget_amount"] == 600
        assert data["total_spent"] == 900
        # 餐饮 90% → warning；总预算 450% → exceeded
        assert data["budgets_in_warning"] == 1
        assert data["budgets_exceeded"] == 1
        assert data["budgets_by_period"] == {"monthly": 1, "weekly": 1}
        assert len(data["budgets"]) == 2

    @pytest.mark.asyncio
    async def test_overview_not_captured_by_detail_route(self, client):
        resp = await client.get("/budgets/nobody/overview")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["total_budgets"] == 0
        assert data["budgets"] == []

    @pytest.mark.asyncio
    async def test_overview_uses_preference_threshold(self, client, seeded, session_factory):
        user, food, budget = seeded
        async with session_factory() as s:
            await add_preference(s, user.id, threshold_warning=50)
            await add_transaction(s, user.id, food.id, "300")
            await s.commit()

        await client.post(f"/budgets/{user.id}/{budget.id}/recalculate")
        data = (await client.get(f"/budgets/{user.id}/overview")).json()["data"]
        assert data["budgets_in_warning"] == 1
        assert data["budgets"][0]["status"] == "warning"


class TestRecalculateBudget:

    @pytest.mark.asyncio
    async def test_recalculate_returns_snapshot(self, client, seeded, session_factory):
        user, food, budget = seeded
        async with session_factory() as s:
            await add_transaction(s, user.id, food.id, "120.25")
            await add_transaction(s, user.id, food.id, "30")
            await s.commit()

        resp = await client.post(f"/budgets/{user.id}/{budget.id}/recalculate")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["budget_id"] == budget.id
        assert data["total_spent"] == 150.25
        assert data["transaction_count"] == 2
        assert data["period_start"] == MONTH_START.isoformat()
        assert data["period_end"] == MONTH_END.isoformat()

        # 重算不产生预警
        count = (await client.get(f"/alerts/{user.id}/unread-count")).json()["data"]
        assert count["unread_count"] == 0

    @pytest.mark.asyncio
    async def test_recalculate_unknown_budget(self, client, seeded):
        user, _, _ = seeded
        resp = await client.post(f"/budgets/{user.id}/missing/recalculate")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Budget not found"

    @pytest.mark.asyncio
    async def test_recalculate_outside_active_period(self, client, seeded, session_factory):
        user, _, _ = seeded
        async with session_factory() as s:
            future = await add_budget(
                s, user.id, None, start_date=date(2026, 5, 1), end_date=date(2026, 5, 31)
            )
            await s.commit()
            future_id = future.id

        resp = await client.post(f"/budgets/{user.id}/{future_id}/recalculate")
        assert resp.status_code == 200
        assert resp.json()["data"] is None
