"""预警邮件：发送成功标记 email_sent，失败不影响预警记录"""

import pytest
from sqlalchemy import select

from budget_alert.models.alert import BudgetAlert
from budget_alert.services.alert_service import AlertService, email_subject
from budget_alert.services.spending_service import SpendingService
from budget_alert.utils.email import DisabledEmailSender, EmailDisabledError, EmailSender
from tests.conftest import NOW, add_preference, add_transaction


class RecordingSender(EmailSender):

    def __init__(self):
        self.sent = []

    async def send(self, to_address, subject, html_body, text_body):
        self.sent.append((to_address, subject, html_body, text_body))
        return f"msg-{len(self.sent)}"


class FailingSender(EmailSender):

    async def send(self, to_address, subject, html_body, text_body):
        raise ConnectionError("SMTP unavailable")


async def _over_warning(db, clock, food_setup):
    user, food, budget = food_setup
    await add_transaction(db, user.id, food.id, "410")
    await SpendingService(db, clock).refresh(budget.id, user.id)
    return user, budget


class TestAlertEmail:

    @pytest.mark.asyncio
    async def test_email_sent(self, db, clock, food_setup):
        user, budget = await _over_warning(db, clock, food_setup)
        sender = RecordingSender()
        service = AlertService(db, clock, sender, email_enabled=True)

        result = await service.check_and_send_alerts(user.id, budget.id)
        assert result.alert.email_sent is True

        to_address, subject, html_body, text_body = sender.sent[0]
        assert to_address == "test@example.com"
        assert subject == "Budget Warning - Food"
        assert "Hello Test User" in html_body
        assert "$410.00" in text_body
        assert "82.00%" in text_body

        alert = (await db.execute(select(BudgetAlert))).scalar_one()
        assert alert.email_sent is True
        assert alert.email_sent_at == NOW

    @pytest.mark.asyncio
    async def test_email_failure_keeps_alert(self, db, clock, food_setup):
        user, budget = await _over_warning(db, clock, food_setup)
        service = AlertService(db, clock, FailingSender(), email_enabled=True)

        result = await service.check_and_send_alerts(user.id, budget.id)
        assert result.message == "warning alert sent successfully"
        assert result.alert.email_sent is False

        alert = (await db.execute(select(BudgetAlert))).scalar_one()
        assert alert.email_sent is False
        assert alert.email_sent_at is None

    @pytest.mark.asyncio
    async def test_disabled_sender(self, db, clock, food_setup):
        user, budget = await _over_warning(db, clock, food_setup)
        service = AlertService(db, clock, DisabledEmailSender(), email_enabled=True)

        result = await service.check_and_send_alerts(user.id, budget.id)
        assert result.alert is not None
        assert result.alert.email_sent is False

    @pytest.mark.asyncio
    async def test_email_globally_disabled(self, db, clock, food_setup):
        user, budget = await _over_warning(db, clock, food_setup)
        sender = RecordingSender()
        service = AlertService(db, clock, sender, email_enabled=False)

        result = await service.check_and_send_alerts(user.id, budget.id)
        assert result.alert is not None
        assert sender.sent == []

    @pytest.mark.asyncio
    async def test_user_opted_out(self, db, clock, food_setup):
        user, budget = await _over_warning(db, clock, food_setup)
        await add_preference(db, user.id, email_alerts=False)
        sender = RecordingSender()
        service = AlertService(db, clock, sender, email_enabled=True)

        result = await service.check_and_send_alerts(user.id, budget.id)
        assert result.message == "No alert needed"
        assert sender.sent == []


class TestDisabledSender:

    @pytest.mark.asyncio
    async def test_raises(self):
        with pytest.raises(EmailDisabledError):
            await DisabledEmailSender().send("a@b.c", "s", "<p>h</p>", "t")


def test_email_subjects():
    assert email_subject("exceeded", "Food") == "Budget Exceeded - Food"
    assert email_subject("critical", None) == "Critical Budget Alert - Budget"
