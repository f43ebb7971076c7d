from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from budget_alert.database import get_db
from budget_alert.services.alert_service import AlertService
from budget_alert.services.budget_service import BudgetService
from budget_alert.services.transaction_service import TransactionService
from budget_alert.utils.clock import Clock, system_clock
from budget_alert.utils.email import EmailSender, DisabledEmailSender


def get_clock() -> Clock:
    return system_clock


def get_email_sender() -> EmailSender:
    return DisabledEmailSender()


def get_transaction_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    email_sender: EmailSender = Depends(get_email_sender),
) -> TransactionService:
    return TransactionService(db, clock, email_sender)


def get_alert_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    email_sender: EmailSender = Depends(get_email_sender),
) -> AlertService:
    return AlertService(db, clock, email_sender)


def get_budget_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> BudgetService:
    return BudgetService(db, clock)
