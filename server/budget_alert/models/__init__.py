from budget_alert.models.user import User
from budget_alert.models.category import Category
from budget_alert.models.budget import Budget
from budget_alert.models.spending import BudgetSpendingSnapshot
from budget_alert.models.alert import BudgetAlert
from budget_alert.models.transaction import Transaction
from budget_alert.models.preference import NotificationPreference

__all__ = [
    "User",
    "Category",
    "Budget",
    "BudgetSpendingSnapshot",
    "BudgetAlert",
    "Transaction",
    "NotificationPreference",
]
