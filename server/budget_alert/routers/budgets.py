from fastapi import APIRouter, Depends

from budget_alert.errors import NotFoundError
from budget_alert.schemas.budget import (
    BudgetCreate,
    BudgetUpdate,
    BudgetResponse,
    BudgetOverview,
    SpendingSnapshotResponse,
)
from budget_alert.schemas.common import ApiResponse
from budget_alert.services.budget_service import BudgetService
from budget_alert.utils.deps import get_budget_service
from budget_alert.utils.responses import success_response

router = APIRouter(prefix="/budgets", tags=["预算"])


# ───── 新建预算 ─────

@router.post("", response_model=ApiResponse[BudgetResponse], status_code=201)
async def create_budget(
    body: BudgetCreate,
    service: BudgetService = Depends(get_budget_service),
):
    budget = await service.create_budget(body)
    return success_response(await service.to_response(budget), "Budget created successfully")


# ───── 预算列表 ─────

@router.get("/{user_id}", response_model=ApiResponse[list[BudgetResponse]])
async def list_budgets(
    user_id: str,
    service: BudgetService = Depends(get_budget_service),
):
    budgets = await service.list_user_budgets(user_id)
    return success_response(
        [await service.to_response(b) for b in budgets], "Budgets retrieved successfully"
    )


# ───── 预算概览（需注册在详情路由之前） ─────

@router.get("/{user_id}/overview", response_model=ApiResponse[BudgetOverview])
async def budget_overview(
    user_id: str,
    service: BudgetService = Depends(get_budget_service),
):
    overview = await service.overview(user_id)
    return success_response(overview, "Budget overview retrieved successfully")


# ───── 预算详情 ─────

@router.get("/{user_id}/{budget_id}", response_model=ApiResponse[BudgetResponse])
async def get_budget(
    user_id: str,
    budget_id: str,
    service: BudgetService = Depends(get_budget_service),
):
    budget = await service.get_budget(budget_id, user_id)
    return success_response(await service.to_response(budget), "Budget retrieved successfully")


# ───── 当前周期支出快照 ─────

@router.get("/{user_id}/{budget_id}/spending", response_model=ApiResponse[SpendingSnapshotResponse])
async def get_budget_spending(
    user_id: str,
    budget_id: str,
    service: BudgetService = Depends(get_budget_service),
):
    await service.get_budget(budget_id, user_id)
    snapshot = await service.spending.get_current_snapshot(budget_id)
    if snapshot is None:
        raise NotFoundError("Spending snapshot")
    return success_response(
        SpendingSnapshotResponse.model_validate(snapshot), "Budget spending retrieved"
    )


# ───── 重算单个预算支出 ─────

@router.post(
    "/{user_id}/{budget_id}/recalculate",
    response_model=ApiResponse[SpendingSnapshotResponse | None],
)
async def recalculate_budget_spending(
    user_id: str,
    budget_id: str,
    service: BudgetService = Depends(get_budget_service),
):
    snapshot = await service.recalculate_budget(budget_id, user_id)
    if snapshot is None:
        return success_response(None, "Budget has no active period today")
    return success_response(
        SpendingSnapshotResponse.model_validate(snapshot),
        "Budget spending recalculated successfully",
    )


# ───── 更新预算 ─────

@router.put("/{user_id}/{budget_id}", response_model=ApiResponse[BudgetResponse])
async def update_budget(
    user_id: str,
    budget_id: str,
    body: BudgetUpdate,
    service: BudgetService = Depends(get_budget_service),
):
    budget = await service.update_budget(budget_id, user_id, body)
    return success_response(await service.to_response(budget), "Budget updated successfully")


# ───── 删除预算（软删除） ─────

@router.delete("/{user_id}/{budget_id}", response_model=ApiResponse[dict])
async def delete_budget(
    user_id: str,
    budget_id: str,
    service: BudgetService = Depends(get_budget_service),
):
    if not await service.delete_budget(budget_id, user_id):
        raise NotFoundError("Budget")
    return success_response({"budget_id": budget_id}, "Budget deleted successfully")
