from fastapi import APIRouter, Depends, Query

from budget_alert.errors import NotFoundError
from budget_alert.schemas.alert import (
    AlertResponse,
    AlertCheckResult,
    AlertStats,
    UnreadCount,
    MarkAllReadResult,
)
from budget_alert.schemas.common import ApiResponse
from budget_alert.services.alert_service import AlertService
from budget_alert.utils.deps import get_alert_service
from budget_alert.utils.responses import success_response

router = APIRouter(prefix="/alerts", tags=["预算预警"])


@router.get("/{user_id}", response_model=ApiResponse[list[AlertResponse]])
async def list_alerts(
    user_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    service: AlertService = Depends(get_alert_service),
):
    alerts = await service.list_user_alerts(user_id, limit, offset)
    return success_response(alerts, "Alerts retrieved successfully")


@router.get("/{user_id}/unread-count", response_model=ApiResponse[UnreadCount])
async def unread_count(
    user_id: str,
    service: AlertService = Depends(get_alert_service),
):
    count = await service.unread_count(user_id)
    return success_response(UnreadCount(unread_count=count), "Unread alert count retrieved")


@router.get("/{user_id}/stats", response_model=ApiResponse[AlertStats])
async def alert_stats(
    user_id: str,
    service: AlertService = Depends(get_alert_service),
):
    stats = await service.alert_stats(user_id)
    return success_response(stats, "Alert statistics retrieved")


@router.put("/{user_id}/mark-all-read", response_model=ApiResponse[MarkAllReadResult])
async def mark_all_read(
    user_id: str,
    service: AlertService = Depends(get_alert_service),
):
    count = await service.mark_all_as_read(user_id)
    return success_response(MarkAllReadResult(marked_count=count), f"{count} alerts marked as read")


@router.put("/{user_id}/{alert_id}/read", response_model=ApiResponse[AlertResponse])
async def mark_read(
    user_id: str,
    alert_id: str,
    service: AlertService = Depends(get_alert_service),
):
    alert = await service.mark_alert_as_read(alert_id, user_id)
    if not alert:
        raise NotFoundError("Alert")
    return success_response(alert, "Alert marked as read")


# ───── 手动触发预算检查 ─────

@router.post("/{user_id}/{budget_id}/check", response_model=ApiResponse[AlertCheckResult])
async def trigger_check(
    user_id: str,
    budget_id: str,
    service: AlertService = Depends(get_alert_service),
):
    result = await service.check_and_send_alerts(user_id, budget_id)
    return success_response(result, "Budget alert check completed")
