"""Dashboard metrics for the admin home screen."""

from fastapi import APIRouter, HTTPException, Query, status

from mixer_rental_api.app.core.responses import ok
from mixer_rental_api.app.services.statistics_service import StatisticsService


router = APIRouter()


@router.get("/stats")
async def dashboard_stats(period: str = Query("30d")) -> dict:
    """Получить сводную статистику для панели администратора."""
    return ok(await StatisticsService.dashboard(period))


@router.get("/charts")
async def dashboard_charts(period: str = Query("30d"), chart_type: str = Query("all")) -> dict:
    """Данные для графиков за выбранный период."""
    try:
        return ok(await StatisticsService.charts(period, chart_type))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.get("/performance")
async def dashboard_performance(period: str = Query("30d")) -> dict:
    return ok(await StatisticsService.performance(period))
