# src/services/api/routes/access.py
"""Учёт посещений страниц Mini App."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from src.core.access.models import (
    AccessHistoryResponse,
    AccessStats,
    DailyStatsResponse,
    TrackAccessRequest,
    TrackAccessResult,
)
from src.core.access.service import AccessService
from src.services.api.dependencies import get_access_service

router = APIRouter(prefix="/access", tags=["Access"])


@router.post("/track", response_model=TrackAccessResult)
async def track_access(
    body: TrackAccessRequest,
    request: Request,
    service: AccessService = Depends(get_access_service),
):
    return await service.track(
        body,
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )


@router.get("/stats", response_model=AccessStats)
async def access_stats(service: AccessService = Depends(get_access_service)):
    return await service.stats()


@router.get("/daily", response_model=DailyStatsResponse)
async def daily_stats(
    days: int = Query(30),
    service: AccessService = Depends(get_access_service),
):
    return await service.daily(days)


@router.get("/history/{user_id}", response_model=AccessHistoryResponse)
async def access_history(
    user_id: int,
    limit: int = Query(50),
    service: AccessService = Depends(get_access_service),
):
    return await service.history(user_id, limit)
