# src/core/access/models.py
"""
Модели учёта посещений страниц Mini App.
"""

from __future__ import annotations

import datetime as dt
from datetime import datetime
from typing import Optional

from pydantic import Field

from src.shared.models.common import CamelModel


class PageAccess(CamelModel):
    """Одно посещение страницы."""

    id: int
    user_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    page_url: str
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime


class TrackAccessRequest(CamelModel):
    """Событие посещения от фронтенда."""

    user_id: int = Field(..., gt=0)
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    page_url: str = Field(..., min_length=1, max_length=2048)


class TrackAccessResult(CamelModel):
    success: bool = True
    tracked: bool
    message: str


class AccessStats(CamelModel):
    total_accesses: int
    unique_users: int
    last_24_hours: int = Field(..., alias="last24Hours")
    timestamp: datetime


class DailyStat(CamelModel):
    date: dt.date
    count: int
    unique_users: int


class DailyStatsResponse(CamelModel):
    daily_stats: list[DailyStat]
    period: int
    start_date: dt.date
    end_date: dt.date


class AccessHistoryResponse(CamelModel):
    user_id: int
    accesses: list[PageAccess]
    count: int
    limit: int
