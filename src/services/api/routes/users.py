# src/services/api/routes/users.py
"""Профиль, коллекция, статистика и таблица лидеров."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from src.core.users.models import LeaderboardEntry, OwnedCard, User, UserStats
from src.core.users.service import UserService
from src.services.api.dependencies import get_user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile/{user_id}", response_model=User)
async def get_profile(user_id: int, service: UserService = Depends(get_user_service)):
    return await service.require_user(user_id)


@router.get("/stats/{user_id}", response_model=UserStats)
async def get_stats(user_id: int, service: UserService = Depends(get_user_service)):
    return await service.get_stats(user_id)


@router.get("/collection/{user_id}", response_model=list[OwnedCard])
async def get_collection(user_id: int, service: UserService = Depends(get_user_service)):
    return await service.get_collection(user_id)


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def get_leaderboard(
    limit: int = Query(10, ge=1, le=100),
    service: UserService = Depends(get_user_service),
):
    return await service.get_leaderboard(limit)


@router.get("/top", response_model=list[User])
async def get_top_collectors(
    limit: int = Query(10, ge=1, le=100),
    service: UserService = Depends(get_user_service),
):
    return await service.get_top_collectors(limit)
