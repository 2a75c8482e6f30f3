# src/services/api/routes/linkers.py
"""
Лента ссылок.

Правка, удаление и продвижение принимают ID пользователя в query-параметре userId.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from src.common.constants import FeedSort
from src.core.linkers.models import (
    CreateLinkerRequest,
    DuplicateCheckResponse,
    Linker,
    UpdateLinkerRequest,
)
from src.core.linkers.service import LinkerService
from src.services.api.dependencies import get_linker_service

router = APIRouter(prefix="/linkers", tags=["Linkers"])


@router.get("", response_model=list[Linker])
async def list_linkers(
    sort: FeedSort = Query(FeedSort.RECENT),
    service: LinkerService = Depends(get_linker_service),
):
    return await service.list_posts(sort)


@router.post("", response_model=Linker, status_code=status.HTTP_201_CREATED)
async def create_linker(
    request: CreateLinkerRequest,
    service: LinkerService = Depends(get_linker_service),
):
    return await service.create_post(
        user_id=request.user_id,
        username=request.username,
        content=request.content,
        tags=request.tags,
    )


@router.get("/check-duplicate", response_model=DuplicateCheckResponse)
async def check_duplicate(
    url: str = Query(""),
    service: LinkerService = Depends(get_linker_service),
):
    return await service.check_duplicate(url)


@router.get("/tag/{tag}", response_model=list[Linker])
async def list_by_tag(tag: str, service: LinkerService = Depends(get_linker_service)):
    return await service.list_by_tag(tag)


@router.put("/{linker_id}", response_model=Linker)
async def update_linker(
    linker_id: str,
    request: UpdateLinkerRequest,
    user_id: int = Query(..., alias="userId"),
    service: LinkerService = Depends(get_linker_service),
):
    return await service.update_post(linker_id, user_id, request.content, request.tags)


@router.delete("/{linker_id}")
async def delete_linker(
    linker_id: str,
    user_id: int = Query(..., alias="userId"),
    service: LinkerService = Depends(get_linker_service),
) -> dict[str, Any]:
    await service.delete_post(linker_id, user_id)
    return {"message": "Linker deleted successfully", "id": linker_id}


@router.post("/{linker_id}/promote", response_model=Linker)
async def promote_linker(
    linker_id: str,
    user_id: int = Query(..., alias="userId"),
    service: LinkerService = Depends(get_linker_service),
):
    return await service.promote_post(linker_id, user_id)
