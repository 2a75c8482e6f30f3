# src/services/api/routes/pokemons.py
"""Каталог карточек."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.core.catalog.models import Pokemon
from src.core.catalog.service import CatalogService
from src.services.api.dependencies import get_catalog_service

router = APIRouter(prefix="/pokemons", tags=["Pokemons"])


@router.get("", response_model=list[Pokemon])
async def list_pokemons(service: CatalogService = Depends(get_catalog_service)):
    return await service.list_pokemons()


@router.get("/{pokemon_id}", response_model=Pokemon)
async def get_pokemon(pokemon_id: str, service: CatalogService = Depends(get_catalog_service)):
    return await service.get_pokemon(pokemon_id)
