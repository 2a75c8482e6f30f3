# src/core/catalog/models.py
"""
Модели склада карточек.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from src.shared.models.common import CamelModel


class Pokemon(CamelModel):
    """Карточка покемона, продаваемая поштучно за Stars."""

    id: str = Field(..., description="UUID карточки")
    pokemon_id: int = Field(..., description="Номер в Pokedex")
    name: str
    image: str = ""
    types: list[str] = Field(default_factory=list)
    height: int = 0
    weight: int = 0
    rarity: str = "common"
    total_units: int = Field(..., ge=0)
    available_units: int = Field(..., ge=0)
    price_per_unit: int = Field(..., gt=0, description="Цена одной единицы в Stars")
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def in_stock(self) -> bool:
        return self.available_units > 0
