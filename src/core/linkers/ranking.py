# src/core/linkers/ranking.py
"""
Ранжирование ленты по популярности.

score = promotions + 0.25 * sqrt(promotions) + max(0, 48 - age_hours) * 0.05

Бонус свежести ограничен 48 часами и линейно затухает: новый пост получает
до 2.4 балла, что не перевешивает пост с десятком продвижений.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional, Sequence

from src.core.linkers.models import Linker

RECENCY_WINDOW_HOURS = 48.0
RECENCY_WEIGHT = 0.05
PROMOTION_SQRT_WEIGHT = 0.25


def popularity_score(linker: Linker, now: datetime) -> float:
    """Очки поста на момент now."""
    promotions = max(0, linker.promotions)
    age_hours = max(0.0, (now - linker.created_at).total_seconds() / 3600)
    recency = max(0.0, RECENCY_WINDOW_HOURS - age_hours) * RECENCY_WEIGHT
    return promotions + PROMOTION_SQRT_WEIGHT * math.sqrt(promotions) + recency


def rank_popular(linkers: Sequence[Linker], now: Optional[datetime] = None) -> list[Linker]:
    """
    Сортирует посты по убыванию очков.

    sorted() стабилен: при равных очках сохраняется исходный порядок выборки.
    """
    moment = now or datetime.now(timezone.utc)
    return sorted(linkers, key=lambda linker: popularity_score(linker, moment), reverse=True)
