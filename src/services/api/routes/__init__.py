# src/services/api/routes/__init__.py
"""
Роутеры REST API.
"""

from fastapi import APIRouter

from src.services.api.routes.access import router as access_router
from src.services.api.routes.linkers import router as linkers_router
from src.services.api.routes.payments import router as payments_router
from src.services.api.routes.pokemons import router as pokemons_router
from src.services.api.routes.users import router as users_router

api_router = APIRouter(prefix="/api")
api_router.include_router(pokemons_router)
api_router.include_router(payments_router)
api_router.include_router(users_router)
api_router.include_router(linkers_router)
api_router.include_router(access_router)

__all__ = ["api_router"]
