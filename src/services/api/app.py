# src/services/api/app.py
"""
FastAPI приложение REST API для Telegram Mini App.

Endpoints (префикс /api):
- /pokemons - каталог карточек
- /payments - счета в Stars и статус оплаты
- /users - профиль, коллекция, статистика, лидеры
- /linkers - лента ссылок
- /access - учёт посещений страниц
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.common.constants import TypeMsg
from src.common.errors import AppError
from src.common.logger import log_error, log_info, log_warning
from src.shared.models.common import ErrorResponse, HealthStatus
from src.services.api.dependencies import get_database, get_redis_client
from src.services.api.routes import api_router

SERVICE_NAME = "poke_api"


# === LIFESPAN ===

def build_lifespan(manage_infrastructure: bool):
    """
    Жизненный цикл приложения.

    В режиме api процесс сам поднимает БД, Redis и бота для счетов.
    В режиме all этим занимается main.py, и lifespan ничего не делает.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not manage_infrastructure:
            yield
            return

        from src.bot.app import create_bot
        from src.bot.dependencies import init_gateway
        from src.infra.database import close_db, init_db
        from src.infra.redis_client import close_redis, init_redis

        await log_info("Запуск REST API...", type_msg=TypeMsg.INFO)
        await init_db()
        await init_redis()
        bot = create_bot()
        init_gateway(bot)

        yield

        await log_info("Остановка REST API...", type_msg=TypeMsg.INFO)
        await bot.session.close()
        await close_redis()
        await close_db()

    return lifespan


# === ERROR HANDLERS ===

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """AppError -> ErrorResponse с HTTP-статусом исключения."""
    if exc.status_code >= 500:
        await log_error(
            f"{request.method} {request.url.path}: {exc.error_code} {exc.message}",
            extra=exc.details,
        )
    else:
        await log_info(
            f"{request.method} {request.url.path}: {exc.error_code} {exc.message}",
            type_msg=TypeMsg.DEBUG,
        )
    body = ErrorResponse(**exc.to_dict())
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Нарушение схемы запроса -> 400 invalid_input."""
    await log_warning(f"{request.method} {request.url.path}: некорректный запрос")
    body = ErrorResponse(
        error_code="invalid_input",
        message="Invalid request",
        details={"errors": jsonable_encoder(exc.errors())},
    )
    return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    await log_error(f"{request.method} {request.url.path}: {exc}", exc_info=True)
    body = ErrorResponse(error_code="internal_error", message="Internal server error")
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


# === APP ===

def create_app(manage_infrastructure: bool = True) -> FastAPI:
    """
    Собирает приложение.

    Args:
        manage_infrastructure: Поднимать ли БД, Redis и бота в lifespan
    """
    from src.config import settings

    app = FastAPI(
        title="Poke Mini App API",
        description="REST API для Telegram Mini App: карточки, покупки за Stars, лента ссылок.",
        version=settings.system.VERSION,
        lifespan=build_lifespan(manage_infrastructure),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router)

    @app.get("/health", response_model=HealthStatus, tags=["Health"])
    async def health_check() -> HealthStatus:
        """Проверка здоровья сервиса и его зависимостей."""
        dependencies = {
            "postgres": "ok" if await get_database().health_check() else "unavailable",
            "redis": "ok" if await get_redis_client().health_check() else "unavailable",
        }
        healthy = all(state == "ok" for state in dependencies.values())
        return HealthStatus(
            service=SERVICE_NAME,
            status="healthy" if healthy else "degraded",
            version=settings.system.VERSION,
            dependencies=dependencies,
        )

    return app
