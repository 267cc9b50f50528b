# mummy_meals/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mummy_meals.api.routers import (
    carts,
    chat,
    checkout,
    deliveries,
    feedback,
    health,
    locations,
    menu,
    orders,
    realtime,
    subscriptions,
    users,
)
from mummy_meals.data import models  # noqa: F401  rejestracja tabel w Base.metadata
from mummy_meals.data.database import Base, engine
from mummy_meals.utils.logging import get_logger
from mummy_meals.utils.settings import AUTO_CREATE_TABLES

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if AUTO_CREATE_TABLES:
        logger.info(f"Creating tables: {list(Base.metadata.tables.keys())}")
        try:
            Base.metadata.create_all(bind=engine)
        except Exception as e:
            logger.error(f"Failed to create tables: {e}")
            raise
    yield


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    #bledne dane wejscia -> 400 z lista pol
    errors = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "detail": errors})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Mummy Meals",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(menu.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(chat.router)
    app.include_router(deliveries.router)
    app.include_router(checkout.router)
    app.include_router(locations.router)
    app.include_router(feedback.router)
    app.include_router(subscriptions.router)
    app.include_router(realtime.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
