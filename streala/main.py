import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from mangum import Mangum
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

load_dotenv("streala/.env")

from streala import containers  # noqa: E402
from streala.config import settings  # noqa: E402
from streala.core.exception_handlers import (  # noqa: E402
    handle_base_api_exception,
    handle_http_exception,
    handle_unexpected_error,
    handle_validation_error,
)
from streala.core.exceptions import BaseAPIException  # noqa: E402
from streala.core.logging_middleware import LoggingMiddleware  # noqa: E402
from streala.logging_config import setup_logging  # noqa: E402
from streala.routers import (  # noqa: E402
    alert_queue_router,
    health_router,
    notification_router,
    payment_router,
    webhook_router,
    widget_router,
)

setup_logging(settings.LOG_LEVEL, json_logs=settings.ENVIRONMENT != "development")
logger = logging.getLogger("streala")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"[startup] {settings.APP_NAME} ({settings.ENVIRONMENT})")
    yield
    await app.container.gateways.realtime_service().close()  # type: ignore[attr-defined]


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
app.container = containers.Container()  # type: ignore

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

app.add_exception_handler(BaseAPIException, handle_base_api_exception)
app.add_exception_handler(StarletteHTTPException, handle_http_exception)
app.add_exception_handler(RequestValidationError, handle_validation_error)
app.add_exception_handler(Exception, handle_unexpected_error)


@app.get("/")
def hello() -> dict:
    return {"message": settings.APP_NAME}


app.include_router(health_router.router)
app.include_router(webhook_router.router, prefix=settings.API_V1_STR)
app.include_router(payment_router.router, prefix=settings.API_V1_STR)
app.include_router(alert_queue_router.router, prefix=settings.API_V1_STR)
app.include_router(widget_router.router, prefix=settings.API_V1_STR)
app.include_router(widget_router.overlay_router, prefix=settings.API_V1_STR)
app.include_router(notification_router.router, prefix=settings.API_V1_STR)

handler = Mangum(app, lifespan="off")
