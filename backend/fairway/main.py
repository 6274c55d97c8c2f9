import logging.config

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fairway.api.errors import install_error_handlers
from fairway.api.metrics import router as metrics_router
from fairway.api.routes import router as api_router
from fairway.api.ws import router as ws_router
from fairway.config import get_settings

settings = get_settings()

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
        "push": {
            "format": "%(asctime)s %(levelname)s [push] %(message)s",
        },
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
        "push": {
            "class": "logging.StreamHandler",
            "formatter": "push",
        },
    },
    "root": {
        "handlers": ["default"],
        "level": "INFO",
    },
    "loggers": {
        "fairway": {
            "level": "DEBUG" if settings.debug else "INFO",
        },
        # Delivery failures are expected noise from stale browser endpoints.
        "fairway.services.notifications": {
            "handlers": ["push"],
            "level": "INFO",
            "propagate": False,
        },
        "sqlalchemy.engine": {
            "level": "WARNING",
        },
    },
}


logging.config.dictConfig(LOGGING_CONFIG)

app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin).rstrip("/") for origin in settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)


@app.get("/health", tags=["system"])
def health_check() -> dict[str, str]:
    """Liveness probe; does not touch the database."""
    return {"status": "ok", "environment": settings.environment, "realtime": settings.realtime_strategy}


app.include_router(api_router, prefix="/api")
app.include_router(ws_router)
app.include_router(metrics_router)
