import datetime
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Callable

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pyinstrument import Profiler
from pyinstrument.renderers.html import HTMLRenderer
from pyinstrument.renderers.speedscope import SpeedscopeRenderer
from starlette.exceptions import HTTPException

from .core.database.events import LedgerEventRead
from .core.error_handling import (
    general_exception_handler,
    http_exception_handler,
    registry_exception_handler,
    validation_exception_handler,
)
from .core.errors import RegistryError
from .core.models.base import LoggingLevelRequest
from .core.models.registry import PlatformStatistics
from .credit.routes import router as credit_router
from .ledger import RegistryLedger, get_ledger
from .logging_config import logger, set_logger_and_children_level
from .participant.routes import router as participant_router
from .project.routes import router as project_router
from .settings import settings

tags_metadata = [
    {
        "name": "Participants",
        "description": "Registered identities that hold credits and create or fund projects.",
    },
    {
        "name": "Credits",
        "description": """Carbon credits are issued by authorised issuers, sold directly at their
                        issuance price and retired permanently once their offset is claimed.""",
    },
    {
        "name": "Projects",
        "description": "Climate projects funded by participants towards a CO2 reduction target.",
    },
]


origins = [
    "http://localhost:8080",
    "http://127.0.0.1:8080",
    "http://localhost:3000",
]
origins.extend(settings.cors_origins)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application.
    Handles startup and shutdown events.
    """
    logger.info("Starting up application...")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    openapi_tags=tags_metadata,
    title="Carbon Credit Registry API",
    description="A single-ledger registry of participants, carbon credits and climate projects.",
    version="1.0.0",
    docs_url="/docs",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin"],
)

app.add_exception_handler(RegistryError, registry_exception_handler)  # type: ignore
app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore
app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(participant_router, prefix="/participant")
app.include_router(credit_router, prefix="/credit")
app.include_router(project_router, prefix="/project")


@app.get("/", tags=["Core"])
async def read_root():
    return {
        "message": "Carbon Credit Registry API",
        "version": app.version,
        "docs": app.docs_url,
    }


@app.get("/statistics", response_model=PlatformStatistics, tags=["Core"])
def read_statistics(ledger: RegistryLedger = Depends(get_ledger)):
    """Platform totals and the value currently held by the ledger."""
    return ledger.get_statistics()


@app.get("/events", response_model=list[LedgerEventRead], tags=["Core"])
def read_events(
    after_id: int = 0,
    limit: int | None = None,
    ledger: RegistryLedger = Depends(get_ledger),
):
    """Notifications of accepted operations, oldest first."""
    return ledger.list_events(after_id, limit)


@app.post("/change_log_level", tags=["Core"])
async def change_log_level_endpoint(request: LoggingLevelRequest):
    """Change the logging level at runtime for all relevant loggers."""
    numeric_level = getattr(logging, request.level.value)

    loggers_to_update = [
        logger,
        logging.getLogger("uvicorn"),
        logging.getLogger("uvicorn.access"),
        logging.getLogger("fastapi"),
    ]

    for logger_instance in loggers_to_update:
        set_logger_and_children_level(logger_instance, numeric_level)

    return {
        "message": f"Log level changed to {request.level.value}",
        "logger_status": {
            logger_instance.name: logging.getLevelName(logger_instance.getEffectiveLevel())
            for logger_instance in loggers_to_update
        },
    }


if settings.PROFILING_ENABLED:
    profile_type: str = "html"

    @app.middleware("http")
    async def profile_request(request: Request, call_next: Callable):
        """Profile the current request

        Taken from https://pyinstrument.readthedocs.io/en/latest/guide.html#profile-a-web-request-in-fastapi
        with small improvements.

        """
        profile_type_to_ext = {"html": "html", "speedscope": "speedscope.json"}
        profile_type_to_renderer = {
            "html": HTMLRenderer,
            "speedscope": SpeedscopeRenderer,
        }

        with Profiler(interval=0.001, async_mode="enabled") as profiler:
            response = await call_next(request)

        extension = profile_type_to_ext[profile_type]
        renderer = profile_type_to_renderer[profile_type]()

        todays_date = datetime.datetime.now().strftime("%Y-%m-%d")
        profiling_dir = Path(__file__).parent / "core" / "profiling" / todays_date
        profiling_dir.mkdir(parents=True, exist_ok=True)

        with open(Path(profiling_dir, f"profile.{extension}"), "w") as out:
            out.write(profiler.output(renderer=renderer))
        return response


def main():
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
