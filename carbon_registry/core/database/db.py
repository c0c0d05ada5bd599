from urllib.parse import urlparse

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from carbon_registry.core.models import registry as registry_models
from carbon_registry.credit import models as credit_models
from carbon_registry.logging_config import logger
from carbon_registry.participant import models as participant_models
from carbon_registry.project import models as project_models
from carbon_registry.settings import settings

"""
Importing the model modules registers every ledger table on SQLModel.metadata
"""

__all__ = [
    "SQLModel",
    "registry_models",
    "participant_models",
    "credit_models",
    "project_models",
    "create_ledger_engine",
]


def _redact(connection_str: str) -> str:
    parsed = urlparse(connection_str)
    if parsed.password:
        return connection_str.replace(parsed.password, "********")
    return connection_str


def create_ledger_engine(connection_str: str | None = None) -> Engine:
    """Create the engine backing one ledger instance and make sure its tables exist.

    SQLite URLs share a single connection between threads so that an in-memory
    ledger is one store no matter which thread serves the call; the ledger lock
    serialises access to it.
    """
    connection_str = connection_str or settings.DATABASE_URL

    if connection_str.startswith("sqlite"):
        engine = create_engine(
            connection_str,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    else:
        engine = create_engine(
            connection_str,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
            pool_timeout=30,
            pool_recycle=1800,
            echo=False,
        )

    logger.info(f"Ledger database initialised: {_redact(connection_str)}")
    SQLModel.metadata.create_all(engine)
    return engine
