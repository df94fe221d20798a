"""Ordering bounded context: shopping carts, orders and payment capture.

Carts and orders are standard CQRS aggregates persisted through Protean's
SQLAlchemy provider. Every write is a command, so each runs in its own unit
of work, and the events it raises reach the order timeline projector when
that unit of work commits.
"""

import structlog
from protean.domain import Domain

from config import get_settings

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)


def _database(database_url: str) -> dict:
    provider = "postgresql" if database_url.startswith("postgresql") else "sqlite"
    return {"provider": provider, "database_uri": database_url}


ordering.config["databases"] = {"default": _database(get_settings().database_url)}

# No engine runs beside the web process; handlers and projectors fire in-line
ordering.config["command_processing"] = "sync"
ordering.config["event_processing"] = "sync"
