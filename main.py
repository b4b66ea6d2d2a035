"""
Agenda booking engine entry point.

Serves the public booking API and the owner panel over HTTP, or prepares the
database schema.

Usage:
    API server:      python main.py serve
    In-memory demo:  python main.py serve --memory
    Create tables:   python main.py init-db
"""

import logging
import sys

from agenda.config import settings

logger = logging.getLogger(__name__)


def _run_server(in_memory: bool) -> None:
    """Start uvicorn with the SQL store, or the in-memory store for demos."""
    import uvicorn

    from agenda.api import create_app
    from agenda.engine import BookingEngine

    engine = BookingEngine() if in_memory else BookingEngine.from_database()
    app = create_app(engine)
    logger.info("Starting %s on %s:%d", settings.service_name, settings.api.host, settings.api.port)
    uvicorn.run(app, host=settings.api.host, port=settings.api.port, log_level=settings.log_level.lower())


def _init_db() -> None:
    from agenda.db import init_db, make_engine

    engine = make_engine()
    init_db(engine)
    logger.info("Database schema ready at %s", engine.url.render_as_string(hide_password=True))


if __name__ == "__main__":
    command = sys.argv[1] if len(sys.argv) > 1 else "serve"
    if command == "init-db":
        _init_db()
    elif command == "serve":
        _run_server(in_memory="--memory" in sys.argv[2:])
    else:
        print(__doc__)
        sys.exit(2)
