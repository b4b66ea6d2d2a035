from agenda.db.base import Base
from agenda.db.session import init_db, is_memory_url, make_engine, make_session_factory

__all__ = ["Base", "init_db", "is_memory_url", "make_engine", "make_session_factory"]
