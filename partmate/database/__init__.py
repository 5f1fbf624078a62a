from partmate.database.base import Base
from partmate.database.engine import create_app_engine, engine
from partmate.database.session import SessionLocal

__all__ = ["Base", "create_app_engine", "engine", "SessionLocal"]
