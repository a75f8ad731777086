"""
Database engine and session management.
"""
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from challenge_engine.constants import DEFAULT_DATABASE_URL

DATABASE_URL = os.getenv("CHALLENGE_ENGINE_DATABASE_URL", DEFAULT_DATABASE_URL)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for FastAPI to get a DB session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
