# ats_intake/db/database.py

import logging
from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator # Import Generator for the dependency return type hint

from ats_intake.core.config import settings
from ats_intake.db.models import Base # Import Base from models

logger = logging.getLogger(__name__)

# Database URL is loaded from settings
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# check_same_thread is needed only for SQLite
connect_args = {}
if "sqlite" in SQLALCHEMY_DATABASE_URL:
     connect_args["check_same_thread"] = False

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args=connect_args,
    pool_pre_ping=True,
)

# Create a configured "Session" class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def init_db() -> None:
    """Creates any missing tables. Schema migrations are managed outside the app."""
    Base.metadata.create_all(bind=engine)

# Dependency to get a database session
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db # Provide the session to the endpoint
    finally:
        db.close() # Ensure the session is closed afterwards

def check_database_connection(session: Session) -> bool:
    """Runs SELECT 1 against the session's database. Returns False on any DB error."""
    try:
        return session.execute(text("SELECT 1")).scalar() == 1
    except SQLAlchemyError as e:
        logger.error(f"Database connection check failed: {e}")
        return False
