from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from portal.config import settings
import logging

# Set up logging
logger = logging.getLogger(__name__)

IS_SQLITE = settings.DATABASE_URL.startswith("sqlite")

# For Neon.tech, ensure SSL is configured
if "neon.tech" in settings.DATABASE_URL and "sslmode" not in settings.DATABASE_URL:
    separator = "&" if "?" in settings.DATABASE_URL else "?"
    settings.DATABASE_URL += f"{separator}sslmode=require"
    logger.info("Added sslmode=require to Neon database URL")

if IS_SQLITE:
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False},
    )
else:
    try:
        engine = create_engine(
            settings.DATABASE_URL,
            pool_pre_ping=True,  # Auto-reconnect on broken connections
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800,   # Recycle connections after 30 minutes
        )

        # Test the connection immediately
        with engine.connect():
            logger.info("Database connection successful")

    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """
    Unit of work over a session.

    The outermost block commits on success and rolls back on any exception.
    Nested blocks join the enclosing unit, so service functions can open
    their own block whether they are called standalone or from a larger
    operation.
    """
    depth = db.info.get("atomic_depth", 0)
    db.info["atomic_depth"] = depth + 1
    try:
        yield db
        if depth == 0:
            db.commit()
    except Exception:
        if depth == 0:
            db.rollback()
        raise
    finally:
        db.info["atomic_depth"] = depth

# This line ensures models are registered before Alembic autogenerate
from portal import models  # noqa: E402,F401
