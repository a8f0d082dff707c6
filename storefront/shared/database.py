import logging
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()

engine: Optional[Engine] = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def init_engine(database_url: str, **kwargs) -> Engine:
    """Create the engine and bind the session factory to it."""
    global engine

    engine = create_engine(database_url, echo=False, pool_pre_ping=True, **kwargs)
    SessionLocal.configure(bind=engine)
    return engine


def init_db(bind: Optional[Engine] = None) -> None:
    """Initialize database tables."""
    # Model modules register their tables on Base.metadata when imported
    from storefront.catalog import models as catalog_models  # noqa: F401
    from storefront.identity import models as identity_models  # noqa: F401
    from storefront.orders import models as order_models  # noqa: F401
    from storefront.promotions import models as promotion_models  # noqa: F401

    logger.info("Initializing database...")
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database initialized")


def get_db() -> Iterator[Session]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
