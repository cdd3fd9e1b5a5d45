"""
Database session management
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from merchops.core.settings import settings
from merchops.logging_config import get_logger

logger = get_logger(__name__)

connection_string = settings.database_url

# Log connection info (without password)
logger.info(f"Database connection: {settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME}")

engine = create_engine(
    connection_string,
    echo=False,  # Set to True for SQL query logging
    pool_pre_ping=True,  # Verify connections before using
    pool_recycle=3600,  # Recycle connections after 1 hour
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Dependency for getting database session

    Usage in FastAPI endpoints:
        @router.get("/projections")
        def list_projections(db: Session = Depends(get_db)):
            return db.query(ActiveProjection).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
