# collision_os/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy with SQLite for local runs and PostgreSQL in the shop.
All models are auto-imported here so create_tables() creates every table in one call.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from collision_os.config import settings

if settings.IS_SQLITE:
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False},   # FastAPI serves sync routes from a threadpool
        echo=False,
    )
else:
    engine = create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,          # Auto-reconnect if DB connection drops
        pool_size=10,
        max_overflow=20,
        echo=False,                  # Set True to log all SQL queries (debug only)
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from collision_os.models.fleet_vehicle import FleetVehicle            # noqa
    from collision_os.models.loaner_reservation import LoanerReservation  # noqa
    from collision_os.models.vendor import Vendor                         # noqa
    from collision_os.models.part import Part                             # noqa
    from collision_os.models.status_event import StatusEvent              # noqa

    Base.metadata.create_all(bind=bind or engine)
