"""
Database models and SQLAlchemy setup for the Boatyard lifecycle engine.

A project is stored as one row: scalar columns for the fields that are
queried, JSON columns for the owned collections. Monetary values inside the
JSON documents are decimal strings so no float drift occurs.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    create_engine, Column, Integer, String, Float, DateTime, Text, JSON
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from boatyard.config import get_config

_config = get_config()

DATABASE_URL = _config.database_url
engine = create_engine(
    DATABASE_URL,
    echo=_config.database_echo,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class ProjectRecord(Base):
    """
    Project aggregate row.

    `version` is the optimistic-concurrency token; every successful update
    increments it, and updates carrying a stale version are rejected.
    """
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True)
    project_number = Column(String(32), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, default="NEW_BUILD")
    status = Column(String(30), nullable=False, default="DRAFT", index=True)
    client_id = Column(String(64), nullable=False, index=True)

    # Owned collections, serialized via the entities' to_dict()
    configuration = Column(JSON, nullable=False)
    configuration_snapshots = Column(JSON, nullable=False, default=list)
    quotes = Column(JSON, nullable=False, default=list)
    current_quote_id = Column(String(36), nullable=True)
    amendments = Column(JSON, nullable=False, default=list)
    bom_snapshots = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)
    created_by = Column(String(100), default="system")
    updated_at = Column(DateTime, default=datetime.utcnow)
    archived_at = Column(DateTime, nullable=True)
    archived_by = Column(String(100), nullable=True)
    archive_reason = Column(Text, nullable=True)

    version = Column(Integer, nullable=False, default=1)


class Settings(Base):
    """Global application settings (single row)."""
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    cost_estimation_ratio = Column(Float, default=0.6)  # 0.0 to 1.0
    cost_warn_threshold = Column(Float, default=0.3)  # 0.0 to 1.0
    quote_validity_days = Column(Integer, default=30)
    default_payment_terms = Column(Text, nullable=True)
    default_delivery_terms = Column(Text, nullable=True)
    vat_rate = Column(Float, default=21.0)  # percent
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


def init_db():
    """Initialize the database and create all tables."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Database session dependency for FastAPI."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def default_settings() -> Settings:
    """Settings row populated from the YAML defaults."""
    config = get_config()
    return Settings(
        cost_estimation_ratio=float(config.default_estimation_ratio),
        cost_warn_threshold=float(config.estimation_warn_threshold),
        quote_validity_days=config.quote_validity_days,
        default_payment_terms=config.default_payment_terms,
        default_delivery_terms=config.default_delivery_terms,
        vat_rate=float(config.vat_rate),
    )


# Initialize default settings if not exists
def ensure_default_settings(db: Optional[Session] = None) -> Settings:
    owns_session = db is None
    db = db or SessionLocal()
    try:
        settings = db.query(Settings).first()
        if not settings:
            settings = default_settings()
            db.add(settings)
            db.commit()
            db.refresh(settings)
        return settings
    finally:
        if owns_session:
            db.close()
