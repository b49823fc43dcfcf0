"""Database models and the SQL-backed volume repository"""

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, List, Optional

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, scoped_session, sessionmaker

from volmount.models.schemas import (
    OperationOutcome, VolumeConfig, VolumeRecord, VolumeStatus, parse_volume_config
)
from volmount.utils.exceptions import (
    ConfigurationException, DatabaseException, VolumeNotFoundException
)
from volmount.utils.logger import get_logger
from volmount.utils.sanitize import sanitize_sensitive_data
from volmount.utils.validators import validate_volume_name

LOG = get_logger(__name__)
Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Volume(Base):
    """Volume definition plus last observed health"""
    __tablename__ = 'volumes'

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
    name = Column(String(255), nullable=False, unique=True, index=True)
    backend = Column(String(32), nullable=False)
    config = Column(Text, nullable=False)  # JSON VolumeConfig, secrets as references where possible
    auto_remount = Column(Boolean, nullable=False, default=False)
    status = Column(String(32), nullable=False, default=VolumeStatus.UNKNOWN.value)
    last_error = Column(Text, nullable=True)
    last_health_check = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Volume(name={self.name}, backend={self.backend}, status={self.status})>"

    def to_record(self) -> VolumeRecord:
        return VolumeRecord(
            name=self.name,
            config=parse_volume_config(json.loads(self.config)),
            auto_remount=bool(self.auto_remount),
            status=VolumeStatus(self.status),
            last_error=self.last_error,
            last_health_check=self.last_health_check,
        )


class DatabaseManager:
    """Database connection and session management"""

    def __init__(self, db_url: str):
        self.db_url = db_url
        self.engine = None
        self.session_factory = None
        self.Session = None

    def initialize(self):
        """Initialize database connection"""
        LOG.info(f"Initializing database connection: {sanitize_sensitive_data(self.db_url)}")
        self.engine = create_engine(self.db_url, echo=False)

        # Create tables if they don't exist
        Base.metadata.create_all(self.engine)

        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self.Session = scoped_session(self.session_factory)

        LOG.info("Database initialized successfully")

    def get_session(self) -> Session:
        """Get database session"""
        if not self.Session:
            self.initialize()
        return self.Session()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide transactional scope for database operations"""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise DatabaseException(f"Database operation failed: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self):
        """Close database connections"""
        if self.Session:
            self.Session.remove()
        if self.engine:
            self.engine.dispose()


class SqlVolumeRepository:
    """VolumeRepository backed by the volumes table"""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def list_volumes(self) -> List[VolumeRecord]:
        with self.db.session_scope() as session:
            rows = session.query(Volume).order_by(Volume.name).all()
            return [row.to_record() for row in rows]

    def get_volume(self, name: str) -> VolumeRecord:
        with self.db.session_scope() as session:
            return self._get_row(session, name).to_record()

    def add_volume(self, name: str, config: VolumeConfig,
                   auto_remount: bool = False) -> VolumeRecord:
        if not validate_volume_name(name):
            raise ConfigurationException(f"Invalid volume name: {name}")
        with self.db.session_scope() as session:
            if session.query(Volume).filter_by(name=name).first():
                raise DatabaseException(f"Volume {name} already exists")
            row = Volume(
                name=name,
                backend=config.backend.value,
                config=json.dumps(config.to_dict()),
                auto_remount=auto_remount,
                status=VolumeStatus.UNMOUNTED.value,
            )
            session.add(row)
            session.flush()
            LOG.info(f"Registered volume {name} ({config.backend.value})")
            return row.to_record()

    def set_auto_remount(self, name: str, enabled: bool) -> None:
        with self.db.session_scope() as session:
            self._get_row(session, name).auto_remount = enabled

    def remove_volume(self, name: str) -> None:
        with self.db.session_scope() as session:
            session.delete(self._get_row(session, name))
            LOG.info(f"Removed volume {name}")

    def record_outcome(self, name: str, outcome: OperationOutcome,
                       checked_at: Optional[datetime] = None) -> None:
        with self.db.session_scope() as session:
            row = self._get_row(session, name)
            row.status = outcome.status.value
            row.last_error = sanitize_sensitive_data(outcome.error) or None
            row.last_health_check = checked_at or _utcnow()

    @staticmethod
    def _get_row(session: Session, name: str) -> Volume:
        row = session.query(Volume).filter_by(name=name).first()
        if not row:
            raise VolumeNotFoundException(f"Volume {name} not found")
        return row
