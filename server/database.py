"""Database setup and configuration for the bug tracker."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
  Column,
  DateTime,
  ForeignKey,
  Index,
  String,
  Text,
  create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from server.config import ServerConfig

# Database configuration
DATABASE_URL = ServerConfig.DATABASE_URL

sqlite_connect_args = (
  {
    'check_same_thread': False,
    'timeout': 30,  # seconds to wait on a locked database
  }
  if 'sqlite' in DATABASE_URL
  else {}
)

engine = create_engine(
  DATABASE_URL,
  connect_args=sqlite_connect_args,
  pool_size=ServerConfig.DB_POOL_SIZE,
  max_overflow=ServerConfig.DB_MAX_OVERFLOW,
  pool_timeout=ServerConfig.DB_POOL_TIMEOUT,
  pool_recycle=ServerConfig.DB_POOL_RECYCLE,
  pool_pre_ping=True,
  echo=False,
)

SessionLocal = sessionmaker(
  autocommit=False,
  autoflush=False,
  bind=engine,
  expire_on_commit=False,
)

# Flag to prevent repeated table creation
_tables_created = False

Base = declarative_base()


def _utcnow() -> datetime:
  # naive UTC with microseconds; SQLite CURRENT_TIMESTAMP only has whole seconds
  return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
  return str(uuid.uuid4())


class UserDB(Base):
  """Database model for users."""

  __tablename__ = 'users'

  id = Column(String, primary_key=True, default=_new_id)
  email = Column(String, unique=True, nullable=False)
  name = Column(String, nullable=False)
  role = Column(String, nullable=False, default='user')
  created_at = Column(DateTime, default=_utcnow)

  reported_bugs = relationship('BugDB', back_populates='reporter', foreign_keys='BugDB.reporter_id')
  activities = relationship('ActivityDB', back_populates='user')


class ProjectDB(Base):
  """Database model for projects."""

  __tablename__ = 'projects'

  id = Column(String, primary_key=True, default=_new_id)
  name = Column(String, nullable=False)
  description = Column(Text, nullable=True)
  repository = Column(String, nullable=True)  # owner/name on the code host
  api_key_hash = Column(String, nullable=True)  # bcrypt hash, plaintext is never stored
  created_at = Column(DateTime, default=_utcnow)
  updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

  bugs = relationship('BugDB', back_populates='project', cascade='all, delete-orphan')


class BugDB(Base):
  """Database model for bugs."""

  __tablename__ = 'bugs'
  __table_args__ = (Index('ix_bugs_project_status', 'project_id', 'status'),)

  id = Column(String, primary_key=True, default=_new_id)
  title = Column(String, nullable=False)
  description = Column(Text, nullable=False)
  status = Column(String, nullable=False, default='OPEN')
  priority = Column(String, nullable=False, default='MEDIUM')
  severity = Column(String, nullable=False, default='MINOR')
  source = Column(String, nullable=False, default='manual')
  project_id = Column(String, ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)
  reporter_id = Column(String, ForeignKey('users.id'), nullable=False)
  assignee_id = Column(String, ForeignKey('users.id'), nullable=True)
  created_at = Column(DateTime, default=_utcnow)
  updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

  project = relationship('ProjectDB', back_populates='bugs')
  reporter = relationship('UserDB', back_populates='reported_bugs', foreign_keys=[reporter_id])
  assignee = relationship('UserDB', foreign_keys=[assignee_id])
  activities = relationship('ActivityDB', back_populates='bug', cascade='all, delete-orphan')


class ActivityDB(Base):
  """Database model for the audit trail of a bug."""

  __tablename__ = 'activities'

  id = Column(String, primary_key=True, default=_new_id)
  action = Column(String, nullable=False)
  bug_id = Column(String, ForeignKey('bugs.id', ondelete='CASCADE'), nullable=True)
  project_id = Column(String, ForeignKey('projects.id', ondelete='CASCADE'), nullable=True)
  user_id = Column(String, ForeignKey('users.id'), nullable=False)
  created_at = Column(DateTime, default=_utcnow)

  bug = relationship('BugDB', back_populates='activities')
  user = relationship('UserDB', back_populates='activities')


def get_db():
  """Get database session with proper error handling and connection management."""
  global _tables_created

  if not _tables_created:
    try:
      create_tables()
      _tables_created = True
    except Exception as e:
      print(f'Warning: Could not create tables: {e}')

  db = None
  try:
    db = SessionLocal()
    yield db
  except Exception as e:
    if db:
      db.rollback()
    raise e
  finally:
    if db:
      try:
        db.close()
      except Exception as e:
        print(f'Warning: Error closing database session: {e}')


def create_tables():
  """Create all database tables."""
  try:
    print('🔧 Creating database tables...')
    Base.metadata.create_all(bind=engine)
    print('✅ Database tables created successfully')
  except Exception as e:
    print(f'❌ Error creating database tables: {e}')
    raise e


def drop_tables():
  """Drop all database tables."""
  Base.metadata.drop_all(bind=engine)


if __name__ == '__main__':
  create_tables()
  print('Database tables created successfully!')
