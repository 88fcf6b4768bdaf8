"""Database service layer for projects, bugs and activities."""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from server.database import ActivityDB, BugDB, ProjectDB, UserDB
from server.models import (
  Activity,
  Bug,
  BugPriority,
  BugSeverity,
  BugSource,
  BugStatus,
  Project,
  User,
  UserRole,
)
from server.utils.api_keys import generate_api_key, hash_api_key

logger = logging.getLogger(__name__)


class DatabaseService:
  """Service layer for database operations."""

  def __init__(self, db: Session):
    self.db = db

  # Conversion helpers
  def _user_from_db(self, db_user: UserDB) -> User:
    return User(
      id=db_user.id,
      email=db_user.email,
      name=db_user.name,
      role=db_user.role,
      created_at=db_user.created_at,
    )

  def _project_from_db(self, db_project: ProjectDB) -> Project:
    return Project(
      id=db_project.id,
      name=db_project.name,
      description=db_project.description,
      repository=db_project.repository,
      has_api_key=db_project.api_key_hash is not None,
      created_at=db_project.created_at,
      updated_at=db_project.updated_at,
    )

  def _bug_from_db(self, db_bug: BugDB) -> Bug:
    return Bug(
      id=db_bug.id,
      title=db_bug.title,
      description=db_bug.description,
      status=db_bug.status,
      priority=db_bug.priority,
      severity=db_bug.severity,
      source=db_bug.source,
      project_id=db_bug.project_id,
      project_name=db_bug.project.name if db_bug.project else None,
      reporter_id=db_bug.reporter_id,
      assignee_id=db_bug.assignee_id,
      created_at=db_bug.created_at,
      updated_at=db_bug.updated_at,
    )

  def _activity_from_db(self, db_activity: ActivityDB) -> Activity:
    return Activity(
      id=db_activity.id,
      action=db_activity.action,
      bug_id=db_activity.bug_id,
      project_id=db_activity.project_id,
      user_id=db_activity.user_id,
      created_at=db_activity.created_at,
    )

  # Transaction control
  def commit(self) -> None:
    self.db.commit()

  def rollback(self) -> None:
    self.db.rollback()

  # User operations
  def create_user(self, email: str, name: str, role: UserRole = UserRole.USER) -> User:
    """Create a new user."""
    db_user = UserDB(id=str(uuid.uuid4()), email=email, name=name, role=role)
    self.db.add(db_user)
    self.db.commit()
    self.db.refresh(db_user)
    return self._user_from_db(db_user)

  def get_user(self, user_id: str) -> Optional[User]:
    """Get a user by ID."""
    db_user = self.db.query(UserDB).filter(UserDB.id == user_id).first()
    return self._user_from_db(db_user) if db_user else None

  def get_user_by_email(self, email: str) -> Optional[User]:
    """Get a user by email (case-insensitive)."""
    db_user = self.db.query(UserDB).filter(func.lower(UserDB.email) == email.lower()).first()
    return self._user_from_db(db_user) if db_user else None

  def get_first_admin(self) -> Optional[User]:
    """Get the earliest-created admin account, used to sign automatically filed bugs."""
    db_user = (
      self.db.query(UserDB)
      .filter(UserDB.role == UserRole.ADMIN)
      .order_by(UserDB.created_at.asc(), UserDB.id.asc())
      .first()
    )
    return self._user_from_db(db_user) if db_user else None

  # Project operations
  def create_project(
    self,
    name: str,
    description: Optional[str] = None,
    repository: Optional[str] = None,
    with_api_key: bool = False,
  ) -> tuple[Project, Optional[str]]:
    """Create a project.

    Returns the project and, when `with_api_key` is set, the plaintext API key.
    The key is only available here; the database keeps its hash.
    """
    api_key = generate_api_key() if with_api_key else None
    db_project = ProjectDB(
      id=str(uuid.uuid4()),
      name=name,
      description=description,
      repository=repository,
      api_key_hash=hash_api_key(api_key) if api_key else None,
    )
    self.db.add(db_project)
    self.db.commit()
    self.db.refresh(db_project)
    return self._project_from_db(db_project), api_key

  def get_project(self, project_id: str) -> Optional[Project]:
    """Get a project by ID."""
    db_project = self.db.query(ProjectDB).filter(ProjectDB.id == project_id).first()
    return self._project_from_db(db_project) if db_project else None

  def get_project_api_key_hash(self, project_id: str) -> Optional[str]:
    """Get the stored API key hash of a project."""
    db_project = self.db.query(ProjectDB).filter(ProjectDB.id == project_id).first()
    return db_project.api_key_hash if db_project else None

  def set_project_api_key(self, project_id: str, api_key: str) -> Optional[Project]:
    """Replace the API key of a project. Returns None if the project does not exist."""
    db_project = self.db.query(ProjectDB).filter(ProjectDB.id == project_id).first()
    if not db_project:
      return None

    db_project.api_key_hash = hash_api_key(api_key)
    self.db.commit()
    self.db.refresh(db_project)
    return self._project_from_db(db_project)

  # Bug operations
  def create_bug(
    self,
    title: str,
    description: str,
    project_id: str,
    reporter_id: str,
    status: BugStatus = BugStatus.OPEN,
    priority: BugPriority = BugPriority.MEDIUM,
    severity: BugSeverity = BugSeverity.MINOR,
    source: BugSource = BugSource.MANUAL,
  ) -> Bug:
    """Stage a new bug in the current transaction.

    The row is flushed so it gets its defaults, but not committed; callers
    commit once the bug and its activity are both in place.
    """
    db_bug = BugDB(
      id=str(uuid.uuid4()),
      title=title,
      description=description,
      status=status,
      priority=priority,
      severity=severity,
      source=source,
      project_id=project_id,
      reporter_id=reporter_id,
    )
    self.db.add(db_bug)
    self.db.flush()
    self.db.refresh(db_bug)
    return self._bug_from_db(db_bug)

  def get_bug(self, bug_id: str) -> Optional[Bug]:
    """Get a bug by ID."""
    db_bug = (
      self.db.query(BugDB).options(joinedload(BugDB.project)).filter(BugDB.id == bug_id).first()
    )
    return self._bug_from_db(db_bug) if db_bug else None

  def list_project_bugs(
    self,
    project_id: str,
    status: Optional[str] = None,
    source: Optional[str] = None,
    limit: Optional[int] = None,
  ) -> List[Bug]:
    """List bugs of a project, most recently updated first."""
    query = (
      self.db.query(BugDB).options(joinedload(BugDB.project)).filter(BugDB.project_id == project_id)
    )
    if status and status != 'all':
      query = query.filter(BugDB.status == status)
    if source:
      query = query.filter(BugDB.source == source)

    query = query.order_by(BugDB.updated_at.desc(), BugDB.id.asc())
    if limit:
      query = query.limit(limit)

    return [self._bug_from_db(db_bug) for db_bug in query.all()]

  # Activity operations
  def create_activity(
    self,
    action: str,
    user_id: str,
    bug_id: Optional[str] = None,
    project_id: Optional[str] = None,
  ) -> Activity:
    """Stage an activity record in the current transaction (flushed, not committed)."""
    db_activity = ActivityDB(
      id=str(uuid.uuid4()),
      action=action,
      bug_id=bug_id,
      project_id=project_id,
      user_id=user_id,
    )
    self.db.add(db_activity)
    self.db.flush()
    self.db.refresh(db_activity)
    return self._activity_from_db(db_activity)

  def list_bug_activities(self, bug_id: str) -> List[Activity]:
    """List the activity trail of a bug, oldest first."""
    db_activities = (
      self.db.query(ActivityDB)
      .filter(ActivityDB.bug_id == bug_id)
      .order_by(ActivityDB.created_at.asc(), ActivityDB.id.asc())
      .all()
    )
    return [self._activity_from_db(a) for a in db_activities]
