"""Bug API endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from server.database import get_db
from server.services.database_service import DatabaseService


def get_database_service(db: Session = Depends(get_db)) -> DatabaseService:
  """Get database service instance."""
  return DatabaseService(db)


router = APIRouter()


@router.get('/{bug_id}')
async def get_bug(bug_id: str, db_service=Depends(get_database_service)):
  """Get a bug by ID."""
  bug = db_service.get_bug(bug_id)
  if not bug:
    raise HTTPException(status_code=404, detail='Bug not found')
  return bug


@router.get('/{bug_id}/activities')
async def list_bug_activities(bug_id: str, db_service=Depends(get_database_service)):
  """Get the activity trail of a bug."""
  bug = db_service.get_bug(bug_id)
  if not bug:
    raise HTTPException(status_code=404, detail='Bug not found')
  return {'activities': db_service.list_bug_activities(bug_id)}
