"""Project API endpoints used by the CI integration."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from server.database import get_db
from server.models import ApiKeyResponse
from server.services.database_service import DatabaseService
from server.utils.api_keys import generate_api_key

logger = logging.getLogger(__name__)


def get_database_service(db: Session = Depends(get_db)) -> DatabaseService:
  """Get database service instance."""
  return DatabaseService(db)


router = APIRouter()


@router.post('/{project_id}/regenerate-key')
async def regenerate_api_key(project_id: str, db_service=Depends(get_database_service)):
  """Issue a new CI API key for a project. The plaintext key is only returned here."""
  api_key = generate_api_key()
  project = db_service.set_project_api_key(project_id, api_key)
  if not project:
    raise HTTPException(status_code=404, detail='Project not found')

  logger.info('Regenerated API key for project %s', project_id)
  return ApiKeyResponse(api_key=api_key).model_dump(by_alias=True)


@router.get('/{project_id}/bugs')
async def list_project_bugs(
  project_id: str,
  status: Optional[str] = None,
  source: Optional[str] = None,
  limit: Optional[int] = Query(default=None, ge=1),
  db_service=Depends(get_database_service),
):
  """List bugs of a project; `status=all` disables the status filter."""
  project = db_service.get_project(project_id)
  if not project:
    raise HTTPException(status_code=404, detail='Project not found')

  bugs = db_service.list_project_bugs(project_id, status=status, source=source, limit=limit)
  return {'bugs': bugs}
