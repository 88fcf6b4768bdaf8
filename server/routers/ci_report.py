"""CI report ingestion endpoint.

CI pipelines POST their base64-encoded test output here; every failing test
found in it is filed as a bug on the target project.
"""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from server.database import get_db
from server.models import CIReportRequest
from server.services.ci_report_service import CIReportError, CIReportService, ReporterPolicy
from server.services.database_service import DatabaseService
from server.utils.api_keys import parse_bearer_token
from server.utils.config import load_ci_config

logger = logging.getLogger(__name__)


def get_database_service(db: Session = Depends(get_db)) -> DatabaseService:
  """Get database service instance."""
  return DatabaseService(db)


def get_ci_config() -> dict[str, Any]:
  """Get CI ingestion settings."""
  return load_ci_config()


def get_ci_report_service(
  db_service=Depends(get_database_service),
  ci_config: dict[str, Any] = Depends(get_ci_config),
) -> CIReportService:
  """Build the ingestion service from the current settings."""
  return CIReportService(
    db_service,
    reporter_policy=ReporterPolicy.from_config(ci_config),
    verify_keys=ci_config.get('verify_api_key', True),
    link_base_url=ci_config.get('link_base_url', 'https://github.com'),
  )


def _error(status_code: int, message: str, **extra) -> JSONResponse:
  return JSONResponse(status_code=status_code, content={'error': message, **extra})


router = APIRouter()


@router.post('/ci-report')
async def submit_ci_report(
  request: Request,
  authorization: Optional[str] = Header(None),
  service: CIReportService = Depends(get_ci_report_service),
):
  """File one bug per failing test found in a CI run's output."""
  api_key = parse_bearer_token(authorization)
  if api_key is None:
    return _error(401, 'Unauthorized')

  try:
    body = await request.json()
  except (json.JSONDecodeError, UnicodeDecodeError):
    body = None
  if not isinstance(body, dict):
    return _error(400, 'Invalid request body')

  try:
    report = CIReportRequest.model_validate(body)
  except ValidationError:
    return _error(400, 'Invalid request body')

  try:
    result = service.process(report, api_key)
  except CIReportError as e:
    return _error(e.status_code, e.message)
  except Exception as e:
    logger.exception('Error processing CI report')
    return _error(500, 'Failed to process CI report', details=str(e))

  if result is None:
    return {'message': 'No failures detected'}
  return result.to_response()
