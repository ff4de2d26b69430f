"""Health check endpoint with optional database connectivity check."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from partsauth.core.config import settings
from partsauth.core.database import check_db_connected, get_db
from partsauth.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(request: Request, db: Session = Depends(get_db)) -> HealthResponse:
    """
    Return service health, database connectivity and module registry state.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"
    registry = getattr(request.app.state, "module_registry", None)

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=db_status,
        modules="validated" if registry is not None else "unchecked",
    )
