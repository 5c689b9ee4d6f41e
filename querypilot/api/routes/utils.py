from fastapi import APIRouter
from fastapi.responses import JSONResponse

from querypilot.core.health import liveness_check, readiness_check

router = APIRouter(prefix="/utils", tags=["utils"])


def _health_response(ok: bool, failures: list[str], message: str) -> bool | JSONResponse:
    if ok:
        return True
    return JSONResponse(
        status_code=503,
        content={"success": False, "message": message, "data": failures},
    )


@router.get("/liveness/", response_model=None)
async def liveness() -> bool | JSONResponse:
    """Process is up and serving requests. Never touches a database."""
    return _health_response(*liveness_check(), "Process unhealthy")


@router.get("/health-check/", response_model=None)
def health_check() -> bool | JSONResponse:
    """
    Readiness: every default database configured through MYSQL_HOST / PG_HOST
    answers SELECT 1. 503 lists the dialects that did not.
    """
    return _health_response(*readiness_check(), "Service Unavailable")
