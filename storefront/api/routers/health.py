from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request):
    now = datetime.now(timezone.utc).isoformat()
    try:
        request.app.state.database.ping()
    except SQLAlchemyError as e:
        return JSONResponse(
            status_code=500,
            content={"status": "unhealthy", "database": "disconnected", "error": str(e), "timestamp": now},
        )
    return {"status": "healthy", "database": "connected", "timestamp": now}
