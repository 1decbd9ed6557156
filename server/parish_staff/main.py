import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import parish_staff.models  # noqa: F401
from parish_staff.core.config import settings
from parish_staff.routers import auth as auth_router
from parish_staff.routers import parish_staff as parish_staff_router
from parish_staff.routers import whoami as whoami_router
from parish_staff.services.collaborators import get_collaborators
from parish_staff.services.errors import StaffErrorCode, StaffLifecycleError

app = FastAPI(title="Parish Staff Portal API", version="0.1.0")

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    StaffErrorCode.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    StaffErrorCode.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    StaffErrorCode.WEAK_CREDENTIAL: status.HTTP_400_BAD_REQUEST,
    StaffErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    StaffErrorCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    StaffErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    StaffErrorCode.ALREADY_PROCESSED: status.HTTP_409_CONFLICT,
    StaffErrorCode.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router.router)
app.include_router(whoami_router.router)
app.include_router(parish_staff_router.router)
app.include_router(parish_staff_router.parishes_router)


@app.exception_handler(StaffLifecycleError)
async def handle_staff_lifecycle_error(request: Request, exc: StaffLifecycleError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST)
    # Failed logins are reported as 401 with the generic message.
    if request.url.path == "/auth/login" and exc.code == StaffErrorCode.UNAUTHORIZED:
        status_code = status.HTTP_401_UNAUTHORIZED
    if status_code >= 500:
        logger.error("staff_request_failed", extra={"path": request.url.path, "code": exc.code.value})
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "code": exc.code.value, "message": exc.message, "detail": exc.message},
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.on_event("shutdown")
def drain_side_effects() -> None:
    get_collaborators().dispatcher.shutdown(timeout=settings.SIDE_EFFECT_DRAIN_TIMEOUT_SECONDS)
