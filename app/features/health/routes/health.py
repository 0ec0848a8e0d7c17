from fastapi import APIRouter, Request, status

from app.platform.response import api_response

router = APIRouter()


@router.get("/health", tags=["health"])
async def health_check(request: Request):
    queue = getattr(request.app.state, "audit_queue", None)
    return api_response(
        data={
            "status": "ok",
            "service": "Accessibility Audit",
            "queue": queue.stats() if queue is not None else None,
        },
        message="Service is healthy",
        status_code=status.HTTP_200_OK,
    )
