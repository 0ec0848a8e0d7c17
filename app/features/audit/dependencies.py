from fastapi import Depends, HTTPException, Request, status

from app.features.audit.services.audit import AuditService
from app.features.audit.services.job_queue import AuditQueue
from app.features.audit.services.result_sink import ResultSink
from app.features.audit.services.url_check import UrlCheckService


def get_audit_queue(request: Request) -> AuditQueue:
    queue = getattr(request.app.state, "audit_queue", None)
    if queue is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Audit queue is not running",
        )
    return queue


def get_url_check_service() -> UrlCheckService:
    return UrlCheckService()


def get_audit_service(
    queue: AuditQueue = Depends(get_audit_queue),
    url_checker: UrlCheckService = Depends(get_url_check_service),
) -> AuditService:
    return AuditService(queue=queue, url_checker=url_checker)


def get_result_sink(request: Request) -> ResultSink:
    return request.app.state.result_sink
