from fastapi import APIRouter, BackgroundTasks, Depends, status

from app.features.audit.dependencies import (
    get_audit_service,
    get_result_sink,
    get_url_check_service,
)
from app.features.audit.schemas.audit import AuditRequest, AuditResponse, CheckUrlRequest
from app.features.audit.services.audit import AuditService
from app.features.audit.services.result_sink import ResultSink, deliver_result
from app.features.audit.services.url_check import UrlCheckService
from app.platform.logger import get_logger
from app.platform.response import api_response

logger = get_logger("audit_routes")
router = APIRouter(prefix="/audit", tags=["Audit"])


@router.post("", status_code=status.HTTP_200_OK)
async def audit_page(
    audit_in: AuditRequest,
    background_tasks: BackgroundTasks,
    service: AuditService = Depends(get_audit_service),
    sink: ResultSink = Depends(get_result_sink),
):
    url = audit_in.url
    logger.info(f"Starting audit for URL: {url}")

    result = await service.audit(url)

    background_tasks.add_task(deliver_result, sink, result, audit_in.email, audit_in.name)

    response = AuditResponse(
        url=url,
        email=audit_in.email,
        name=audit_in.name,
        results=result,
    )
    return api_response(
        data=response.model_dump(mode="json"),
        message="Accessibility audit completed",
        status_code=status.HTTP_200_OK,
    )


@router.post("/check-url", status_code=status.HTTP_200_OK)
async def check_url(
    payload: CheckUrlRequest,
    checker: UrlCheckService = Depends(get_url_check_service),
):
    result = await checker.check_exists(payload.url)
    if result.exists:
        return api_response(data=result, message="URL is reachable")

    return api_response(
        data=result,
        message=result.error or "URL is not reachable",
        status_code=result.status_code if result.status_code and result.status_code >= 400 else 400,
    )
