"""
Hand-off point for finished audits.

Storage and AI summaries live outside this service; whatever implements
ResultSink receives every successful result. The audit response never
depends on the sink succeeding.
"""
from typing import Optional, Protocol

from app.features.audit.schemas.audit import AuditResult
from app.platform.logger import get_logger

logger = get_logger(__name__)


class ResultSink(Protocol):
    async def save(
        self,
        result: AuditResult,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> None:
        ...


class LoggingResultSink:
    """Default sink: records the summary in the application log."""

    async def save(
        self,
        result: AuditResult,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> None:
        summary = result.summary
        logger.info(
            "Audit completed",
            extra={
                "url": summary.url,
                "total_issues": summary.total_issues_count,
                "critical": summary.critical_count,
                "serious": summary.serious_count,
                "moderate": summary.moderate_count,
                "minor": summary.minor_count,
                "evaluation_method": result.evaluation_method.value,
                "contact": email,
            },
        )


async def deliver_result(
    sink: ResultSink,
    result: AuditResult,
    email: Optional[str] = None,
    name: Optional[str] = None,
) -> None:
    """Run as a background task; failures are only logged."""
    try:
        await sink.save(result, email=email, name=name)
    except Exception as e:
        logger.error(f"Result sink failed for {result.summary.url}: {e}")
