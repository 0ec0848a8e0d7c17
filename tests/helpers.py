import asyncio
from typing import List, Optional
from unittest.mock import MagicMock

from app.features.audit.schemas.audit import (
    AuditResult,
    EvaluationMethod,
    RuleViolation,
    Severity,
    ViolationNode,
)
from app.features.audit.utils.aggregator import build_summary


def make_result(url: str = "https://example.com", violations: Optional[List[RuleViolation]] = None) -> AuditResult:
    violations = violations or []
    return AuditResult(
        summary=build_summary(url, violations, passed_rules=10, incomplete_rules=0),
        violations=violations,
        evaluation_method=EvaluationMethod.rule_engine,
    )


def make_violation(rule_id: str, severity: Severity, node_count: int = 1) -> RuleViolation:
    return RuleViolation(
        id=rule_id,
        severity=severity,
        description=f"{rule_id} description",
        help=f"{rule_id} help",
        help_url=f"https://dequeuniversity.com/rules/axe/4.10/{rule_id}",
        nodes=[ViolationNode(html=f"<div id='n{i}'></div>", target=[f"#n{i}"]) for i in range(node_count)],
    )


async def let_loop_run(iterations: int = 10) -> None:
    """Give scheduled tasks a few turns of the event loop."""
    for _ in range(iterations):
        await asyncio.sleep(0)


def make_driver(status_code: Optional[int] = 200, engine_result=None, ready_state: str = "complete"):
    """A MagicMock WebDriver that answers the scripts the scan pipeline runs."""
    driver = MagicMock()

    def execute_script(script, *args):
        if "getEntriesByType('navigation')" in script:
            return status_code
        if "readyState" in script:
            return ready_state
        return None

    driver.execute_script.side_effect = execute_script
    driver.execute_async_script.return_value = engine_result
    return driver
