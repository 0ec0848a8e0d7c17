from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from app.features.audit.schemas.audit import (
    AuditSummary,
    RuleViolation,
    Severity,
    ViolationNode,
)

SEVERITY_BUCKETS = (Severity.critical, Severity.serious, Severity.moderate, Severity.minor)


def build_summary(
    url: str,
    violations: Iterable[RuleViolation],
    passed_rules: int,
    incomplete_rules: int,
    timestamp: Optional[datetime] = None,
) -> AuditSummary:
    """
    Count occurrences per severity bucket.

    Each bucket holds the summed node count of the violations with that
    severity; the total is the sum of the four buckets, so violations with
    severity ``none`` are not counted anywhere.
    """
    counts = {bucket: 0 for bucket in SEVERITY_BUCKETS}
    for violation in violations:
        if violation.severity in counts:
            counts[violation.severity] += len(violation.nodes)

    return AuditSummary(
        url=url,
        total_issues_count=sum(counts.values()),
        critical_count=counts[Severity.critical],
        serious_count=counts[Severity.serious],
        moderate_count=counts[Severity.moderate],
        minor_count=counts[Severity.minor],
        passed_rules=passed_rules,
        incomplete_rules=incomplete_rules,
        timestamp=timestamp or datetime.now(timezone.utc),
    )


def _parse_severity(impact: Any) -> Severity:
    try:
        return Severity(impact) if impact else Severity.none
    except ValueError:
        return Severity.none


def _flatten_target(target: Any) -> List[str]:
    # axe nests selectors for iframes and shadow roots
    if target is None:
        return []
    if isinstance(target, (list, tuple)):
        flat = []
        for item in target:
            if isinstance(item, (list, tuple)):
                flat.append(" >>> ".join(str(part) for part in item))
            else:
                flat.append(str(item))
        return flat
    return [str(target)]


def parse_engine_violations(raw_violations: Iterable[Dict[str, Any]]) -> List[RuleViolation]:
    """Convert raw axe-core violation dicts into RuleViolation models."""
    violations = []
    for raw in raw_violations or []:
        nodes = [
            ViolationNode(
                html=node.get("html") or "",
                target=_flatten_target(node.get("target")),
                failure_summary=node.get("failureSummary") or "",
            )
            for node in raw.get("nodes") or []
        ]
        violations.append(
            RuleViolation(
                id=raw.get("id", "unknown"),
                severity=_parse_severity(raw.get("impact")),
                description=raw.get("description") or "",
                help=raw.get("help") or "",
                help_url=raw.get("helpUrl") or "",
                nodes=nodes,
            )
        )
    return violations
