"""
Fallback accessibility checks run directly against the live DOM.

Used when axe-core cannot be injected into the page. Three checks only:
missing image alt text, skipped heading levels and unlabeled form fields.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from app.features.audit.schemas.audit import (
    AuditResult,
    EvaluationMethod,
    RuleViolation,
    Severity,
    ViolationNode,
)
from app.features.audit.utils.aggregator import build_summary
from app.platform.logger import get_logger

logger = get_logger(__name__)


IMAGES_WITHOUT_ALT_JS = """
return Array.from(document.querySelectorAll('img'))
    .filter(function (img) {
        var alt = img.getAttribute('alt');
        return alt === null || alt.trim() === '';
    })
    .map(function (img) {
        return {html: img.outerHTML, src: img.getAttribute('src') || ''};
    });
"""

HEADING_ORDER_JS = """
var result = [];
var previousLevel = 0;
Array.from(document.querySelectorAll('h1, h2, h3, h4, h5, h6')).forEach(function (heading) {
    var level = parseInt(heading.tagName.charAt(1), 10);
    if (previousLevel > 0 && level - previousLevel > 1) {
        result.push({
            html: heading.outerHTML,
            text: (heading.textContent || '').trim(),
            level: level,
            previousLevel: previousLevel
        });
    }
    previousLevel = level;
});
return result;
"""

UNLABELED_FIELDS_JS = """
var skippedTypes = ['hidden', 'button', 'submit', 'reset'];
return Array.from(document.querySelectorAll('input, select, textarea'))
    .filter(function (field) {
        var type = (field.getAttribute('type') || '').toLowerCase();
        if (skippedTypes.indexOf(type) !== -1) return false;
        if (field.getAttribute('aria-hidden') === 'true') return false;
        if (field.hasAttribute('aria-label') || field.hasAttribute('aria-labelledby')) return false;
        if (field.closest('label')) return false;
        var id = field.getAttribute('id');
        if (id && document.querySelector('label[for="' + CSS.escape(id) + '"]')) return false;
        return true;
    })
    .map(function (field) {
        return {
            html: field.outerHTML,
            type: field.getAttribute('type') || field.tagName.toLowerCase(),
            id: field.getAttribute('id') || ''
        };
    });
"""


def _image_node(item: Dict[str, Any]) -> ViolationNode:
    src = item.get("src") or "unknown source"
    return ViolationNode(
        html=item.get("html", ""),
        target=[src],
        failure_summary=f"Image has no alternative text: {src}",
    )


def _heading_node(item: Dict[str, Any]) -> ViolationNode:
    level = item.get("level")
    previous = item.get("previousLevel")
    return ViolationNode(
        html=item.get("html", ""),
        target=[f"h{level}"],
        failure_summary=f"Heading level {level} follows heading level {previous}",
    )


def _field_node(item: Dict[str, Any]) -> ViolationNode:
    field_type = item.get("type") or "input"
    return ViolationNode(
        html=item.get("html", ""),
        target=[f"#{item['id']}" if item.get("id") else field_type],
        failure_summary=f"Form field of type {field_type} has no label",
    )


@dataclass(frozen=True)
class BasicCheck:
    id: str
    severity: Severity
    description: str
    help: str
    help_url: str
    script: str
    to_node: Callable[[Dict[str, Any]], ViolationNode]


BASIC_CHECKS: List[BasicCheck] = [
    BasicCheck(
        id="image-alt",
        severity=Severity.serious,
        description="Images must have alternative text",
        help="Add a meaningful alt attribute to every image",
        help_url="https://www.w3.org/WAI/tutorials/images/",
        script=IMAGES_WITHOUT_ALT_JS,
        to_node=_image_node,
    ),
    BasicCheck(
        id="heading-order",
        severity=Severity.moderate,
        description="Heading levels should only increase by one",
        help="Order headings hierarchically without skipping levels",
        help_url="https://www.w3.org/WAI/tutorials/page-structure/headings/",
        script=HEADING_ORDER_JS,
        to_node=_heading_node,
    ),
    BasicCheck(
        id="label",
        severity=Severity.critical,
        description="Form elements must have labels",
        help="Associate every form field with a label, aria-label or aria-labelledby",
        help_url="https://www.w3.org/WAI/tutorials/forms/labels/",
        script=UNLABELED_FIELDS_JS,
        to_node=_field_node,
    ),
]


class BasicRuleEvaluator:
    def __init__(self, checks: List[BasicCheck] = None):
        self.checks = checks if checks is not None else BASIC_CHECKS

    async def evaluate(self, page, url: str) -> AuditResult:
        """Run every check; never raises."""
        logger.info(f"Running basic accessibility checks for {url}")
        try:
            violations = []
            passed = 0
            for check in self.checks:
                offenders = await page.evaluate(check.script) or []
                if not offenders:
                    passed += 1
                    continue
                violations.append(
                    RuleViolation(
                        id=check.id,
                        severity=check.severity,
                        description=check.description,
                        help=check.help,
                        help_url=check.help_url,
                        nodes=[check.to_node(item) for item in offenders],
                    )
                )

            return AuditResult(
                summary=build_summary(url, violations, passed_rules=passed, incomplete_rules=0),
                violations=violations,
                evaluation_method=EvaluationMethod.basic,
            )
        except Exception as e:
            logger.error(f"Basic accessibility checks failed for {url}: {e}")
            return self._error_result(url, e)

    def _error_result(self, url: str, error: Exception) -> AuditResult:
        violations = [
            RuleViolation(
                id="basic-audit-error",
                severity=Severity.none,
                description="The basic accessibility checks could not be completed",
                help="The page most likely has very restrictive security settings",
                nodes=[
                    ViolationNode(
                        html="<html>...</html>",
                        target=[url],
                        failure_summary=f"Error: {error}",
                    )
                ],
            )
        ]
        return AuditResult(
            summary=build_summary(url, violations, passed_rules=0, incomplete_rules=len(self.checks)),
            violations=violations,
            evaluation_method=EvaluationMethod.basic,
        )
