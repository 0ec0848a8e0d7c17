from unittest.mock import AsyncMock, MagicMock

from app.features.audit.schemas.audit import EvaluationMethod, Severity
from app.features.audit.services.basic_evaluator import (
    BASIC_CHECKS,
    HEADING_ORDER_JS,
    IMAGES_WITHOUT_ALT_JS,
    UNLABELED_FIELDS_JS,
    BasicRuleEvaluator,
)

URL = "https://example.com"


def make_page(images=None, headings=None, fields=None):
    answers = {
        IMAGES_WITHOUT_ALT_JS: images or [],
        HEADING_ORDER_JS: headings or [],
        UNLABELED_FIELDS_JS: fields or [],
    }
    page = MagicMock()
    page.evaluate = AsyncMock(side_effect=lambda script, *args: answers[script])
    return page


class TestBasicRuleEvaluator:
    async def test_clean_page_passes_all_checks(self):
        result = await BasicRuleEvaluator().evaluate(make_page(), URL)

        assert result.violations == []
        assert result.summary.passed_rules == 3
        assert result.summary.incomplete_rules == 0
        assert result.summary.total_issues_count == 0
        assert result.evaluation_method == EvaluationMethod.basic

    async def test_images_without_alt(self):
        page = make_page(images=[{"html": '<img src="a.png">', "src": "a.png"}, {"html": "<img>", "src": ""}])

        result = await BasicRuleEvaluator().evaluate(page, URL)

        assert len(result.violations) == 1
        violation = result.violations[0]
        assert violation.id == "image-alt"
        assert violation.severity == Severity.serious
        assert len(violation.nodes) == 2
        assert violation.nodes[0].target == ["a.png"]
        assert result.summary.serious_count == 2
        assert result.summary.total_issues_count == 2
        assert result.summary.passed_rules == 2

    async def test_heading_skip(self):
        page = make_page(headings=[{"html": "<h4>Deep</h4>", "text": "Deep", "level": 4, "previousLevel": 2}])

        result = await BasicRuleEvaluator().evaluate(page, URL)

        violation = result.violations[0]
        assert violation.id == "heading-order"
        assert violation.severity == Severity.moderate
        assert violation.nodes[0].failure_summary == "Heading level 4 follows heading level 2"
        assert result.summary.moderate_count == 1

    async def test_unlabeled_fields(self):
        page = make_page(
            fields=[
                {"html": '<input id="email">', "type": "email", "id": "email"},
                {"html": "<textarea></textarea>", "type": "textarea", "id": ""},
            ]
        )

        result = await BasicRuleEvaluator().evaluate(page, URL)

        violation = result.violations[0]
        assert violation.id == "label"
        assert violation.severity == Severity.critical
        assert [node.target for node in violation.nodes] == [["#email"], ["textarea"]]
        assert result.summary.critical_count == 2

    async def test_all_checks_failing(self):
        page = make_page(
            images=[{"html": "<img>", "src": "x.png"}],
            headings=[{"html": "<h3></h3>", "level": 3, "previousLevel": 1}],
            fields=[{"html": "<input>", "type": "text", "id": ""}],
        )

        result = await BasicRuleEvaluator().evaluate(page, URL)

        assert [v.id for v in result.violations] == ["image-alt", "heading-order", "label"]
        assert result.summary.passed_rules == 0
        assert result.summary.total_issues_count == 3

    async def test_internal_error_returns_minimal_result(self):
        page = MagicMock()
        page.evaluate = AsyncMock(side_effect=RuntimeError("javascript error: blocked"))

        result = await BasicRuleEvaluator().evaluate(page, URL)

        assert len(result.violations) == 1
        assert result.violations[0].id == "basic-audit-error"
        assert "blocked" in result.violations[0].nodes[0].failure_summary
        assert result.summary.incomplete_rules == len(BASIC_CHECKS)
        assert result.summary.passed_rules == 0
        assert result.summary.total_issues_count == 0

