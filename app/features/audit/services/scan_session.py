"""
Scan Session Orchestrator

Runs one scan attempt against one URL:

    launching -> navigating -> preparing -> injecting_rules -> evaluating -> tearing_down

Each attempt gets its own browser, released on every exit path by
``browser_session``. Every failure leaves this module as a ScanError.
"""
import asyncio
from typing import Any, Callable, Dict, Optional

from selenium.common.exceptions import TimeoutException

from app.features.audit.exceptions import ScanError
from app.features.audit.schemas.audit import AuditResult, EvaluationMethod
from app.features.audit.services.basic_evaluator import BasicRuleEvaluator
from app.features.audit.services.browser import browser_session, build_driver
from app.features.audit.services.page_preparation import scroll_through_page
from app.features.audit.services.rule_injector import RuleEngineInjector
from app.features.audit.utils.aggregator import build_summary, parse_engine_violations
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

RULE_TAGS = [
    "wcag2a",
    "wcag2aa",
    "wcag21a",
    "wcag21aa",
    "wcag22a",
    "wcag22aa",
    "best-practice",
    "section508",
]

RUN_ENGINE_JS = """
var done = arguments[arguments.length - 1];
window.axe.run(
    document,
    {runOnly: {type: 'tag', values: arguments[0]}},
    function (err, results) {
        if (err) {
            done({error: String(err)});
            return;
        }
        done({
            violations: JSON.parse(JSON.stringify(results.violations)),
            passes: results.passes.length,
            incomplete: results.incomplete.length
        });
    }
);
"""

BLOCKED_STATUS_CODES = {403, 404}


def is_unusable_status(status_code: int) -> bool:
    """Server errors, 403 and 404 mean the page cannot be audited."""
    return status_code >= 500 or status_code in BLOCKED_STATUS_CODES


class ScanSessionOrchestrator:
    def __init__(
        self,
        driver_factory: Callable[[], Any] = build_driver,
        injector: Optional[RuleEngineInjector] = None,
        basic_evaluator: Optional[BasicRuleEvaluator] = None,
        attempt_timeout: Optional[float] = None,
        load_settle_timeout: Optional[float] = None,
        scroll: Callable = scroll_through_page,
    ):
        self.driver_factory = driver_factory
        self.injector = injector or RuleEngineInjector()
        self.basic_evaluator = basic_evaluator or BasicRuleEvaluator()
        self.attempt_timeout = (
            attempt_timeout if attempt_timeout is not None else settings.SCAN_ATTEMPT_TIMEOUT
        )
        self.load_settle_timeout = (
            load_settle_timeout if load_settle_timeout is not None else settings.LOAD_SETTLE_TIMEOUT
        )
        self.scroll = scroll

    async def run_scan(self, url: str) -> AuditResult:
        logger.info(f"Starting scan attempt for {url}")
        try:
            result = await asyncio.wait_for(self._run(url), timeout=self.attempt_timeout)
        except asyncio.TimeoutError:
            logger.error(f"Scan attempt for {url} timed out after {self.attempt_timeout}s")
            raise ScanError(f"Scan timed out after {self.attempt_timeout} seconds", stage="timeout")
        except ScanError as e:
            logger.error(f"Scan attempt for {url} failed: {e}")
            raise
        except Exception as e:
            logger.exception(f"Unexpected error during scan attempt for {url}")
            raise ScanError(f"Unexpected error during scan: {e}") from e

        logger.info(
            f"Scan attempt for {url} succeeded: {result.summary.total_issues_count} issues "
            f"({result.evaluation_method.value})"
        )
        return result

    async def _run(self, url: str) -> AuditResult:
        logger.debug(f"[{url}] launching")
        async with browser_session(self.driver_factory) as page:
            await self._navigate(page, url)

            logger.debug(f"[{url}] preparing")
            await self.scroll(page)

            logger.debug(f"[{url}] injecting_rules")
            try:
                engine_loaded = await self.injector.inject(page)
            except ScanError:
                raise
            except Exception as e:
                raise ScanError(f"Could not inject accessibility rule engine: {e}", stage="injecting_rules")

            logger.debug(f"[{url}] evaluating")
            if not engine_loaded:
                return await self.basic_evaluator.evaluate(page, url)
            return await self._evaluate(page, url)

    async def _navigate(self, page, url: str) -> None:
        logger.debug(f"[{url}] navigating")
        try:
            await page.goto(url)
        except TimeoutException:
            raise ScanError(
                f"Page did not load within {settings.NAVIGATION_TIMEOUT} seconds", stage="navigating"
            )
        except Exception as e:
            raise ScanError(f"Could not load page: {e}", stage="navigating")

        try:
            status_code = await page.navigation_status()
        except Exception as e:
            logger.warning(f"Could not read response status for {url}: {e}")
            status_code = None

        if status_code is None:
            logger.warning(f"No navigation response for {url}, continuing audit")
        else:
            logger.info(f"Response status for {url}: {status_code}")
            if is_unusable_status(status_code):
                raise ScanError(f"Page responded with status {status_code}", stage="navigating")

        try:
            await page.wait_for_load(self.load_settle_timeout)
        except Exception as e:
            logger.warning(f"Page {url} did not finish loading, continuing anyway: {e}")

    async def _evaluate(self, page, url: str) -> AuditResult:
        try:
            raw: Dict[str, Any] = await page.evaluate_async(RUN_ENGINE_JS, RULE_TAGS)
        except Exception as e:
            raise ScanError(f"Accessibility rule engine failed: {e}", stage="evaluating")

        if not isinstance(raw, dict):
            raise ScanError("Accessibility rule engine returned no results", stage="evaluating")
        if raw.get("error"):
            raise ScanError(f"Accessibility rule engine failed: {raw['error']}", stage="evaluating")

        violations = parse_engine_violations(raw.get("violations"))
        return AuditResult(
            summary=build_summary(
                url,
                violations,
                passed_rules=int(raw.get("passes") or 0),
                incomplete_rules=int(raw.get("incomplete") or 0),
            ),
            violations=violations,
            evaluation_method=EvaluationMethod.rule_engine,
        )
