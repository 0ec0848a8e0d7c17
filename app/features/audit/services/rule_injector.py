"""
Rule-engine (axe-core) injection.

Many sites ship a Content-Security-Policy that blocks one way of running
foreign code but not another, so the bundle is tried through an ordered list
of independent strategies. The first one that leaves ``window.axe`` defined
wins; if none does, the caller falls back to the basic evaluator.
"""
from typing import Awaitable, Callable, List, Optional, Tuple

import httpx

from app.features.audit.exceptions import ScanError
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

InjectionStrategy = Callable[[object, str], Awaitable[bool]]

ENGINE_AVAILABLE_JS = "return typeof window.axe !== 'undefined';"

SCRIPT_ELEMENT_JS = """
var script = document.createElement('script');
script.textContent = arguments[0];
(document.head || document.documentElement).appendChild(script);
"""

# Indirect eval runs the bundle in global scope
EVAL_JS = "(0, eval)(arguments[0]);"

FUNCTION_CONSTRUCTOR_JS = "new Function(arguments[0])();"


async def engine_available(page) -> bool:
    return bool(await page.evaluate(ENGINE_AVAILABLE_JS))


async def _run_and_check(page, snippet: str, script: str) -> bool:
    await page.evaluate(snippet, script)
    return await engine_available(page)


async def inject_via_script_element(page, script: str) -> bool:
    return await _run_and_check(page, SCRIPT_ELEMENT_JS, script)


async def inject_via_eval(page, script: str) -> bool:
    return await _run_and_check(page, EVAL_JS, script)


async def inject_via_function_constructor(page, script: str) -> bool:
    return await _run_and_check(page, FUNCTION_CONSTRUCTOR_JS, script)


INJECTION_STRATEGIES: List[Tuple[str, InjectionStrategy]] = [
    ("script-element", inject_via_script_element),
    ("eval", inject_via_eval),
    ("function-constructor", inject_via_function_constructor),
]


class RuleEngineInjector:
    def __init__(
        self,
        source_url: Optional[str] = None,
        strategies: Optional[List[Tuple[str, InjectionStrategy]]] = None,
        cache_enabled: Optional[bool] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.source_url = source_url or settings.RULE_ENGINE_URL
        self.strategies = strategies if strategies is not None else INJECTION_STRATEGIES
        self.cache_enabled = (
            cache_enabled if cache_enabled is not None else settings.RULE_ENGINE_CACHE_ENABLED
        )
        self.timeout = timeout if timeout is not None else settings.RULE_ENGINE_FETCH_TIMEOUT
        self.transport = transport
        self._cached_bundle: Optional[str] = None

    async def fetch_bundle(self) -> str:
        if self.cache_enabled and self._cached_bundle is not None:
            return self._cached_bundle

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self.transport
            ) as client:
                response = await client.get(self.source_url)
        except httpx.HTTPError as e:
            raise ScanError(f"Could not fetch accessibility rule engine: {e}", stage="injecting_rules")

        if response.status_code != 200:
            raise ScanError(
                f"Could not fetch accessibility rule engine: {response.status_code} {response.reason_phrase}",
                stage="injecting_rules",
            )

        bundle = response.text
        if self.cache_enabled:
            self._cached_bundle = bundle
        return bundle

    async def inject(self, page) -> bool:
        """
        Make the rule engine available in the page.

        Returns False when every strategy failed. Raises ScanError only when
        the bundle itself cannot be fetched.
        """
        bundle = await self.fetch_bundle()

        for name, strategy in self.strategies:
            try:
                if await strategy(page, bundle):
                    logger.info(f"Rule engine injected ({name})")
                    return True
                logger.warning(f"Rule engine injection via {name} did not expose window.axe")
            except Exception as e:
                logger.warning(f"Rule engine injection via {name} failed: {e}")

        logger.warning("All rule engine injection strategies failed, falling back to basic checks")
        return False
