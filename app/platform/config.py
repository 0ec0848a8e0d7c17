from pathlib import Path
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "Accessibility Audit API"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True
    CORS_ORIGINS: List[str] = ["*"]
    LOG_DIR: str = "logs"

    # ── Audit queue ─────────────────────────────
    MAX_CONCURRENT_AUDITS: int = 2
    AUDIT_MAX_RETRIES: int = 3
    AUDIT_RETRY_DELAY_SECONDS: float = 1.0
    AUDIT_REQUEST_TIMEOUT: float = 300.0  # whole request, all retries included

    # ── Scan session ────────────────────────────
    SCAN_ATTEMPT_TIMEOUT: float = 120.0
    NAVIGATION_TIMEOUT: int = 30
    LOAD_SETTLE_TIMEOUT: int = 15
    EVALUATION_TIMEOUT: int = 60

    # ── Auto-scroll ─────────────────────────────
    SCROLL_STEP_PX: int = 300
    SCROLL_INTERVAL_SECONDS: float = 0.1
    SCROLL_MAX_SECONDS: float = 10.0
    SCROLL_MAX_STUCK: int = 5
    SCROLL_SETTLE_SECONDS: float = 0.5

    # ── Browser ─────────────────────────────────
    BROWSER_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    CHROMEDRIVER_PATH: Optional[str] = None
    USE_WEBDRIVER_MANAGER: bool = False

    # ── Rule engine (axe-core) ──────────────────
    RULE_ENGINE_URL: str = "https://unpkg.com/axe-core@4.10.3/axe.min.js"
    RULE_ENGINE_FETCH_TIMEOUT: float = 30.0
    RULE_ENGINE_CACHE_ENABLED: bool = False

    # ── URL pre-check ───────────────────────────
    URL_CHECK_TIMEOUT: float = 10.0

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
