"""
Audit Schemas

Request/response models for the audit endpoints and the report structure
produced by a scan attempt.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, TypeAdapter, ValidationError, field_validator


_HTTP_URL = TypeAdapter(HttpUrl)


class Severity(str, Enum):
    critical = "critical"
    serious = "serious"
    moderate = "moderate"
    minor = "minor"
    none = "none"


class EvaluationMethod(str, Enum):
    rule_engine = "rule_engine"
    basic = "basic"


# ============================================================================
# Report
# ============================================================================

class ViolationNode(BaseModel):
    """One element on the page matching a violation."""
    model_config = ConfigDict(frozen=True)

    html: str = ""
    target: List[str] = Field(default_factory=list)
    failure_summary: str = ""


class RuleViolation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    severity: Severity = Severity.none
    description: str = ""
    help: str = ""
    help_url: str = ""
    nodes: List[ViolationNode] = Field(default_factory=list)


class AuditSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    total_issues_count: int = 0
    critical_count: int = 0
    serious_count: int = 0
    moderate_count: int = 0
    minor_count: int = 0
    passed_rules: int = 0
    incomplete_rules: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AuditResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: AuditSummary
    violations: List[RuleViolation] = Field(default_factory=list)
    evaluation_method: EvaluationMethod = EvaluationMethod.rule_engine


# ============================================================================
# API
# ============================================================================

class AuditRequest(BaseModel):
    """Request to audit a single page."""
    url: str
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=2)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        # Validated as an absolute http(s) URL but kept exactly as submitted;
        # HttpUrl would append a trailing slash to bare hosts.
        v = v.strip()
        try:
            _HTTP_URL.validate_python(v)
        except ValidationError:
            raise ValueError("URL must be an absolute http or https URL")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "url": "https://example.com",
                "email": "jane@example.com",
                "name": "Jane",
            }
        }


class AuditResponse(BaseModel):
    success: bool = True
    url: str
    email: Optional[str] = None
    name: Optional[str] = None
    results: AuditResult


class CheckUrlRequest(BaseModel):
    url: str


class CheckUrlResponse(BaseModel):
    exists: bool
    url: str
    status_code: Optional[int] = None
    error: Optional[str] = None
