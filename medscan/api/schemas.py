from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AnalyzeResponse(BaseModel):
    status: str
    result: Dict[str, Any]
    message: Optional[str] = None


class ValidateResponse(BaseModel):
    valid: bool
    filename: str
    failed_checks: List[str] = Field(default_factory=list)
    characteristics: Dict[str, Any] = Field(default_factory=dict)
    reason: Optional[str] = None
    requirements: List[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "ok"
