"""
web/schemas.py -- Pydantic models for the JSON responses the portal emits.

Most routes return HTML or redirects. Only POST /logout (consumed by the
logout script in static/js/script.js) and GET /health speak JSON.
"""

from typing import Optional

from pydantic import BaseModel, Field


class LogoutResponse(BaseModel):
    success: bool
    redirect: Optional[str] = None
    message: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
