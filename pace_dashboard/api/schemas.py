"""
Request and response models for the dashboard HTTP API.
Field names follow the dashboard client (camelCase for ids and names).
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HistoryMessage(BaseModel):
    role: str = "user"
    content: Any = ""
    timestamp: Optional[Any] = None

    @field_validator('role')
    @classmethod
    def role_must_be_known(cls, v):
        # Anything that is not the assistant is replayed as the user
        return "assistant" if v == "assistant" else "user"


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    history: List[HistoryMessage] = Field(default_factory=list)
    org_id: Optional[str] = Field(default=None, alias="orgId")
    org_name: Optional[str] = Field(default=None, alias="orgName")
    process_id: Optional[str] = Field(default=None, alias="processId")
    process_name: Optional[str] = Field(default=None, alias="processName")


class ChatResponse(BaseModel):
    response: str


class KBWriteRequest(BaseModel):
    content: Optional[str] = None
    section: Optional[str] = None


class KBResponse(BaseModel):
    processId: str
    content: str


class KBWriteResponse(BaseModel):
    success: bool
    action: str
    processId: str


class RecordingUrlResponse(BaseModel):
    url: str
    expires_in: int


class HealthResponse(BaseModel):
    status: str
    version: str
    provider: Optional[str] = None
    model: Optional[str] = None
    max_rounds: Optional[int] = None
    store_backend: str
    dashboard_backend: str
    store_healthy: bool
    dashboard_healthy: bool = True
    issues: List[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[Any] = None
