"""
Chat Pydantic schemas.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, description="User question")
    history: List[ChatMessage] = Field(default_factory=list)


class QueryChatResponse(BaseModel):
    """Local query engine answer."""
    success: bool = True
    response: str
    intent: str
    data: Dict[str, Any]
    chart_type: str
    chart_data: List[Dict[str, Any]]
    timestamp: datetime


class AssistantResponse(BaseModel):
    """LLM answer, or the local answer when the LLM is unavailable."""
    success: bool = True
    response: str
    source: Literal["llm", "local"]
    model: Optional[str] = None
    fallback: bool
    fallback_reason: Optional[str] = None
    insight: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime


class ExampleQueriesResponse(BaseModel):
    examples: List[str]
