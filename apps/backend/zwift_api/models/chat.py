"""
chat.py — Pydantic models for the inventory chat assistant.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    role:    Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    """
    The conversation so far, oldest message first.

    detailedMode / responseLength come from the dashboard's answer-length
    slider and pick the token budget.
    """

    model_config = ConfigDict(populate_by_name=True)

    messages:        list[ChatMessage] = Field(..., min_length=1)
    detailed_mode:   bool = Field(default=True, alias="detailedMode")
    response_length: int  = Field(default=75, ge=0, le=100, alias="responseLength")


class ChatResponse(BaseModel):
    message:        ChatMessage
    query_type:     str  # "health" | "reorder" | "search" | "stock" | "count" | "general"
    response_style: str  # "comprehensive" | "detailed" | "moderate" | "concise"
