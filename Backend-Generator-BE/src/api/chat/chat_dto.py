from typing import List, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    role: str = Field(..., description="One of system, user or assistant.")
    content: str = Field(..., description="The content of the message.")


class ChatRequest(BaseModel):
    message: Optional[str] = Field(None, description="The user's question.")
    model: Optional[str] = Field(None, description="Short model name or provider id.")
    context: List[ChatMessage] = Field(
        default_factory=list, description="Earlier turns of the conversation."
    )
    projectId: Optional[str] = Field(
        None, description="Generated project to discuss; its summary is added to the prompt."
    )


class ChatResponse(BaseModel):
    response: str
    model: str
    timestamp: str
