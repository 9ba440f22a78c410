import json
from typing import AsyncIterator, Dict, List, Optional

from src.api.chat.chat_dto import ChatMessage
from src.api.projects.projects_dto import ProjectRecord
from src.run_utils.llm import LLMClient
from src.run_utils.model_registry import resolve_model
from src.run_utils.store import ProjectStore
from src.utils.errors import InvalidInput

CHAT_SYS = (
    "You are a helpful backend development assistant. Provide clear, practical advice "
    "for backend development questions. Include code examples when helpful."
)

ALLOWED_ROLES = {"system", "user", "assistant"}
MAX_CONTEXT_FILES = 200


def project_context(record: ProjectRecord, files: List[str]) -> str:
    stack = {
        "technology": record.technology,
        "framework": record.framework,
        "database": record.database,
    }
    return (
        "The user is working on this generated project:\n"
        f"Name: {record.projectName}\n"
        f"Description: {record.description}\n"
        f"Stack: {json.dumps(stack, ensure_ascii=False)}\n"
        f"Original prompt: {record.prompt}\n"
        "Files:\n"
        + "\n".join(f"- {p}" for p in files[:MAX_CONTEXT_FILES])
    )


def chat_messages(
    message: str,
    context: List[ChatMessage],
    project: Optional[str] = None,
) -> List[Dict[str, str]]:
    messages = [{"role": "system", "content": CHAT_SYS}]
    if project:
        messages.append({"role": "system", "content": project})
    for turn in context:
        if turn.role not in ALLOWED_ROLES:
            raise InvalidInput(f"Unsupported context role: {turn.role}")
        messages.append({"role": turn.role, "content": turn.content})
    messages.append({"role": "user", "content": message})
    return messages


class ChatService:
    def __init__(self, llm: LLMClient, store: ProjectStore):
        self.llm = llm
        self.store = store

    def build_messages(
        self, message: Optional[str], context: List[ChatMessage], project_id: Optional[str]
    ) -> List[Dict[str, str]]:
        if not message:
            raise InvalidInput("Message is required")
        project = None
        if project_id:
            record = self.store.get(project_id)
            project = project_context(record, self.store.list_files(project_id))
        return chat_messages(message, context, project)

    async def reply(self, model: str, messages: List[Dict[str, str]]) -> str:
        return await self.llm.complete(resolve_model(model), messages)

    def reply_stream(self, model: str, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        return self.llm.complete_stream(resolve_model(model), messages)
