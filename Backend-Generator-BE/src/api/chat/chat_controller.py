import logging
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from src.api.chat.chat_dto import ChatRequest, ChatResponse
from src.api.chat.chat_service import ChatService
from src.run_utils.llm import LLMClient, get_llm_client
from src.run_utils.model_registry import DEFAULT_MODEL
from src.run_utils.store import ProjectStore, get_project_store

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Chat"],
    prefix="/api/chat",
)


def get_chat_service(
    llm: LLMClient = Depends(get_llm_client),
    store: ProjectStore = Depends(get_project_store),
) -> ChatService:
    return ChatService(llm, store)


@router.post(
    "",
    response_model=ChatResponse,
    summary="Ask the model a backend development question",
)
async def chat(
    body: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    model = body.model or DEFAULT_MODEL
    messages = chat_service.build_messages(body.message, body.context, body.projectId)
    response = await chat_service.reply(model, messages)
    return ChatResponse(
        response=response,
        model=model,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )


@router.post(
    "/stream",
    summary="Same as /api/chat, answer streamed as plain text",
)
async def chat_stream(
    body: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
):
    model = body.model or DEFAULT_MODEL
    messages = chat_service.build_messages(body.message, body.context, body.projectId)
    fragments = chat_service.reply_stream(model, messages)

    # pull the first fragment here so provider errors still get a proper status code
    try:
        first = await fragments.__anext__()
    except StopAsyncIteration:
        first = ""

    async def gen() -> AsyncIterator[bytes]:
        try:
            if first:
                yield first.encode("utf-8")
            async for fragment in fragments:
                yield fragment.encode("utf-8")
        except Exception:
            # headers are already sent; the body just ends early
            logger.exception("Chat stream for %s aborted", model)
        finally:
            await fragments.aclose()

    headers = {
        "Cache-Control": "no-cache",
        "X-Accel-Buffering": "no",
    }
    return StreamingResponse(gen(), media_type="text/plain; charset=utf-8", headers=headers)
