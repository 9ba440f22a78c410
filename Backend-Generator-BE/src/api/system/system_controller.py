from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from src.run_utils.llm import LLMClient, get_llm_client
from src.run_utils.model_registry import DEFAULT_MODEL, list_models

router = APIRouter(tags=["System"])


@router.get("/health", summary="Liveness check")
async def health(llm: LLMClient = Depends(get_llm_client)) -> Dict[str, Any]:
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "models": list_models(),
        "providerConfigured": llm.configured,
    }


@router.get("/api/models", summary="Short model names accepted by the API")
async def models() -> Dict[str, Any]:
    return {"models": list_models(), "default": DEFAULT_MODEL}
