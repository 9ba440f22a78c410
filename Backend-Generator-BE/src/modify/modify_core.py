from __future__ import annotations

import logging
from typing import Dict, List

from src.run_utils.extract import strip_code_fences
from src.run_utils.llm import LLMClient
from src.run_utils.locks import project_lock
from src.run_utils.model_registry import DEFAULT_EDIT_MODEL, resolve_model
from src.run_utils.store import ProjectStore
from src.utils.dto import ReplaceResult
from src.utils.errors import InvalidInput

logger = logging.getLogger(__name__)

EDIT_TEMPERATURE = 0.2
EDIT_MAX_TOKENS = 6000

ENHANCE_SYS = (
    "You are a senior developer. Enhance the provided code file to meet the specific requirements. "
    "Keep the existing behavior unless the requirements say otherwise. "
    "Return only the enhanced code content, no explanations or markdown formatting."
)

REWRITE_SYS = (
    "You are a senior developer. Rewrite the provided code file from scratch so that it fulfils "
    "the requirements. You may change its structure completely; the current content is only a reference. "
    "Return only the new file content, no explanations or markdown formatting."
)

EDIT_MODES = {"enhance": ENHANCE_SYS, "rewrite": REWRITE_SYS}


def _edit_messages(mode: str, file_path: str, current: str, requirements: str) -> List[Dict[str, str]]:
    verb = "enhanced" if mode == "enhance" else "rewritten"
    user_prompt = (
        f"File: {file_path}\n"
        "Current content:\n"
        f"{current}\n\n"
        "Requirements:\n"
        f"{requirements}\n\n"
        f"Provide the complete {verb} file content:"
    )
    return [
        {"role": "system", "content": EDIT_MODES[mode]},
        {"role": "user", "content": user_prompt},
    ]


async def _edit_file_content(
    llm: LLMClient, mode: str, file_path: str, current: str, requirements: str, model: str
) -> str:
    raw = await llm.complete(
        resolve_model(model),
        _edit_messages(mode, file_path, current, requirements),
        temperature=EDIT_TEMPERATURE,
        max_tokens=EDIT_MAX_TOKENS,
    )
    return strip_code_fences(raw)


async def enhance_file_content(
    llm: LLMClient, file_path: str, current: str, requirements: str, model: str = DEFAULT_EDIT_MODEL
) -> str:
    return await _edit_file_content(llm, "enhance", file_path, current, requirements, model)


async def rewrite_file_content(
    llm: LLMClient, file_path: str, current: str, requirements: str, model: str = DEFAULT_EDIT_MODEL
) -> str:
    return await _edit_file_content(llm, "rewrite", file_path, current, requirements, model)


async def apply_file_edit(
    llm: LLMClient,
    store: ProjectStore,
    project_id: str,
    file_path: str,
    requirements: str,
    model: str = DEFAULT_EDIT_MODEL,
    mode: str = "enhance",
) -> ReplaceResult:
    """Run an AI edit on one file and swap it in, keeping a backup of the old content."""
    if mode not in EDIT_MODES:
        raise InvalidInput(f"Unknown edit mode: {mode}")

    async with project_lock(project_id):
        current = store.read_file(project_id, file_path).content
        if mode == "enhance":
            new_content = await enhance_file_content(llm, file_path, current, requirements, model)
        else:
            new_content = await rewrite_file_content(llm, file_path, current, requirements, model)
        result = store.backup_then_replace(project_id, file_path, new_content)

    logger.info("%s %s/%s, backup at %s", mode, project_id, file_path, result.backup_path)
    return result
