from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from src.api.projects.projects_dto import GenerationOptions, ProjectDescriptor, ProjectRecord
from src.run_utils.extract import extract_json
from src.run_utils.llm import LLMClient
from src.run_utils.model_registry import DEFAULT_MODEL, resolve_model
from src.run_utils.store import ProjectStore

logger = logging.getLogger(__name__)

GENERATION_TEMPERATURE = 0.3
GENERATION_MAX_TOKENS = 8000

GENERATOR_SYS = """
You are a senior backend developer. Generate a complete backend project structure based on the user's prompt.

Response format should be a JSON object with this exact structure:
{
  "projectName": "project-name",
  "description": "Brief project description",
  "technology": "primary technology stack",
  "framework": "main web framework",
  "database": "database, or empty string if none",
  "fileTree": {
    "folder/subfolder": {
      "type": "directory"
    },
    "folder/file.ext": {
      "type": "file",
      "content": "complete file content here"
    }
  },
  "dependencies": {
    "package-name": "version"
  },
  "devDependencies": {
    "package-name": "version"
  },
  "setupInstructions": [
    "step by step setup instructions"
  ],
  "apiEndpoints": [
    {
      "method": "GET/POST/PUT/DELETE",
      "path": "/api/endpoint",
      "description": "what this endpoint does"
    }
  ],
  "environmentVariables": {
    "VARIABLE_NAME": "description or default value"
  }
}

Rules
- All fileTree paths are relative to the project root. Never use absolute paths or '..'.
- Return ONLY the JSON object. No prose before or after it.

Generate production-ready code with:
- Proper error handling
- Input validation
- Security measures
- Database models/schemas
- API documentation
- Configuration files
- Docker support when appropriate
- Tests when relevant

Make the code complete and functional, not placeholder code.
""".strip()


def completion_kwargs(
    options: Optional[GenerationOptions], temperature: float, max_tokens: int
) -> Dict[str, Any]:
    """Per-call sampling settings, request options taking precedence."""
    kw: Dict[str, Any] = {"temperature": temperature, "max_tokens": max_tokens}
    if options is None:
        return kw
    if options.temperature is not None:
        kw["temperature"] = options.temperature
    if options.maxTokens is not None:
        kw["max_tokens"] = options.maxTokens
    if options.topP is not None:
        kw["top_p"] = options.topP
    return kw


async def generate_project_structure(
    llm: LLMClient,
    prompt: str,
    model: str = DEFAULT_MODEL,
    options: Optional[GenerationOptions] = None,
) -> ProjectDescriptor:
    raw = await llm.complete(
        resolve_model(model),
        [
            {"role": "system", "content": GENERATOR_SYS},
            {"role": "user", "content": prompt},
        ],
        **completion_kwargs(options, GENERATION_TEMPERATURE, GENERATION_MAX_TOKENS),
    )
    return extract_json(raw)


async def run_generation(
    llm: LLMClient,
    store: ProjectStore,
    prompt: str,
    model: str = DEFAULT_MODEL,
    options: Optional[GenerationOptions] = None,
) -> ProjectRecord:
    """Prompt -> provider -> descriptor -> files on disk. No retries on failure."""
    logger.info("Generating project with %s (%d char prompt)", model, len(prompt))
    descriptor = await generate_project_structure(llm, prompt, model, options)
    return store.create(descriptor, prompt, model)
