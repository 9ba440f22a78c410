import json
import logging
import re
from typing import List, Optional

from pydantic import ValidationError

from src.api.projects.projects_dto import ProjectDescriptor
from src.utils.errors import MalformedResponse

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"```json[ \t]*\r?\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[^\n`]*\r?\n?(.*?)```", re.DOTALL)
_BRACE_SPAN = re.compile(r"\{.*\}", re.DOTALL)
_WHOLE_FENCE = re.compile(r"^```[^\n`]*\r?\n(.*?)\r?\n?```$", re.DOTALL)


def _candidates(raw: str) -> List[str]:
    """Substrings that may hold the JSON object, highest precedence first."""
    out: List[str] = []
    for pattern in (_JSON_FENCE, _ANY_FENCE, _BRACE_SPAN):
        m = pattern.search(raw)
        if not m:
            continue
        text = (m.group(1) if m.groups() else m.group(0)).strip()
        if text and text not in out:
            out.append(text)
    return out


def _parse(candidate: str) -> Optional[ProjectDescriptor]:
    try:
        data = json.loads(candidate)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return ProjectDescriptor.model_validate(data)
    except ValidationError as e:
        logger.debug("candidate parsed but is not a project description: %s", e)
        return None


def extract_json(raw_text: str) -> ProjectDescriptor:
    """
    Recover the project description from raw model output.

    Tried in order: the first ```json fence, the first fence of any tag, then
    the greedy span from the first '{' to the last '}'. The greedy span will
    swallow trailing prose if the model writes another brace pair after the
    JSON. The first candidate that parses wins.
    """
    raw = raw_text or ""
    candidates = _candidates(raw)
    for candidate in candidates:
        parsed = _parse(candidate)
        if parsed is not None:
            return parsed

    fragment = candidates[0] if candidates else raw
    logger.warning(
        "No project JSON in model output (%d chars), fragment: %.500s",
        len(raw),
        fragment,
    )
    if not candidates:
        raise MalformedResponse("Invalid response format from LLM", fragment)
    raise MalformedResponse("Could not parse project JSON from LLM response", fragment)


def strip_code_fences(text: str) -> str:
    """Unwrap a reply that is a single fenced block; otherwise just strip it."""
    stripped = (text or "").strip()
    m = _WHOLE_FENCE.match(stripped)
    if m and "```" not in m.group(1):
        return m.group(1)
    return stripped
