from typing import Dict, List

AVAILABLE_MODELS: Dict[str, str] = {
    "gemini-2.0-flash": "google/gemini-2.0-flash-exp:free",
    "devstral-small": "mistralai/devstral-small:free",
}

DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_EDIT_MODEL = "devstral-small"


def resolve_model(name: str) -> str:
    """Map a short model name to its provider id; unknown names pass through."""
    return AVAILABLE_MODELS.get(name, name)


def list_models() -> List[str]:
    return list(AVAILABLE_MODELS.keys())
