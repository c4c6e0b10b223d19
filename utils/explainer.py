import hashlib
import json
import logging
from functools import lru_cache

from errors import CollaboratorFailure

logger = logging.getLogger(__name__)


# Cache renders based on instruction + context hash
@lru_cache(maxsize=64)
def _cached_explanation(renderer, prompt_hash: str, instruction: str, context_json: str) -> str:
    """Internal cached render."""
    return renderer.render(instruction, json.loads(context_json)).strip()


def generate_explanation(renderer, instruction: str, context: dict) -> str | None:
    """
    Render already-computed numbers into prose.
    Returns None when the renderer fails so callers can fall back.
    """
    if renderer is None:
        return None

    context_json = json.dumps(context, ensure_ascii=False, sort_keys=True)
    prompt_hash = hashlib.md5(f"{instruction}\n{context_json}".encode()).hexdigest()

    try:
        return _cached_explanation(renderer, prompt_hash, instruction, context_json) or None
    except CollaboratorFailure as e:
        logger.warning("LLM render failed, using fallback text: %s", e)
        return None
