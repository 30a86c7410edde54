import json
import re
from typing import Any, Dict

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")


def strip_fences(text: str) -> str:
    text = _FENCE_OPEN.sub("", text.strip())
    return _FENCE_CLOSE.sub("", text.strip())


# ============================================================
# SAFE JSON LOADER (LLM TRUST BOUNDARY)
# ============================================================

def load_json_object(raw: Any) -> Dict[str, Any]:
    """
    Parse function-call arguments coming from the model.

    Strategy:
    1. Already a dict: returned as is
    2. Strip markdown fences, try json.loads
    3. Fallback to the first {...} block in the text
    4. Fail gracefully with empty dict

    NEVER throws.
    """
    if isinstance(raw, dict):
        return raw
    if not raw or not isinstance(raw, str):
        return {}

    text = strip_fences(raw)
    try:
        parsed = json.loads(text)
    except ValueError:
        match = re.search(r"\{.*\}", text, re.DOTALL)
        if not match:
            return {}
        try:
            parsed = json.loads(match.group(0))
        except ValueError:
            return {}

    return parsed if isinstance(parsed, dict) else {}
