import hashlib
import json
import math
from typing import Any, Dict, List, Optional


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced {...} block in text, or None."""
    start = (text or "").find("{")
    if start < 0:
        return None
    depth = 0
    for i in range(start, len(text)):
        ch = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def safe_json(s: str) -> Optional[Dict[str, Any]]:
    try:
        out = json.loads(s)
    except Exception:
        # models like to wrap JSON in prose or fences
        block = extract_json_object(s)
        if not block:
            return None
        try:
            out = json.loads(block)
        except Exception:
            return None
    return out if isinstance(out, dict) else None


def to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


def sample_indices(n: int, max_items: int) -> List[int]:
    """
    Evenly spaced indices over range(n): first, last and
    floor(i / (max_items - 1) * (n - 1)) for the interior.
    """
    if n <= max_items:
        return list(range(n))
    if max_items <= 0:
        return []
    if max_items == 1:
        return [0]
    picked = {0, n - 1}
    for i in range(1, max_items - 1):
        picked.add(int(math.floor(i / (max_items - 1) * (n - 1))))
    return sorted(picked)


def text_sha256(text: str) -> str:
    return hashlib.sha256((text or "").encode("utf-8")).hexdigest()
