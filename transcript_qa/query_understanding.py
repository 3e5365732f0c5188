import math
import re
from typing import Any, Dict, List, Optional, Tuple

from .llm_client import chat_text
from .logger import log
from .models import QueryIntent, QueryUnderstanding, ScriptType, TimeRange
from .parser import detect_script, tokenize_query
from .utils import safe_json, to_number

# Longest absolute window accepted from free text, in seconds.
MAX_ABSOLUTE_SPAN = 3600

INTENTS = ("summary", "time_range", "factoid", "compare", "yes_no", "unknown")

CN_DIGITS = {
    "零": 0, "一": 1, "二": 2, "两": 2, "三": 3, "四": 4,
    "五": 5, "六": 6, "七": 7, "八": 8, "九": 9,
}

# re.A keeps \b and \d ASCII-only so "视频8:30" still yields a clock mention.
_FLAGS = re.A | re.I

_CLOCK_RE = re.compile(r"\b(\d{1,2}):(\d{2})(?::(\d{2}))?\b", _FLAGS)
_CN_MIN_SEC_RE = re.compile(r"(\d{1,3})\s*分(?:钟)?\s*([0-5]?\d)\s*秒", _FLAGS)
_CN_HALF_MIN_RE = re.compile(r"(\d{1,3})\s*分半", _FLAGS)
_RANGE_CUE_RE = re.compile(r"到|至|之间|from|between|to|[-~～—]", _FLAGS)

_CN_FRACTION_RE = re.compile(r"(前面|后面|前|后)\s*(\d{1,2})\s*/\s*(\d{1,2})", _FLAGS)
_CN_FENZHI_RE = re.compile(
    r"(前面|后面|前|后)\s*([一二两三四五六七八九十\d]{1,4})\s*分之\s*([一二两三四五六七八九十\d]{1,4})", _FLAGS
)
_EN_FRACTION_RE = re.compile(r"\b(first|last)\s+(\d{1,2})\s*/\s*(\d{1,2})\b", _FLAGS)
_NAMED_FRACTIONS: List[Tuple[re.Pattern, float, float]] = [
    (re.compile(r"前半(段|部分|程)?"), 0.0, 0.5),
    (re.compile(r"后半(段|部分|程)?"), 0.5, 1.0),
    (re.compile(r"\bfirst\s+half\b", _FLAGS), 0.0, 0.5),
    (re.compile(r"\b(last|second)\s+half\b", _FLAGS), 0.5, 1.0),
    (re.compile(r"\bfirst\s+third\b", _FLAGS), 0.0, 1 / 3),
    (re.compile(r"\blast\s+third\b", _FLAGS), 2 / 3, 1.0),
    (re.compile(r"\bfirst\s+quarter\b", _FLAGS), 0.0, 0.25),
    (re.compile(r"\blast\s+quarter\b", _FLAGS), 0.75, 1.0),
]

_VIDEO_REF_RE = re.compile(r"视频|video|this video|the video|该视频|这个视频|this clip|clip", _FLAGS)
_OVERVIEW_CUE_RE = re.compile(
    r"\b(overview|highlights|key points|main points|gist|what is (this|the) video about)\b"
    r"|重点|主要|核心|大意|简介|介绍.*(内容|重点|核心)?|讲了什么|讲了啥",
    _FLAGS,
)
_SUMMARY_RE = re.compile(r"\b(summary|summarize|overview|recap|highlights)\b|总结|概述|梳理|复盘|详细总结|更详细", _FLAGS)
_COMPARE_RE = re.compile(r"\b(compare|difference|versus|vs)\b|区别|对比|相比|差异", _FLAGS)
_YES_NO_RE = re.compile(r"\?|？|吗|是不是|是否|有没有", _FLAGS)
_FACTOID_RE = re.compile(r"\b(what|which|who|how|why|where|when)\b|讲了啥|讲了什么|提到什么|内容是什么", _FLAGS)
_CJK_RE = re.compile(r"[\u4e00-\u9fff]")
_ENGLISH_REQUEST_RE = re.compile(r"\b(english|in english)\b", _FLAGS)


# -----------------------------
# Absolute time ranges
# -----------------------------

def _clock_to_seconds(a: str, b: str, c: Optional[str]) -> Optional[int]:
    first, second = int(a), int(b)
    if second > 59:
        return None
    if c is None:
        return first * 60 + second
    third = int(c)
    if third > 59:
        return None
    return first * 3600 + second * 60 + third


def extract_time_mentions(text: str) -> List[Tuple[int, int]]:
    """(seconds, position) for every clock-like mention, ordered by position."""
    mentions: List[Tuple[int, int]] = []
    for m in _CLOCK_RE.finditer(text):
        secs = _clock_to_seconds(m.group(1), m.group(2), m.group(3))
        if secs is not None:
            mentions.append((secs, m.start()))
    for m in _CN_MIN_SEC_RE.finditer(text):
        ss = int(m.group(2))
        if ss <= 59:
            mentions.append((int(m.group(1)) * 60 + ss, m.start()))
    for m in _CN_HALF_MIN_RE.finditer(text):
        mentions.append((int(m.group(1)) * 60 + 30, m.start()))
    return sorted(mentions, key=lambda x: x[1])


def extract_time_range(text: str) -> Optional[TimeRange]:
    if not _RANGE_CUE_RE.search(text):
        return None
    mentions = extract_time_mentions(text)
    if len(mentions) < 2:
        return None
    start = min(mentions[0][0], mentions[1][0])
    end = max(mentions[0][0], mentions[1][0])
    if end <= start or end - start > MAX_ABSOLUTE_SPAN:
        return None
    return TimeRange(start_seconds=start, end_seconds=end)


def parse_clock_string(value: str) -> Optional[int]:
    m = re.fullmatch(r"\s*(\d{1,2}):(\d{2})(?::(\d{2}))?(?:[.,]\d+)?\s*", value or "")
    if not m:
        return None
    return _clock_to_seconds(m.group(1), m.group(2), m.group(3))


# -----------------------------
# Relative time ranges
# -----------------------------

def parse_chinese_int(raw: str) -> Optional[int]:
    text = (raw or "").strip()
    if not text:
        return None
    if text.isdigit():
        return int(text)
    if text == "十":
        return 10
    if text.startswith("十"):
        tail = CN_DIGITS.get(text[1:])
        return None if tail is None else 10 + tail
    if text.endswith("十"):
        head = CN_DIGITS.get(text[:-1])
        return None if head is None else head * 10
    ten = text.find("十")
    if ten > 0:
        head = CN_DIGITS.get(text[:ten])
        tail = CN_DIGITS.get(text[ten + 1:])
        if head is None or tail is None:
            return None
        return head * 10 + tail
    return CN_DIGITS.get(text)


def _ratio_window(anchor: str, numerator: float, denominator: float) -> Optional[Tuple[float, float]]:
    if numerator <= 0 or denominator <= 0:
        return None
    ratio = min(1.0, numerator / denominator)
    if anchor == "tail":
        return 1.0 - ratio, 1.0
    return 0.0, ratio


def _anchor_for(word: str) -> str:
    return "tail" if word.startswith("后") or word.lower() == "last" else "head"


def extract_relative_range(query: str) -> Optional[Tuple[float, float]]:
    """(start_ratio, end_ratio) of the whole duration, or None."""
    for m in _CN_FRACTION_RE.finditer(query):
        window = _ratio_window(_anchor_for(m.group(1)), int(m.group(2)), int(m.group(3)))
        if window:
            return window

    for m in _CN_FENZHI_RE.finditer(query):
        # 三分之一: denominator comes first
        denominator = parse_chinese_int(m.group(2))
        numerator = parse_chinese_int(m.group(3))
        if denominator is None or numerator is None:
            continue
        window = _ratio_window(_anchor_for(m.group(1)), numerator, denominator)
        if window:
            return window

    for pattern, start_ratio, end_ratio in _NAMED_FRACTIONS:
        if pattern.search(query):
            return start_ratio, end_ratio

    for m in _EN_FRACTION_RE.finditer(query):
        window = _ratio_window(_anchor_for(m.group(1)), int(m.group(2)), int(m.group(3)))
        if window:
            return window
    return None


def ratio_window_to_range(start_ratio: float, end_ratio: float, duration_seconds: float) -> Optional[TimeRange]:
    if not duration_seconds or duration_seconds <= 0:
        return None
    start = max(0, math.floor(duration_seconds * start_ratio))
    end = min(duration_seconds, math.ceil(duration_seconds * end_ratio))
    if end <= start:
        return None
    return TimeRange(start_seconds=start, end_seconds=end)


def resolve_relative_time_range(query: str, duration_seconds: float) -> Optional[TimeRange]:
    window = extract_relative_range(query)
    if not window:
        return None
    return ratio_window_to_range(window[0], window[1], duration_seconds)


# -----------------------------
# Intent & language
# -----------------------------

def infer_intent(query: str, has_time_range: bool) -> QueryIntent:
    if has_time_range:
        return "time_range"
    if _VIDEO_REF_RE.search(query) and _OVERVIEW_CUE_RE.search(query):
        return "summary"
    if _SUMMARY_RE.search(query):
        return "summary"
    if _COMPARE_RE.search(query):
        return "compare"
    if _YES_NO_RE.search(query):
        return "yes_no"
    if _FACTOID_RE.search(query):
        return "factoid"
    return "unknown"


def should_prefer_chinese(query: str, transcript_script: ScriptType) -> bool:
    if _CJK_RE.search(query) and not _ENGLISH_REQUEST_RE.search(query):
        return True
    return transcript_script == "cjk"


def understand_transcript_query(query: str, transcript_script: ScriptType) -> QueryUnderstanding:
    """Deterministic understanding: regex time ranges, regex intent, shared tokenizer keywords."""
    normalized = (query or "").strip()
    time_range = extract_time_range(normalized)
    return QueryUnderstanding(
        raw_query=query or "",
        normalized_query=normalized,
        intent=infer_intent(normalized, time_range is not None),
        script=detect_script(normalized),
        keywords=tokenize_query(normalized),
        time_range=time_range,
        prefer_chinese=should_prefer_chinese(normalized, transcript_script),
    )


# -----------------------------
# Model-assisted understanding
# -----------------------------

UNDERSTANDING_SYSTEM_PROMPT = "\n".join([
    "You classify user intent for transcript QA.",
    "Return ONLY one JSON object. No markdown, no prose.",
    "Schema:",
    '{"intent":"summary|time_range|factoid|compare|yes_no|unknown",'
    '"range":{"type":"none|absolute|relative","startSeconds":number,"endSeconds":number,'
    '"anchor":"head|tail","numerator":number,"denominator":number},'
    '"language":"zh|en|auto"}',
    'Use range.type="absolute" with startSeconds/endSeconds for explicit timestamps.',
    'Use range.type="relative" for expressions like first/last half/third/quarter.',
    'If no range is requested, use range.type="none".',
])


def normalize_intent(value: Any) -> Optional[QueryIntent]:
    v = str(value or "").strip().lower()
    aliases = {"timerange": "time_range", "yesno": "yes_no"}
    v = aliases.get(v, v)
    return v if v in INTENTS else None  # type: ignore[return-value]


def _seconds_value(value: Any) -> Optional[float]:
    n = to_number(value)
    if n is not None:
        return n
    if isinstance(value, str):
        clock = parse_clock_string(value)
        return float(clock) if clock is not None else None
    return None


def resolve_model_range(raw: Any, duration_seconds: float) -> Optional[TimeRange]:
    """Turn the model's range object into absolute seconds; anything malformed is None."""
    if not isinstance(raw, dict):
        return None
    kind = str(raw.get("type") or "none").lower()

    if kind == "absolute":
        start = _seconds_value(raw.get("startSeconds"))
        end = _seconds_value(raw.get("endSeconds"))
        if start is None or end is None or end <= start:
            return None
        return TimeRange(start_seconds=max(0, math.floor(start)), end_seconds=max(0, math.ceil(end)))

    if kind == "relative":
        numerator = to_number(raw.get("numerator"))
        denominator = to_number(raw.get("denominator"))
        if numerator is None or denominator is None:
            return None
        anchor = "tail" if str(raw.get("anchor") or "head").lower() == "tail" else "head"
        window = _ratio_window(anchor, numerator, denominator)
        if not window:
            return None
        return ratio_window_to_range(window[0], window[1], duration_seconds)

    return None


def infer_understanding_with_llm(
    llm: Any,
    query: str,
    duration_seconds: float,
    deadline_seconds: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Ask the model for {intent, time_range, prefer_chinese}. Keys are only
    present when the model produced a usable value.
    """
    user = "\n".join([
        f"Query: {query}",
        f"Transcript duration seconds: {max(0, math.floor(duration_seconds or 0))}",
        "Output JSON now.",
    ])
    raw = chat_text(
        llm,
        [{"role": "system", "content": UNDERSTANDING_SYSTEM_PROMPT}, {"role": "user", "content": user}],
        deadline_seconds,
    )
    parsed = safe_json(raw) if raw else None
    if parsed is None:
        if raw:
            log("understanding", "model output was not a JSON object; using regex understanding")
        return {}

    out: Dict[str, Any] = {}
    intent = normalize_intent(parsed.get("intent"))
    if intent:
        out["intent"] = intent
    time_range = resolve_model_range(parsed.get("range"), duration_seconds)
    if time_range:
        out["time_range"] = time_range
    language = str(parsed.get("language") or "").lower()
    if language in ("zh", "en"):
        out["prefer_chinese"] = language == "zh"
    return out


def understand_query_with_llm(
    llm: Any,
    query: str,
    transcript_script: ScriptType,
    duration_seconds: float,
    deadline_seconds: Optional[float] = None,
) -> QueryUnderstanding:
    base = understand_transcript_query(query, transcript_script)

    if base.time_range is None:
        relative = resolve_relative_time_range(base.normalized_query, duration_seconds)
        if relative is not None:
            base = base.model_copy(update={
                "time_range": relative,
                "intent": "summary" if base.intent == "summary" else "time_range",
            })

    # A range found in the text is authoritative; the model is not consulted.
    if base.time_range is not None:
        return base

    hints = infer_understanding_with_llm(llm, query, duration_seconds, deadline_seconds)
    time_range = hints.get("time_range") or base.time_range
    intent = hints.get("intent")
    if intent is None:
        intent = "summary" if base.intent == "unknown" else base.intent
    if time_range is not None and intent != "summary":
        intent = "time_range"

    return base.model_copy(update={
        "intent": intent,
        "time_range": time_range,
        "prefer_chinese": hints.get("prefer_chinese", base.prefer_chinese),
    })
