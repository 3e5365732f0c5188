import re
from typing import List, Optional

from .models import ScriptType, TranscriptDocument, TranscriptSegment

# -----------------------------
# Text normalization
# -----------------------------

_WS_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]*>")
_POS_CODE_RE = re.compile(r"\{\\an\d\}")
_BRACKET_RE = re.compile(r"\[[^\]]*?\]")
_LEADING_BRACKET_RE = re.compile(r"^\[[^\]]+\]\s*")

LINE_RE = re.compile(
    r"^\[(\d{2}:\d{2}:\d{2}[.,]\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2}[.,]\d{3})\]\s*(.+)$"
)

# Width of the window given to lines that carry no timestamp.
SYNTHETIC_WINDOW_SECONDS = 4.0


def normalize_whitespace(value: str) -> str:
    return _WS_RE.sub(" ", value or "").strip()


def clean_transcript_text(value: str) -> str:
    """Drop markup tags, subtitle positioning codes and [bracketed] annotations."""
    value = _TAG_RE.sub(" ", value or "")
    value = _POS_CODE_RE.sub(" ", value)
    value = _BRACKET_RE.sub(" ", value)
    return normalize_whitespace(value)


def parse_hms_to_seconds(value: str) -> Optional[float]:
    parts = (value or "").split(":")
    if len(parts) != 3:
        return None
    try:
        hh = float(parts[0])
        mm = float(parts[1])
        ss = float(parts[2].replace(",", "."))
    except ValueError:
        return None
    if mm < 0 or mm > 59 or ss < 0 or ss >= 60:
        return None
    return hh * 3600 + mm * 60 + ss


def format_seconds(total_seconds: float) -> str:
    s = int(max(0.0, float(total_seconds)))
    return f"{s // 3600:02d}:{(s % 3600) // 60:02d}:{s % 60:02d}.000"


def format_clock(total_seconds: float) -> str:
    """MM:SS slice of format_seconds; hours are dropped."""
    return format_seconds(total_seconds)[3:8]


# -----------------------------
# Script detection
# -----------------------------

_CJK_CHAR_RE = re.compile(r"[\u4e00-\u9fff]")
_LATIN_CHAR_RE = re.compile(r"[A-Za-z]")


def detect_script(value: str) -> ScriptType:
    compact = re.sub(r"\s", "", value or "")
    if not compact:
        return "unknown"
    cjk_count = len(_CJK_CHAR_RE.findall(compact))
    latin_count = len(_LATIN_CHAR_RE.findall(compact))
    if cjk_count == 0 and latin_count == 0:
        return "unknown"
    if cjk_count / len(compact) > 0.6:
        return "cjk"
    if latin_count / len(compact) > 0.6:
        return "latin"
    return "mixed"


# -----------------------------
# Tokenization (shared by parsing, retrieval and verification)
# -----------------------------

CJK_STOPWORDS = frozenset([
    "这个", "那个", "我们", "你们", "他们", "以及", "然后", "就是",
    "一个", "一下", "视频", "内容", "什么", "怎么", "这里", "那里",
])

LATIN_STOPWORDS = frozenset([
    "this", "that", "with", "from", "have", "been", "will", "about",
    "there", "which", "video", "transcript", "summary", "more", "detail",
    "what", "when", "where",
    # articles, conjunctions and other function words
    "the", "and", "for", "are", "but", "not", "you", "your", "was", "were",
    "its", "into", "than", "then", "does", "did", "how", "who", "why", "can",
    "has", "had", "our", "they", "them", "their", "these", "those", "also", "just",
])

_LATIN_TOKEN_RE = re.compile(r"[a-z]{3,}")
_CJK_RUN_RE = re.compile(r"[\u4e00-\u9fff]{2,}")


def _dedupe(tokens: List[str]) -> List[str]:
    return list(dict.fromkeys(tokens))


def tokenize_latin(value: str) -> List[str]:
    words = _LATIN_TOKEN_RE.findall((value or "").lower())
    return _dedupe([w for w in words if w not in LATIN_STOPWORDS])


def tokenize_cjk(value: str) -> List[str]:
    tokens: List[str] = []
    for run in _CJK_RUN_RE.findall(value or ""):
        if len(run) == 2:
            if run not in CJK_STOPWORDS:
                tokens.append(run)
            continue
        # sliding bigrams over longer runs
        for i in range(len(run) - 1):
            bigram = run[i:i + 2]
            if bigram not in CJK_STOPWORDS:
                tokens.append(bigram)
    return _dedupe(tokens)


def tokenize_query(value: str) -> List[str]:
    return _dedupe(tokenize_latin(value) + tokenize_cjk(value))


# -----------------------------
# Document parsing
# -----------------------------

def _make_segment(index: int, stamp: str, start: float, end: float, text: str) -> TranscriptSegment:
    return TranscriptSegment(
        id=f"s-{index}",
        stamp=stamp,
        start_seconds=start,
        end_seconds=end,
        text=text,
        normalized_text=text.lower(),
        latin_tokens=tokenize_latin(text),
        cjk_tokens=tokenize_cjk(text),
    )


def parse_transcript_document(transcript_text: str) -> TranscriptDocument:
    """
    Parse newline separated transcript lines into a TranscriptDocument.

    Lines look like `[HH:MM:SS.mmm --> HH:MM:SS.mmm] text` (comma decimals are
    accepted). Anything else is treated as plain text and auto-timed with a
    4 second window after the latest end time seen so far. Lines whose cleaned
    text is empty are skipped. Segments keep input order; out-of-order
    timestamps are not re-sorted. Never raises.
    """
    lines = [ln.strip() for ln in (transcript_text or "").split("\n")]
    segments: List[TranscriptSegment] = []
    cursor = 0.0

    for line in lines:
        if not line:
            continue
        m = LINE_RE.match(line)
        if not m:
            text = clean_transcript_text(_LEADING_BRACKET_RE.sub("", line))
            if not text:
                continue
            start = cursor
            end = cursor + SYNTHETIC_WINDOW_SECONDS
            cursor = end
            stamp = f"[{format_seconds(start)} --> {format_seconds(end)}]"
            segments.append(_make_segment(len(segments) + 1, stamp, start, end, text))
            continue

        text = clean_transcript_text(m.group(3))
        if not text:
            continue
        raw_start = m.group(1).replace(",", ".")
        raw_end = m.group(2).replace(",", ".")
        start = parse_hms_to_seconds(raw_start)
        if start is None:
            start = cursor
        end = parse_hms_to_seconds(raw_end)
        if end is None or end <= start:
            end = max(start + 1, cursor + SYNTHETIC_WINDOW_SECONDS)
        cursor = max(cursor, end)
        segments.append(_make_segment(len(segments) + 1, f"[{raw_start} --> {raw_end}]", start, end, text))

    full_text = "\n".join(s.text for s in segments)
    return TranscriptDocument(segments=segments, script=detect_script(full_text), full_text=full_text)
