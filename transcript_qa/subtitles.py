import html
import re
from typing import Any, Dict, List

from .parser import clean_transcript_text, format_seconds, normalize_whitespace

_BLOCK_SPLIT_RE = re.compile(r"\n{2,}")


def clean_subtitle_text(value: str) -> str:
    # entities first so escaped markup is stripped like real tags
    return clean_transcript_text(html.unescape(value or ""))


def _full_stamp(raw: str) -> str:
    """WebVTT allows MM:SS.mmm; pad it to HH:MM:SS.mmm and use dot decimals."""
    stamp = raw.replace(",", ".")
    if stamp.count(":") == 1:
        stamp = "00:" + stamp
    return stamp


def parse_subtitle_segments(content: str) -> List[Dict[str, str]]:
    """
    Parse SRT or WebVTT content into [{"start", "end", "text"}, ...].

    Stamps are kept as strings with comma decimals normalized to dots and
    a missing hours field (WebVTT MM:SS.mmm) filled in.
    Adjacent cues repeating the same text back to back (common in
    auto-generated tracks) are merged into one.
    """
    blocks = [b.strip() for b in _BLOCK_SPLIT_RE.split((content or "").replace("\r\n", "\n")) if b.strip()]
    segments: List[Dict[str, str]] = []

    for block in blocks:
        lines = [ln.strip() for ln in block.split("\n") if ln.strip()]
        if not lines:
            continue
        if lines[0].upper() == "WEBVTT" or lines[0].startswith("NOTE"):
            continue

        timing_index = next((i for i, ln in enumerate(lines) if "-->" in ln), -1)
        if timing_index < 0:
            continue
        parts = lines[timing_index].split("-->")
        if len(parts) < 2:
            continue
        start = _full_stamp(normalize_whitespace(parts[0]))
        # drop WebVTT cue settings that follow the end stamp
        end_fields = normalize_whitespace(parts[1]).split(" ")
        end = _full_stamp(end_fields[0])
        if not start or not end:
            continue

        text = clean_subtitle_text(" ".join(lines[timing_index + 1:]))
        if not text:
            continue

        prev = segments[-1] if segments else None
        if prev and prev["text"] == text and prev["end"] == start:
            prev["end"] = end
            continue
        segments.append({"start": start, "end": end, "text": text})

    return segments


def build_transcript_text(segments: List[Dict[str, str]], include_timestamps: bool = True) -> str:
    if include_timestamps:
        return "\n".join(f"[{s['start']} --> {s['end']}] {s['text']}" for s in segments)
    return "\n".join(s["text"] for s in segments)


def segments_to_transcript_text(segments: List[Dict[str, Any]]) -> str:
    """Render whisper-style {"text", "start", "end"} segments (seconds) as transcript lines."""
    lines: List[str] = []
    for seg in segments or []:
        text = (seg.get("text") or "").strip()
        if not text:
            continue
        start = float(seg.get("start", 0))
        end = float(seg.get("end", 0))
        lines.append(f"[{_stamp(start)} --> {_stamp(end)}] {text}")
    return "\n".join(lines)


def _stamp(seconds: float) -> str:
    total_ms = int(round(max(seconds, 0.0) * 1000))
    return format_seconds(total_ms // 1000)[:-3] + f"{total_ms % 1000:03d}"


def looks_like_subtitles(content: str) -> bool:
    head = (content or "").lstrip()[:200]
    if head.upper().startswith("WEBVTT"):
        return True
    return bool(re.search(r"^\d+\s*\n\s*\d{2}:\d{2}:\d{2}[.,]\d{3}\s*-->", head, re.MULTILINE))
