"""
Deterministic, model-free answers built straight from evidence text.

Used by the synthesizer for time-range questions and whenever the model is
unavailable, and by the engine when a model draft fails verification.
"""
from typing import Any, Dict, List, Optional

from .config_loader import section
from .models import EvidenceItem, QueryUnderstanding
from .parser import format_clock
from .utils import sample_indices


def citation_index(evidence: List[EvidenceItem]) -> Dict[str, int]:
    """segment_id -> 1-based position of its first occurrence in the full list."""
    index: Dict[str, int] = {}
    for i, item in enumerate(evidence):
        index.setdefault(item.segment_id, i + 1)
    return index


def sample_evidence(evidence: List[EvidenceItem], max_items: int) -> List[EvidenceItem]:
    return [evidence[i] for i in sample_indices(len(evidence), max_items)]


def format_range_label(understanding: QueryUnderstanding) -> Optional[str]:
    tr = understanding.time_range
    if tr is None:
        return None
    return f"{format_clock(tr.start_seconds)}-{format_clock(tr.end_seconds)}"


def _line(item: EvidenceItem, cite: int, max_chars: int) -> str:
    return f"- {item.stamp} {item.text[:max_chars]} [E{cite}]"


def build_not_enough_evidence_message(prefer_chinese: bool) -> str:
    if prefer_chinese:
        return "当前 transcript 中没有足够证据回答这个问题。"
    return "There is not enough evidence in the transcript to answer this question."


def build_no_evidence_message(prefer_chinese: bool) -> str:
    if prefer_chinese:
        return "该问题在当前 transcript 中缺少足够证据，我无法确认答案。请换一个 transcript 中明确提到的问题。"
    return (
        "There is not enough evidence in the current transcript to answer this question. "
        "Please ask about content explicitly present in the transcript."
    )


def build_no_time_range_message(understanding: QueryUnderstanding) -> str:
    label = format_range_label(understanding)
    if label is None:
        return build_no_evidence_message(understanding.prefer_chinese)
    if understanding.prefer_chinese:
        return f"根据 transcript，没有定位到 {label} 这段的字幕内容。请确认时间范围是否正确。"
    return f"I could not find transcript lines within {label}. Please verify the requested time range."


def build_time_range_answer(
    understanding: QueryUnderstanding,
    evidence: List[EvidenceItem],
    config: Optional[Dict[str, Any]] = None,
) -> str:
    max_chars = int(section(config, "synthesis").get("range_line_chars", 200))
    cites = citation_index(evidence)
    lines = [_line(item, cites[item.segment_id], max_chars) for item in evidence]
    label = format_range_label(understanding)
    zh = understanding.prefer_chinese
    if label is not None:
        header = f"根据 transcript，{label} 这段主要内容如下：" if zh else f"According to the transcript, this is what is covered in {label}:"
    else:
        header = "根据 transcript，相关内容如下：" if zh else "According to the transcript, relevant evidence is:"
    return "\n".join([header] + lines)


def build_extractive_summary(
    understanding: QueryUnderstanding,
    evidence: List[EvidenceItem],
    config: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Down-sample to a handful of representative lines (first, last, evenly
    spaced interior). Citation numbers still refer to the full evidence list
    so they match what the model was shown.
    """
    cfg = section(config, "synthesis")
    max_items = int(cfg.get("summary_max_items", 6))
    max_chars = int(cfg.get("summary_line_chars", 120))
    cites = citation_index(evidence)
    lines = [_line(item, cites[item.segment_id], max_chars) for item in sample_evidence(evidence, max_items)]

    zh = understanding.prefer_chinese
    if understanding.time_range is not None:
        header = "根据 transcript，这一段的重点如下：" if zh else "According to the transcript, key points in this section are:"
    elif understanding.intent == "summary":
        header = "根据 transcript，视频重点如下：" if zh else "According to the transcript, the video highlights are:"
    else:
        header = "根据 transcript，可确认的信息如下：" if zh else "According to the transcript, confirmed evidence is:"
    return "\n".join([header] + lines)


def build_extractive_answer(
    understanding: QueryUnderstanding,
    evidence: List[EvidenceItem],
    config: Optional[Dict[str, Any]] = None,
) -> str:
    if not evidence:
        return build_not_enough_evidence_message(understanding.prefer_chinese)
    if understanding.intent == "time_range":
        return build_time_range_answer(understanding, evidence, config)
    return build_extractive_summary(understanding, evidence, config)
