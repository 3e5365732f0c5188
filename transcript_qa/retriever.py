from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config_loader import section
from .logger import log
from .models import EvidenceItem, QueryUnderstanding, RetrievalResult, TranscriptDocument, TranscriptSegment
from .utils import sample_indices


def _evidence(seg: TranscriptSegment, score: float, reasons: List[str]) -> EvidenceItem:
    return EvidenceItem(
        segment_id=seg.id,
        stamp=seg.stamp,
        start_seconds=seg.start_seconds,
        text=seg.text,
        score=round(float(score), 4),
        reasons=reasons,
    )


# -----------------------------
# Time-window filtering
# -----------------------------

def retrieve_by_time_range(document: TranscriptDocument, understanding: QueryUnderstanding) -> RetrievalResult:
    tr = understanding.time_range
    lo, hi = tr.start_seconds, tr.end_seconds
    evidence: List[EvidenceItem] = []
    fully_inside = False
    for seg in document.segments:
        # half-open overlap of [start, end) with [lo, hi)
        if seg.start_seconds < hi and seg.end_seconds > lo:
            evidence.append(_evidence(seg, 1.0, ["time-overlap"]))
            if seg.start_seconds >= lo and seg.end_seconds <= hi:
                fully_inside = True
    return RetrievalResult(
        evidence=evidence,
        confidence="high" if fully_inside else "low",
        mode="time_range",
    )


# -----------------------------
# Timeline sampling
# -----------------------------

def retrieve_timeline(document: TranscriptDocument, max_items: int) -> RetrievalResult:
    segs = document.segments
    evidence = [_evidence(segs[i], 0.0, ["timeline-sample"]) for i in sample_indices(len(segs), max_items)]
    return RetrievalResult(evidence=evidence, confidence="medium", mode="timeline")


# -----------------------------
# Lexical + semantic scoring
# -----------------------------

def lexical_scores(segments: Sequence[TranscriptSegment], keywords: Sequence[str]) -> List[Tuple[float, List[str]]]:
    """Share of query keywords found in each segment's token sets, plus the matched tokens."""
    kw = list(dict.fromkeys(keywords))
    out: List[Tuple[float, List[str]]] = []
    for seg in segments:
        tokens = set(seg.latin_tokens) | set(seg.cjk_tokens)
        hits = [k for k in kw if k in tokens]
        out.append((len(hits) / len(kw) if kw else 0.0, hits))
    return out


def cosine_scores(query_vec: Sequence[float], segment_vecs: Sequence[Sequence[float]]) -> np.ndarray:
    q = np.asarray(query_vec, dtype=float)
    m = np.asarray(segment_vecs, dtype=float)
    if q.ndim != 1 or m.ndim != 2 or m.shape[1] != q.shape[0]:
        raise ValueError("embedding shapes do not line up")
    q_norm = np.linalg.norm(q)
    m_norm = np.linalg.norm(m, axis=1)
    denom = m_norm * q_norm
    sims = np.zeros(m.shape[0], dtype=float)
    np.divide(m @ q, denom, out=sims, where=denom > 0)
    return sims


def semantic_scores(embedding_provider: Any, query: str, segments: Sequence[TranscriptSegment]) -> Optional[np.ndarray]:
    """
    One batched embed_texts call (query first, then every segment).
    None when the provider is absent, fails, or returns vectors of the wrong shape.
    """
    embed = getattr(embedding_provider, "embed_texts", None) if embedding_provider is not None else None
    if not callable(embed) or not segments:
        return None
    try:
        vectors = embed([query] + [s.text for s in segments])
        if vectors is None or len(vectors) != len(segments) + 1:
            raise ValueError(f"expected {len(segments) + 1} vectors")
        return cosine_scores(vectors[0], vectors[1:])
    except Exception as e:
        log("retriever", f"embedding signal dropped: {type(e).__name__}: {e}")
        return None


def _confidence(scores: List[float], weak_score: float, high_margin: float) -> str:
    if not scores or scores[0] < weak_score:
        return "low"
    if len(scores) == 1 or scores[0] - scores[1] >= high_margin:
        return "high"
    return "medium"


def retrieve_hybrid(
    document: TranscriptDocument,
    understanding: QueryUnderstanding,
    embedding_provider: Any = None,
    config: Optional[Dict[str, Any]] = None,
) -> RetrievalResult:
    cfg = section(config, "retrieval")
    weights = cfg.get("weights", {})
    w_lex = float(weights.get("lexical", 0.6))
    w_sem = float(weights.get("semantic", 0.4))
    top_k = int(cfg.get("top_k", 8))
    strong = float(cfg.get("semantic_strong", 0.75))

    segments = document.segments
    lexical = lexical_scores(segments, understanding.keywords)
    sims = semantic_scores(embedding_provider, understanding.normalized_query, segments)
    if sims is None:
        # lexical only: let it span the full 0..1 range
        w_lex, w_sem = 1.0, 0.0

    ranked: List[Tuple[float, int, List[str]]] = []
    for i, seg in enumerate(segments):
        lex, hits = lexical[i]
        sim = float(sims[i]) if sims is not None else 0.0
        if not hits and sim < strong:
            continue
        reasons: List[str] = []
        if hits:
            reasons.append("lexical:" + ",".join(hits))
        if sims is not None:
            reasons.append(f"embedding:{sim:.3f}")
        ranked.append((w_lex * lex + w_sem * max(sim, 0.0), i, reasons))

    ranked.sort(key=lambda r: (-r[0], segments[r[1]].start_seconds))
    ranked = ranked[:top_k]
    confidence = _confidence(
        [r[0] for r in ranked],
        float(cfg.get("weak_score", 0.15)),
        float(cfg.get("high_margin", 0.2)),
    )
    evidence = [_evidence(segments[i], score, reasons) for score, i, reasons in ranked]
    return RetrievalResult(evidence=evidence, confidence=confidence, mode="hybrid")


# -----------------------------
# Entry point
# -----------------------------

def retrieve_transcript_evidence(
    document: TranscriptDocument,
    understanding: QueryUnderstanding,
    embedding_provider: Any = None,
    config: Optional[Dict[str, Any]] = None,
) -> RetrievalResult:
    """
    Pick evidence segments for the query.

      time_range  - a window is set: every overlapping segment, chronological
      timeline    - summary questions (or nothing to match on): evenly sampled
                    coverage of the whole document
      hybrid      - otherwise: lexical token overlap, plus cosine similarity
                    when an embed_texts capability is available
    """
    if not document.segments:
        return RetrievalResult(evidence=[], confidence="low", mode="timeline")
    if understanding.time_range is not None:
        return retrieve_by_time_range(document, understanding)
    if understanding.intent == "summary" or not understanding.keywords:
        max_items = int(section(config, "retrieval").get("timeline_max_items", 12))
        return retrieve_timeline(document, max_items)
    return retrieve_hybrid(document, understanding, embedding_provider, config)
