import re
from typing import Any, Dict, List, Optional

from .config_loader import section
from .models import EvidenceItem, QueryUnderstanding, VerificationResult
from .parser import tokenize_query

CITATION_RE = re.compile(r"\[E\d+\]")


def extract_citations(answer: str) -> List[str]:
    return CITATION_RE.findall(answer or "")


def novelty_ratio(answer: str, evidence: List[EvidenceItem]) -> float:
    """Share of the answer's tokens that never occur in the evidence; 1.0 for a token-less answer."""
    evidence_tokens = set(tokenize_query("\n".join(e.text for e in evidence)))
    answer_tokens = tokenize_query(answer)
    if not answer_tokens:
        return 1.0
    unknown = sum(1 for t in answer_tokens if t not in evidence_tokens)
    return unknown / len(answer_tokens)


def verify_grounded_answer(
    answer: str,
    evidence: List[EvidenceItem],
    understanding: QueryUnderstanding,
    config: Optional[Dict[str, Any]] = None,
) -> VerificationResult:
    if not (answer or "").strip():
        return VerificationResult(ok=False, reason="empty-answer")
    if not evidence:
        return VerificationResult(ok=False, reason="no-evidence")
    if not extract_citations(answer):
        return VerificationResult(ok=False, reason="missing-citations")

    cfg = section(config, "verification")
    if understanding.intent == "summary":
        threshold = float(cfg.get("novelty_threshold_summary", 0.65))
    else:
        threshold = float(cfg.get("novelty_threshold_default", 0.55))
    if novelty_ratio(answer, evidence) > threshold:
        return VerificationResult(ok=False, reason="unsupported-novel-terms")
    return VerificationResult(ok=True)
