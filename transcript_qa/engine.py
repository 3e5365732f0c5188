from typing import Any, Dict, Optional

from .config_loader import section
from .extractive import build_extractive_answer, build_no_evidence_message, build_no_time_range_message
from .logger import log, timed
from .models import QueryUnderstanding, RetrievalResult, TranscriptDocument, TranscriptQaResponse, VerificationResult
from .parser import parse_transcript_document
from .query_understanding import understand_query_with_llm, understand_transcript_query
from .retriever import retrieve_transcript_evidence
from .synthesizer import synthesize_answer
from .verifier import verify_grounded_answer


def _understand(llm: Any, query: str, document: TranscriptDocument, config: Optional[Dict[str, Any]]) -> QueryUnderstanding:
    try:
        return understand_query_with_llm(
            llm,
            query,
            document.script,
            document.duration_seconds,
            deadline_seconds=section(config, "understanding").get("model_deadline_seconds"),
        )
    except Exception as e:
        log("engine", f"understanding failed, using regex understanding: {type(e).__name__}: {e}")
        return understand_transcript_query(query, document.script)


def _retrieve(llm: Any, document: TranscriptDocument, understanding: QueryUnderstanding, config: Optional[Dict[str, Any]]) -> RetrievalResult:
    embedder = llm if callable(getattr(llm, "embed_texts", None)) else None
    try:
        return retrieve_transcript_evidence(document, understanding, embedder, config)
    except Exception as e:
        log("engine", f"retrieval failed: {type(e).__name__}: {e}")
        return RetrievalResult(evidence=[], confidence="low", mode="timeline")


def answer_video_query_from_transcript(
    llm: Any,
    user_query: str,
    transcript_text: str,
    config: Optional[Dict[str, Any]] = None,
    timings: Optional[Dict[str, int]] = None,
) -> TranscriptQaResponse:
    """
    Answer a question about a video from its transcript alone.

    `llm` may expose stream_chat and/or embed_texts, or be None. The result is
    either a cited answer or an explicit insufficient_evidence response; this
    function does not raise.
    """
    with timed("parse", timings):
        document = parse_transcript_document(transcript_text)

    with timed("understand", timings):
        understanding = _understand(llm, user_query or "", document, config)

    with timed("retrieve", timings):
        retrieval = _retrieve(llm, document, understanding, config)

    if not retrieval.evidence:
        if understanding.intent == "time_range" or understanding.time_range is not None:
            content = build_no_time_range_message(understanding)
        else:
            content = build_no_evidence_message(understanding.prefer_chinese)
        return TranscriptQaResponse(content=content, status="insufficient_evidence", evidence=[], confidence="low")

    with timed("synthesize", timings):
        try:
            answer = synthesize_answer(llm, user_query or "", understanding, retrieval.evidence, config)
        except Exception as e:
            log("engine", f"synthesis failed: {type(e).__name__}: {e}")
            answer = ""

    with timed("verify", timings):
        try:
            verification = verify_grounded_answer(answer, retrieval.evidence, understanding, config)
        except Exception as e:
            log("engine", f"verification failed: {type(e).__name__}: {e}")
            verification = VerificationResult(ok=False, reason="verifier-error")

    if not verification.ok:
        log("verify", f"rejected answer ({verification.reason}); returning extractive rendering")
        try:
            content = build_extractive_answer(understanding, retrieval.evidence, config)
        except Exception as e:
            log("engine", f"extractive rendering failed, retrying with defaults: {type(e).__name__}: {e}")
            content = build_extractive_answer(understanding, retrieval.evidence)
        return TranscriptQaResponse(
            content=content,
            status="insufficient_evidence" if retrieval.confidence == "low" else "answered",
            evidence=retrieval.evidence,
            confidence=retrieval.confidence,
        )

    return TranscriptQaResponse(
        content=answer,
        status="answered",
        evidence=retrieval.evidence,
        confidence=retrieval.confidence,
    )
