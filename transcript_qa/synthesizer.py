from typing import Any, Dict, List, Optional

from .config_loader import section
from .extractive import build_extractive_summary, build_not_enough_evidence_message, build_time_range_answer
from .llm_client import chat_text
from .logger import log
from .models import EvidenceItem, QueryUnderstanding


def build_evidence_block(evidence: List[EvidenceItem]) -> str:
    return "\n".join(f"{i}. [E{i}] {item.stamp} {item.text}" for i, item in enumerate(evidence, start=1))


def build_messages(query: str, understanding: QueryUnderstanding, evidence: List[EvidenceItem]) -> List[Dict[str, str]]:
    system = "\n".join([
        "You are a transcript-grounded QA assistant.",
        "Answer ONLY from the provided evidence lines.",
        "Do not use external knowledge, metadata, or guesses.",
        "For every claim, append at least one citation tag like [E1].",
        "Respond in Simplified Chinese." if understanding.prefer_chinese
        else "Respond in the same language as the user query.",
    ])
    user = "\n".join([
        f"User question: {query}",
        "",
        "Evidence lines:",
        build_evidence_block(evidence),
        "",
        "Response requirements:",
        "1) concise and directly answer the question",
        "2) cite evidence tags [E#] per statement",
        "3) if evidence is insufficient, explicitly state that",
    ])
    return [{"role": "system", "content": system}, {"role": "user", "content": user}]


def synthesize_answer(
    llm: Any,
    query: str,
    understanding: QueryUnderstanding,
    evidence: List[EvidenceItem],
    config: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Produce a cited answer. Time-range questions are always answered
    extractively; other intents go through the model and fall back to an
    extractive summary when it is missing, fails, times out or says nothing.
    """
    if not evidence:
        return build_not_enough_evidence_message(understanding.prefer_chinese)

    if understanding.intent == "time_range":
        return build_time_range_answer(understanding, evidence, config)

    deadline = section(config, "synthesis").get("model_deadline_seconds")
    answer = chat_text(llm, build_messages(query, understanding, evidence), deadline)
    if answer:
        return answer
    log("synthesizer", "no model answer; using extractive summary")
    return build_extractive_summary(understanding, evidence, config)

