from transcript_qa.models import EvidenceItem, QueryUnderstanding
from transcript_qa.verifier import extract_citations, novelty_ratio, verify_grounded_answer

EVIDENCE = [
    EvidenceItem(segment_id="s-1", stamp="[00:00:00.000 --> 00:00:05.000]", start_seconds=0.0,
                 text="python tools configure deploy", score=1.0),
]


def _u(intent):
    return QueryUnderstanding(raw_query="q", normalized_query="q", intent=intent, script="latin")


def test_empty_answer():
    assert verify_grounded_answer("   ", EVIDENCE, _u("factoid")).reason == "empty-answer"


def test_no_evidence():
    assert verify_grounded_answer("python [E1]", [], _u("factoid")).reason == "no-evidence"


def test_answers_without_citations_always_fail():
    for answer in ("python tools configure deploy", "E1", "[e1] python", "[E] tools", "(E1) deploy"):
        res = verify_grounded_answer(answer, EVIDENCE, _u("summary"))
        assert res.ok is False
        assert res.reason == "missing-citations"


def test_ungrounded_draft_is_rejected():
    draft = "The image shows a fluffy cat with long fur and a curious expression on a dark background [E1]."
    res = verify_grounded_answer(draft, EVIDENCE, _u("summary"))
    assert res.ok is False
    assert res.reason == "unsupported-novel-terms"


def test_grounded_answer_passes():
    res = verify_grounded_answer("Configure python tools, then deploy [E1]", EVIDENCE, _u("factoid"))
    assert res.ok is True
    assert res.reason is None


def test_summaries_get_more_room_for_paraphrase():
    answer = "python tools alpha beta gamma [E1]"
    assert abs(novelty_ratio(answer, EVIDENCE) - 0.6) < 1e-9
    assert verify_grounded_answer(answer, EVIDENCE, _u("summary")).ok is True
    assert verify_grounded_answer(answer, EVIDENCE, _u("factoid")).reason == "unsupported-novel-terms"


def test_thresholds_come_from_config():
    answer = "python tools alpha beta gamma [E1]"
    cfg = {"verification": {"novelty_threshold_default": 0.7}}
    assert verify_grounded_answer(answer, EVIDENCE, _u("factoid"), config=cfg).ok is True


def test_tokenless_answer_is_fully_novel():
    assert novelty_ratio("[E1] [E2]", EVIDENCE) == 1.0
    assert verify_grounded_answer("[E1]", EVIDENCE, _u("summary")).reason == "unsupported-novel-terms"


def test_extract_citations():
    assert extract_citations("a [E1] b [E12] c [E] d") == ["[E1]", "[E12]"]
