from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional

QueryIntent = Literal["summary", "time_range", "factoid", "compare", "yes_no", "unknown"]
ScriptType = Literal["cjk", "latin", "mixed", "unknown"]
Confidence = Literal["high", "medium", "low"]
RetrievalMode = Literal["time_range", "hybrid", "timeline"]
AnswerStatus = Literal["answered", "insufficient_evidence"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class TimeRange(_Frozen):
    start_seconds: float
    end_seconds: float


class TranscriptSegment(_Frozen):
    id: str
    stamp: str
    start_seconds: float
    end_seconds: float
    text: str
    normalized_text: str
    latin_tokens: List[str] = Field(default_factory=list)
    cjk_tokens: List[str] = Field(default_factory=list)


class TranscriptDocument(_Frozen):
    segments: List[TranscriptSegment] = Field(default_factory=list)
    script: ScriptType = "unknown"
    full_text: str = ""

    @property
    def duration_seconds(self) -> float:
        return self.segments[-1].end_seconds if self.segments else 0.0


class QueryUnderstanding(_Frozen):
    raw_query: str
    normalized_query: str
    intent: QueryIntent
    script: ScriptType
    keywords: List[str] = Field(default_factory=list)
    time_range: Optional[TimeRange] = None
    prefer_chinese: bool = False


class EvidenceItem(_Frozen):
    segment_id: str
    stamp: str
    start_seconds: float
    text: str
    score: float
    reasons: List[str] = Field(default_factory=list)


class RetrievalResult(_Frozen):
    evidence: List[EvidenceItem] = Field(default_factory=list)
    confidence: Confidence = "low"
    mode: RetrievalMode = "timeline"


class VerificationResult(_Frozen):
    ok: bool
    reason: Optional[str] = None


class TranscriptQaResponse(_Frozen):
    content: str
    status: AnswerStatus
    evidence: List[EvidenceItem] = Field(default_factory=list)
    confidence: Confidence
