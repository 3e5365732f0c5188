from .engine import answer_video_query_from_transcript
from .models import EvidenceItem, QueryUnderstanding, RetrievalResult, TranscriptDocument, TranscriptQaResponse
from .parser import parse_transcript_document, tokenize_query

__all__ = [
    "answer_video_query_from_transcript",
    "parse_transcript_document",
    "tokenize_query",
    "EvidenceItem",
    "QueryUnderstanding",
    "RetrievalResult",
    "TranscriptDocument",
    "TranscriptQaResponse",
]
