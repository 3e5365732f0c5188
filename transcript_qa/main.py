import asyncio
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config_loader import load_config
from .engine import answer_video_query_from_transcript
from .llm_client import build_default_llm
from .subtitles import build_transcript_text, parse_subtitle_segments

load_dotenv()

app = FastAPI(title="Transcript QA")

config = load_config()
llm = build_default_llm()


class AnswerRequest(BaseModel):
    query: str = ""
    transcript: Optional[str] = None
    subtitles: Optional[str] = None


@app.get("/health")
def health():
    return {"status": "ok", "backends": llm.describe()}


@app.post("/answer")
async def answer(req: AnswerRequest):
    if not req.query.strip():
        return JSONResponse({"error": "Missing 'query'."}, status_code=400)

    transcript = req.transcript or ""
    if not transcript.strip() and req.subtitles:
        transcript = build_transcript_text(parse_subtitle_segments(req.subtitles))
    if not transcript.strip():
        return JSONResponse({"error": "Provide 'transcript' text or 'subtitles' (SRT/WebVTT)."}, status_code=400)

    timings: Dict[str, int] = {}
    loop = asyncio.get_running_loop()
    # model calls block; keep them off the event loop
    result = await loop.run_in_executor(
        None,
        lambda: answer_video_query_from_transcript(llm, req.query, transcript, config=config, timings=timings),
    )
    payload: Dict[str, Any] = result.model_dump()
    payload["timings_ms"] = timings
    return JSONResponse(payload)
