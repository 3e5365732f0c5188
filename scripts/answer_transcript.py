import os
import sys
import json
from dotenv import load_dotenv

sys.path.append(os.path.abspath("."))
from transcript_qa.config_loader import load_config
from transcript_qa.engine import answer_video_query_from_transcript
from transcript_qa.llm_client import build_default_llm
from transcript_qa.subtitles import build_transcript_text, looks_like_subtitles, parse_subtitle_segments
from transcript_qa.utils import text_sha256


def main(path, question):
    load_dotenv()
    config = load_config()
    llm = build_default_llm()

    if not os.path.exists(path):
        print(f"File not found: {path}")
        return 1

    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    if path.lower().endswith((".srt", ".vtt")) or looks_like_subtitles(text):
        text = build_transcript_text(parse_subtitle_segments(text))

    timings = {}
    result = answer_video_query_from_transcript(llm, question, text, config=config, timings=timings)

    os.makedirs("outputs", exist_ok=True)
    base = os.path.splitext(os.path.basename(path))[0]
    outj = os.path.join("outputs", f"{base}-{text_sha256(question)[:8]}.json")
    with open(outj, "w", encoding="utf-8") as f:
        json.dump({
            "file": os.path.basename(path),
            "question": question,
            "result": result.model_dump(),
            "timings_ms": timings,
            "model_info": llm.describe(),
        }, f, ensure_ascii=False, indent=2)

    print(result.content)
    print(f"Done: {outj} | Status: {result.status} | Confidence: {result.confidence}")
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print('Usage: python scripts/answer_transcript.py <transcript.txt|subtitles.srt|subtitles.vtt> "<question>"')
        sys.exit(1)
    sys.exit(main(sys.argv[1], " ".join(sys.argv[2:])))
