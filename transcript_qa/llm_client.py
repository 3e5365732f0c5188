import json
import os
import time
from typing import Any, Dict, Iterable, Iterator, List, Optional

import requests

from .logger import log

# -------- Backend knobs --------
OLLAMA_HOST = os.environ.get("OLLAMA_HOST", "http://localhost:11434").rstrip("/")
OLLAMA_TIMEOUT = int(os.environ.get("OLLAMA_TIMEOUT", "60"))
OPENAI_TIMEOUT = int(os.environ.get("OPENAI_TIMEOUT", "60"))
OPENAI_MODEL_DEFAULT = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_EMBED_MODEL_DEFAULT = os.environ.get("OPENAI_EMBED_MODEL", "text-embedding-3-small")

Message = Dict[str, str]
Chunk = Dict[str, Any]


# ----------------- Stream consumption -----------------

def collect_stream_text(stream: Iterable[Chunk], deadline_seconds: Optional[float] = None) -> Optional[str]:
    """
    Concatenate the content chunks of a chat stream.

    tool_call chunks are ignored and a done chunk ends the stream. The deadline
    is checked between chunks: once it passes the stream is closed and None is
    returned, which callers treat as "model unavailable". A chunk already being
    produced is never interrupted.
    """
    started = time.monotonic()
    parts: List[str] = []
    it = iter(stream)
    try:
        for chunk in it:
            if deadline_seconds is not None and time.monotonic() - started > deadline_seconds:
                log("llm", f"stream exceeded {deadline_seconds}s deadline")
                return None
            if not isinstance(chunk, dict):
                continue
            kind = chunk.get("type")
            if kind == "done":
                break
            if kind == "content" and chunk.get("content"):
                parts.append(str(chunk["content"]))
    finally:
        close = getattr(it, "close", None)
        if callable(close):
            close()
    return "".join(parts)


def chat_text(llm: Any, messages: List[Message], deadline_seconds: Optional[float] = None) -> str:
    """Run one chat turn through llm.stream_chat; "" when the capability is missing or fails."""
    stream_chat = getattr(llm, "stream_chat", None) if llm is not None else None
    if not callable(stream_chat):
        return ""
    try:
        out = collect_stream_text(stream_chat(messages), deadline_seconds)
    except Exception as e:
        log("llm", f"stream_chat failed: {type(e).__name__}: {e}")
        return ""
    return (out or "").strip()


# ----------------- Ollama path (local) -----------------

class OllamaChat:
    def __init__(self, model: str, host: str = OLLAMA_HOST, embed_model: str = "", timeout: int = OLLAMA_TIMEOUT):
        self.model = model
        self.host = host.rstrip("/")
        self.embed_model = embed_model
        self.timeout = timeout

    def stream_chat(self, messages: List[Message]) -> Iterator[Chunk]:
        r = requests.post(
            f"{self.host}/api/chat",
            json={
                "model": self.model,
                "messages": messages,
                "stream": True,
                "options": {"temperature": 0},
            },
            stream=True,
            timeout=self.timeout,
        )
        r.raise_for_status()
        try:
            for line in r.iter_lines(decode_unicode=True):
                if not line:
                    continue
                data = json.loads(line)
                content = (data.get("message") or {}).get("content") or ""
                if content:
                    yield {"type": "content", "content": content}
                if data.get("done"):
                    break
        finally:
            r.close()
        yield {"type": "done"}

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        r = requests.post(
            f"{self.host}/api/embed",
            json={"model": self.embed_model or self.model, "input": list(texts)},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json().get("embeddings", [])


# ----------------- OpenAI path -----------------

class OpenAIChat:
    def __init__(self, model: str = OPENAI_MODEL_DEFAULT, embed_model: str = OPENAI_EMBED_MODEL_DEFAULT, client: Any = None):
        if client is None:
            from openai import OpenAI
            client = OpenAI(timeout=OPENAI_TIMEOUT)
        self.client = client
        self.model = model
        self.embed_model = embed_model

    def stream_chat(self, messages: List[Message]) -> Iterator[Chunk]:
        stream = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=0,
            stream=True,
        )
        for event in stream:
            if not event.choices:
                continue
            delta = event.choices[0].delta
            if getattr(delta, "tool_calls", None):
                yield {"type": "tool_call"}
            if delta.content:
                yield {"type": "content", "content": delta.content}
        yield {"type": "done"}

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        resp = self.client.embeddings.create(model=self.embed_model, input=list(texts))
        return [item.embedding for item in resp.data]


# ----------------- Capability bundle -----------------

class QaModel:
    """
    Bundles an optional chat backend and an optional embedder. Only the
    capabilities that are actually backed show up as attributes, so callers
    can probe with getattr().
    """

    def __init__(self, chat: Any = None, embedder: Any = None):
        self.chat = chat
        self.embedder = embedder
        if chat is not None:
            self.stream_chat = chat.stream_chat
        if embedder is not None:
            self.embed_texts = embedder.embed_texts

    def describe(self) -> Dict[str, str]:
        return {
            "chat": type(self.chat).__name__ if self.chat is not None else "none",
            "embeddings": type(self.embedder).__name__ if self.embedder is not None else "none",
        }


def build_default_llm() -> QaModel:
    """Pick backends from the environment: Ollama first, OpenAI if a key is present."""
    chat: Any = None
    embedder: Any = None

    ollama_model = os.environ.get("OLLAMA_MODEL", "").strip()
    ollama_embed = os.environ.get("OLLAMA_EMBED_MODEL", "").strip()
    if ollama_model:
        chat = OllamaChat(ollama_model, embed_model=ollama_embed)
        if ollama_embed:
            embedder = chat
    elif os.environ.get("OPENAI_API_KEY"):
        chat = OpenAIChat()
        embedder = chat

    if os.environ.get("USE_LOCAL_EMBEDDINGS", "false").lower() == "true":
        from .embeddings import SentenceTransformerEmbedder
        embedder = SentenceTransformerEmbedder()

    return QaModel(chat=chat, embedder=embedder)
