from typing import List, Optional
import os
from sentence_transformers import SentenceTransformer

EMBED_MODEL_NAME = os.environ.get("EMBED_MODEL", "paraphrase-multilingual-MiniLM-L12-v2")

_embed_model: Optional[SentenceTransformer] = None


def get_embed_model() -> SentenceTransformer:
    """Process-wide SentenceTransformer, loaded on first use (EMBED_MODEL overrides the name)."""
    global _embed_model
    if _embed_model is None:
        os.environ.setdefault("TOKENIZERS_PARALLELISM", "false")
        _embed_model = SentenceTransformer(EMBED_MODEL_NAME)
    return _embed_model


class SentenceTransformerEmbedder:
    """Local embed_texts capability; multilingual so CJK and Latin share one space."""

    def __init__(self, model: Optional[SentenceTransformer] = None):
        self._model = model

    @property
    def model(self) -> SentenceTransformer:
        if self._model is None:
            self._model = get_embed_model()
        return self._model

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        emb = self.model.encode(list(texts), normalize_embeddings=True)
        return emb.tolist()
