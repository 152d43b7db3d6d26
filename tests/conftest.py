"""Shared fixtures: in-memory collaborators for the search core."""

import asyncio
from typing import Optional, Sequence

import pytest

from docsearch.core.exceptions import GenerationError
from docsearch.core.models.document import Chunk, ChunkMetadata, StoreHit
from docsearch.core.models.search import CandidateResult, RankedResult, RetrievalMethod


def make_chunk(
    source_id: str = "doc.txt",
    index: int = 0,
    text: Optional[str] = None,
    importance: float = 0.0,
    word_count: int = 0,
) -> Chunk:
    text = text if text is not None else f"Chunk {index} of {source_id}."
    return Chunk(
        source_id=source_id,
        sequence_index=index,
        start=index * 100,
        end=index * 100 + len(text),
        text=text,
        metadata=ChunkMetadata(importance=importance, word_count=word_count),
    )


def make_result(
    chunk: Chunk,
    fused: float = 0.5,
    distance: Optional[float] = None,
    certainty: Optional[float] = None,
) -> RankedResult:
    candidate = CandidateResult(
        chunk=chunk,
        method=RetrievalMethod.VECTOR,
        raw_score=fused,
        rank=1,
        distance=distance,
        certainty=certainty,
    )
    return RankedResult(candidate=candidate, vector_score=fused, fused_score=fused, relevance_score=fused)


class FakeEmbedder:
    """Deterministic embedder recording every call."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.calls: list[tuple[str, str]] = []
        self._fail = fail
        self._delay = delay

    async def embed(self, text: str, max_input_length: int = 8000, kind: str = "query") -> list[float]:
        self.calls.append((text, kind))
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._fail:
            raise GenerationError("embedder down")
        return [float(len(text[:max_input_length])), 1.0, 0.0]


class FakeVectorStore:
    """In-memory store returning preset hit lists."""

    def __init__(
        self,
        vector_hits: Sequence[StoreHit] = (),
        keyword_hits: Sequence[StoreHit] = (),
        hybrid_hits: Sequence[StoreHit] = (),
    ):
        self.vector_hits = list(vector_hits)
        self.keyword_hits = list(keyword_hits)
        self.hybrid_hits = list(hybrid_hits)
        self.stored: list[tuple[Chunk, list[float]]] = []
        self.upsert_batches: list[int] = []
        self.schema_calls = 0
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()

    def _check(self, name: str) -> None:
        if name in self.fail_on:
            raise ConnectionError(f"{name} unavailable")

    async def ensure_schema(self) -> None:
        self.schema_calls += 1

    async def upsert(self, chunks, embeddings) -> None:
        self._check("upsert")
        self.upsert_batches.append(len(chunks))
        self.stored.extend(zip(chunks, embeddings))

    async def query_by_vector(self, embedding, k):
        self.calls.append(("vector", k))
        self._check("vector")
        return self.vector_hits[:k]

    async def query_by_keyword(self, text, fields, k):
        self.calls.append(("keyword", text, tuple(fields), k))
        self._check("keyword")
        return self.keyword_hits[:k]

    async def query_hybrid(self, text, embedding, alpha, k):
        self.calls.append(("hybrid", text, alpha, k))
        self._check("hybrid")
        return self.hybrid_hits[:k]

    async def count(self) -> int:
        return len(self.stored)


class FakeLLM:
    """Returns queued replies; an Exception in the queue is raised instead."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def generate(self, messages, max_tokens=None, temperature=None) -> str:
        self.calls.append({"messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def store():
    return FakeVectorStore()
