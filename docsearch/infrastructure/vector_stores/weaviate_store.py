import json
import logging
import uuid
from typing import Any, Optional, Sequence

import httpx

from docsearch.core.exceptions import RetrievalError
from docsearch.core.models.document import Chunk, ChunkMetadata, StoreHit

logger = logging.getLogger(__name__)

# Stable namespace so re-ingesting a chunk overwrites the same object
_CHUNK_NAMESPACE = uuid.UUID("6f1c1f9e-4a1e-4f7e-9a51-2c9f8f4b7d10")

_CHUNK_PROPERTIES = [
    ("content", "text"),
    ("sourceId", "text"),
    ("sequenceIndex", "int"),
    ("chunkStart", "int"),
    ("chunkEnd", "int"),
    ("pageNumber", "int"),
    ("totalPages", "int"),
    ("totalChunks", "int"),
    ("documentType", "text"),
    ("keywords", "text[]"),
    ("summary", "text"),
    ("importance", "number"),
    ("coherence", "number"),
    ("wordCount", "int"),
]

_FIELDS = " ".join(name for name, _ in _CHUNK_PROPERTIES)


class WeaviateVectorStore:
    """Vector + BM25 store using the Weaviate REST and GraphQL APIs."""

    def __init__(
        self,
        url: str = "http://localhost:8080",
        class_name: str = "DocumentChunk",
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Weaviate client.

        Args:
            url: Weaviate base URL.
            class_name: Chunk class name.
            api_key: Bearer token for secured instances.
            timeout: HTTP timeout in seconds.
            client: Preconfigured HTTP client, mainly for tests.
        """
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = client or httpx.AsyncClient(
            base_url=url.rstrip("/"), headers=headers, timeout=timeout
        )
        self._class_name = class_name
        self._schema_ready = False

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise RetrievalError(f"Weaviate {method} {path} failed: {e}") from e
        return resp

    async def _graphql(self, query: str) -> dict:
        resp = await self._request("POST", "/v1/graphql", json={"query": query})
        if resp.status_code != 200:
            raise RetrievalError(f"Weaviate GraphQL returned {resp.status_code}: {resp.text[:200]}")

        payload = resp.json()
        if payload.get("errors"):
            messages = "; ".join(e.get("message", "") for e in payload["errors"])
            raise RetrievalError(f"Weaviate GraphQL error: {messages}")
        return payload.get("data") or {}

    async def ensure_schema(self) -> None:
        """Create the chunk class if it does not exist."""
        if self._schema_ready:
            return

        resp = await self._request("GET", f"/v1/schema/{self._class_name}")
        if resp.status_code == 200:
            self._schema_ready = True
            return
        if resp.status_code != 404:
            raise RetrievalError(f"Weaviate schema lookup returned {resp.status_code}")

        definition = {
            "class": self._class_name,
            "vectorizer": "none",
            "properties": [
                {"name": name, "dataType": [data_type]} for name, data_type in _CHUNK_PROPERTIES
            ],
        }
        resp = await self._request("POST", "/v1/schema", json=definition)
        if resp.status_code not in (200, 201):
            raise RetrievalError(f"Weaviate schema creation returned {resp.status_code}: {resp.text[:200]}")

        self._schema_ready = True
        logger.info(f"Created class: {self._class_name}")

    @staticmethod
    def object_id(chunk: Chunk) -> str:
        return str(uuid.uuid5(_CHUNK_NAMESPACE, f"{chunk.source_id}_{chunk.sequence_index}"))

    @staticmethod
    def _to_properties(chunk: Chunk) -> dict[str, Any]:
        meta = chunk.metadata
        return {
            "content": chunk.text,
            "sourceId": chunk.source_id,
            "sequenceIndex": chunk.sequence_index,
            "chunkStart": chunk.start,
            "chunkEnd": chunk.end,
            "pageNumber": chunk.page_number,
            "totalPages": chunk.total_pages,
            "totalChunks": chunk.total_chunks,
            "documentType": chunk.document_type,
            "keywords": list(meta.keywords),
            "summary": meta.summary,
            "importance": meta.importance,
            "coherence": meta.coherence,
            "wordCount": meta.word_count,
        }

    @staticmethod
    def _to_chunk(props: dict[str, Any]) -> Chunk:
        coherence = props.get("coherence")
        return Chunk(
            source_id=props.get("sourceId") or "Unknown",
            sequence_index=int(props.get("sequenceIndex") or 0),
            start=int(props.get("chunkStart") or 0),
            end=int(props.get("chunkEnd") or 0),
            text=props.get("content") or "",
            metadata=ChunkMetadata(
                keywords=tuple(props.get("keywords") or ()),
                importance=float(props.get("importance") or 0.0),
                coherence=float(coherence) if coherence is not None else 1.0,
                word_count=int(props.get("wordCount") or 0),
                summary=props.get("summary") or "",
            ),
            page_number=int(props.get("pageNumber") or 1),
            total_pages=int(props.get("totalPages") or 1),
            total_chunks=int(props.get("totalChunks") or 0),
            document_type=props.get("documentType") or "general",
        )

    async def upsert(self, chunks: Sequence[Chunk], embeddings: Sequence[list[float]]) -> None:
        """Store chunks with their vectors via the batch endpoint."""
        if len(chunks) != len(embeddings):
            raise RetrievalError(
                f"Got {len(embeddings)} embeddings for {len(chunks)} chunks"
            )
        if not chunks:
            return

        objects = [
            {
                "class": self._class_name,
                "id": self.object_id(chunk),
                "properties": self._to_properties(chunk),
                "vector": list(embedding),
            }
            for chunk, embedding in zip(chunks, embeddings)
        ]
        resp = await self._request("POST", "/v1/batch/objects", json={"objects": objects})
        if resp.status_code != 200:
            raise RetrievalError(f"Weaviate batch returned {resp.status_code}: {resp.text[:200]}")

        errors = []
        for item in resp.json() or []:
            for error in ((item.get("result") or {}).get("errors") or {}).get("error") or []:
                errors.append(error.get("message", ""))
        if errors:
            raise RetrievalError(f"Weaviate batch rejected {len(errors)} objects: {errors[0]}")

        logger.debug(f"Stored {len(objects)} objects in {self._class_name}")

    async def _get(self, search: str, k: int, additional: str) -> list[dict]:
        query = (
            f"{{ Get {{ {self._class_name}({search}, limit: {int(k)}) "
            f"{{ {_FIELDS} _additional {{ {additional} }} }} }} }}"
        )
        data = await self._graphql(query)
        return (data.get("Get") or {}).get(self._class_name) or []

    async def query_by_vector(self, embedding: list[float], k: int) -> list[StoreHit]:
        rows = await self._get(
            f"nearVector: {{ vector: {json.dumps(list(embedding))} }}", k, "id distance certainty"
        )
        hits = []
        for row in rows:
            extra = row.get("_additional") or {}
            distance = extra.get("distance")
            certainty = extra.get("certainty")
            if certainty is not None:
                score = float(certainty)
            elif distance is not None:
                score = 1.0 - float(distance)
            else:
                score = 0.0
            hits.append(
                StoreHit(
                    chunk=self._to_chunk(row),
                    score=score,
                    distance=float(distance) if distance is not None else None,
                    certainty=float(certainty) if certainty is not None else None,
                )
            )
        return hits

    def _scored_hits(self, rows: list[dict]) -> list[StoreHit]:
        # Weaviate returns bm25/hybrid scores as strings
        return [
            StoreHit(
                chunk=self._to_chunk(row),
                score=float((row.get("_additional") or {}).get("score") or 0.0),
            )
            for row in rows
        ]

    async def query_by_keyword(self, text: str, fields: Sequence[str], k: int) -> list[StoreHit]:
        rows = await self._get(
            f"bm25: {{ query: {json.dumps(text)}, properties: {json.dumps(list(fields))} }}",
            k,
            "id score",
        )
        return self._scored_hits(rows)

    async def query_hybrid(
        self, text: str, embedding: list[float], alpha: float, k: int
    ) -> list[StoreHit]:
        rows = await self._get(
            f"hybrid: {{ query: {json.dumps(text)}, vector: {json.dumps(list(embedding))}, "
            f"alpha: {float(alpha)} }}",
            k,
            "id score",
        )
        return self._scored_hits(rows)

    async def count(self) -> int:
        """Get chunk count."""
        data = await self._graphql(
            f"{{ Aggregate {{ {self._class_name} {{ meta {{ count }} }} }} }}"
        )
        groups = (data.get("Aggregate") or {}).get(self._class_name) or []
        if not groups:
            return 0
        return int((groups[0].get("meta") or {}).get("count") or 0)
