from typing import Optional

from pydantic_settings import BaseSettings

from ..core.models.search import SearchConfig, SearchMode
from ..core.services.segmenter import ChunkPolicy, SegmenterConfig


class Settings(BaseSettings):

    weaviate_url: str = "http://localhost:8080"
    weaviate_api_key: Optional[str] = None
    weaviate_class: str = "DocumentChunk"

    llm_base_url: str = "https://api.openai.com/v1"
    llm_api_key: str = "not-needed"
    llm_model: str = "gpt-4o-mini"
    llm_max_tokens: int = 2000
    llm_temperature: float = 0.3

    # "sentence_transformers" or "openai"
    embedding_provider: str = "sentence_transformers"
    embedding_model: str = "intfloat/multilingual-e5-base"
    embedding_max_input_length: int = 8000

    reranker_model: str = "BAAI/bge-reranker-v2-m3"
    # "heuristic" or "cross_encoder"
    relevance_strategy: str = "heuristic"

    docs_path: str = "./docs"

    # Chunking
    chunk_policy: str = "hybrid"
    chunk_size: int = 1500
    chunk_min_size: int = 200
    chunk_overlap: int = 200
    chunk_overlap_sentences: int = 2
    chunk_overlap_paragraphs: int = 1
    chunk_min_length: int = 50

    # Ingestion
    ingest_batch_size: int = 5
    ingest_concurrency: int = 3
    ingest_wave_delay: float = 0.1

    # Search
    search_mode: str = "advanced"
    search_limit: int = 10
    search_max_results: int = 20
    search_vector_weight: Optional[float] = 0.7
    search_diversity_threshold: float = 0.8
    search_max_variants: int = 3
    search_enable_enhancement: bool = False

    collaborator_timeout: float = 30.0
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    def search_config(self) -> SearchConfig:
        return SearchConfig(
            limit=self.search_limit,
            max_results=self.search_max_results,
            vector_weight=self.search_vector_weight,
            diversity_threshold=self.search_diversity_threshold,
            mode=SearchMode(self.search_mode),
            max_variants=self.search_max_variants,
            enable_enhancement=self.search_enable_enhancement,
        )

    def segmenter_config(self) -> SegmenterConfig:
        return SegmenterConfig(
            policy=ChunkPolicy(self.chunk_policy),
            max_chunk_size=self.chunk_size,
            min_chunk_size=self.chunk_min_size,
            overlap=self.chunk_overlap,
            overlap_sentences=self.chunk_overlap_sentences,
            overlap_paragraphs=self.chunk_overlap_paragraphs,
            min_chunk_length=self.chunk_min_length,
        )


settings = Settings()
