import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


def _embedder_factory(settings: Settings) -> Callable[[], Any]:
    if settings.embedding_provider == "openai":
        from .infrastructure.embeddings.openai_embedder import OpenAIEmbedder

        return lambda: OpenAIEmbedder(
            model=settings.embedding_model,
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
        )
    if settings.embedding_provider == "sentence_transformers":
        from .infrastructure.embeddings.sentence_transformer import (
            SentenceTransformerEmbedder,
        )

        return lambda: SentenceTransformerEmbedder(settings.embedding_model)
    raise ValueError(f"Unknown embedding provider: {settings.embedding_provider}")


def _relevance_factory(settings: Settings) -> Callable[[], Any]:
    if settings.relevance_strategy == "cross_encoder":
        from .infrastructure.rerankers.cross_encoder import CrossEncoderRelevanceStrategy

        return lambda: CrossEncoderRelevanceStrategy(settings.reranker_model)
    if settings.relevance_strategy == "heuristic":
        from .core.strategies.relevance import HeuristicRelevanceStrategy

        return HeuristicRelevanceStrategy
    raise ValueError(f"Unknown relevance strategy: {settings.relevance_strategy}")


def configure_container(settings: Settings) -> Container:
    """Build a container wired with all dependencies.

    Each call returns a fresh container; nothing is shared at module level.

    Args:
        settings: Application settings.

    Returns:
        Configured container.
    """
    from .core.protocols.embedder import EmbedderProtocol
    from .core.protocols.llm import LLMProtocol
    from .core.protocols.vector_store import VectorStoreProtocol
    from .core.services.fusion_service import FusionEngine
    from .core.services.ingest_service import IngestService
    from .core.services.query_expander import QueryExpander
    from .core.services.ranker import ResultRanker
    from .core.services.search_service import SearchService
    from .core.services.segmenter import Segmenter
    from .core.services.synthesis_service import Synthesizer
    from .core.strategies.relevance import RelevanceStrategy
    from .infrastructure.llm.openai_client import OpenAIChatClient
    from .infrastructure.vector_stores.weaviate_store import WeaviateVectorStore

    container = Container()
    timeout = settings.collaborator_timeout

    container.register(EmbedderProtocol, _embedder_factory(settings), singleton=True)

    container.register(
        VectorStoreProtocol,
        lambda: WeaviateVectorStore(
            url=settings.weaviate_url,
            class_name=settings.weaviate_class,
            api_key=settings.weaviate_api_key,
            timeout=timeout,
        ),
        singleton=True,
    )

    container.register(
        LLMProtocol,
        lambda: OpenAIChatClient(
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        ),
        singleton=True,
    )

    container.register(RelevanceStrategy, _relevance_factory(settings), singleton=True)

    container.register(Segmenter, Segmenter, singleton=True)

    container.register(
        FusionEngine,
        lambda: FusionEngine(
            embedder=container.resolve(EmbedderProtocol),
            vector_store=container.resolve(VectorStoreProtocol),
            timeout=timeout,
            max_input_length=settings.embedding_max_input_length,
        ),
        singleton=True,
    )

    container.register(
        QueryExpander,
        lambda: QueryExpander(llm=container.resolve(LLMProtocol), timeout=timeout),
        singleton=True,
    )

    container.register(
        ResultRanker,
        lambda: ResultRanker(container.resolve(RelevanceStrategy)),
        singleton=True,
    )

    container.register(
        Synthesizer,
        lambda: Synthesizer(
            llm=container.resolve(LLMProtocol),
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            timeout=timeout,
        ),
        singleton=True,
    )

    container.register(
        SearchService,
        lambda: SearchService(
            fusion_engine=container.resolve(FusionEngine),
            expander=container.resolve(QueryExpander),
            ranker=container.resolve(ResultRanker),
            synthesizer=container.resolve(Synthesizer),
            default_config=settings.search_config(),
        ),
        singleton=True,
    )

    container.register(
        IngestService,
        lambda: IngestService(
            embedder=container.resolve(EmbedderProtocol),
            vector_store=container.resolve(VectorStoreProtocol),
            segmenter=container.resolve(Segmenter),
            segmenter_config=settings.segmenter_config(),
            batch_size=settings.ingest_batch_size,
            concurrency=settings.ingest_concurrency,
            wave_delay=settings.ingest_wave_delay,
            timeout=timeout,
            max_input_length=settings.embedding_max_input_length,
        ),
        singleton=True,
    )

    logger.info("Container configured")
    return container
