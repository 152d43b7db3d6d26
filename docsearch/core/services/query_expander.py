"""Query expander - LLM-generated query variants and enhancement."""

import logging
import re

from ..exceptions import GenerationError
from ..protocols.llm import LLMProtocol
from ..timeouts import call_with_timeout

logger = logging.getLogger(__name__)

VARIATIONS_PROMPT = (
    "Generate 3-5 alternative phrasings of the given query to improve search "
    "results. Focus on synonyms, different perspectives, and more specific terms. "
    "Return one query per line without commentary."
)

ENHANCE_PROMPT = (
    "You are a helpful assistant that enhances search queries for document "
    "retrieval. Transform the user query into a more specific and detailed search "
    "query that would help find relevant information in documents. Keep it concise "
    "but comprehensive. Return only the enhanced query."
)

# "1. ", "2) ", "- ", "* ", "• "
_LIST_MARKER_RE = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")


class QueryExpander:
    """Produces query variants; never aborts a search."""

    def __init__(
        self,
        llm: LLMProtocol,
        max_variants: int = 4,
        timeout: float = 30.0,
    ):
        """Initialize expander.

        Args:
            llm: Text-generation client.
            max_variants: Variants kept in addition to the original query.
            timeout: Seconds allowed per LLM call.
        """
        self._llm = llm
        self._max_variants = max_variants
        self._timeout = timeout

    async def expand(self, query: str) -> list[str]:
        """Original query followed by up to `max_variants` distinct variants.

        Any collaborator failure degrades to [query].
        """
        try:
            raw = await call_with_timeout(
                self._llm.generate(
                    [
                        {"role": "system", "content": VARIATIONS_PROMPT},
                        {
                            "role": "user",
                            "content": f'Original query: "{query}"\n\nGenerate alternative queries:',
                        },
                    ],
                    max_tokens=200,
                    temperature=0.7,
                ),
                self._timeout,
                GenerationError,
                "query expansion",
            )
        except GenerationError as e:
            logger.warning(f"Query expansion failed, using original query: {e}")
            return [query]

        if not isinstance(raw, str):
            logger.warning("Query expansion returned a non-text response, using original query")
            return [query]

        variants = self._parse_variants(raw)
        result = [query]
        seen = {query.strip().lower()}
        for variant in variants:
            lowered = variant.lower()
            if lowered in seen:
                continue
            seen.add(lowered)
            result.append(variant)
            if len(result) > self._max_variants:
                break

        logger.info(f"Query variations: {len(result) - 1} for '{query[:50]}'")
        return result

    @staticmethod
    def _parse_variants(raw: str) -> list[str]:
        variants = []
        for line in raw.splitlines():
            line = _LIST_MARKER_RE.sub("", line).strip().strip('"').strip()
            if line:
                variants.append(line)
        return variants

    async def enhance(self, query: str) -> str:
        """Rewrite the query for retrieval; the original on any failure."""
        try:
            raw = await call_with_timeout(
                self._llm.generate(
                    [
                        {"role": "system", "content": ENHANCE_PROMPT},
                        {
                            "role": "user",
                            "content": f'Enhance this search query for better document retrieval: "{query}"',
                        },
                    ],
                    max_tokens=100,
                    temperature=0.3,
                ),
                self._timeout,
                GenerationError,
                "query enhancement",
            )
        except GenerationError as e:
            logger.warning(f"Query enhancement failed, using original query: {e}")
            return query

        enhanced = raw.strip().strip('"').strip() if isinstance(raw, str) else ""
        return enhanced or query
