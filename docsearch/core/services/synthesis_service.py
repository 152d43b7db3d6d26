"""Synthesis service - grounded multi-source answer generation."""

import logging
import re
from typing import Optional, Sequence

from ..exceptions import GenerationError
from ..models.search import RankedResult
from ..protocols.llm import LLMProtocol
from ..timeouts import call_with_timeout

logger = logging.getLogger(__name__)

SYNTHESIS_SYSTEM_PROMPT = """You are an expert document analyst. Answer the query using ONLY the document excerpts provided.

Rules:
1. Use only information stated in the excerpts. Do not add outside knowledge.
2. Combine related information from different documents.
3. Identify contradictions between documents and reconcile them, stating which source says what.
4. Cite sources as [Source: <id>] using only the source ids listed in the excerpts.
5. If the excerpts do not contain the answer, say so clearly."""

SYNTHESIS_USER_PROMPT = """Query: "{query}"

Document excerpts:
{context}

Answer the query from these excerpts, with citations."""

_CITATION_RE = re.compile(r"\s?\[Source:\s*([^\]]+?)\s*\]")


class Synthesizer:
    """Groups results by source and asks the LLM for a cited answer."""

    def __init__(
        self,
        llm: LLMProtocol,
        max_chars_per_source: int = 1000,
        max_tokens: int = 2000,
        temperature: float = 0.3,
        timeout: float = 30.0,
    ):
        """Initialize synthesizer.

        Args:
            llm: Text-generation client.
            max_chars_per_source: Context characters kept per source.
            max_tokens: Answer token cap.
            temperature: Sampling temperature.
            timeout: Seconds allowed for the LLM call.
        """
        self._llm = llm
        self._max_chars = max_chars_per_source
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout

    def build_context(self, results: Sequence[RankedResult]) -> tuple[str, list[str]]:
        """Format results as one bounded block per source.

        Returns:
            Context text and the source ids it contains, in first-seen order.
        """
        groups: dict[str, list[str]] = {}
        for r in results:
            groups.setdefault(r.source_id, []).append(r.content)

        blocks = []
        for source_id, contents in groups.items():
            content = "\n\n".join(contents)
            if len(content) > self._max_chars:
                content = content[: self._max_chars] + "..."
            blocks.append(f"Source: {source_id}\nContent: {content}")

        return "\n\n---\n\n".join(blocks), list(groups)

    async def synthesize(self, results: Sequence[RankedResult], query: str) -> Optional[str]:
        """Answer the query from the results, or None when that is not possible."""
        if not results:
            return None

        context, sources = self.build_context(results)
        messages = [
            {"role": "system", "content": SYNTHESIS_SYSTEM_PROMPT},
            {"role": "user", "content": SYNTHESIS_USER_PROMPT.format(query=query, context=context)},
        ]

        try:
            answer = await call_with_timeout(
                self._llm.generate(messages, max_tokens=self._max_tokens, temperature=self._temperature),
                self._timeout,
                GenerationError,
                "answer synthesis",
            )
        except GenerationError as e:
            logger.warning(f"Synthesis failed: {e}")
            return None

        if not isinstance(answer, str) or not answer.strip():
            return None

        answer = self._strip_unknown_citations(answer.strip(), set(sources))
        logger.info(f"Synthesized answer from {len(sources)} sources for '{query[:50]}'")
        return answer

    @staticmethod
    def _strip_unknown_citations(answer: str, sources: set[str]) -> str:
        """Remove [Source: x] markers naming sources that were not supplied.

        A marker may list several comma-separated sources; it is kept only
        when every one of them was supplied.
        """

        def _replace(match: re.Match) -> str:
            cited = [source.strip() for source in match.group(1).split(",")]
            if all(source in sources for source in cited):
                return match.group(0)
            logger.debug(f"Dropped citation to unknown source: {match.group(1)}")
            return ""

        return _CITATION_RE.sub(_replace, answer)
