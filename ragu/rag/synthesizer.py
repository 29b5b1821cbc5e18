"""Answer synthesis: feed ranked matches and the question to the chat model."""
import json
from datetime import timedelta
from typing import List, Sequence, Tuple

import structlog

from ragu.llm_client import OllamaClient
from ragu.rag.store import SimilarityMatch

logger = structlog.get_logger()

PROMPT_TEMPLATE = """You answer questions about a set of database records.

RECORDS (JSON, most relevant first):
{records}

INSTRUCTIONS:
- Answer using only the records above
- If the records do not contain the answer, say so
- Mention the rank of the records you relied on

QUESTION:
{question}
"""


def serialize_matches(matches: Sequence[SimilarityMatch]) -> str:
    """List the matches as a JSON array of ``{rank, score, text}`` objects."""
    records: List[dict] = [
        {"rank": rank, "score": round(match.score, 4), "text": match.text}
        for rank, match in enumerate(matches, 1)
    ]
    return json.dumps(records, ensure_ascii=False, indent=2)


def build_prompt(matches: Sequence[SimilarityMatch], question: str) -> str:
    return PROMPT_TEMPLATE.format(records=serialize_matches(matches), question=question)


class AnswerSynthesizer:
    """Composes one prompt per query and calls the generation service once."""

    def __init__(self, llm: OllamaClient):
        self.llm = llm

    async def synthesize(
        self, matches: Sequence[SimilarityMatch], question: str
    ) -> Tuple[str, timedelta]:
        """Generate an answer from the ranked matches.

        Args:
            matches: Retrieval results, best first
            question: The user's original question (never the context override)

        Returns:
            Tuple of (answer text, generation duration reported by the service)

        Raises:
            RaguError: If the completion call fails; no fallback answer is made
        """
        prompt = build_prompt(matches, question)

        logger.info(
            "synthesis_started",
            matches=len(matches),
            prompt_length=len(prompt),
        )

        result = await self.llm.generate(prompt)

        logger.info(
            "synthesis_completed",
            model=result.model,
            answer_length=len(result.response),
            duration_s=result.duration.total_seconds(),
        )
        return result.response, result.duration
