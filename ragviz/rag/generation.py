"""Pre-RAG vs RAG answer comparison.

Builds both prompts from a query result, counts their tokens, optionally asks
the chat model for both answers, and summarises what happened.
"""
import asyncio
import math
from dataclasses import dataclass, field
from typing import List, Optional
import httpx
import structlog

from ragviz import config
from ragviz.llm_client import OllamaClient
from ragviz.rag.pipeline import QueryResult, ScoredChunk

logger = structlog.get_logger()

DONT_KNOW_PHRASE = "I do not know based on the provided documents."

PRE_RAG_TEMPLATE = (
    "Answer the following question as clearly and concisely as you can.\n\n"
    "Question: {question}"
)

RAG_TEMPLATE = (
    "You are a helpful assistant. Answer the question based ONLY on the provided "
    "context chunks. Do not use outside knowledge.\n\n"
    "Context:\n{context}\n\n"
    "Question: {question}\n\n"
    'If the answer is not supported by the context, state "{dont_know}"'
)

NOT_CONFIGURED_ANSWER = "LLM backend not configured. Cannot generate response."


def build_context(chunks: List[ScoredChunk]) -> str:
    """Format retrieved chunks as numbered, scored context blocks."""
    return "\n\n".join(
        f"[Chunk {i}] (Score: {item.score:.2f})\n{item.chunk.text}"
        for i, item in enumerate(chunks, 1)
    )


def build_pre_rag_prompt(question: str) -> str:
    return PRE_RAG_TEMPLATE.format(question=question)


def build_rag_prompt(question: str, context: str) -> str:
    return RAG_TEMPLATE.format(
        question=question, context=context, dont_know=DONT_KNOW_PHRASE
    )


def estimate_tokens(text: str) -> int:
    """Roughly 4 characters per token for English text."""
    return math.ceil(len(text) / 4)


def analyze_answers(pre_rag_answer: str, rag_answer: str) -> str:
    """Explain the outcome of a pre-RAG / RAG comparison."""
    rag_unknown = "i do not know" in rag_answer.lower()

    if rag_unknown and len(pre_rag_answer) > 50:
        return (
            "The RAG model could not find the answer in the retrieved chunks, so it "
            "backed off ('I do not know'). The pre-RAG model answered from its general "
            "training data, which may be correct but is unsupported by the source "
            "documents."
        )
    if rag_unknown:
        return "The answer wasn't found in the retrieved chunks, so the model declined to answer."
    return "The model found the answer in the retrieved context."


class TokenCounter:
    """Token counts from the backend, with a length heuristic fallback."""

    def __init__(self, client: Optional[OllamaClient] = None, model: str = None):
        self.client = client
        self.model = model or config.CHAT_MODEL

    async def count(self, text: str) -> int:
        """Count tokens in a text.

        Args:
            text: Text to count

        Returns:
            Backend token count, or ceil(len(text) / 4) when unavailable
        """
        if self.client is None:
            return estimate_tokens(text)

        try:
            count = await self.client.count_tokens(text, model=self.model)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("token_count_failed_using_heuristic", error=str(e))
            return estimate_tokens(text)

        return count if count else estimate_tokens(text)


@dataclass
class AnswerComparison:
    """Pre-RAG and RAG prompts and answers for one question."""

    question: str
    pre_rag_prompt: str
    rag_prompt: str
    retrieved: List[ScoredChunk]
    token_counts: dict
    pre_rag_answer: str = ""
    rag_answer: str = ""
    analysis: str = ""
    llm_enabled: bool = True
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "question": self.question,
            "prompts": {"pre_rag": self.pre_rag_prompt, "rag": self.rag_prompt},
            "answers": {"pre_rag": self.pre_rag_answer, "rag": self.rag_answer},
            "token_counts": self.token_counts,
            "retrieved": [item.to_dict() for item in self.retrieved],
            "analysis": self.analysis,
            "llm_enabled": self.llm_enabled,
            "notes": self.notes,
        }


class AnswerGenerator:
    """Runs the pre-RAG / RAG comparison against the chat model."""

    def __init__(
        self,
        client: Optional[OllamaClient] = None,
        chat_model: str = None,
        token_counter: Optional[TokenCounter] = None,
    ):
        """Initialize the generator.

        Args:
            client: Ollama client, or None when no backend is configured
            chat_model: Chat model name (default from config)
            token_counter: Token counter (default: one sharing the client)
        """
        self.client = client
        self.chat_model = chat_model or config.CHAT_MODEL
        self.token_counter = token_counter or TokenCounter(client, self.chat_model)

    async def generate(self, prompt: str) -> str:
        """Generate a single response. Failures are reported in the text."""
        if self.client is None:
            return NOT_CONFIGURED_ANSWER

        try:
            response = await self.client.chat(
                [{"role": "user", "content": prompt}], model=self.chat_model
            )
        except httpx.HTTPError as e:
            logger.error("generation_failed", error=str(e), error_type=type(e).__name__)
            return f"Error generating response: {e}"

        return response.get("message", {}).get("content", "") or "No response generated."

    async def compare(
        self,
        result: QueryResult,
        top_k: int = None,
        llm_enabled: bool = True,
    ) -> AnswerComparison:
        """Build both prompts for a query result and optionally answer them.

        Args:
            result: Ranked query result
            top_k: Chunks used as context (default config.RETRIEVAL_TOP_K)
            llm_enabled: Whether to call the chat model

        Returns:
            AnswerComparison with prompts, token counts and answers
        """
        top_k = top_k or config.RETRIEVAL_TOP_K
        retrieved = result.top(top_k)

        context = build_context(retrieved)
        pre_rag_prompt = build_pre_rag_prompt(result.query)
        rag_prompt = build_rag_prompt(result.query, context)

        pre_tokens, rag_tokens, context_tokens = await asyncio.gather(
            self.token_counter.count(pre_rag_prompt),
            self.token_counter.count(rag_prompt),
            self.token_counter.count(context),
        )

        comparison = AnswerComparison(
            question=result.query,
            pre_rag_prompt=pre_rag_prompt,
            rag_prompt=rag_prompt,
            retrieved=retrieved,
            token_counts={
                "pre_rag": pre_tokens,
                "rag": rag_tokens,
                "context": context_tokens,
            },
            llm_enabled=llm_enabled,
        )

        if result.has_fallback:
            comparison.notes.append(
                "Similarity scores were computed from placeholder embeddings and carry no meaning."
            )

        if llm_enabled:
            comparison.pre_rag_answer, comparison.rag_answer = await asyncio.gather(
                self.generate(pre_rag_prompt),
                self.generate(rag_prompt),
            )
            comparison.analysis = analyze_answers(
                comparison.pre_rag_answer, comparison.rag_answer
            )

        logger.info(
            "answers_compared",
            question_length=len(result.query),
            retrieved=len(retrieved),
            llm_enabled=llm_enabled,
            token_counts=comparison.token_counts,
        )

        return comparison
