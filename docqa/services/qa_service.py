"""Retrieval-augmented question answering over the uploaded documents.

Data flow for one question:

  1. EMBED     -- The question is embedded with the same model as the chunks.
  2. RETRIEVE  -- The document store returns the top ``k`` chunks (3) above
                  the similarity threshold (0.5).
  3. SHORTCUT  -- No chunks means no grounding: a canned answer is returned
                  and the chat model is never called.
  4. CONTEXT   -- Each chunk contributes at most 1000 characters plus a
                  ``[Source: <fileName>]`` tag; the joined context is cut to
                  3000 characters total.  Earlier chunks can use up the
                  budget and crowd out later ones.
  5. PROMPT    -- ``[system(context), last 3 history turns, user(question)]``
                  with low temperature and a 500-token cap.
  6. SHAPE     -- The answer plus the first 2 chunks, each cut to 200
                  characters, as user-facing sources.

Errors from the embedding call, the store, or the chat model propagate
unchanged; no partial answer is produced.
"""

from __future__ import annotations

from typing import Sequence

import structlog

from docqa.interfaces.document_store import IDocumentStore
from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.models.documents import Answer, ChatTurn, RetrievedChunk, SourceExcerpt
from docqa.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

NO_INFORMATION_ANSWER = (
    "I don't have any relevant information to answer this question. "
    "Please try uploading some documents first."
)

_SYSTEM_PROMPT = "You are a helpful AI assistant. Be concise. Context:\n{context}"


def build_context(
    chunks: Sequence[RetrievedChunk],
    max_chunk_chars: int = 1000,
    max_context_chars: int = 3000,
) -> str:
    """Concatenate retrieved chunks into a prompt context of bounded size."""
    parts: list[str] = []
    for chunk in chunks:
        source = f" [Source: {chunk.file_name}]" if chunk.file_name else ""
        parts.append(f"{chunk.content[:max_chunk_chars]}{source}")
    return "\n\n".join(parts)[:max_context_chars]


def history_messages(chat_history: Sequence[ChatTurn], turns: int = 3) -> list[dict[str, str]]:
    """Map the last *turns* chat turns to ``{"role", "content"}`` messages."""
    if turns <= 0:
        return []
    return [{"role": turn.role, "content": turn.text} for turn in list(chat_history)[-turns:]]


class QAService:
    """Answers questions from the chunks currently in the document store.

    Parameters
    ----------
    embedding_provider:
        Embeds the question for similarity search.
    document_store:
        Source of retrieved chunks.
    llm_provider:
        Chat model that writes the answer.
    top_k, similarity_threshold:
        Retrieval size and minimum cosine similarity.
    max_chunk_chars, max_context_chars:
        Per-chunk and total context budgets in characters.
    max_sources, source_excerpt_chars:
        How many sources are returned and how long each excerpt is.
    history_turns:
        How many prior chat turns are forwarded to the model.
    temperature, max_tokens:
        Sampling parameters for the completion.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        document_store: IDocumentStore,
        llm_provider: ILLMProvider,
        top_k: int = 3,
        similarity_threshold: float = 0.5,
        max_chunk_chars: int = 1000,
        max_context_chars: int = 3000,
        max_sources: int = 2,
        source_excerpt_chars: int = 200,
        history_turns: int = 3,
        temperature: float = 0.3,
        max_tokens: int = 500,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._document_store = document_store
        self._llm = llm_provider
        self._top_k = top_k
        self._similarity_threshold = similarity_threshold
        self._max_chunk_chars = max_chunk_chars
        self._max_context_chars = max_context_chars
        self._max_sources = max_sources
        self._source_excerpt_chars = source_excerpt_chars
        self._history_turns = history_turns
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def answer(
        self,
        question: str,
        chat_history: Sequence[ChatTurn] = (),
        *,
        owner_id: str | None = None,
    ) -> Answer:
        """Answer *question* using retrieved chunks and recent history.

        Parameters
        ----------
        question:
            Non-empty question text (emptiness is rejected by the route).
        chat_history:
            Prior turns, oldest first.
        owner_id:
            Restrict retrieval to this user's chunks (per-user scoping).

        Returns
        -------
        Answer
            The model's answer and shortened source excerpts, or the canned
            no-information answer with no sources.
        """
        query_embedding = await self._embedding_provider.embed_single(question)
        chunks = await self._document_store.search(
            query_embedding,
            k=self._top_k,
            threshold=self._similarity_threshold,
            owner_id=owner_id,
        )

        if not chunks:
            logger.info("qa_no_relevant_chunks", question_chars=len(question))
            return Answer(answer=NO_INFORMATION_ANSWER, sources=[])

        context = build_context(chunks, self._max_chunk_chars, self._max_context_chars)
        messages = [
            {"role": "system", "content": _SYSTEM_PROMPT.format(context=context)},
            *history_messages(chat_history, self._history_turns),
            {"role": "user", "content": question},
        ]

        text = await self._llm.chat(
            messages,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )

        logger.info(
            "qa_answered",
            retrieved=len(chunks),
            context_chars=len(context),
            history_turns=len(messages) - 2,
            top_score=chunks[0].similarity,
        )
        return Answer(
            answer=text,
            sources=[
                SourceExcerpt(
                    content=chunk.content[: self._source_excerpt_chars],
                    metadata=chunk.metadata,
                )
                for chunk in chunks[: self._max_sources]
            ],
        )
