"""Conversation context store.

The pipeline only reads context. Persisting new turns belongs to whatever
backs the store in a real deployment; the in-memory store here serves a
fixed seed history.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol

from mari.domain.messages import ChatTurn

SYSTEM_PROMPT = (
    "Você é a agente Mari, assistente de vendas gentil e jovial. "
    "Ajude o cliente em português."
)

SEED_HISTORY: tuple[ChatTurn, ...] = (
    ChatTurn(role="system", content=SYSTEM_PROMPT),
    ChatTurn(role="user", content="Olá"),
    ChatTurn(role="assistant", content="Olá! Como posso te ajudar hoje?"),
)


class ConversationContextStore(Protocol):
    """Supplies prior turns for a conversation, system turn first."""

    async def get(self, conversation_id: str) -> list[ChatTurn]:
        ...


class InMemoryContextStore:
    """Read-only store with optional per-conversation histories.

    Unknown conversations get the seed history. Histories without a leading
    system turn get the seed system turn prepended.
    """

    def __init__(
        self,
        histories: Mapping[str, Sequence[ChatTurn]] | None = None,
        seed: Sequence[ChatTurn] = SEED_HISTORY,
    ) -> None:
        if not seed or seed[0].role != "system":
            raise ValueError("seed history must start with a system turn")
        self._histories = {cid: tuple(turns) for cid, turns in (histories or {}).items()}
        self._seed = tuple(seed)

    async def get(self, conversation_id: str) -> list[ChatTurn]:
        turns = self._histories.get(conversation_id)
        if not turns:
            return list(self._seed)
        if turns[0].role != "system":
            return [self._seed[0], *turns]
        return list(turns)
