from __future__ import annotations

from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage
from langchain_core.messages import HumanMessage
from langchain_core.output_parsers import StrOutputParser
from langchain_core.runnables import Runnable
from langchain_core.runnables import RunnableLambda
from langchain_openai import ChatOpenAI

from context_budget.core.config import Settings
from context_budget.core.conversation import ConversationHistory
from context_budget.core.tokenizer import get_tokenizer


class ChatSession:
    """Multi-turn chat that keeps its history within the model's context budget."""

    def __init__(
        self,
        llm: BaseChatModel = None,
        history: ConversationHistory | None = None,
        cfg: Settings | None = None,
    ):
        """Initialize the chat session.

        Args:
            llm: Chat model to talk to (defaults to the configured OpenAI model)
            history: Conversation history; a fresh one is created if omitted
            cfg: Settings used for the defaults above
        """
        cfg = cfg or Settings()
        self.llm = llm or ChatOpenAI(model=cfg.chat_model, temperature=0)
        if history is None:
            history = ConversationHistory(get_tokenizer(), cfg=cfg)
        self.history = history
        self._chain = self.llm | StrOutputParser()

    def chat(self, message: str) -> str:
        """Send ``message`` with as much recent history as fits; return the reply.

        Both turns are stored only once the model has answered.
        """
        user_message = HumanMessage(content=message)
        reply = self._chain.invoke(self.history.context(pending=user_message))
        self.history.extend([user_message, AIMessage(content=reply)])
        return reply

    def clear(self) -> None:
        self.history.clear()


def get_chat_chain(session: ChatSession) -> Runnable:
    """Wrap a session as a Runnable accepting ``{"message": str}``."""

    def _chat(inputs: dict[str, Any]) -> str:
        message = inputs.get("message", "")
        if not message:
            return "Please provide a message."
        return session.chat(message)

    return RunnableLambda(_chat)
