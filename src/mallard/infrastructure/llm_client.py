"""
Chat model client for OpenRouter, built on LangChain's ChatOpenAI.

Takes a conversation (domain Messages plus an optional system prompt),
converts it to LangChain messages and returns the assistant's reply text.
Prompt wording belongs to SQLGenerationRepository; this layer only talks
to the provider.
"""

from typing import List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import SecretStr

from ..config import LLMConfig
from ..domain.base_enums import MessageRole
from ..domain.conversation import Message
from ..domain.errors import LLMError
from ..utils.logging import get_module_logger
from ..utils.text_utils import InputValidator
from ..utils.tracing import current_trace_id


logger = get_module_logger()


class LLMClient:
    """
    Async multi-turn chat client.

    Transient provider failures are retried by ChatOpenAI itself
    (config.max_retries); whatever still fails surfaces as LLMError.

    Usage:
        client = LLMClient(config)
        await client.connect()

        text = await client.generate(
            [Message(role=MessageRole.USER, content="Top 5 customers by revenue")],
            system_prompt="You are a SQL assistant.",
        )

        await client.close()
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self._chat_model: Optional[ChatOpenAI] = None

        logger.info(
            "LLM client created",
            model=config.default_model,
            base_url=config.base_url,
            max_input_chars=config.max_input_chars,
        )

    def _build_chat_model(self) -> ChatOpenAI:
        return ChatOpenAI(
            model=self.config.default_model,
            api_key=SecretStr(self.config.openrouter_api_key),
            base_url=self.config.base_url,
            temperature=self.config.temperature,
            max_completion_tokens=self.config.max_tokens,
            timeout=self.config.timeout_seconds,
            max_retries=self.config.max_retries,
        )

    async def connect(self) -> None:
        """
        Create the underlying chat model.

        No request is sent; a bad API key only shows up on the first generate().

        Raises:
            LLMError: If the chat model can't be constructed
        """
        if self._chat_model is not None:
            return

        trace_id = current_trace_id()
        try:
            self._chat_model = self._build_chat_model()
        except Exception as e:
            logger.error(
                "Could not create chat model",
                error=str(e),
                error_type=type(e).__name__,
                trace_id=trace_id,
            )
            raise LLMError(f"Failed to initialize LLM client: {e}") from e

        logger.info("LLM client connected", model=self.config.default_model, trace_id=trace_id)

    async def close(self) -> None:
        self._chat_model = None
        logger.info("LLM client closed", trace_id=current_trace_id())

    def is_connected(self) -> bool:
        return self._chat_model is not None

    @staticmethod
    def to_langchain_messages(
        messages: Sequence[Message],
        system_prompt: Optional[str] = None
    ) -> List[BaseMessage]:
        """Convert domain messages to LangChain messages, system prompt first."""
        converted: List[BaseMessage] = [SystemMessage(content=system_prompt)] if system_prompt else []
        for message in messages:
            if message.role == MessageRole.ASSISTANT:
                converted.append(AIMessage(content=message.content))
            else:
                converted.append(HumanMessage(content=message.content))
        return converted

    def _check_input_size(self, messages: Sequence[Message], system_prompt: Optional[str]) -> None:
        try:
            InputValidator.validate_conversation_chars(
                messages=[message.content for message in messages],
                system_prompt=system_prompt,
                max_chars=self.config.max_input_chars
            )
        except ValueError as e:
            raise LLMError(str(e), details={"max_input_chars": self.config.max_input_chars}) from e

    async def generate(
        self,
        messages: Sequence[Message],
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        Get the assistant's next message.

        Args:
            messages: Conversation so far, ending with the new user message
            system_prompt: Optional system prompt
            max_tokens: Reply length cap for this call (defaults to config.max_tokens);
                connectivity checks pass a small value to keep replies cheap

        Returns:
            Reply text

        Raises:
            LLMError: Not connected, conversation too large, provider error
                or empty reply
        """
        if self._chat_model is None:
            raise LLMError("LLM client is not connected")

        self._check_input_size(messages, system_prompt)

        trace_id = current_trace_id()
        chat_model = self._chat_model
        if max_tokens is not None:
            chat_model = chat_model.bind(max_completion_tokens=max_tokens)

        logger.debug(
            "Sending conversation to LLM",
            message_count=len(messages),
            has_system_prompt=bool(system_prompt),
            trace_id=trace_id
        )

        try:
            response = await chat_model.ainvoke(self.to_langchain_messages(messages, system_prompt))
        except Exception as e:
            logger.error(
                "LLM request failed",
                error=str(e),
                error_type=type(e).__name__,
                message_count=len(messages),
                trace_id=trace_id
            )
            raise LLMError(f"LLM generation failed: {e}") from e

        text = response.content if isinstance(response.content, str) else str(response.content)
        if not text.strip():
            logger.warning("LLM returned an empty reply", trace_id=trace_id)
            raise LLMError("LLM returned empty response")

        logger.info("LLM reply received", reply_length=len(text), trace_id=trace_id)
        return text
