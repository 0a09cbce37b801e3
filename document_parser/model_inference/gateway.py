"""
Model Gateway Module.

The single seam between the pipeline and a language model provider.
A gateway sends a fixed system instruction plus the built prompt and
returns the raw reply text. Provider failures are first captured as a
tagged GatewayOutcome and then converted to the pipeline's exception
taxonomy by ``GatewayOutcome.unwrap()``. The gateway never retries; a
rate-limited caller decides on backoff itself.

Usage:
    from document_parser.model_inference import OpenAIGateway

    gateway = OpenAIGateway()
    reply = gateway.process(text, template, "invoice")

Author: ML Engineering Team
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import openai
from openai import OpenAI

from config import ConfigurationManager, get_config
from document_parser.utils.logger import get_logger
from document_parser.utils.exceptions import (
    ModelAuthError,
    ModelEmptyReplyError,
    ModelError,
    ModelRateLimitedError,
    ModelUnavailableError,
)
from .prompt_builder import build_prompt

logger = get_logger(__name__)

DEFAULT_SYSTEM_INSTRUCTION = (
    "You are a professional document parsing assistant. Always return valid "
    "JSON when extracting data from documents. If you cannot find specific "
    "information, use null for required fields and omit optional fields."
)


class ReplyStatus(Enum):
    """Outcome tags of one model call."""

    SUCCESS = "success"
    AUTH_ERROR = "auth_error"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    EMPTY_REPLY = "empty_reply"
    ERROR = "error"


@dataclass(frozen=True)
class GatewayOutcome:
    """
    Tagged result of a model call.

    Attributes:
        status: Outcome tag.
        text: Reply text, set only on success.
        error_message: Provider message for failures.
        duration_ms: Wall time of the call.
        usage: Token usage reported by the provider.
    """

    status: ReplyStatus
    text: Optional[str] = None
    error_message: Optional[str] = None
    duration_ms: int = 0
    usage: Dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def ok(self) -> bool:
        return self.status is ReplyStatus.SUCCESS

    @classmethod
    def success(cls, text: str, usage: Optional[Dict[str, Any]] = None) -> 'GatewayOutcome':
        return cls(status=ReplyStatus.SUCCESS, text=text, usage=usage or {})

    @classmethod
    def failure(cls, status: ReplyStatus, message: Optional[str] = None) -> 'GatewayOutcome':
        return cls(status=status, error_message=message)

    def unwrap(self) -> str:
        """
        Return the reply text or raise the error matching the status.

        Raises:
            ModelAuthError, ModelRateLimitedError, ModelUnavailableError,
            ModelEmptyReplyError, ModelError
        """
        if self.status is ReplyStatus.SUCCESS:
            return self.text
        if self.status is ReplyStatus.AUTH_ERROR:
            raise ModelAuthError(self.error_message)
        if self.status is ReplyStatus.RATE_LIMITED:
            raise ModelRateLimitedError(self.error_message)
        if self.status is ReplyStatus.UNAVAILABLE:
            raise ModelUnavailableError(self.error_message)
        if self.status is ReplyStatus.EMPTY_REPLY:
            raise ModelEmptyReplyError(self.error_message)
        raise ModelError(
            f"LLM processing failed: {self.error_message or 'unknown error'}",
            {"status": self.status.value}
        )


class ModelGateway:
    """
    Provider-agnostic gateway.

    Subclasses implement ``_send``; everything else (prompt building,
    timing, logging, error conversion) lives here.

    Attributes:
        system_instruction: Role instruction sent with every request.
        max_tokens: Upper bound on reply length.
        temperature: Sampling temperature.
        model: Provider model name.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system_instruction: Optional[str] = None
    ) -> None:
        self.model = model or get_config("llm.model", "gpt-4o")
        self.max_tokens = max_tokens or get_config("llm.max_tokens", 10000)
        self.temperature = (
            temperature if temperature is not None
            else get_config("llm.temperature", 0.1)
        )
        self.system_instruction = (
            system_instruction
            or get_config("llm.system_instruction")
            or DEFAULT_SYSTEM_INSTRUCTION
        ).strip()

    def process(self, document_text: str, prompt_template: str, document_type_id: str) -> str:
        """
        Build the prompt, call the model and return its raw reply.

        Args:
            document_text: Extracted document text.
            prompt_template: Template of the document type.
            document_type_id: Used for logging only.

        Returns:
            Raw, untrusted reply text.

        Raises:
            ModelError: Or one of its subclasses on failure.
        """
        prompt = build_prompt(prompt_template, document_text)
        logger.info(
            f"Sending {document_type_id} prompt to {self.model} "
            f"({len(prompt)} characters)"
        )

        outcome = self.complete(prompt)
        if outcome.ok:
            logger.info(
                f"Model replied for {document_type_id} in {outcome.duration_ms}ms "
                f"({len(outcome.text)} characters)"
            )
        else:
            logger.error(
                f"Model call for {document_type_id} failed with {outcome.status.value}: "
                f"{outcome.error_message}"
            )
        return outcome.unwrap()

    def complete(self, prompt: str) -> GatewayOutcome:
        """Send an already built prompt and return the tagged outcome."""
        start = time.perf_counter()
        outcome = self._send(self.system_instruction, prompt)
        duration_ms = int(round((time.perf_counter() - start) * 1000))
        return GatewayOutcome(
            status=outcome.status,
            text=outcome.text,
            error_message=outcome.error_message,
            duration_ms=duration_ms,
            usage=outcome.usage,
        )

    def _send(self, system_instruction: str, prompt: str) -> GatewayOutcome:
        raise NotImplementedError

    def test_connection(self) -> bool:
        return True


class OpenAIGateway(ModelGateway):
    """
    Gateway for the OpenAI chat completions API.

    Example:
        >>> gateway = OpenAIGateway()
        >>> gateway.test_connection()
        True
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
        system_instruction: Optional[str] = None,
        client: Optional[OpenAI] = None
    ) -> None:
        """
        Initialize the gateway.

        Args:
            api_key: API key; defaults to the variable named by
                ``llm.api_key_env``.
            timeout: Request timeout in seconds.
            base_url: Alternative endpoint (Azure proxy, local server).
            client: Pre-built client, mainly for tests.

        Raises:
            ModelAuthError: If no API key is configured.
        """
        super().__init__(model, max_tokens, temperature, system_instruction)
        self.timeout = timeout or get_config("llm.timeout", 120)

        if client is None:
            api_key = api_key or ConfigurationManager().get_secret("llm.api_key_env")
            if not api_key:
                raise ModelAuthError(
                    f"{get_config('llm.api_key_env', 'OPENAI_API_KEY')} environment variable is required"
                )
            # Retry policy belongs to the caller
            client = OpenAI(
                api_key=api_key,
                base_url=base_url or get_config("llm.base_url"),
                timeout=self.timeout,
                max_retries=0,
            )
        self._client = client

        logger.debug(f"OpenAIGateway initialized (model={self.model}, timeout={self.timeout}s)")

    def _send(self, system_instruction: str, prompt: str) -> GatewayOutcome:
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            return GatewayOutcome.failure(ReplyStatus.AUTH_ERROR, str(e))
        except openai.RateLimitError as e:
            return GatewayOutcome.failure(ReplyStatus.RATE_LIMITED, str(e))
        except openai.APIConnectionError as e:
            # Includes APITimeoutError
            return GatewayOutcome.failure(ReplyStatus.UNAVAILABLE, str(e))
        except openai.APIError as e:
            return GatewayOutcome.failure(ReplyStatus.ERROR, getattr(e, "message", None) or str(e))

        content = None
        if response.choices:
            content = response.choices[0].message.content
        if not content or not content.strip():
            return GatewayOutcome.failure(ReplyStatus.EMPTY_REPLY, "No response content from model")

        usage = {}
        if getattr(response, "usage", None) is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        return GatewayOutcome.success(content, usage)

    def test_connection(self) -> bool:
        """List models to check credentials and connectivity. Never raises."""
        try:
            self._client.models.list()
            return True
        except openai.APIError as e:
            logger.error(f"Model service connection test failed: {e}")
            return False
