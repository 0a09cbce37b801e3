"""Tests for prompt building and the model gateway."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from document_parser.model_inference import (
    ExtractionResult,
    GatewayOutcome,
    OpenAIGateway,
    ReplyStatus,
    build_prompt,
    fill_placeholders,
)
from document_parser.utils.exceptions import (
    ModelAuthError,
    ModelEmptyReplyError,
    ModelError,
    ModelRateLimitedError,
    ModelUnavailableError,
)

API_URL = "https://api.openai.com/v1/chat/completions"


def _completion(content, usage=True):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message)],
        usage=SimpleNamespace(prompt_tokens=120, completion_tokens=30, total_tokens=150) if usage else None,
    )


def _status_error(error_class, status_code):
    request = httpx.Request("POST", API_URL)
    response = httpx.Response(status_code, request=request)
    return error_class(f"HTTP {status_code}", response=response, body=None)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def gateway(client):
    return OpenAIGateway(client=client, model="gpt-4o", max_tokens=500, temperature=0.0)


class TestPromptBuilder:
    """Tests for build_prompt and fill_placeholders."""

    def test_text_appended_without_placeholder(self):
        prompt = build_prompt("Extract the invoice fields.", "Invoice #123")

        assert prompt == "Extract the invoice fields.\n\nDocument Content:\nInvoice #123"

    def test_every_placeholder_is_replaced(self):
        template = "A: {DOCUMENT_TEXT}\nB: {DOCUMENT_CONTENT}\nC: {DOCUMENT_TEXT}"

        prompt = build_prompt(template, "xyz")

        assert prompt == "A: xyz\nB: xyz\nC: xyz"
        assert "Document Content:" not in prompt

    def test_json_braces_survive(self):
        template = 'Return {"vendorName": "string"} for:\n{DOCUMENT_TEXT}'

        assert build_prompt(template, "Acme") == 'Return {"vendorName": "string"} for:\nAcme'

    def test_fill_placeholders_leaves_unknown(self):
        filled = fill_placeholders(
            "{CHECKLIST_ITEMS}\n{DOCUMENT_TEXT}",
            {"CHECKLIST_ITEMS": "- full_name (Name)"}
        )

        assert filled == "- full_name (Name)\n{DOCUMENT_TEXT}"


class TestGatewayOutcome:
    """Tests for the mapping of outcome tags to exceptions."""

    def test_success_unwraps_to_text(self):
        assert GatewayOutcome.success('{"a": 1}').unwrap() == '{"a": 1}'

    @pytest.mark.parametrize("status,error_class", [
        (ReplyStatus.AUTH_ERROR, ModelAuthError),
        (ReplyStatus.RATE_LIMITED, ModelRateLimitedError),
        (ReplyStatus.UNAVAILABLE, ModelUnavailableError),
        (ReplyStatus.EMPTY_REPLY, ModelEmptyReplyError),
    ])
    def test_failure_maps_to_error(self, status, error_class):
        with pytest.raises(error_class):
            GatewayOutcome.failure(status, "provider said no").unwrap()

    def test_generic_error(self):
        with pytest.raises(ModelError) as exc_info:
            GatewayOutcome.failure(ReplyStatus.ERROR, "server exploded").unwrap()

        assert exc_info.value.kind == "ModelError"
        assert exc_info.value.message == "LLM processing failed: server exploded"


class TestOpenAIGateway:
    """Tests for OpenAIGateway with a mocked client."""

    def test_successful_call(self, gateway, client):
        client.chat.completions.create.return_value = _completion('{"vendorName": "Acme"}')

        reply = gateway.process("Invoice #123", "Extract fields.", "invoice")

        assert reply == '{"vendorName": "Acme"}'
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["max_tokens"] == 500
        assert kwargs["temperature"] == 0.0
        assert kwargs["messages"][0]["role"] == "system"
        assert "valid JSON" in kwargs["messages"][0]["content"]
        assert kwargs["messages"][1] == {
            "role": "user",
            "content": "Extract fields.\n\nDocument Content:\nInvoice #123",
        }

    def test_usage_is_reported(self, gateway, client):
        client.chat.completions.create.return_value = _completion("{}")

        outcome = gateway.complete("prompt")

        assert outcome.ok
        assert outcome.usage["total_tokens"] == 150
        assert outcome.duration_ms >= 0

    @pytest.mark.parametrize("content", [None, "", "   \n"])
    def test_empty_reply(self, gateway, client, content):
        client.chat.completions.create.return_value = _completion(content, usage=False)

        with pytest.raises(ModelEmptyReplyError):
            gateway.process("text", "template", "invoice")

    def test_no_choices(self, gateway, client):
        client.chat.completions.create.return_value = SimpleNamespace(choices=[], usage=None)

        assert gateway.complete("prompt").status is ReplyStatus.EMPTY_REPLY

    @pytest.mark.parametrize("error,status", [
        (lambda: _status_error(openai.AuthenticationError, 401), ReplyStatus.AUTH_ERROR),
        (lambda: _status_error(openai.PermissionDeniedError, 403), ReplyStatus.AUTH_ERROR),
        (lambda: _status_error(openai.RateLimitError, 429), ReplyStatus.RATE_LIMITED),
        (lambda: _status_error(openai.InternalServerError, 500), ReplyStatus.ERROR),
        (lambda: openai.APIConnectionError(request=httpx.Request("POST", API_URL)), ReplyStatus.UNAVAILABLE),
        (lambda: openai.APITimeoutError(request=httpx.Request("POST", API_URL)), ReplyStatus.UNAVAILABLE),
    ])
    def test_provider_errors_are_tagged(self, gateway, client, error, status):
        client.chat.completions.create.side_effect = error()

        outcome = gateway.complete("prompt")

        assert outcome.status is status
        assert outcome.text is None

    def test_rate_limit_raises_without_retry(self, gateway, client):
        client.chat.completions.create.side_effect = _status_error(openai.RateLimitError, 429)

        with pytest.raises(ModelRateLimitedError):
            gateway.process("text", "template", "invoice")

        assert client.chat.completions.create.call_count == 1

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ModelAuthError) as exc_info:
            OpenAIGateway()

        assert "OPENAI_API_KEY" in exc_info.value.details["reason"]

    def test_client_built_from_environment(self):
        gateway = OpenAIGateway()

        assert gateway.model == "gpt-4o"
        assert gateway.timeout == 120

    def test_connection_check(self, gateway, client):
        assert gateway.test_connection() is True

        client.models.list.side_effect = openai.APIConnectionError(
            request=httpx.Request("GET", "https://api.openai.com/v1/models")
        )
        assert gateway.test_connection() is False


class TestExtractionResult:
    """Tests for ExtractionResult rendering."""

    def test_to_dict(self):
        result = ExtractionResult(
            extracted_data={"vendorName": "Acme", "invoiceDate": None},
            confidence=0.75,
            processing_time_ms=12,
            document_type="invoice",
            file_name="rechnung.pdf",
        )

        data = result.to_dict()

        assert data == {
            "extractedData": {"vendorName": "Acme", "invoiceDate": None},
            "confidence": 0.75,
            "processingTimeMs": 12,
            "documentType": "invoice",
            "fileName": "rechnung.pdf",
        }
        assert result.populated_fields == {"vendorName": "Acme"}
