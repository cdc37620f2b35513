from unittest.mock import MagicMock

import httpx
import openai
import pytest

from llm.errors import RateLimitedError, ServiceUnavailableError, TransientError
from llm.providers.openai import (
    DocumentParseResponse,
    DocumentTransaction,
    OpenAIProvider,
    TransactionCategorization,
)
from tests.helpers import make_taxonomy, make_transaction


def _client_returning(parsed):
    client = MagicMock()
    message = MagicMock(parsed=parsed)
    client.chat.completions.parse.return_value = MagicMock(
        choices=[MagicMock(message=message)]
    )
    return client


def _answer(**overrides):
    values = dict(
        major_category="Custos Variaveis",
        category="Alimentação",
        sub_category=None,
        tags=[],
        confidence=0.85,
        reasoning="Coffee shop",
    )
    values.update(overrides)
    return TransactionCategorization(**values)


class TestIsConfigured:
    """Tests for OpenAIProvider.is_configured."""

    def test_missing_key(self):
        """Test that an empty key is not usable."""
        assert not OpenAIProvider(api_key="").is_configured()

    def test_placeholder_key(self):
        """Test that the sample placeholder key is rejected."""
        assert not OpenAIProvider(api_key="your_api_key_here").is_configured()

    def test_real_looking_key(self):
        """Test that a plausible key is accepted."""
        assert OpenAIProvider(api_key="sk-abcdefghijklmnop").is_configured()

    def test_unconfigured_call_raises(self):
        """Test that calling without a key raises ServiceUnavailableError."""
        provider = OpenAIProvider(api_key="")
        with pytest.raises(ServiceUnavailableError):
            provider.classify_transaction(make_transaction(), [], make_taxonomy())


class TestClassifyTransaction:
    """Tests for OpenAIProvider.classify_transaction."""

    def test_returns_classification(self):
        """Test a valid structured answer becomes an AIClassification."""
        client = _client_returning(_answer(tags=["place:cafe"]))
        provider = OpenAIProvider(api_key="", client=client)

        result = provider.classify_transaction(
            make_transaction(description="STARBUCKS"), [], make_taxonomy()
        )

        assert result.major_category == "Custos Variaveis"
        assert result.category == "Alimentação"
        assert result.confidence == 0.85
        assert result.tags == ["place:cafe"]
        assert result.version == "v3.0"

        kwargs = client.chat.completions.parse.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["response_format"] is TransactionCategorization
        assert "STARBUCKS" in kwargs["messages"][1]["content"]

    def test_model_override(self):
        """Test that a configured model wins over the prompt default."""
        client = _client_returning(_answer())
        provider = OpenAIProvider(api_key="", model="gpt-4o", client=client)
        provider.classify_transaction(make_transaction(), [], make_taxonomy())
        assert client.chat.completions.parse.call_args.kwargs["model"] == "gpt-4o"

    def test_examples_in_prompt(self):
        """Test that categorized history is rendered as examples."""
        client = _client_returning(_answer())
        provider = OpenAIProvider(api_key="", client=client)
        example = make_transaction(
            description="PINGO DOCE LISBOA",
            major_category="Custos Fixos",
            category="Alimentação",
            sub_category="Supermercado",
        )

        provider.classify_transaction(make_transaction(), [example], make_taxonomy())

        prompt = client.chat.completions.parse.call_args.kwargs["messages"][1]["content"]
        assert "PINGO DOCE LISBOA" in prompt
        assert "Custos Fixos > Alimentação > Supermercado" in prompt

    def test_category_outside_taxonomy(self):
        """Test that an invented category is treated as a transient failure."""
        client = _client_returning(_answer(category="Invented"))
        provider = OpenAIProvider(api_key="", client=client)

        with pytest.raises(TransientError):
            provider.classify_transaction(make_transaction(), [], make_taxonomy())

    def test_unknown_sub_category_dropped(self):
        """Test that an unknown sub-category is dropped, keeping the rest."""
        client = _client_returning(_answer(sub_category="Gelataria"))
        provider = OpenAIProvider(api_key="", client=client)

        result = provider.classify_transaction(make_transaction(), [], make_taxonomy())

        assert result.category == "Alimentação"
        assert result.sub_category is None

    def test_confidence_clamped(self):
        """Test that confidence above 1 is clamped."""
        client = _client_returning(_answer(confidence=1.7))
        provider = OpenAIProvider(api_key="", client=client)

        result = provider.classify_transaction(make_transaction(), [], make_taxonomy())
        assert result.confidence == 1.0

    def test_rate_limit_mapped(self):
        """Test that openai.RateLimitError becomes RateLimitedError."""
        client = MagicMock()
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        client.chat.completions.parse.side_effect = openai.RateLimitError(
            "quota exceeded", response=httpx.Response(429, request=request), body=None
        )
        provider = OpenAIProvider(api_key="", client=client)

        with pytest.raises(RateLimitedError):
            provider.classify_transaction(make_transaction(), [], make_taxonomy())

    def test_connection_error_is_transient(self):
        """Test that network failures become TransientError."""
        client = MagicMock()
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        client.chat.completions.parse.side_effect = openai.APIConnectionError(
            request=request
        )
        provider = OpenAIProvider(api_key="", client=client)

        with pytest.raises(TransientError):
            provider.classify_transaction(make_transaction(), [], make_taxonomy())

    def test_missing_parsed_response(self):
        """Test that a refusal (no parsed object) is transient."""
        provider = OpenAIProvider(api_key="", client=_client_returning(None))
        with pytest.raises(TransientError):
            provider.classify_transaction(make_transaction(), [], make_taxonomy())


class TestParseDocument:
    """Tests for OpenAIProvider.parse_document."""

    def test_rows_returned(self):
        """Test that extracted rows come back as ParsedDocumentRow objects."""
        parsed = DocumentParseResponse(
            transactions=[
                DocumentTransaction(
                    date="2024-01-15", description="CONTINENTE", amount=-42.1, balance=900.0
                ),
                DocumentTransaction(date="2024-01-16", description="SALARIO", amount=1500),
            ],
            notes=["Page 2 header skipped"],
        )
        client = _client_returning(parsed)
        provider = OpenAIProvider(api_key="", client=client)

        rows = provider.parse_document("statement text", "CGD")

        assert [row.description for row in rows] == ["CONTINENTE", "SALARIO"]
        assert rows[0].balance == 900.0
        assert rows[1].balance is None
        prompt = client.chat.completions.parse.call_args.kwargs["messages"][1]["content"]
        assert "CGD" in prompt
        assert "statement text" in prompt
