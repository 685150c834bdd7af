"""Tests for the LLM classifier/deduplicator wrappers using a fake OpenAI client."""

from types import SimpleNamespace
from typing import Any

import httpx
import openai
import pytest

from conftest import make_review
from reviewpulse.aggregate import TopicTable
from reviewpulse.exceptions import (
    ClassifierUnavailable,
    DeduplicatorUnavailable,
    MalformedResponse,
    QuotaExhausted,
    RateLimited,
    ServiceError,
)
from reviewpulse.llm import TopicClassifier, TopicDeduplicator, build_classify_prompt, extract_json
from reviewpulse.models import SeedTopic

_REQUEST = httpx.Request("POST", "https://api.example.test/v1/chat/completions")


class FakeClient:
    """Mimics ``client.chat.completions.create`` returning or raising a canned value."""

    def __init__(self, content: str | None = None, error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.requests: list[dict[str, Any]] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs: Any) -> Any:
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _status_error(cls: type[openai.APIStatusError], status: int, body: Any = None) -> openai.APIStatusError:
    response = httpx.Response(status, request=_REQUEST)
    return cls("boom", response=response, body=body)


def _classifier(client: FakeClient) -> TopicClassifier:
    return TopicClassifier(api_key="", model="test-model", client=client)


REVIEWS = [make_review("2025-01-01", i) for i in range(3)]
SEEDS = [SeedTopic(label="Delivery delayed", category="issue")]


class TestExtractJson:
    def test_plain_object(self) -> None:
        assert extract_json('{"topics": []}') == {"topics": []}

    def test_code_fence(self) -> None:
        content = 'Here you go:\n```json\n{"topics": [{"topic": "A"}]}\n```\n'
        assert extract_json(content) == {"topics": [{"topic": "A"}]}

    def test_invalid(self) -> None:
        with pytest.raises(MalformedResponse):
            extract_json("not json at all")
        with pytest.raises(MalformedResponse):
            extract_json("[1, 2, 3]")


class TestPrompt:
    def test_reviews_numbered_from_one(self) -> None:
        prompt = build_classify_prompt(REVIEWS, SEEDS, [])
        assert '[1] "Delivery was late again"' in prompt
        assert '[3] "Delivery was late again"' in prompt
        assert "- Delivery delayed (issue)" in prompt
        assert "None yet" in prompt

    def test_existing_topics_listed(self) -> None:
        prompt = build_classify_prompt(REVIEWS, SEEDS, ["Tip prompts"])
        assert "- Tip prompts" in prompt
        assert "None yet" not in prompt


class TestTopicClassifier:
    def test_parses_matches(self) -> None:
        client = FakeClient(
            '{"topics": [{"topic": "Delivery delayed", "category": "Issue",'
            ' "matchedReviews": [1, 3], "isNewTopic": false}]}'
        )
        matches = _classifier(client).classify(REVIEWS, SEEDS, [])
        (match,) = matches
        assert match.topic == "Delivery delayed"
        assert match.category == "issue"
        assert match.matched_reviews == [1, 3]
        assert match.is_new_topic is False
        assert client.requests[0]["model"] == "test-model"
        assert client.requests[0]["temperature"] == 0.3

    def test_blank_label_never_reaches_the_table(self) -> None:
        client = FakeClient(
            '{"topics": [{"topic": "   ", "category": "issue", "matchedReviews": [1, 2],'
            ' "isNewTopic": true}, {"topic": "Delivery delayed", "category": "issue",'
            ' "matchedReviews": [3]}]}'
        )
        matches = _classifier(client).classify(REVIEWS, SEEDS, [])
        table = TopicTable()
        created, new = table.fold_matches("2025-01-01", matches, len(REVIEWS))
        assert table.labels() == ["Delivery delayed"]
        assert created == ["Delivery delayed"]
        assert new == 0

    def test_malformed_payload(self) -> None:
        client = FakeClient('{"topics": [{"category": "issue"}]}')
        with pytest.raises(MalformedResponse):
            _classifier(client).classify(REVIEWS, SEEDS, [])

    def test_empty_content(self) -> None:
        with pytest.raises(MalformedResponse):
            _classifier(FakeClient("")).classify(REVIEWS, SEEDS, [])

    def test_not_configured(self) -> None:
        classifier = TopicClassifier(api_key="", model="test-model")
        with pytest.raises(ClassifierUnavailable) as info:
            classifier.classify(REVIEWS, SEEDS, [])
        assert info.value.reason == "not_configured"

    def test_rate_limited(self) -> None:
        client = FakeClient(error=_status_error(openai.RateLimitError, 429))
        with pytest.raises(RateLimited) as info:
            _classifier(client).classify(REVIEWS, SEEDS, [])
        assert info.value.reason == "rate_limited"

    def test_insufficient_quota(self) -> None:
        error = _status_error(openai.RateLimitError, 429, body={"code": "insufficient_quota"})
        with pytest.raises(QuotaExhausted):
            _classifier(FakeClient(error=error)).classify(REVIEWS, SEEDS, [])

    def test_payment_required(self) -> None:
        error = _status_error(openai.APIStatusError, 402)
        with pytest.raises(QuotaExhausted):
            _classifier(FakeClient(error=error)).classify(REVIEWS, SEEDS, [])

    def test_server_error(self) -> None:
        error = _status_error(openai.InternalServerError, 500)
        with pytest.raises(ClassifierUnavailable):
            _classifier(FakeClient(error=error)).classify(REVIEWS, SEEDS, [])

    def test_connection_error(self) -> None:
        error = openai.APIConnectionError(request=_REQUEST)
        with pytest.raises(ClassifierUnavailable):
            _classifier(FakeClient(error=error)).classify(REVIEWS, SEEDS, [])


class TestTopicDeduplicator:
    def test_parses_groups(self) -> None:
        client = FakeClient(
            '```json\n{"mergedTopics": [{"canonical": "Delivery partner rude",'
            ' "variants": ["Delivery guy was rude"]}, {"canonical": "App crashing", "variants": []}]}\n```'
        )
        dedup = TopicDeduplicator(api_key="", model="test-model", client=client)
        groups = dedup.deduplicate(["Delivery partner rude", "Delivery guy was rude", "App crashing"])
        assert [g.canonical for g in groups] == ["Delivery partner rude", "App crashing"]
        assert groups[0].variants == ["Delivery guy was rude"]
        assert "3. App crashing" in client.requests[0]["messages"][1]["content"]

    def test_empty_input_skips_call(self) -> None:
        client = FakeClient("{}")
        assert TopicDeduplicator(api_key="", model="m", client=client).deduplicate([]) == []
        assert client.requests == []

    def test_errors_are_service_errors(self) -> None:
        error = _status_error(openai.InternalServerError, 503)
        dedup = TopicDeduplicator(api_key="", model="m", client=FakeClient(error=error))
        with pytest.raises(DeduplicatorUnavailable) as info:
            dedup.deduplicate(["A", "B"])
        assert isinstance(info.value, ServiceError)
