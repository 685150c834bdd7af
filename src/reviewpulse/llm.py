"""LLM-backed topic classifier and topic deduplicator."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

import openai
from openai import OpenAI
from pydantic import ValidationError

from reviewpulse.exceptions import (
    ClassifierUnavailable,
    DeduplicatorUnavailable,
    MalformedResponse,
    QuotaExhausted,
    RateLimited,
    ServiceUnavailable,
)
from reviewpulse.models import (
    ClassificationResult,
    DeduplicationResult,
    MergeGroup,
    Review,
    SeedTopic,
    TopicMatch,
)

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")

# ── Prompts ────────────────────────────────────────────────────────────────
_CLASSIFY_SYSTEM_PROMPT = (
    "You are a precise topic extraction agent. Always return valid JSON. "
    "Focus on semantic similarity to consolidate topics."
)

_CLASSIFY_PROMPT = """\
You are an expert at analyzing app reviews and categorizing them into topics. \
Your task is to analyze the following reviews and extract topics.

SEED TOPICS (use these as examples of the format and style):
{seed_topics}

EXISTING TOPICS (try to match to these first before creating new ones):
{existing_topics}

REVIEWS TO ANALYZE:
{reviews}

INSTRUCTIONS:
1. For each review, identify the main topic being discussed
2. Topics should be SHORT (2-5 words), action-oriented phrases like "Delivery delayed", "Food quality poor", "App crashing"
3. IMPORTANT: If a review matches an existing topic semantically, use the EXACT existing topic name
4. Only create a new topic if the review discusses something genuinely different
5. Categorize each topic as: "issue" (complaints), "request" (feature requests), or "feedback" (praise/neutral)
6. Similar complaints should be merged: "Delivery guy was rude", "Delivery partner behaved badly", "Delivery person was impolite" should ALL be "Delivery partner rude"

Return a JSON object with this exact structure:
{{
  "topics": [
    {{
      "topic": "Topic name",
      "category": "issue|request|feedback",
      "matchedReviews": [1, 3, 7],
      "isNewTopic": false
    }}
  ]
}}

The matchedReviews array contains the review numbers (1-indexed) that match this topic.
Set isNewTopic to true only if this is a genuinely new topic not in the seed or existing topics."""

_DEDUPE_SYSTEM_PROMPT = (
    "You are a semantic similarity expert. Always return valid JSON. "
    "Be aggressive in merging similar topics."
)

_DEDUPE_PROMPT = """\
You are an expert at semantic similarity analysis. Your task is to identify \
topics that are semantically equivalent and should be merged.

TOPICS TO ANALYZE:
{topics}

INSTRUCTIONS:
1. Group topics that refer to the SAME underlying issue/request/feedback
2. Similar phrasings should be merged:
   - "Delivery guy was rude" = "Delivery partner rude" = "Delivery person impolite"
   - "Food arrived cold" = "Cold food" = "Food not hot"
   - "App crashes" = "App crashing" = "Application crash"
3. Choose the most CANONICAL (clear, concise) name for each group
4. Single topics that don't have duplicates should still be included

Return a JSON object with this exact structure:
{{
  "mergedTopics": [
    {{
      "canonical": "Delivery partner rude",
      "variants": ["Delivery guy was rude", "Delivery person impolite", "Rude delivery boy"]
    }},
    {{
      "canonical": "App crashing",
      "variants": []
    }}
  ]
}}

If a topic has no variants (is unique), its variants array should be empty."""


class Classifier(Protocol):
    def classify(
        self,
        reviews: list[Review],
        seed_topics: list[SeedTopic],
        existing_topics: list[str],
    ) -> list[TopicMatch]: ...


class Deduplicator(Protocol):
    def deduplicate(self, topics: list[str]) -> list[MergeGroup]: ...


def extract_json(content: str) -> dict[str, Any]:
    """Parse a JSON object from model output, tolerating a markdown code fence."""
    match = _CODE_FENCE_RE.search(content)
    raw = match.group(1).strip() if match else content.strip()
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedResponse(f"Model returned invalid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise MalformedResponse("Model returned JSON that is not an object")
    return parsed


def build_classify_prompt(
    reviews: list[Review],
    seed_topics: list[SeedTopic],
    existing_topics: list[str],
) -> str:
    review_block = "\n".join(f'[{i}] "{r.text}"' for i, r in enumerate(reviews, start=1))
    seed_block = "\n".join(f"- {t.label} ({t.category})" for t in seed_topics)
    existing_block = (
        "\n".join(f"- {label}" for label in existing_topics) if existing_topics else "None yet"
    )
    return _CLASSIFY_PROMPT.format(
        seed_topics=seed_block,
        existing_topics=existing_block,
        reviews=review_block,
    )


class _ChatService:
    """Shared OpenAI chat-completion plumbing with error mapping."""

    _unavailable: type[ServiceUnavailable] = ServiceUnavailable

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "",
        timeout: float = 60.0,
        client: Any = None,
    ) -> None:
        self._model = model
        self._client: Any = client
        if self._client is None and api_key:
            self._client = OpenAI(api_key=api_key, base_url=base_url or None, timeout=timeout)
        if self._client is None:
            logger.warning("LLM_API_KEY not set; %s calls will fail.", type(self).__name__)

    def _chat(self, system: str, user: str, temperature: float) -> str:
        if self._client is None:
            raise self._unavailable("LLM client is not configured", reason="not_configured")
        try:
            resp = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=temperature,
            )
        except openai.RateLimitError as exc:
            if getattr(exc, "code", None) == "insufficient_quota":
                raise QuotaExhausted(f"LLM quota exhausted: {exc}") from exc
            raise RateLimited(f"LLM rate limit exceeded: {exc}") from exc
        except openai.APIStatusError as exc:
            if exc.status_code == 402:
                raise QuotaExhausted(f"LLM credits exhausted: {exc}") from exc
            raise self._unavailable(f"LLM returned {exc.status_code}: {exc}") from exc
        except openai.APIError as exc:
            raise self._unavailable(f"LLM request failed: {exc}") from exc

        content = resp.choices[0].message.content if resp.choices else None
        if not content:
            raise MalformedResponse("Empty LLM response")
        return content


class TopicClassifier(_ChatService):
    """Extracts topic labels from one batch of reviews."""

    _unavailable = ClassifierUnavailable

    def classify(
        self,
        reviews: list[Review],
        seed_topics: list[SeedTopic],
        existing_topics: list[str],
    ) -> list[TopicMatch]:
        logger.info(
            "Classifying %d reviews with %d seed topics", len(reviews), len(seed_topics)
        )
        prompt = build_classify_prompt(reviews, seed_topics, existing_topics)
        content = self._chat(_CLASSIFY_SYSTEM_PROMPT, prompt, temperature=0.3)
        try:
            result = ClassificationResult.model_validate(extract_json(content))
        except ValidationError as exc:
            raise MalformedResponse(f"Unexpected classifier payload: {exc}") from exc
        logger.info("Extracted %d topics", len(result.topics))
        return result.topics


class TopicDeduplicator(_ChatService):
    """Groups semantically equivalent topic labels under a canonical label."""

    _unavailable = DeduplicatorUnavailable

    def deduplicate(self, topics: list[str]) -> list[MergeGroup]:
        if not topics:
            return []
        logger.info("Deduplicating %d topics", len(topics))
        listing = "\n".join(f"{i}. {t}" for i, t in enumerate(topics, start=1))
        content = self._chat(
            _DEDUPE_SYSTEM_PROMPT, _DEDUPE_PROMPT.format(topics=listing), temperature=0.2
        )
        try:
            result = DeduplicationResult.model_validate(extract_json(content))
        except ValidationError as exc:
            raise MalformedResponse(f"Unexpected deduplicator payload: {exc}") from exc
        merged = sum(1 for g in result.merged_topics if g.variants)
        logger.info("Merged %d duplicate topic groups", merged)
        return result.merged_topics
