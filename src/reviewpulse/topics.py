"""Built-in seed vocabulary and topic label normalisation."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from reviewpulse.models import SeedTopic

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_PUNCT = ".,;:!?"

SEED_TOPICS: list[SeedTopic] = [
    # Issues
    SeedTopic(label="Delivery delayed", category="issue"),
    SeedTopic(label="Food quality poor", category="issue"),
    SeedTopic(label="Delivery partner rude", category="issue"),
    SeedTopic(label="App crashing", category="issue"),
    SeedTopic(label="Payment failed", category="issue"),
    SeedTopic(label="Wrong order delivered", category="issue"),
    SeedTopic(label="Order cancelled", category="issue"),
    SeedTopic(label="Refund not received", category="issue"),
    SeedTopic(label="GPS/Location issues", category="issue"),
    SeedTopic(label="Customer support unhelpful", category="issue"),
    # Requests
    SeedTopic(label="Add more restaurants", category="request"),
    SeedTopic(label="Reduce delivery fees", category="request"),
    SeedTopic(label="Improve packaging", category="request"),
    SeedTopic(label="Add dark mode", category="request"),
    SeedTopic(label="Better discounts", category="request"),
    SeedTopic(label="Faster delivery", category="request"),
    SeedTopic(label="More payment options", category="request"),
    # Feedback
    SeedTopic(label="Great service", category="feedback"),
    SeedTopic(label="Fast delivery", category="feedback"),
    SeedTopic(label="Good app experience", category="feedback"),
    SeedTopic(label="Reasonable prices", category="feedback"),
]


def normalize_label(label: str) -> str:
    """Return the comparison key for a topic label.

    Used for every label comparison in the package: leading/trailing
    whitespace is stripped, inner runs collapse to one space, trailing
    punctuation is dropped and the result is casefolded.
    ``"  Delivery  Delayed!"`` and ``"delivery delayed"`` share a key.
    """
    collapsed = _WHITESPACE_RE.sub(" ", label.strip())
    return collapsed.rstrip(_TRAILING_PUNCT).rstrip().casefold()


def merge_with_custom(
    seeds: Iterable[SeedTopic],
    custom: Iterable[SeedTopic],
) -> list[SeedTopic]:
    """Seed vocabulary followed by custom topics, first occurrence wins."""
    merged: list[SeedTopic] = []
    seen: set[str] = set()
    for topic in [*seeds, *custom]:
        key = normalize_label(topic.label)
        if not key or key in seen:
            continue
        seen.add(key)
        merged.append(topic)
    logger.debug("Vocabulary: %d topics after merging custom topics", len(merged))
    return merged
