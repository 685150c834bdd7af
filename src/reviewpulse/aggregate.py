"""In-flight topic table: label → category + per-day review counts.

Keys are compared through :func:`reviewpulse.topics.normalize_label`, so
``"App crashing"`` and ``"app crashing."`` land on the same entry. Each
entry remembers the spelling it was first seen with; that spelling is what
ends up in the report.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from pydantic import BaseModel, Field

from reviewpulse.models import Category, MergeGroup, TopicMatch
from reviewpulse.topics import normalize_label

logger = logging.getLogger(__name__)


class TopicEntry(BaseModel):
    label: str
    category: Category
    frequencies: dict[str, int] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.frequencies.values())


class TopicTable:
    """Insertion-ordered table of topic entries for one run."""

    def __init__(self) -> None:
        self._entries: dict[str, TopicEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TopicEntry]:
        return iter(list(self._entries.values()))

    def __contains__(self, label: object) -> bool:
        return isinstance(label, str) and normalize_label(label) in self._entries

    def get(self, label: str) -> TopicEntry | None:
        return self._entries.get(normalize_label(label))

    def labels(self) -> list[str]:
        return [entry.label for entry in self._entries.values()]

    def total_attributions(self) -> int:
        return sum(entry.total for entry in self._entries.values())

    # ── mutation ────────────────────────────────────────────────────────

    def add(self, label: str, category: Category, day: str, count: int) -> bool:
        """Add *count* reviews for *label* on *day*; return True if the label is new.

        Blank labels are dropped.
        """
        if count <= 0:
            return False
        key = normalize_label(label)
        if not key:
            logger.warning("[%s] dropped %d reviews matched to a blank topic label", day, count)
            return False
        created = key not in self._entries
        if created:
            self._entries[key] = TopicEntry(label=label, category=category)
        entry = self._entries[key]
        entry.frequencies[day] = entry.frequencies.get(day, 0) + count
        return created

    def fold_matches(
        self,
        day: str,
        matches: Iterable[TopicMatch],
        batch_size: int,
    ) -> tuple[list[str], int]:
        """Fold one day's classifier matches into the table.

        Only distinct review indices inside ``1..batch_size`` are counted.
        Returns ``(labels created, how many of them the classifier flagged
        as new topics)``.
        """
        created: list[str] = []
        new_topics = 0
        for match in matches:
            indices = {i for i in match.matched_reviews if 1 <= i <= batch_size}
            ignored = len(match.matched_reviews) - len(indices)
            if ignored:
                logger.debug(
                    "[%s] '%s': ignored %d out-of-range or repeated indices",
                    day, match.topic, ignored,
                )
            if self.add(match.topic, match.category, day, len(indices)):
                created.append(match.topic)
                if match.is_new_topic:
                    new_topics += 1
        return created, new_topics

    def apply_merges(self, groups: Iterable[MergeGroup]) -> int:
        """Fold variant entries into their canonical entry; return variants removed.

        A group whose canonical label is not in the table is skipped whole.
        Variants missing from the table are ignored.
        """
        removed = 0
        for group in groups:
            if not group.variants:
                continue
            canonical_key = normalize_label(group.canonical)
            canonical = self._entries.get(canonical_key)
            if canonical is None:
                logger.info(
                    "Skipping merge into unknown canonical topic '%s' (%d variants)",
                    group.canonical, len(group.variants),
                )
                continue
            for variant in group.variants:
                variant_key = normalize_label(variant)
                if variant_key == canonical_key:
                    continue
                entry = self._entries.pop(variant_key, None)
                if entry is None:
                    continue
                for day, count in entry.frequencies.items():
                    canonical.frequencies[day] = canonical.frequencies.get(day, 0) + count
                removed += 1
                logger.debug("Merged '%s' into '%s'", entry.label, canonical.label)
        return removed
