from __future__ import annotations

from engdigest_core.models import ChangeRecord

UNLABELED = "unlabeled"


def group_by_label(records: list[ChangeRecord]) -> dict[str, list[ChangeRecord]]:
    """Group PRs by label. A PR with several labels appears in each group."""
    grouped: dict[str, list[ChangeRecord]] = {}
    for record in records:
        for label in record.labels or [UNLABELED]:
            grouped.setdefault(label, []).append(record)
    return grouped


def top_labels(grouped: dict[str, list[ChangeRecord]], limit: int = 5) -> list[str]:
    """Return the labels with the most PRs, largest first; ties keep insertion order."""
    return sorted(grouped, key=lambda label: len(grouped[label]), reverse=True)[:limit]
