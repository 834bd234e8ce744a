"""Tests for label grouping."""

from engdigest_core.analysis.grouping import UNLABELED, group_by_label, top_labels


class TestGroupByLabel:
    def test_unlabeled_bucket(self, make_record):
        grouped = group_by_label([make_record(number=1, labels=[])])
        assert list(grouped) == [UNLABELED]

    def test_pr_appears_under_each_label(self, make_record):
        grouped = group_by_label([make_record(number=1, labels=["bug", "backend"])])
        assert [r.number for r in grouped["bug"]] == [1]
        assert [r.number for r in grouped["backend"]] == [1]

    def test_preserves_pr_order_within_label(self, make_record):
        records = [make_record(number=n, labels=["feature"]) for n in (3, 1, 2)]
        assert [r.number for r in group_by_label(records)["feature"]] == [3, 1, 2]


class TestTopLabels:
    def test_sorted_by_size_and_limited(self, make_record):
        records = (
            [make_record(number=n, labels=["bug"]) for n in range(3)]
            + [make_record(number=10 + n, labels=["feature"]) for n in range(5)]
            + [make_record(number=20, labels=["docs"])]
        )
        assert top_labels(group_by_label(records), limit=2) == ["feature", "bug"]

    def test_ties_keep_first_seen_order(self, make_record):
        records = [make_record(number=1, labels=["a"]), make_record(number=2, labels=["b"])]
        assert top_labels(group_by_label(records)) == ["a", "b"]

    def test_empty(self):
        assert top_labels({}) == []
