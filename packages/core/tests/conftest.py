from datetime import datetime, timedelta, timezone

import pytest

from engdigest_core.models import ChangeRecord

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def build_record(
    number=1,
    additions=10,
    deletions=5,
    changed_files=2,
    files_changed=None,
    hours_to_merge=4,
    labels=None,
    title="Tweak config",
    author="octocat",
):
    return ChangeRecord(
        number=number,
        title=title,
        author=author,
        additions=additions,
        deletions=deletions,
        changed_files=changed_files,
        files_changed=list(files_changed) if files_changed is not None else ["src/app.py", "tests/test_app.py"],
        created_at=T0,
        merged_at=T0 + timedelta(hours=hours_to_merge),
        labels=list(labels) if labels is not None else [],
        url=f"https://github.com/acme/shop/pull/{number}",
    )


@pytest.fixture
def make_record():
    return build_record
