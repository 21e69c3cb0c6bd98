"""Tests for episode reconciliation."""

import pytest

from castline.feed import ReconciliationEngine
from castline.feed.types import EpisodeRecord


def _episode(episode_id: str, media: str, **kwargs: int) -> EpisodeRecord:
    return EpisodeRecord(
        title=episode_id,
        episode_id=episode_id,
        media_url=f"https://cdn.example.com/{media}.mp3",
        **kwargs,
    )


@pytest.mark.unit
def test_first_fetch_marks_everything_added():
    new = {"A": _episode("ep1", "a"), "B": _episode("ep2", "b")}

    result = ReconciliationEngine().reconcile(new, None)

    assert result.items == new
    assert result.added == ["A", "B"]


@pytest.mark.unit
def test_moved_episode_keeps_old_key_and_metadata():
    """{A:ep1, B:ep2} + {C:ep1', D:ep3} gives {A:ep1', D:ep3} with D added."""
    old = {
        "A": _episode("ep1", "a", post_id=11, featured_id=21),
        "B": _episode("ep2", "b"),
    }
    moved = _episode("ep1", "a-new-host")
    new = {"C": moved, "D": _episode("ep3", "d")}

    result = ReconciliationEngine().reconcile(new, old)

    assert list(result.items) == ["A", "D"]
    assert result.items["A"].media_url == moved.media_url
    assert result.items["A"].post_id == 11
    assert result.items["A"].featured_id == 21
    assert result.added == ["D"]


@pytest.mark.unit
def test_no_deletions_returns_new_as_is():
    old = {"A": _episode("ep1", "a")}
    new = {"B": _episode("ep2", "b"), "A": _episode("ep1", "a")}

    result = ReconciliationEngine().reconcile(new, old)

    assert list(result.items) == ["B", "A"]
    assert result.added == ["B"]


@pytest.mark.unit
def test_no_additions_drops_deleted():
    old = {"A": _episode("ep1", "a"), "B": _episode("ep2", "b")}
    new = {"A": _episode("ep1", "a")}

    result = ReconciliationEngine().reconcile(new, old)

    assert list(result.items) == ["A"]
    assert result.added == []


@pytest.mark.unit
def test_keep_old_merges_deleted_episodes_back():
    old = {"A": _episode("ep1", "a"), "B": _episode("ep2", "b")}
    new = {"A": _episode("ep1", "a"), "C": _episode("ep3", "c")}

    result = ReconciliationEngine(keep_old=True).reconcile(new, old)

    assert list(result.items) == ["A", "C", "B"]
    assert result.added == ["C"]


@pytest.mark.unit
def test_keep_old_applies_without_additions():
    old = {"A": _episode("ep1", "a"), "B": _episode("ep2", "b")}
    new = {"A": _episode("ep1", "a")}

    result = ReconciliationEngine(keep_old=True).reconcile(new, old)

    assert set(result.items) == {"A", "B"}
