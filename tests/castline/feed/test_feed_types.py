"""Tests for feed and episode record models."""

import pytest

from castline.feed.types import (
    EpisodeCustomization,
    EpisodeRecord,
    FeedCustomizations,
    FeedRecord,
)


def _episode(name: str, **kwargs: object) -> EpisodeRecord:
    return EpisodeRecord.model_validate(
        {"title": name, "media_url": f"https://cdn.example.com/{name}.mp3", **kwargs}
    )


@pytest.mark.unit
def test_episode_sanitizers():
    episode = _episode(
        "  Ep &quot;1&quot; ",
        duration="45:30",
        season="-3",
        post_id=None,
        episode_type="",
        published=1700000000,
    )

    assert episode.title == 'Ep "1"'
    assert episode.duration == 2730
    assert episode.season == 3
    assert episode.post_id == 0
    assert episode.episode_type == "full"
    assert episode.published.timestamp == 1700000000


@pytest.mark.unit
def test_episode_round_trips_through_json():
    episode = _episode("one", published="Tue, 10 Jun 2025 10:00:00 +0200")

    restored = EpisodeRecord.model_validate(episode.model_dump(mode="json"))

    assert restored == episode
    assert restored.published.offset == 7200


@pytest.mark.unit
def test_refresh_derived_collects_seasons_and_categories():
    record = FeedRecord(
        items={
            "a": _episode("a", season=1, categories={"news": "News"}),
            "b": _episode("b", season=2, categories={"tech": "Tech"}),
            "c": _episode("c", season=1),
        }
    )

    record.refresh_derived()

    assert record.total == 3
    assert record.seasons == [1, 2]
    assert record.categories == {"news": "News", "tech": "Tech"}


@pytest.mark.unit
def test_with_customizations_overlays_ids_without_mutating():
    record = FeedRecord(items={"a": _episode("a"), "b": _episode("b", post_id=5)})
    custom = FeedCustomizations(
        cover_id=9,
        items={
            "a": EpisodeCustomization(featured_id=3, post_id=7),
            "b": EpisodeCustomization(featured_id=4),
            "gone": EpisodeCustomization(post_id=1),
        },
    )

    customized = record.with_customizations(custom)

    assert customized.cover_id == 9
    assert customized.items["a"].featured_id == 3
    assert customized.items["a"].post_id == 7
    assert customized.items["b"].featured_id == 4
    assert customized.items["b"].post_id == 5
    assert "gone" not in customized.items
    assert record.cover_id == 0
    assert record.items["a"].post_id == 0


@pytest.mark.unit
def test_customization_item_creates_entry():
    custom = FeedCustomizations()

    custom.item("a").post_id = 12

    assert custom.items["a"].post_id == 12
