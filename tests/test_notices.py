"""Tests for the notice centre.

Updates:
  v0.1.0 - 2026-10-15 - Cover subscriptions, bounded history, and track().
"""

from __future__ import annotations

import pytest

from retrieval.notices import Notice, NoticeCenter, NoticeLevel


def test_subscription_receives_until_closed() -> None:
    center = NoticeCenter()
    received: list[Notice] = []

    with center.subscribe(received.append):
        center.warn("Search unavailable", "offline", fingerprint="abc")
    center.warn("Search unavailable", "still offline")

    assert len(received) == 1
    assert received[0].level is NoticeLevel.WARNING
    assert received[0].metadata == {"fingerprint": "abc"}
    assert len(center.history()) == 2


def test_history_is_bounded() -> None:
    center = NoticeCenter(history_limit=2)

    for index in range(3):
        center.publish(Notice(title=f"n{index}", message=""))

    assert [notice.title for notice in center.history()] == ["n1", "n2"]


def test_track_publishes_success_and_failure() -> None:
    center = NoticeCenter()

    with center.track(title="Delete prompt", success_message="Prompt deleted"):
        pass
    with pytest.raises(RuntimeError):
        with center.track(title="Delete prompt", success_message="Prompt deleted"):
            raise RuntimeError("boom")

    success, failure = center.history()
    assert success.level is NoticeLevel.SUCCESS
    assert success.message == "Prompt deleted"
    assert failure.level is NoticeLevel.ERROR
    assert failure.message == "Delete prompt failed: boom"
    assert failure.to_dict()["level"] == "error"
