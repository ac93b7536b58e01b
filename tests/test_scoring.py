"""Tests for top performer ranking and category aggregates.

Updates:
  v0.1.2 - 2026-10-18 - Cover category spellings sharing a slug.
  v0.1.1 - 2026-10-16 - Cover category_insights.
  v0.1.0 - 2026-10-14 - Cover performance scores and category stats.
"""

from __future__ import annotations

import pytest
from conftest import make_prompt

from models.prompt_model import Prompt
from retrieval.scoring import category_insights, category_stats, performance_score, top_performers


def test_top_performers_weight_copies_and_rating() -> None:
    records = [
        make_prompt(2, average_rating=5.0, rating_count=1),
        make_prompt(1, copy_count=10),
        make_prompt(3),
    ]

    ranked = top_performers(records)

    assert [item.prompt.id for item in ranked] == ["1", "2"]
    assert [item.score for item in ranked] == pytest.approx([7.0, 1.5])


def test_top_performers_break_ties_by_id_and_honour_limit() -> None:
    records = [make_prompt(i, copy_count=1) for i in (3, 1, 2)]

    assert [item.prompt.id for item in top_performers(records, limit=2)] == ["1", "2"]
    assert top_performers(records, limit=0) == []


def test_performance_score() -> None:
    assert performance_score(make_prompt(1, copy_count=2, average_rating=4.0)) == pytest.approx(2.6)


def test_category_stats_average_only_rated_records() -> None:
    records = [
        make_prompt(1, average_rating=4.0, rating_count=1, copy_count=3),
        make_prompt(2, average_rating=5.0, rating_count=1, is_community=True),
        make_prompt(3, category="Code"),
        make_prompt(4, category=""),
    ]

    stats = {item.category: item for item in category_stats(records)}

    assert list(stats) == ["Writing", "Code", "Uncategorized"]
    assert stats["Writing"].count == 2
    assert stats["Writing"].average_rating == pytest.approx(4.5)
    assert stats["Writing"].total_copies == 3
    assert stats["Writing"].community_count == 1
    assert stats["Code"].average_rating == 0.0


def test_category_stats_merge_spellings_with_one_slug() -> None:
    records = [
        make_prompt(1, category="Writing", copy_count=2),
        make_prompt(2, category="writing ", copy_count=5),
        make_prompt(3, category="WRITING", average_rating=3.0, rating_count=2),
        make_prompt(4, category="Code"),
    ]

    rows = category_stats(records)

    assert [(row.category, row.count) for row in rows] == [("Writing", 3), ("Code", 1)]
    assert rows[0].total_copies == 7
    assert rows[0].average_rating == pytest.approx(3.0)


def test_category_insights_for_one_category(sample_records: list[Prompt]) -> None:
    insights = category_insights(sample_records, "writing")

    assert insights.total_prompts == 2
    assert insights.average_rating == pytest.approx(2.0)
    assert insights.total_copies == 10
    assert insights.community_count == 1
    assert [record.id for record in insights.top_rated] == ["3"]


def test_category_insights_for_all_categories(sample_records: list[Prompt]) -> None:
    insights = category_insights(sample_records, "All")

    assert insights.total_prompts == 4
    assert insights.average_rating == pytest.approx(2.25)
    assert [record.id for record in insights.top_rated] == ["2", "3"]


def test_category_insights_for_unknown_category(sample_records: list[Prompt]) -> None:
    insights = category_insights(sample_records, "Marketing")

    assert insights.total_prompts == 0
    assert insights.average_rating == 0.0
    assert insights.top_rated == []
