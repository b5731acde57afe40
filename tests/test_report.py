"""Tests for the executive report prompt and markdown rendering."""

import pytest

from crm_insights.analytics import aggregate, build_profile
from crm_insights.llm import build_report_prompt, render_report
from crm_insights.models.opportunity import OpportunityStatus


@pytest.fixture
def profile(opp_factory):
    rows = [
        opp_factory(seller=f"Seller {i}", status=OpportunityStatus.WON, amount=float(100 * (i + 1)))
        for i in range(9)
    ]
    rows.append(opp_factory(seller="Seller 0", status=OpportunityStatus.LOST, lead_source="Instagram"))
    return build_profile(aggregate(rows))


def test_prompt_contains_summary_numbers(profile) -> None:
    prompt = build_report_prompt(profile)
    assert "Total opportunities: 10" in prompt
    assert "Confirmed revenue: 4500.00" in prompt
    assert "Average deal size: 500.00" in prompt


def test_prompt_keeps_top_seven_sellers(profile) -> None:
    """Sellers are ranked by won revenue; only the first seven go into the prompt."""
    prompt = build_report_prompt(profile)
    assert "Seller 8" in prompt
    assert "Seller 2" in prompt
    assert '"Seller 1"' not in prompt
    assert '"Seller 0"' not in prompt


def test_prompt_asks_for_action_plan(profile) -> None:
    assert "Action plan" in build_report_prompt(profile)


def test_render_report_markdown(profile) -> None:
    report = render_report(profile)
    assert report.startswith("## Sales overview")
    assert "| Seller 8 | 1 | 1 | 900.00 | 100.0% |" in report
    assert "### Timeline" in report
    assert "| 03/2024 | 10 | 9 | 4500.00 |" in report
