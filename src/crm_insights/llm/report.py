"""Executive report prompt built from the analytical profile."""

import json

from crm_insights.analytics.profile import AnalyticalProfile, DimensionEntry

SELLERS_IN_PROMPT = 7
SOURCES_IN_PROMPT = 5


def _dump(entries) -> str:
    return json.dumps([e.model_dump(mode="json") for e in entries], indent=2, ensure_ascii=False)


def build_report_prompt(profile: AnalyticalProfile) -> str:
    """Prompt asking a text generation model for a markdown executive diagnosis."""
    s = profile.summary
    return f"""You are a Head of Business Intelligence auditing a company's commercial operation.
Your job is not to describe numbers but to diagnose the health of the business, relate the data
points to each other and give concrete advice on how to improve.

--- AUDITED DATA ---

1. VOLUME AND REVENUE:
- Total opportunities: {s.total_analyzed}
- Confirmed revenue: {s.total_revenue:.2f}
- Won deals: {s.won}
- Lost deals: {s.lost}
- Open deals: {s.open}
- Average deal size: {s.average_deal_size:.2f}

2. FUNNELS (tell support funnels apart from sales funnels):
{_dump(profile.funnels)}

3. SELLER PERFORMANCE (top sellers):
{_dump(profile.sellers[:SELLERS_IN_PROMPT])}

4. LEAD SOURCES (top sources):
{_dump(profile.sources[:SOURCES_IN_PROMPT])}

5. TIMELINE (seasonality):
{json.dumps([t.model_dump(mode="json") for t in profile.timeline], indent=2)}

6. GEOGRAPHY AND PORTFOLIO:
- Top states: {_dump(profile.geography.states)}
- Top cities: {_dump(profile.geography.cities)}
- Top products: {_dump(profile.products)}

--- EXECUTIVE REPORT STRUCTURE (MARKDOWN) ---

**1. Executive diagnosis**
A short verdict on the health of the operation. Is conversion healthy? Is revenue overly
dependent on a single seller or channel?

**2. Team efficiency (volume x value)**
Who brings high volume and high value? Who converts well but receives few leads? Who burns
leads (high volume, low conversion)? Compare sellers receiving similar volumes before blaming
lead quality.

**3. Channels and funnels**
Which funnel is operational (support) and which generates revenue? Which lead source brings
real revenue and which only brings volume? Is the operation concentrated in a region or product?

**4. Seasonality**
Best and worst months. Is there a rising or falling trend over the last three months?

**5. Action plan (3 points)**
Three specific orders for the sales director to improve these numbers.

Tone: professional, analytical, direct. No congratulations; go straight to the insights.
"""


def _table(title: str, entries: list[DimensionEntry]) -> list[str]:
    lines = [f"### {title}", "", "| Name | Opportunities | Won | Revenue | Conversion |", "|---|---|---|---|---|"]
    for e in entries:
        lines.append(f"| {e.name} | {e.opportunities} | {e.won} | {e.revenue:.2f} | {e.conversion} |")
    lines.append("")
    return lines


def render_report(profile: AnalyticalProfile) -> str:
    """Plain markdown rendering of the profile, used when no model is involved."""
    s = profile.summary
    lines = [
        "## Sales overview",
        "",
        f"- Opportunities: {s.total_analyzed} (won {s.won}, lost {s.lost}, open {s.open})",
        f"- Revenue: {s.total_revenue:.2f}",
        f"- Average deal size: {s.average_deal_size:.2f}",
        "",
    ]
    lines += _table("Funnels", profile.funnels)
    lines += _table("Sellers", profile.sellers[:SELLERS_IN_PROMPT])
    lines += _table("Lead sources", profile.sources[:SOURCES_IN_PROMPT])
    lines += _table("States", profile.geography.states)
    lines += _table("Cities", profile.geography.cities)
    lines += _table("Products", profile.products)
    lines += ["### Timeline", "", "| Month | Created | Won | Revenue |", "|---|---|---|---|"]
    for t in profile.timeline:
        lines.append(f"| {t.month} | {t.opportunities_created} | {t.sales_won} | {t.revenue:.2f} |")
    return "\n".join(lines) + "\n"
