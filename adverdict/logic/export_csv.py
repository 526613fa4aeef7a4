"""CSV export helpers."""

from __future__ import annotations

import csv
import io
import os
from decimal import Decimal, localcontext
from pathlib import Path
from typing import Iterable, Iterator

from adverdict.logic.hierarchy import HierarchyNode, Rollup

OUTPUT_DIR = Path(os.environ.get("CSV_OUTPUT_DIR", "artifacts/csv"))

CSV_COLUMNS = [
    "level",
    "campaign",
    "ad_set",
    "ad",
    "impressions",
    "clicks",
    "spend",
    "purchases",
    "revenue",
    "roas",
    "ctr",
    "cpc",
    "cpm",
    "cpa",
    "verdict",
]

SAMPLE_HEADER = [
    "Reporting starts",
    "Reporting ends",
    "Ad name",
    "Campaign name",
    "Ad set name",
    "Impressions",
    "Link clicks",
    "Amount spent (USD)",
    "Direct website purchases",
    "Direct website purchases conversion value",
]

SAMPLE_ROWS = [
    ("2024-01-15", "2024-01-21", "Video - Summer Vibes", "Summer Sale 2024", "Lookalike 1%", 45000, 1100, 750, 18, 3400),
    ("2024-01-15", "2024-01-21", "Carousel - Products", "Summer Sale 2024", "Lookalike 1%", 40000, 800, 650, 10, 1800),
    ("2024-01-15", "2024-01-21", "Static - Hero Image", "Summer Sale 2024", "Interest - Fashion", 35000, 720, 580, 8, 1400),
    ("2024-01-15", "2024-01-21", "UGC Review", "Summer Sale 2024", "Interest - Fashion", 30000, 680, 520, 9, 1900),
    ("2024-01-15", "2024-01-21", "Brand Story Video", "Brand Awareness Q4", "Broad - US", 120000, 1200, 1100, 6, 950),
    ("2024-01-15", "2024-01-21", "Product Demo", "Brand Awareness Q4", "Broad - US", 80000, 600, 700, 6, 1150),
    ("2024-01-15", "2024-01-21", "Retargeting - Cart", "Retargeting", "Cart Abandoners", 15000, 450, 280, 12, 2800),
    ("2024-01-15", "2024-01-21", "Retargeting - Viewed", "Retargeting", "Product Viewers", 25000, 380, 320, 8, 1600),
]


def rollup_rows(rollup: Rollup) -> Iterator[dict[str, object]]:
    """Flatten the hierarchy depth-first, grand total first."""
    yield _row(rollup.grand_total, "", "", "")
    for campaign in rollup.campaigns:
        yield _row(campaign, campaign.name, "", "")
        for adset in campaign.children:
            yield _row(adset, campaign.name, adset.name, "")
            for ad in adset.children:
                yield _row(ad, campaign.name, adset.name, ad.name)


def render_rollup_csv(rollup: Rollup) -> str:
    buffer = io.StringIO()
    _write(buffer, rollup_rows(rollup), CSV_COLUMNS)
    return buffer.getvalue()


def generate_rollup_csv(rollup: Rollup, name: str) -> Path:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    file_path = OUTPUT_DIR / f"{name}.csv"
    with file_path.open("w", newline="") as csvfile:
        _write(csvfile, rollup_rows(rollup), CSV_COLUMNS)
    return file_path


def sample_csv() -> str:
    """Tab-separated sample upload in the Meta Ads export layout."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter="\t", lineterminator="\n")
    writer.writerow(SAMPLE_HEADER)
    writer.writerows(SAMPLE_ROWS)
    return buffer.getvalue()


def _write(stream, rows: Iterable[dict[str, object]], columns: list[str]) -> None:
    writer = csv.DictWriter(stream, fieldnames=columns, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)


def _row(node: HierarchyNode, campaign: str, adset: str, ad: str) -> dict[str, object]:
    metrics = node.metrics
    return {
        "level": node.level,
        "campaign": campaign,
        "ad_set": adset,
        "ad": ad,
        "impressions": node.impressions,
        "clicks": node.clicks,
        "spend": _money(node.spend),
        "purchases": node.purchases,
        "revenue": _money(node.revenue),
        "roas": _round(node.roas, 2),
        "ctr": _round(metrics.ctr, 4),
        "cpc": _money(metrics.cpc),
        "cpm": _money(metrics.cpm),
        "cpa": _money(metrics.cpa),
        "verdict": node.verdict.value,
    }


def _money(value: Decimal) -> str:
    return _round(value, 2)


def _round(value: Decimal, places: int) -> str:
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + places + 2)
        return str(value.quantize(Decimal(1).scaleb(-places)))
