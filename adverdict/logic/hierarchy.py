"""Campaign → ad set → ad rollups with a verdict on every node."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import ClassVar, Iterable, Sequence

from adverdict.ingest.models import Metrics, PerformanceRecord
from adverdict.logic.rules import Rules
from adverdict.logic.verdicts import Verdict, classify, compute_roas

GRAND_TOTAL_NAME = "All Campaigns"


@dataclass(frozen=True, slots=True)
class HierarchyNode:
    name: str
    impressions: int
    clicks: int
    spend: Decimal
    purchases: int
    revenue: Decimal
    roas: Decimal
    verdict: Verdict
    children: tuple[HierarchyNode, ...] = ()

    level: ClassVar[str] = "node"

    @property
    def metrics(self) -> Metrics:
        return Metrics(
            impressions=self.impressions,
            clicks=self.clicks,
            spend=self.spend,
            purchases=self.purchases,
            revenue=self.revenue,
        )


@dataclass(frozen=True, slots=True)
class AdNode(HierarchyNode):
    level: ClassVar[str] = "ad"


@dataclass(frozen=True, slots=True)
class AdSetNode(HierarchyNode):
    level: ClassVar[str] = "adset"

    @property
    def ad_count(self) -> int:
        return len(self.children)


@dataclass(frozen=True, slots=True)
class CampaignNode(HierarchyNode):
    level: ClassVar[str] = "campaign"

    @property
    def adset_count(self) -> int:
        return len(self.children)

    @property
    def ad_count(self) -> int:
        return sum(len(adset.children) for adset in self.children)


@dataclass(frozen=True, slots=True)
class AccountTotal(HierarchyNode):
    level: ClassVar[str] = "account"

    @property
    def campaign_count(self) -> int:
        return len(self.children)


@dataclass(frozen=True, slots=True)
class Rollup:
    campaigns: tuple[CampaignNode, ...]
    grand_total: AccountTotal


def aggregate(records: Iterable[PerformanceRecord], rules: Rules) -> Rollup:
    """Build the classified hierarchy.

    Campaigns, ad sets and ads keep the order in which they first appear in
    ``records``. Ad sets are keyed by name within their campaign, and every
    record becomes its own ad leaf, so repeated ads are summed by their ad set.
    """
    grouped: dict[str, dict[str, list[AdNode]]] = {}
    for record in records:
        adsets = grouped.setdefault(record.campaign_name, {})
        ads = adsets.setdefault(record.adset_name, [])
        ads.append(_build(AdNode, record.ad_name, record.metrics, rules))

    campaigns: list[CampaignNode] = []
    for campaign_name, adsets in grouped.items():
        adset_nodes = [_rollup(AdSetNode, adset_name, ads, rules) for adset_name, ads in adsets.items()]
        campaigns.append(_rollup(CampaignNode, campaign_name, adset_nodes, rules))

    grand_total = _rollup(AccountTotal, GRAND_TOTAL_NAME, campaigns, rules)
    return Rollup(campaigns=tuple(campaigns), grand_total=grand_total)


def reporting_period(records: Sequence[PerformanceRecord]) -> tuple[date, date] | None:
    if not records:
        return None
    start = min(record.period_start for record in records)
    end = max(record.period_end for record in records)
    return start, end


def _rollup(cls, name: str, children: Sequence[HierarchyNode], rules: Rules):
    metrics = Metrics.total(child.metrics for child in children)
    return _build(cls, name, metrics, rules, children)


def _build(cls, name: str, metrics: Metrics, rules: Rules, children: Sequence[HierarchyNode] = ()):
    roas = compute_roas(metrics.revenue, metrics.spend)
    return cls(
        name=name,
        impressions=metrics.impressions,
        clicks=metrics.clicks,
        spend=metrics.spend,
        purchases=metrics.purchases,
        revenue=metrics.revenue,
        roas=roas,
        verdict=classify(metrics.spend, roas, rules),
        children=tuple(children),
    )
