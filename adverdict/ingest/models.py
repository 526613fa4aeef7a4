"""Ingestion data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

ZERO = Decimal("0")


def _ratio(num: Decimal, den: Decimal) -> Decimal:
    if den == 0:
        return ZERO
    return num / den


@dataclass(frozen=True, slots=True)
class Metrics:
    """Summable performance counters shared by records and hierarchy nodes."""

    impressions: int = 0
    clicks: int = 0
    spend: Decimal = ZERO
    purchases: int = 0
    revenue: Decimal = ZERO

    def __add__(self, other: Metrics) -> Metrics:
        return Metrics(
            impressions=self.impressions + other.impressions,
            clicks=self.clicks + other.clicks,
            spend=self.spend + other.spend,
            purchases=self.purchases + other.purchases,
            revenue=self.revenue + other.revenue,
        )

    @classmethod
    def total(cls, items: Iterable[Metrics]) -> Metrics:
        result = cls()
        for item in items:
            result = result + item
        return result

    @property
    def roas(self) -> Decimal:
        return _ratio(self.revenue, self.spend)

    @property
    def ctr(self) -> Decimal:
        return _ratio(Decimal(self.clicks), Decimal(self.impressions))

    @property
    def cpc(self) -> Decimal:
        return _ratio(self.spend, Decimal(self.clicks))

    @property
    def cpm(self) -> Decimal:
        return _ratio(self.spend * 1000, Decimal(self.impressions))

    @property
    def cpa(self) -> Decimal:
        return _ratio(self.spend, Decimal(self.purchases))


@dataclass(frozen=True, slots=True)
class PerformanceRecord:
    """One ad's numbers for one reporting period."""

    period_start: date
    period_end: date
    campaign_name: str
    adset_name: str
    ad_name: str
    impressions: int = 0
    clicks: int = 0
    spend: Decimal = ZERO
    purchases: int = 0
    revenue: Decimal = ZERO

    @property
    def metrics(self) -> Metrics:
        return Metrics(
            impressions=self.impressions,
            clicks=self.clicks,
            spend=self.spend,
            purchases=self.purchases,
            revenue=self.revenue,
        )

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.campaign_name, self.adset_name, self.ad_name)
