from dataclasses import FrozenInstanceError
from datetime import date
from decimal import Decimal

import pytest

from adverdict.ingest.normalizer import normalize
from adverdict.logic.export_csv import sample_csv
from adverdict.logic.hierarchy import (
    AccountTotal,
    AdNode,
    AdSetNode,
    CampaignNode,
    aggregate,
    reporting_period,
)
from adverdict.logic.verdicts import Verdict

SUMMED = ("impressions", "clicks", "spend", "purchases", "revenue")


def assert_conserved(node):
    if node.children:
        for field in SUMMED:
            assert getattr(node, field) == sum(getattr(child, field) for child in node.children), field
        for child in node.children:
            assert_conserved(child)
    if node.spend == 0:
        assert node.roas == 0
    else:
        assert node.roas == node.revenue / node.spend


def test_sample_rollup(default_rules):
    records, _ = normalize(sample_csv())
    rollup = aggregate(records, default_rules)

    assert [c.name for c in rollup.campaigns] == ["Summer Sale 2024", "Brand Awareness Q4", "Retargeting"]
    summer, brand, retargeting = rollup.campaigns
    assert [a.name for a in summer.children] == ["Lookalike 1%", "Interest - Fashion"]
    assert summer.spend == Decimal("2500")
    assert summer.verdict is Verdict.SCALE
    assert brand.verdict is Verdict.CUT
    assert retargeting.verdict is Verdict.SCALE

    lookalike = summer.children[0]
    assert [ad.verdict for ad in lookalike.children] == [Verdict.SCALE, Verdict.WATCH]
    # 1100 spend / 3300 revenue lands exactly on the scale threshold
    assert summer.children[1].roas == Decimal("3")
    assert summer.children[1].verdict is Verdict.SCALE

    total = rollup.grand_total
    assert total.spend == Decimal("4900")
    assert total.revenue == Decimal("15000")
    assert total.impressions == 390000
    assert total.verdict is Verdict.SCALE
    assert_conserved(total)


def test_node_types_and_counts(default_rules, make_record):
    records = [
        make_record("A", "S1", "ad1"),
        make_record("A", "S1", "ad2"),
        make_record("A", "S2", "ad3"),
    ]
    rollup = aggregate(records, default_rules)
    campaign = rollup.campaigns[0]
    assert isinstance(rollup.grand_total, AccountTotal)
    assert isinstance(campaign, CampaignNode)
    assert isinstance(campaign.children[0], AdSetNode)
    assert isinstance(campaign.children[0].children[0], AdNode)
    assert campaign.children[0].children[0].children == ()
    assert (campaign.level, campaign.children[0].level) == ("campaign", "adset")
    assert campaign.adset_count == 2
    assert campaign.ad_count == 3
    assert campaign.children[0].ad_count == 2
    assert rollup.grand_total.campaign_count == 1
    assert rollup.grand_total.name == "All Campaigns"


def test_grouping(default_rules, make_record):
    rollup = aggregate(
        [make_record("A", "S1", "ad"), make_record("A", "S2", "ad")],
        default_rules,
    )
    assert len(rollup.campaigns) == 1
    assert [a.name for a in rollup.campaigns[0].children] == ["S1", "S2"]

    rollup = aggregate(
        [make_record("A", "S1", "ad1"), make_record("A", "S1", "ad2")],
        default_rules,
    )
    adsets = rollup.campaigns[0].children
    assert len(adsets) == 1
    assert [ad.name for ad in adsets[0].children] == ["ad1", "ad2"]


def test_adset_name_scoped_to_campaign(default_rules, make_record):
    rollup = aggregate(
        [make_record("A", "Broad", "x", spend="10"), make_record("B", "Broad", "y", spend="20")],
        default_rules,
    )
    first, second = rollup.campaigns
    assert first.children[0].spend == Decimal("10")
    assert second.children[0].spend == Decimal("20")


def test_first_seen_order(default_rules, make_record):
    records = [
        make_record("Zeta", "S2", "a"),
        make_record("Alpha", "S1", "b"),
        make_record("Zeta", "S1", "c"),
        make_record("Zeta", "S2", "d"),
    ]
    rollup = aggregate(records, default_rules)
    assert [c.name for c in rollup.campaigns] == ["Zeta", "Alpha"]
    zeta = rollup.campaigns[0]
    assert [a.name for a in zeta.children] == ["S2", "S1"]
    assert [ad.name for ad in zeta.children[0].children] == ["a", "d"]


def test_duplicate_ads_are_summed_by_adset(default_rules, make_record):
    records = [
        make_record("A", "S", "same", spend="60", revenue="300"),
        make_record("A", "S", "same", spend="60", revenue="300"),
    ]
    rollup = aggregate(records, default_rules)
    adset = rollup.campaigns[0].children[0]
    assert len(adset.children) == 2
    assert all(ad.verdict is Verdict.LEARN for ad in adset.children)
    assert adset.spend == Decimal("120")
    assert adset.verdict is Verdict.SCALE


def test_verdict_computed_per_node(default_rules, make_record):
    records = [
        make_record("A", "S", "small-winner", spend="50", revenue="500"),
        make_record("A", "S", "big-loser", spend="200", revenue="100"),
    ]
    rollup = aggregate(records, default_rules)
    adset = rollup.campaigns[0].children[0]
    assert [ad.verdict for ad in adset.children] == [Verdict.LEARN, Verdict.CUT]
    assert adset.roas == Decimal("600") / Decimal("250")
    assert adset.verdict is Verdict.WATCH


def test_zero_spend_nodes(default_rules, make_record):
    rollup = aggregate([make_record(spend="0", revenue="40")], default_rules)
    ad = rollup.campaigns[0].children[0].children[0]
    assert ad.roas == 0
    assert ad.verdict is Verdict.LEARN
    assert_conserved(rollup.grand_total)


def test_empty_input(default_rules):
    rollup = aggregate([], default_rules)
    assert rollup.campaigns == ()
    total = rollup.grand_total
    assert (total.impressions, total.clicks, total.spend, total.purchases, total.revenue) == (0, 0, 0, 0, 0)
    assert total.roas == 0
    assert total.verdict is Verdict.LEARN
    assert total.children == ()


def test_idempotent(default_rules):
    records, _ = normalize(sample_csv())
    assert aggregate(records, default_rules) == aggregate(list(records), default_rules)


def test_nodes_are_frozen(default_rules, make_record):
    rollup = aggregate([make_record()], default_rules)
    campaign = rollup.campaigns[0]
    with pytest.raises(FrozenInstanceError):
        campaign.spend = Decimal("1")


def test_derived_metrics(default_rules, make_record):
    rollup = aggregate(
        [make_record(spend="200", revenue="600", impressions=10000, clicks=250, purchases=4)],
        default_rules,
    )
    metrics = rollup.grand_total.metrics
    assert metrics.roas == Decimal("3")
    assert metrics.ctr == Decimal("0.025")
    assert metrics.cpc == Decimal("0.8")
    assert metrics.cpm == Decimal("20")
    assert metrics.cpa == Decimal("50")

    empty = aggregate([], default_rules).grand_total.metrics
    assert (empty.ctr, empty.cpc, empty.cpm, empty.cpa) == (0, 0, 0, 0)


def test_reporting_period(make_record):
    records = [
        make_record(period_start=date(2024, 2, 1), period_end=date(2024, 2, 7)),
        make_record(period_start=date(2024, 1, 1), period_end=date(2024, 1, 7)),
    ]
    assert reporting_period(records) == (date(2024, 1, 1), date(2024, 2, 7))
    assert reporting_period([]) is None
