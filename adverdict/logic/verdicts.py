"""Verdict classification for performance nodes."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from adverdict.ingest.models import ZERO
from adverdict.logic.rules import Rules


class Verdict(str, Enum):
    SCALE = "scale"
    WATCH = "watch"
    CUT = "cut"
    LEARN = "learn"

    @property
    def label(self) -> str:
        return self.value.title()

    @property
    def icon(self) -> str:
        return VERDICT_ICONS[self]


VERDICT_ICONS = {
    Verdict.SCALE: "↑",
    Verdict.WATCH: "●",
    Verdict.CUT: "↓",
    Verdict.LEARN: "○",
}


def compute_roas(revenue: Decimal, spend: Decimal) -> Decimal:
    if spend == 0:
        return ZERO
    return revenue / spend


def classify(spend: Decimal, roas: Decimal, rules: Rules) -> Verdict:
    # Order matters: low spend wins over any ROAS.
    if spend < rules.learning_spend:
        return Verdict.LEARN
    if roas >= rules.scale_roas:
        return Verdict.SCALE
    if roas >= rules.min_roas:
        return Verdict.WATCH
    return Verdict.CUT
