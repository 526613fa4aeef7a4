"""Verdict threshold rules and their defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping


class RulesValidationError(ValueError):
    pass


def _to_decimal(value: Any) -> Decimal:
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise RulesValidationError(f"Not a number: {value!r}") from exc
    if not number.is_finite():
        raise RulesValidationError(f"Not a finite number: {value!r}")
    return number


@dataclass(frozen=True, slots=True)
class Rules:
    scale_roas: Decimal
    min_roas: Decimal
    learning_spend: Decimal

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Rules:
        return cls(
            scale_roas=_to_decimal(data["scale_roas"]),
            min_roas=_to_decimal(data["min_roas"]),
            learning_spend=_to_decimal(data["learning_spend"]),
        )

    def as_dict(self) -> dict[str, float]:
        return {
            "scale_roas": float(self.scale_roas),
            "min_roas": float(self.min_roas),
            "learning_spend": float(self.learning_spend),
        }


DEFAULT_RULES = Rules(
    scale_roas=_to_decimal(os.environ.get("DEFAULT_SCALE_ROAS", "3.0")),
    min_roas=_to_decimal(os.environ.get("DEFAULT_MIN_ROAS", "1.5")),
    learning_spend=_to_decimal(os.environ.get("DEFAULT_LEARNING_SPEND", "100")),
)


def validate_rules(rules: Rules) -> Rules:
    """Reject rule sets that would make the verdict ladder non-monotonic."""
    if not rules.scale_roas > 0:
        raise RulesValidationError("scale_roas must be greater than 0")
    if rules.min_roas < 0:
        raise RulesValidationError("min_roas must not be negative")
    if rules.learning_spend < 0:
        raise RulesValidationError("learning_spend must not be negative")
    if rules.scale_roas < rules.min_roas:
        raise RulesValidationError(
            f"scale_roas ({rules.scale_roas}) must be at least min_roas ({rules.min_roas})"
        )
    return rules
