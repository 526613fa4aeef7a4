"""Persistence for accounts, rules and performance records."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy.engine import Engine
from sqlalchemy.sql import text

from adverdict.ingest.models import PerformanceRecord
from adverdict.logic.rules import DEFAULT_RULES, Rules, validate_rules
from adverdict.utils.dates import format_date

logger = logging.getLogger(__name__)


def load_records(engine: Engine, account_id: int) -> list[PerformanceRecord]:
    """All records for an account, newest reporting period first."""
    query = text(
        """
        SELECT date_start, date_end, campaign_name, adset_name, ad_name,
               impressions, clicks, spend, purchases, revenue
        FROM ad_data
        WHERE account_id = :account_id
        ORDER BY date_start DESC, id ASC
        """
    )
    with engine.connect() as conn:
        rows = conn.execute(query, {"account_id": account_id}).mappings().all()
    return [
        PerformanceRecord(
            period_start=_as_date(row["date_start"]),
            period_end=_as_date(row["date_end"]),
            campaign_name=row["campaign_name"],
            adset_name=row["adset_name"],
            ad_name=row["ad_name"],
            impressions=int(row["impressions"]),
            clicks=int(row["clicks"]),
            spend=_as_decimal(row["spend"]),
            purchases=int(row["purchases"]),
            revenue=_as_decimal(row["revenue"]),
        )
        for row in rows
    ]


def replace_records(
    engine: Engine, account_id: int, records: Sequence[PerformanceRecord], *, source: str
) -> int:
    """Swap the account's records for a new batch; returns the upload id."""
    with engine.begin() as conn:
        upload_id = conn.execute(
            text(
                """
                INSERT INTO uploads (account_id, ts, source, record_count)
                VALUES (:account_id, :ts, :source, :record_count)
                RETURNING id
                """
            ),
            {
                "account_id": account_id,
                "ts": _utc_now(),
                "source": source,
                "record_count": len(records),
            },
        ).scalar_one()
        conn.execute(text("DELETE FROM ad_data WHERE account_id = :account_id"), {"account_id": account_id})
        if records:
            conn.execute(
                text(
                    """
                    INSERT INTO ad_data (
                        account_id, upload_id, date_start, date_end, campaign_name, adset_name, ad_name,
                        impressions, clicks, spend, purchases, revenue
                    )
                    VALUES (
                        :account_id, :upload_id, :date_start, :date_end, :campaign_name, :adset_name, :ad_name,
                        :impressions, :clicks, :spend, :purchases, :revenue
                    )
                    """
                ),
                [_record_params(account_id, upload_id, record) for record in records],
            )
    logger.info("Replaced records for account %s with %d rows from %s", account_id, len(records), source)
    return int(upload_id)


def load_rules(engine: Engine, account_id: int) -> Rules:
    with engine.connect() as conn:
        row = conn.execute(
            text("SELECT scale_roas, min_roas, learning_spend FROM rules WHERE account_id = :account_id"),
            {"account_id": account_id},
        ).mappings().first()
    if row is None:
        return DEFAULT_RULES
    return Rules(
        scale_roas=_as_decimal(row["scale_roas"]),
        min_roas=_as_decimal(row["min_roas"]),
        learning_spend=_as_decimal(row["learning_spend"]),
    )


def save_rules(engine: Engine, account_id: int, rules: Rules) -> Rules:
    validate_rules(rules)
    with engine.begin() as conn:
        conn.execute(
            text(
                """
                INSERT INTO rules (account_id, scale_roas, min_roas, learning_spend, updated_at)
                VALUES (:account_id, :scale_roas, :min_roas, :learning_spend, :updated_at)
                ON CONFLICT (account_id) DO UPDATE SET
                  scale_roas = EXCLUDED.scale_roas,
                  min_roas = EXCLUDED.min_roas,
                  learning_spend = EXCLUDED.learning_spend,
                  updated_at = EXCLUDED.updated_at
                """
            ),
            {
                "account_id": account_id,
                "scale_roas": str(rules.scale_roas),
                "min_roas": str(rules.min_roas),
                "learning_spend": str(rules.learning_spend),
                "updated_at": _utc_now(),
            },
        )
    return rules


def reset_rules(engine: Engine, account_id: int) -> Rules:
    with engine.begin() as conn:
        conn.execute(text("DELETE FROM rules WHERE account_id = :account_id"), {"account_id": account_id})
    return DEFAULT_RULES


def load_plan(engine: Engine, account_id: int) -> str:
    with engine.connect() as conn:
        plan = conn.execute(
            text("SELECT plan FROM accounts WHERE id = :account_id"),
            {"account_id": account_id},
        ).scalar_one_or_none()
    return plan or "free"


def account_exists(engine: Engine, account_id: int) -> bool:
    with engine.connect() as conn:
        found = conn.execute(
            text("SELECT id FROM accounts WHERE id = :account_id"),
            {"account_id": account_id},
        ).scalar_one_or_none()
    return found is not None


def _record_params(account_id: int, upload_id: int, record: PerformanceRecord) -> dict[str, Any]:
    return {
        "account_id": account_id,
        "upload_id": upload_id,
        "date_start": format_date(record.period_start),
        "date_end": format_date(record.period_end),
        "campaign_name": record.campaign_name,
        "adset_name": record.adset_name,
        "ad_name": record.ad_name,
        "impressions": record.impressions,
        "clicks": record.clicks,
        "spend": str(record.spend),
        "purchases": record.purchases,
        "revenue": str(record.revenue),
    }


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
