"""Seed database with demo accounts and the sample upload."""

from __future__ import annotations

from dotenv import load_dotenv
from sqlalchemy import text

from adverdict.db.repository import replace_records
from adverdict.db.session import create_engine_from_env
from adverdict.ingest.normalizer import normalize
from adverdict.logic.export_csv import sample_csv


DEMO_ACCOUNTS = [
    {"id": 1, "name": "Demo Free", "plan": "free"},
    {"id": 2, "name": "Demo Pro", "plan": "pro"},
    {"id": 3, "name": "Demo Agency", "plan": "agency"},
]


def main() -> None:
    load_dotenv()
    engine = create_engine_from_env()
    with engine.begin() as conn:
        for account in DEMO_ACCOUNTS:
            conn.execute(
                text(
                    """
                    INSERT INTO accounts (id, name, plan)
                    VALUES (:id, :name, :plan)
                    ON CONFLICT (id) DO UPDATE SET name = EXCLUDED.name, plan = EXCLUDED.plan
                    """
                ),
                account,
            )
    records, warnings = normalize(sample_csv())
    for account in DEMO_ACCOUNTS:
        replace_records(engine, account["id"], records, source="seed")
    for warning in warnings:
        print("warning:", warning)
    print("Seed complete")


if __name__ == "__main__":
    main()
