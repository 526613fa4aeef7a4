"""Write an account's verdict rollup to CSV."""

from __future__ import annotations

import os

from dotenv import load_dotenv

from adverdict.db.repository import load_records, load_rules
from adverdict.db.session import create_engine_from_env
from adverdict.logic.export_csv import generate_rollup_csv
from adverdict.logic.hierarchy import aggregate
from adverdict.utils.dates import format_date, today_in_tz


def main() -> None:
    load_dotenv()
    account = os.environ.get("REPORT_ACCOUNT_ID")
    if not account:
        raise SystemExit("REPORT_ACCOUNT_ID env var required")
    account_id = int(account)
    engine = create_engine_from_env()
    rollup = aggregate(load_records(engine, account_id), load_rules(engine, account_id))
    path = generate_rollup_csv(rollup, f"account-{account_id}-{format_date(today_in_tz())}")
    print("Wrote", path)


if __name__ == "__main__":
    main()
