from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, MetaData, Numeric, Table, Text, create_engine
from sqlalchemy.pool import StaticPool

from adverdict.api import main as api
from adverdict.ingest.models import PerformanceRecord
from adverdict.logic.rules import Rules

metadata = MetaData()

accounts = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("plan", Text, nullable=False, default="free"),
)

rules = Table(
    "rules",
    metadata,
    Column("account_id", Integer, ForeignKey("accounts.id"), primary_key=True),
    Column("scale_roas", Numeric, nullable=False),
    Column("min_roas", Numeric, nullable=False),
    Column("learning_spend", Numeric, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

uploads = Table(
    "uploads",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("account_id", Integer, ForeignKey("accounts.id"), nullable=False),
    Column("ts", DateTime, nullable=False),
    Column("source", Text, nullable=False),
    Column("record_count", Integer, nullable=False),
)

ad_data = Table(
    "ad_data",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("account_id", Integer, ForeignKey("accounts.id"), nullable=False),
    Column("upload_id", Integer, ForeignKey("uploads.id")),
    Column("date_start", Date, nullable=False),
    Column("date_end", Date, nullable=False),
    Column("campaign_name", Text, nullable=False),
    Column("adset_name", Text, nullable=False),
    Column("ad_name", Text, nullable=False),
    Column("impressions", Integer, nullable=False),
    Column("clicks", Integer, nullable=False),
    Column("spend", Numeric, nullable=False),
    Column("purchases", Integer, nullable=False),
    Column("revenue", Numeric, nullable=False),
)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def seeded_engine(engine):
    with engine.begin() as conn:
        conn.execute(accounts.insert(), [
            {"id": 1, "name": "Free Shop", "plan": "free"},
            {"id": 2, "name": "Pro Shop", "plan": "pro"},
        ])
    return engine


@pytest.fixture()
def client(seeded_engine):
    api.app.dependency_overrides[api.get_engine] = lambda: seeded_engine
    with TestClient(api.app) as test_client:
        yield test_client
    api.app.dependency_overrides.clear()


@pytest.fixture()
def default_rules():
    return Rules(scale_roas=Decimal("3.0"), min_roas=Decimal("1.5"), learning_spend=Decimal("100"))


@pytest.fixture()
def make_record():
    def _make(campaign="Camp", adset="Set", ad="Ad", spend="0", revenue="0", **overrides):
        fields = {
            "period_start": date(2024, 1, 15),
            "period_end": date(2024, 1, 21),
            "campaign_name": campaign,
            "adset_name": adset,
            "ad_name": ad,
            "impressions": 1000,
            "clicks": 10,
            "spend": Decimal(spend),
            "purchases": 1,
            "revenue": Decimal(revenue),
        }
        fields.update(overrides)
        return PerformanceRecord(**fields)

    return _make
