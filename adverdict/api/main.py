"""FastAPI application for uploads, rules and the verdict dashboard."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.engine import Engine

from adverdict.db import repository
from adverdict.db.session import database_url, shared_engine
from adverdict.ingest.models import PerformanceRecord
from adverdict.ingest.normalizer import MAX_METRIC_VALUE, NormalizationError, normalize
from adverdict.logic.entitlements import campaign_limit, normalize_plan, visible_campaigns
from adverdict.logic.export_csv import render_rollup_csv, sample_csv
from adverdict.logic.hierarchy import HierarchyNode, Rollup, aggregate, reporting_period
from adverdict.logic.rules import Rules, RulesValidationError, validate_rules
from adverdict.utils.dates import today_in_tz

logger = logging.getLogger(__name__)

app = FastAPI(title="adverdict API")

MAX_COUNT = int(MAX_METRIC_VALUE)


class RecordIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    period_start: date
    period_end: date | None = None
    campaign_name: str = Field(min_length=1)
    adset_name: str = Field(min_length=1)
    ad_name: str = Field(min_length=1)
    impressions: int = Field(default=0, ge=0, le=MAX_COUNT)
    clicks: int = Field(default=0, ge=0, le=MAX_COUNT)
    spend: Decimal = Field(default=Decimal("0"), ge=0, le=MAX_METRIC_VALUE)
    purchases: int = Field(default=0, ge=0, le=MAX_COUNT)
    revenue: Decimal = Field(default=Decimal("0"), ge=0, le=MAX_METRIC_VALUE)

    def to_record(self) -> PerformanceRecord:
        return PerformanceRecord(
            period_start=self.period_start,
            period_end=self.period_end or self.period_start,
            campaign_name=self.campaign_name,
            adset_name=self.adset_name,
            ad_name=self.ad_name,
            impressions=self.impressions,
            clicks=self.clicks,
            spend=self.spend,
            purchases=self.purchases,
            revenue=self.revenue,
        )


class IngestResponse(BaseModel):
    upload_id: int
    records: int
    warnings: list[str]


class RulesPayload(BaseModel):
    scale_roas: float
    min_roas: float
    learning_spend: float


class NodeOut(BaseModel):
    level: str
    name: str
    impressions: int
    clicks: int
    spend: float
    purchases: int
    revenue: float
    roas: float
    ctr: float
    cpc: float
    cpm: float
    cpa: float
    verdict: str
    children: list[NodeOut] = []


class PeriodOut(BaseModel):
    start: date
    end: date


class PerformanceResponse(BaseModel):
    account_id: int
    plan: str
    rules: RulesPayload
    period: PeriodOut
    grand_total: NodeOut
    campaigns: list[NodeOut]
    campaign_limit: int | None
    hidden_campaigns: int


def get_engine() -> Engine:
    return shared_engine(database_url())


def _require_account(engine: Engine, account_id: int) -> None:
    if not repository.account_exists(engine, account_id):
        raise HTTPException(status_code=404, detail="Account not found")


def _node_out(node: HierarchyNode) -> NodeOut:
    metrics = node.metrics
    return NodeOut(
        level=node.level,
        name=node.name,
        impressions=node.impressions,
        clicks=node.clicks,
        spend=float(node.spend),
        purchases=node.purchases,
        revenue=float(node.revenue),
        roas=float(node.roas),
        ctr=float(metrics.ctr),
        cpc=float(metrics.cpc),
        cpm=float(metrics.cpm),
        cpa=float(metrics.cpa),
        verdict=node.verdict.value,
        children=[_node_out(child) for child in node.children],
    )


@app.post("/accounts/{account_id}/uploads", response_model=IngestResponse)
async def upload_records(account_id: int, request: Request, engine: Engine = Depends(get_engine)) -> IngestResponse:
    _require_account(engine, account_id)
    raw = (await request.body()).decode("utf-8-sig", errors="replace")
    try:
        records, warnings = normalize(raw)
    except NormalizationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not records:
        raise HTTPException(status_code=400, detail="No valid data found in file")
    upload_id = repository.replace_records(engine, account_id, records, source="upload")
    return IngestResponse(upload_id=upload_id, records=len(records), warnings=warnings)


@app.post("/accounts/{account_id}/records", response_model=IngestResponse)
async def enter_records(
    account_id: int, payload: list[RecordIn], engine: Engine = Depends(get_engine)
) -> IngestResponse:
    _require_account(engine, account_id)
    if not payload:
        raise HTTPException(status_code=400, detail="No records supplied")
    records = [item.to_record() for item in payload]
    upload_id = repository.replace_records(engine, account_id, records, source="manual")
    return IngestResponse(upload_id=upload_id, records=len(records), warnings=[])


@app.get("/accounts/{account_id}/rules", response_model=RulesPayload)
async def get_rules(account_id: int, engine: Engine = Depends(get_engine)) -> RulesPayload:
    _require_account(engine, account_id)
    return RulesPayload(**repository.load_rules(engine, account_id).as_dict())


@app.put("/accounts/{account_id}/rules", response_model=RulesPayload)
async def put_rules(account_id: int, payload: RulesPayload, engine: Engine = Depends(get_engine)) -> RulesPayload:
    _require_account(engine, account_id)
    try:
        rules = validate_rules(Rules.from_mapping(payload.model_dump()))
    except RulesValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    saved = repository.save_rules(engine, account_id, rules)
    logger.info("Updated rules for account %s", account_id)
    return RulesPayload(**saved.as_dict())


@app.delete("/accounts/{account_id}/rules", response_model=RulesPayload)
async def delete_rules(account_id: int, engine: Engine = Depends(get_engine)) -> RulesPayload:
    _require_account(engine, account_id)
    return RulesPayload(**repository.reset_rules(engine, account_id).as_dict())


@app.get("/accounts/{account_id}/performance", response_model=PerformanceResponse)
async def performance(account_id: int, engine: Engine = Depends(get_engine)) -> PerformanceResponse:
    _require_account(engine, account_id)
    records = repository.load_records(engine, account_id)
    rules = repository.load_rules(engine, account_id)
    plan = normalize_plan(repository.load_plan(engine, account_id))

    rollup = aggregate(records, rules)
    shown = visible_campaigns(rollup.campaigns, plan)
    today = today_in_tz()
    start, end = reporting_period(records) or (today, today)
    return PerformanceResponse(
        account_id=account_id,
        plan=plan,
        rules=RulesPayload(**rules.as_dict()),
        period=PeriodOut(start=start, end=end),
        grand_total=_node_out(rollup.grand_total),
        campaigns=[_node_out(campaign) for campaign in shown],
        campaign_limit=campaign_limit(plan),
        hidden_campaigns=len(rollup.campaigns) - len(shown),
    )


@app.get("/accounts/{account_id}/export.csv", response_class=PlainTextResponse)
async def export_csv(account_id: int, engine: Engine = Depends(get_engine)) -> PlainTextResponse:
    _require_account(engine, account_id)
    records = repository.load_records(engine, account_id)
    rules = repository.load_rules(engine, account_id)
    plan = normalize_plan(repository.load_plan(engine, account_id))
    rollup = aggregate(records, rules)
    shown = Rollup(campaigns=tuple(visible_campaigns(rollup.campaigns, plan)), grand_total=rollup.grand_total)
    return PlainTextResponse(render_rollup_csv(shown), media_type="text/csv")


@app.get("/sample.csv", response_class=PlainTextResponse)
async def sample() -> PlainTextResponse:
    return PlainTextResponse(sample_csv(), media_type="text/tab-separated-values")
