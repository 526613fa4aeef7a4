"""Turn raw CSV/TSV exports into canonical performance records."""

from __future__ import annotations

import csv
import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Mapping, NamedTuple, Sequence

from adverdict.ingest import load_column_vocabulary, normalize_header
from adverdict.ingest.models import ZERO, PerformanceRecord
from adverdict.utils.dates import format_date, parse_report_date, today_in_tz

logger = logging.getLogger(__name__)

NAME_FIELDS = ("campaign_name", "adset_name", "ad_name")
COUNT_FIELDS = ("impressions", "clicks", "purchases")
MONEY_FIELDS = ("spend", "revenue")

FIELD_LABELS = {
    "campaign_name": "campaign name",
    "adset_name": "ad set name",
    "ad_name": "ad name",
}

_NUMBER_NOISE_RE = re.compile(r"[\s,$€£¥]")

# Larger values are treated as corrupt input.
MAX_METRIC_VALUE = Decimal("1e15")


class NormalizationError(ValueError):
    pass


class NormalizeResult(NamedTuple):
    records: list[PerformanceRecord]
    warnings: list[str]


def normalize(raw_text: str, vocabulary: Mapping[str, str] | None = None) -> NormalizeResult:
    if vocabulary is None:
        vocabulary = load_column_vocabulary()
    text = raw_text.lstrip("\ufeff").strip()
    if not text:
        raise NormalizationError("File is empty")

    lines = text.splitlines()
    delimiter = "\t" if "\t" in lines[0] else ","
    try:
        header = _read_row(lines[0], delimiter)
    except csv.Error as exc:
        raise NormalizationError(f"Could not read header row: {exc}") from exc
    columns = _map_columns(header, vocabulary)
    if not columns:
        raise NormalizationError("No recognizable columns in header row")

    records: list[PerformanceRecord] = []
    warnings: list[str] = []
    seen: set[tuple[str, str, str, date, date]] = set()
    # Rows never span physical lines.
    for line, row_text in enumerate(lines[1:], start=2):
        if not row_text.strip():
            continue
        try:
            values = _read_row(row_text, delimiter)
        except csv.Error as exc:
            warnings.append(f"Row {line}: could not read row ({exc}); row skipped")
            continue
        if not any(value.strip() for value in values):
            continue
        raw = {field: values[idx].strip() for idx, field in columns.items() if idx < len(values)}
        missing = [FIELD_LABELS[name] for name in NAME_FIELDS if not raw.get(name)]
        if missing:
            warnings.append(f"Row {line}: missing {', '.join(missing)}; row skipped")
            continue
        record = _build_record(raw, line, warnings)
        identity = (*record.key, record.period_start, record.period_end)
        if identity in seen:
            warnings.append(
                f"Row {line}: duplicate of an earlier row for ad {record.ad_name!r} "
                f"({format_date(record.period_start)} to {format_date(record.period_end)})"
            )
        seen.add(identity)
        records.append(record)

    for message in warnings:
        logger.debug(message)
    logger.info("Normalized %d records with %d warnings", len(records), len(warnings))
    return NormalizeResult(records=records, warnings=warnings)


def _read_row(line: str, delimiter: str) -> list[str]:
    return next(csv.reader([line], delimiter=delimiter, strict=True), [])


def _map_columns(header: Sequence[str], vocabulary: Mapping[str, str]) -> dict[int, str]:
    columns: dict[int, str] = {}
    claimed: set[str] = set()
    for idx, name in enumerate(header):
        field = vocabulary.get(normalize_header(name))
        if field is None or field in claimed:
            continue
        columns[idx] = field
        claimed.add(field)
    return columns


def _build_record(raw: Mapping[str, str], line: int, warnings: list[str]) -> PerformanceRecord:
    start = _parse_date(raw.get("period_start", ""), "start date", line, warnings)
    end_text = raw.get("period_end", "")
    end = _parse_date(end_text, "end date", line, warnings) if end_text else start
    counts = {field: int(_parse_number(raw.get(field, ""), field, line, warnings)) for field in COUNT_FIELDS}
    money = {field: _parse_number(raw.get(field, ""), field, line, warnings) for field in MONEY_FIELDS}
    return PerformanceRecord(
        period_start=start,
        period_end=end,
        campaign_name=raw["campaign_name"],
        adset_name=raw["adset_name"],
        ad_name=raw["ad_name"],
        **counts,
        **money,
    )


def _parse_number(value: str, field: str, line: int, warnings: list[str]) -> Decimal:
    if not value:
        return ZERO
    cleaned = _NUMBER_NOISE_RE.sub("", value)
    try:
        number = Decimal(cleaned)
    except InvalidOperation:
        number = None
    if number is None or not number.is_finite():
        warnings.append(f"Row {line}: could not parse {field} {value!r}; using 0")
        return ZERO
    if number < 0:
        warnings.append(f"Row {line}: negative {field} {value!r}; using 0")
        return ZERO
    if number > MAX_METRIC_VALUE:
        warnings.append(f"Row {line}: {field} {value!r} out of range; using 0")
        return ZERO
    return number


def _parse_date(value: str, label: str, line: int, warnings: list[str]) -> date:
    if not value:
        return today_in_tz()
    try:
        return parse_report_date(value)
    except ValueError:
        warnings.append(f"Row {line}: could not parse {label} {value!r}; using today")
        return today_in_tz()
