"""Ingestion helpers."""

from __future__ import annotations

import os
import pathlib
import re
from typing import Mapping

import yaml

VOCABULARY_PATH = pathlib.Path(__file__).with_name("columns.yml")

CANONICAL_FIELDS = (
    "period_start",
    "period_end",
    "campaign_name",
    "adset_name",
    "ad_name",
    "impressions",
    "clicks",
    "spend",
    "purchases",
    "revenue",
)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_header(value: str) -> str:
    text = value.replace("\ufeff", "").replace("_", " ").strip().lower()
    return _WHITESPACE_RE.sub(" ", text)


def load_column_vocabulary(path: pathlib.Path | None = None) -> dict[str, str]:
    """Return a lookup from normalized header to canonical field name."""
    if path is None:
        override = os.environ.get("COLUMN_VOCABULARY_PATH")
        path = pathlib.Path(override) if override else VOCABULARY_PATH
    data: Mapping[str, list[str]] = yaml.safe_load(path.read_text()) or {}
    vocabulary: dict[str, str] = {}
    for field, synonyms in data.items():
        if field not in CANONICAL_FIELDS:
            raise ValueError(f"Unknown field {field!r} in {path}")
        vocabulary[normalize_header(field)] = field
        for synonym in synonyms or []:
            vocabulary[normalize_header(str(synonym))] = field
    return vocabulary
