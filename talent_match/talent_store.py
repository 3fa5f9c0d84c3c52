from __future__ import annotations

import json
import math
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from loguru import logger

from .config import TALENTS_PATH
from .pipeline_types import Talent


class TalentStoreError(RuntimeError):
    """Loading or querying the talent records failed."""


# ---------------------------
# Column standardization
# ---------------------------

# Exports don't agree on a few names; everything else is camelCase -> snake_case.
COLUMN_CANDIDATES: Dict[str, List[str]] = {
    "id": ["id", "talent_id", "talentId", "ID"],
    "full_name": ["full_name", "fullName", "name"],
    "salary_expectation_range": ["salary_expectation_range", "salaryExpectationRange", "salary_range"],
}

LIST_COLUMNS = ["skills", "industries", "job_types", "desired_roles", "desired_industries", "achievements"]
NUMERIC_COLUMNS = ["years_of_experience", "profile_strength"]

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")


def _snake(name: str) -> str:
    return _CAMEL_RE.sub(r"_\1", str(name)).lower()


def _standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    col_map: Dict[str, str] = {}
    for canon, candidates in COLUMN_CANDIDATES.items():
        for candidate in candidates:
            if candidate in df.columns:
                col_map[candidate] = canon
                break
    for col in df.columns:
        if col not in col_map:
            col_map[col] = _snake(col)

    renamed = {k: v for k, v in col_map.items() if k != v}
    if renamed:
        logger.info("Standardizing talent columns with map: {}", renamed)
    return df.rename(columns=col_map)


# ---------------------------
# Field parsing helpers
# ---------------------------

def _is_missing(value: Any) -> bool:
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    return isinstance(value, float) and math.isnan(value)


def _maybe_json(value: Any) -> Any:
    if isinstance(value, str) and value.strip()[:1] in ("[", "{"):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def parse_list_field(value: Any) -> Optional[List[str]]:
    """
    Normalize a list-valued cell.

    - NaN / None -> None
    - "a, b" -> ["a", "b"]
    - '["a", "b"]' -> ["a", "b"]
    - list/tuple/np.ndarray -> list[str]
    """
    if _is_missing(value):
        return None
    value = _maybe_json(value)
    if isinstance(value, (list, tuple, np.ndarray)):
        return [str(v).strip() for v in value if not _is_missing(v) and str(v).strip()]
    s = str(value).strip()
    if not s:
        return []
    return [p.strip() for p in s.split(",") if p.strip()]


def parse_mapping_field(value: Any) -> Optional[Dict[str, Any]]:
    if _is_missing(value):
        return None
    value = _maybe_json(value)
    if isinstance(value, dict):
        return {k: _to_python(v) for k, v in value.items()}
    return None


def parse_records_field(value: Any) -> Optional[List[Dict[str, Any]]]:
    if _is_missing(value):
        return None
    value = _maybe_json(value)
    if isinstance(value, dict):
        value = [value]
    if isinstance(value, (list, tuple, np.ndarray)):
        return [parse_mapping_field(v) for v in value if isinstance(_maybe_json(v), dict)]
    return None


def parse_bool_field(value: Any) -> Optional[bool]:
    if _is_missing(value):
        return None
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1", "y"}
    return bool(value)


def _to_python(value: Any) -> Any:
    """Turn numpy / pandas scalars and arrays into plain JSON-able values."""
    if _is_missing(value):
        return None
    if isinstance(value, np.ndarray):
        return [_to_python(v) for v in value.tolist()]
    if isinstance(value, (list, tuple)):
        return [_to_python(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_python(v) for k, v in value.items()}
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    return value


def normalize_talents_df(df_raw: pd.DataFrame) -> pd.DataFrame:
    """
    Standardize columns and cell shapes so filters can treat every row alike.
    """
    df = _standardize_columns(df_raw.copy())

    if "id" not in df.columns:
        logger.warning("Talent records missing 'id' column; assigning sequential IDs")
        df["id"] = [str(i) for i in range(len(df))]
    df["id"] = df["id"].map(lambda v: str(_to_python(v)))

    dupes = df["id"].duplicated()
    if dupes.any():
        logger.warning("Dropping {} talent rows with duplicate ids", int(dupes.sum()))
        df = df[~dupes]

    for col in LIST_COLUMNS:
        if col in df.columns:
            df[col] = df[col].map(parse_list_field).astype(object)
    for col in NUMERIC_COLUMNS:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    if "salary_expectation_range" in df.columns:
        df["salary_expectation_range"] = df["salary_expectation_range"].map(parse_mapping_field).astype(object)
    if "education" in df.columns:
        df["education"] = df["education"].map(parse_records_field).astype(object)
    if "is_verified" in df.columns:
        df["is_verified"] = df["is_verified"].map(parse_bool_field).astype(object)

    return df.reset_index(drop=True)


# ---------------------------
# Predicates
# ---------------------------

def _column(df: pd.DataFrame, name: str) -> pd.Series:
    if name in df.columns:
        return df[name]
    return pd.Series([None] * len(df), index=df.index, dtype=object)


def _salary_field(value: Any, key: str) -> float:
    if not isinstance(value, dict):
        return float("nan")
    raw = value.get(key)
    try:
        return float(raw) if raw is not None else float("nan")
    except (TypeError, ValueError):
        return float("nan")


def store_filter_mask(df: pd.DataFrame, filters) -> pd.Series:
    """
    Boolean mask for the store-side predicates: required skills (mandatory,
    all must be present), verification, location substring, seniority,
    experience bounds and the salary range. Missing values never match a set
    predicate.
    """
    required = list(filters.required_skills or [])
    mask = _column(df, "skills").map(
        lambda s: isinstance(s, list) and set(required).issubset(s)
    ).astype(bool)

    if filters.is_verified_only:
        mask &= _column(df, "is_verified").map(lambda v: v is True).astype(bool)

    if filters.location:
        # literal substring; '%' and '_' are not wildcards here
        loc = filters.location.lower()
        mask &= _column(df, "location").map(
            lambda v: isinstance(v, str) and loc in v.lower()
        ).astype(bool)

    if filters.experience_level:
        mask &= (_column(df, "seniority_level") == filters.experience_level).fillna(False).astype(bool)

    years = pd.to_numeric(_column(df, "years_of_experience"), errors="coerce")
    if filters.min_years_of_experience is not None:
        mask &= (years >= filters.min_years_of_experience).fillna(False).astype(bool)
    if filters.max_years_of_experience is not None:
        mask &= (years <= filters.max_years_of_experience).fillna(False).astype(bool)

    salary = _column(df, "salary_expectation_range")
    if filters.min_salary is not None:
        mins = salary.map(lambda r: _salary_field(r, "min"))
        mask &= (mins >= filters.min_salary).fillna(False).astype(bool)
    if filters.max_salary is not None:
        maxs = salary.map(lambda r: _salary_field(r, "max"))
        mask &= (maxs <= filters.max_salary).fillna(False).astype(bool)
    if filters.currency:
        mask &= salary.map(
            lambda r: isinstance(r, dict) and r.get("currency") == filters.currency
        ).astype(bool)

    return mask


def _overlaps(values: Optional[List[str]], wanted: List[str]) -> bool:
    return bool(values) and any(v in wanted for v in values)


def apply_post_filters(talents: List[Talent], filters) -> List[Talent]:
    """
    Second-stage filters over already-fetched talents: any-overlap on job
    types, desired roles and industries; exact remote preference; degree
    prefix on education. Unset filters are skipped.
    """
    out = list(talents)

    if filters.job_types:
        out = [t for t in out if _overlaps(t.job_types, filters.job_types)]
    if filters.desired_roles:
        out = [t for t in out if _overlaps(t.desired_roles, filters.desired_roles)]
    if filters.industries:
        out = [t for t in out if _overlaps(t.industries, filters.industries)]
    if filters.remote_preference:
        out = [t for t in out if t.remote_preference == filters.remote_preference]
    if filters.education:
        out = [
            t for t in out
            if t.education and any((e.degree or "").startswith(filters.education) for e in t.education)
        ]

    return out


# ---------------------------
# Store
# ---------------------------

def _row_to_talent(row: Dict[str, Any]) -> Talent:
    return Talent.model_validate({k: _to_python(v) for k, v in row.items()})


class TalentStore:
    """
    In-memory talent records backed by a normalized DataFrame.
    """

    def __init__(self, df: pd.DataFrame):
        self.df = normalize_talents_df(df)

    @classmethod
    def from_records(cls, records: List[Dict[str, Any]]) -> "TalentStore":
        return cls(pd.DataFrame.from_records(records))

    @classmethod
    def from_path(cls, path: Path = TALENTS_PATH) -> "TalentStore":
        return cls(load_talents(path))

    def __len__(self) -> int:
        return len(self.df)

    def query(self, filters) -> List[Talent]:
        """Talents passing the store-side predicates, in storage order."""
        try:
            rows = self.df[store_filter_mask(self.df, filters)]
            talents = [_row_to_talent(r) for r in rows.to_dict(orient="records")]
        except Exception as e:
            raise TalentStoreError(f"Talent query failed: {e}") from e
        logger.info("Talent store matched {} of {} records", len(talents), len(self.df))
        return talents


# ---------------------------
# IO helpers
# ---------------------------

def load_talents(path: Path = TALENTS_PATH) -> pd.DataFrame:
    """
    Load raw talent records from Parquet, JSON (array of records), JSON Lines
    or CSV.
    """
    path = Path(path)
    if not path.exists():
        raise TalentStoreError(f"Talent records not found: {path}")

    logger.info("Loading talent records from {}", path)
    ext = path.suffix.lower()
    try:
        if ext == ".parquet":
            df = pd.read_parquet(path)
        elif ext == ".jsonl":
            df = pd.read_json(path, lines=True, dtype=False, convert_dates=False)
        elif ext == ".json":
            with path.open("r", encoding="utf-8") as f:
                df = pd.DataFrame.from_records(json.load(f))
        elif ext == ".csv":
            df = pd.read_csv(path, encoding="utf-8", dtype={"id": str})
        else:
            raise TalentStoreError(f"Unsupported talent file type: {ext}")
    except TalentStoreError:
        raise
    except Exception as e:
        raise TalentStoreError(f"Failed to read talent records from {path}: {e}") from e

    logger.info("Loaded {} talent records", len(df))
    return df
