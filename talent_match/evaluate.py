# talent_match/evaluate.py
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

import pandas as pd

from .config import FeedbackMetrics
from .metrics import feedback_metrics
from .pipeline_types import Talent
from .talent_store import parse_bool_field

# ---------- IO helpers ----------

def load_ranking(path: Path) -> List[Talent]:
    """Ranked candidates from a saved /api/talent-matching response."""
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    candidates = data.get("candidates", []) if isinstance(data, dict) else data
    return [Talent.model_validate(c) for c in candidates]


def load_feedback(path: Path) -> Dict[str, bool]:
    """
    Reviewer judgements from CSV or JSON.

    Tabular files need 'candidate_id' and 'relevant' columns; a JSON object
    is read as a plain ``{candidate_id: relevant}`` mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if path.suffix.lower() == ".json":
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        if isinstance(raw, dict):
            return _judged(raw.items())
        df = pd.DataFrame.from_records(raw)
    else:
        df = pd.read_csv(path, encoding="utf-8", dtype={"candidate_id": str})

    cols = {c.lower(): c for c in df.columns}
    idcol, relcol = cols.get("candidate_id"), cols.get("relevant")
    if not idcol or not relcol:
        raise ValueError(
            f"Expected columns 'candidate_id' and 'relevant'. Found: {list(df.columns)}"
        )

    return _judged(zip(df[idcol], df[relcol]))


def _judged(pairs: Iterable[Tuple[Any, Any]]) -> Dict[str, bool]:
    # blank judgements mean "not reviewed yet", not "irrelevant"
    feedback: Dict[str, bool] = {}
    for cid, rel in pairs:
        judged = parse_bool_field(rel)
        if judged is None:
            continue
        feedback[str(cid)] = judged
    return feedback


def format_report(metrics: FeedbackMetrics, n_judged: int) -> List[str]:
    if metrics.precision is None or metrics.ndcg is None:
        return [f"Precision@{n_judged}: Awaiting feedback", "NDCG: Awaiting feedback"]
    return [
        f"Precision@{n_judged}: {metrics.precision * 100:.2f}%",
        f"NDCG: {metrics.ndcg * 100:.2f}%",
    ]

# ---------- CLI ----------

def main(argv=None):
    ap = argparse.ArgumentParser(description="Score a saved ranking against reviewer feedback.")
    ap.add_argument("--ranking", type=Path, required=True,
                    help="JSON response saved from /api/talent-matching")
    ap.add_argument("--feedback", type=Path, required=True,
                    help="CSV/JSON with candidate_id,relevant")
    args = ap.parse_args(argv)

    ranked = load_ranking(args.ranking)
    feedback = load_feedback(args.feedback)
    ranked_ids = {t.id for t in ranked}
    n_judged = sum(1 for cid in feedback if cid in ranked_ids)

    metrics = feedback_metrics(ranked, feedback)
    for line in format_report(metrics, n_judged):
        print(line)

if __name__ == "__main__":
    main()
