from __future__ import annotations

import pandas as pd

SCORE_COLUMNS = (
    "mean_score",
    "at_or_above_proficient",
    "below_basic_est",
    "basic_est",
    "proficient_est",
    "advanced_est",
)


def normalize_year_column(df: pd.DataFrame) -> pd.DataFrame:
    if "year" not in df.columns:
        return df
    out = df.copy()
    out["year"] = pd.to_numeric(out["year"], errors="coerce").astype("Int64")
    return out


def round_score_columns(df: pd.DataFrame, digits: int = 1) -> pd.DataFrame:
    cols = [c for c in SCORE_COLUMNS if c in df.columns]
    if not cols:
        return df
    out = df.copy()
    for col in cols:
        out[col] = pd.to_numeric(out[col], errors="coerce").round(digits)
    return out
