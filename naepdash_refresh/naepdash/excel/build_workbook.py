from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
from openpyxl import Workbook
from openpyxl.utils.dataframe import dataframe_to_rows

from .formats import SCORE_COLUMNS, normalize_year_column, round_score_columns


def write_df(wb: Workbook, sheet_name: str, df: pd.DataFrame, freeze: str = "A2") -> None:
    if sheet_name in wb.sheetnames:
        ws = wb[sheet_name]
        wb.remove(ws)
    ws = wb.create_sheet(sheet_name)
    if df.empty:
        ws.append(["empty"])
        return
    df = round_score_columns(normalize_year_column(df))
    df = df.astype(object).where(pd.notnull(df), None)
    for r in dataframe_to_rows(df, index=False, header=True):
        ws.append(r)
    ws.freeze_panes = freeze
    for col in ws.columns:
        col_letter = col[0].column_letter
        max_len = 0
        for cell in col[:50]:
            if cell.value is None:
                continue
            max_len = max(max_len, len(str(cell.value)))
        ws.column_dimensions[col_letter].width = min(max(10, max_len + 2), 45)
    _format_score_columns(ws)


def _format_score_columns(ws) -> None:
    header = [cell.value for cell in ws[1]]
    for idx, col_name in enumerate(header, start=1):
        if col_name in SCORE_COLUMNS:
            for row in ws.iter_rows(min_row=2, max_row=ws.max_row, min_col=idx, max_col=idx):
                cell = row[0]
                if cell.value is not None:
                    cell.number_format = "0.0"


def build_data_dictionary(schemas: List[Dict[str, Any]]) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []
    for schema in schemas:
        measures = schema.get("measures", {})
        for field, desc in measures.items():
            rows.append({
                "dataset": schema.get("name"),
                "field": field,
                "description": desc,
                "source_name": schema.get("source_name"),
                "source_refresh_cadence": schema.get("source_refresh_cadence"),
                "geo_method": schema.get("geo_method"),
                "limitations": schema.get("limitations"),
            })
    return pd.DataFrame(rows)


def build_workbook(
    output_path: str,
    scores_df: pd.DataFrame,
    achievement_df: pd.DataFrame,
    data_dict_df: pd.DataFrame,
) -> str:
    wb = Workbook()
    if "Sheet" in wb.sheetnames:
        wb.remove(wb["Sheet"])

    write_df(wb, "naep_scores", scores_df)
    write_df(wb, "achievement_estimates", achievement_df)
    write_df(wb, "data_dictionary", data_dict_df)

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)
    return output_path
