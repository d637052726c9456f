from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional, Sequence

from naepdash import config as config_mod
from naepdash.assessment import fetch_assessment
from naepdash.datasets.naep.schema import DATASET as NAEP_SCHEMA
from naepdash.datasets.naep.schema import SUBJECTS, AssessmentRecord
from naepdash.entity.descriptor import ConfigDirectory
from naepdash.entity.grades import resolve_grades
from naepdash.errors import AssessmentFetchError, NoApplicableGradesError
from naepdash.excel.build_workbook import build_data_dictionary, build_workbook
from naepdash.io.cache import ensure_dir, write_parquet
from naepdash.io.http import build_session
from naepdash.metrics.analytics import (
    achievement_frame,
    achievement_levels,
    national_gap,
    score_trend,
    scores_frame,
    subject_score_summary,
)


logger = logging.getLogger("naepdash")


def _setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")


def _selected_ids(directory: ConfigDirectory, requested: Optional[Sequence[str]]) -> List[str]:
    if not requested:
        return directory.entity_ids()
    missing = [e for e in requested if directory.get_entity(e) is None]
    if missing:
        raise ValueError(f"Entities not found in config: {', '.join(missing)}")
    return list(requested)


def refresh(cfg_path: str, entity_ids: Optional[Sequence[str]] = None, force: bool = False) -> List[AssessmentRecord]:
    cfg = config_mod.load_config(cfg_path)
    directory = ConfigDirectory(cfg)
    ids = _selected_ids(directory, entity_ids)
    if not ids:
        raise ValueError("Config must include at least one entity under entities")

    session = build_session(retries=cfg["naep"]["retries"])
    records: List[AssessmentRecord] = []
    not_applicable: List[str] = []
    failed: List[str] = []
    for entity_id in ids:
        entity = directory.get_entity(entity_id)
        logger.info("Fetching NAEP data for %s (%s)", entity_id, entity.state_code)
        try:
            records.append(fetch_assessment(cfg, entity, session=session, use_cache=not force))
        except NoApplicableGradesError as exc:
            logger.info("No NAEP assessment applies: %s", exc)
            not_applicable.append(entity_id)
        except AssessmentFetchError as exc:
            logger.error("NAEP fetch failed for %s, try again later: %s", entity_id, exc)
            failed.append(entity_id)

    if not records:
        if failed:
            raise RuntimeError(f"NAEP fetch failed for every entity: {', '.join(failed)}")
        logger.warning("No NAEP data applies to the selected entities")
        return records

    out_dir = ensure_dir(cfg["paths"]["output_dir"])
    scores = scores_frame(records)
    out_path = write_parquet(scores, f"{out_dir}/naep_scores.parquet")
    logger.info("Wrote %s", out_path)

    workbook_path = build_workbook(
        f"{out_dir}/naep_scores.xlsx",
        scores,
        achievement_frame(records),
        build_data_dictionary([NAEP_SCHEMA]),
    )
    logger.info("Wrote workbook %s", workbook_path)
    if failed or not_applicable:
        logger.warning("Skipped %d not-applicable and %d failed entities", len(not_applicable), len(failed))
    return records


def _format_summary(record: AssessmentRecord, grade: int, use_district: bool) -> List[str]:
    scope = record.district_name if use_district and record.has_district else record.state_code
    lines = [f"NAEP grade {grade} for {record.entity_id} ({scope}, extracted {record.extracted_at:%Y-%m-%d})"]
    summary = subject_score_summary(record, grade, use_district)
    if not summary:
        lines.append("  no scores available")
        return lines
    for subject in SUBJECTS:
        if subject not in summary:
            continue
        trend = score_trend(record, subject, grade, use_district)
        line = f"  {subject:<12} {summary[subject]:6.1f}"
        if trend.previous is not None:
            line += f"  ({trend.change:+.1f} since {trend.previous.year})"
        gap = national_gap(record, subject, grade, use_district)
        if gap is not None:
            line += f"  [{gap:+.1f} vs national]"
        lines.append(line)
        levels = achievement_levels(record, subject, grade, use_district)
        if any(levels):
            lines.append(
                "    est. levels: below basic {0:.1f}% / basic {1:.1f}% / proficient {2:.1f}% / advanced {3:.1f}%".format(*levels)
            )
    return lines


def summary(cfg_path: str, entity_id: str, grade: Optional[int] = None, use_district: bool = False) -> List[str]:
    cfg: Dict[str, Any] = config_mod.load_config(cfg_path)
    entity = ConfigDirectory(cfg).get_entity(entity_id)
    if entity is None:
        raise ValueError(f"Entity not found in config: {entity_id}")
    try:
        record = fetch_assessment(cfg, entity)
    except NoApplicableGradesError as exc:
        return [f"No NAEP assessment data for this entity: {exc}"]

    grades = [grade] if grade else resolve_grades(entity.grade_low, entity.grade_high)
    lines: List[str] = []
    for g in grades:
        lines.extend(_format_summary(record, g, use_district))
    return lines


def main() -> None:
    parser = argparse.ArgumentParser(prog="naepdash", description="NAEP assessment lookup and cache refresh.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    refresh_cmd = sub.add_parser("refresh", help="Fetch NAEP data for configured entities and write exports.")
    refresh_cmd.add_argument("--config", required=True, help="Path to config YAML")
    refresh_cmd.add_argument("--entity", action="append", help="Entity id to refresh (repeatable; default all)")
    refresh_cmd.add_argument("--force", action="store_true", help="Ignore cached records and refetch.")

    summary_cmd = sub.add_parser("summary", help="Print NAEP scores and trends for one entity.")
    summary_cmd.add_argument("--config", required=True, help="Path to config YAML")
    summary_cmd.add_argument("--entity", required=True, help="Entity id")
    summary_cmd.add_argument("--grade", type=int, choices=(4, 8), help="Restrict to one NAEP grade")
    summary_cmd.add_argument("--district", action="store_true", help="Prefer large-city district scores")

    args = parser.parse_args()
    _setup_logging(args.verbose)
    if args.cmd == "refresh":
        refresh(args.config, args.entity, force=args.force)
    elif args.cmd == "summary":
        try:
            lines = summary(args.config, args.entity, grade=args.grade, use_district=args.district)
        except AssessmentFetchError as exc:
            parser.exit(1, f"NAEP fetch failed, try again later: {exc}\n")
        print("\n".join(lines))


if __name__ == "__main__":
    main()
