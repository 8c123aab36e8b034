from __future__ import annotations

import argparse
import json
import logging
import os
from dataclasses import asdict
from pathlib import Path

import pandas as pd
from dotenv import load_dotenv

from offshore_intel.config import load_config, with_workers
from offshore_intel.errors import OffshoreIntelError, ParseFailure
from offshore_intel.pipeline import BatchInput, EnrichedDataset, OffshorePipeline
from offshore_intel.sink import SupabaseSink
from offshore_intel.sources.contracts import SOURCE_TYPES

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="offshore-intel", description="Classify and cost one batch of vessel logistics exports.")
    for source in SOURCE_TYPES:
        parser.add_argument(f"--{source.replace('_', '-')}", dest=source, default=None, help=f"CSV or Excel export of {source}")
    parser.add_argument("--config", default=None, help="JSON overrides (defaults to $OFFSHORE_INTEL_CONFIG)")
    parser.add_argument("--output-dir", default=None, help="Write enriched CSV tables and summary.json here")
    parser.add_argument("--sink", action="store_true", help="Upsert enriched records to Supabase")
    parser.add_argument("--sink-required", action="store_true", help="Fail the run when the sink write fails")
    parser.add_argument("--workers", type=int, default=None, help="Enrichment threads (defaults to $OFFSHORE_INTEL_WORKERS)")
    parser.add_argument("--strict", action="store_true", help="Abort on conflicting cost-allocation codes")
    return parser


def read_table(path: str | Path) -> list[dict]:
    """Rows of a CSV or Excel export as dicts; blank cells become None."""
    path = Path(path)
    try:
        if path.suffix.lower() in EXCEL_SUFFIXES:
            df = pd.read_excel(path, engine="openpyxl")
        else:
            df = pd.read_csv(path)
    except (OSError, ValueError) as exc:
        raise ParseFailure(f"cannot read {path}: {exc}") from exc
    df = df.astype(object).where(pd.notna(df), None)
    logger.info("Read %d row(s) from %s", len(df), path)
    return df.to_dict(orient="records")


def load_batch(args: argparse.Namespace) -> BatchInput:
    tables = {}
    for source in SOURCE_TYPES:
        path = getattr(args, source)
        tables[source] = read_table(path) if path else []
    return BatchInput(**tables)


def write_outputs(dataset: EnrichedDataset, output_dir: str | Path) -> list[Path]:
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = []
    for table, rows in dataset.to_records().items():
        target = out / f"{table}.csv"
        pd.DataFrame(rows).to_csv(target, index=False)
        written.append(target)
    if dataset.budget_vs_actual:
        target = out / "budget_vs_actual.csv"
        pd.DataFrame([asdict(row) for row in dataset.budget_vs_actual]).to_csv(target, index=False)
        written.append(target)
    summary_path = out / "summary.json"
    summary_path.write_text(json.dumps(dataset.summary.to_dict(), indent=2, default=str), encoding="utf-8")
    written.append(summary_path)
    logger.info("Wrote %d output file(s) to %s", len(written), out)
    return written


def _workers(cli_value: int | None) -> int | None:
    if cli_value is not None:
        return cli_value
    raw = os.environ.get("OFFSHORE_INTEL_WORKERS", "").strip()
    return int(raw) if raw else None


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()

    try:
        config = load_config(args.config)
        workers = _workers(args.workers)
        if workers is not None:
            config = with_workers(config, workers)
        pipeline = OffshorePipeline(config, strict=True if args.strict else None)
        dataset = pipeline.run(load_batch(args))
    except OffshoreIntelError as exc:
        logger.error("Batch failed (%s): %s", exc.kind, exc)
        return 1

    summary = dataset.summary
    logger.info(
        "Processed %d record(s): %d flagged, %d voyage(s), vessel cost %.2f, quality %s",
        summary.ingested,
        summary.flagged,
        summary.voyage_count,
        summary.total_vessel_cost,
        summary.quality_distribution,
    )
    for source, counts in summary.counts.items():
        logger.info(
            "%s: ingested=%d classified=%d flagged=%d date_issues=%d",
            source,
            counts.ingested,
            counts.classified,
            counts.flagged,
            counts.date_issues,
        )

    if args.output_dir:
        write_outputs(dataset, args.output_dir)

    if args.sink:
        try:
            SupabaseSink().write(dataset)
        except Exception:
            if args.sink_required:
                raise
            logger.warning("Sink write failed; local outputs are unaffected")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
