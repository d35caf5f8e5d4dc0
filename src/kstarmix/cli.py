"""Command-line interface for running the K* same-event/mixed-event analysis."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace

from .config import AnalysisConfig, parse_estimator
from .engine import run_analysis
from .events import MultiplicityEstimator
from .io import load_config_json, load_events_json, write_histograms

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Define and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="kstar-mix",
        description="Build same-event and mixed-event K0S-pi invariant-mass histograms.",
    )
    parser.add_argument("--events", required=True, help="Input JSON with key 'events'.")
    parser.add_argument("--config", default=None, help="Optional analysis configuration JSON.")
    parser.add_argument("--out-dir", required=True, help="Directory for histogram tables.")
    parser.add_argument(
        "--format",
        default="parquet",
        choices=["parquet", "csv", "pkl"],
        help="Output table format.",
    )
    parser.add_argument("--no-same-event", action="store_true", help="Skip the same-event pass.")
    parser.add_argument("--no-mixed-event", action="store_true", help="Skip the mixed-event pass.")
    parser.add_argument("--n-mix", type=int, default=None, help="Mixing partners per collision.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for shuffled mixing partners.")
    parser.add_argument(
        "--estimator",
        default=None,
        choices=[e.value for e in MultiplicityEstimator],
        help="Multiplicity estimator for filling and mixing bins.",
    )
    parser.add_argument("--workers", type=int, default=1, help="Worker processes for the same-event pass.")
    parser.add_argument("--qa", action="store_true", help="Enable all QA histograms.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: load inputs, run both passes, write histogram tables."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    config = load_config_json(args.config) if args.config else AnalysisConfig()
    config = apply_overrides(config, args)

    events = load_events_json(args.events)
    summary = run_analysis(events, config, workers=args.workers)
    written = write_histograms(args.out_dir, summary.registry, fmt=args.format)
    logger.info("Wrote %d histogram tables to %s", len(written), args.out_dir)
    return 0


def apply_overrides(config: AnalysisConfig, args: argparse.Namespace) -> AnalysisConfig:
    """Apply command-line switches on top of a loaded configuration."""
    changes = {}
    if args.no_same_event:
        changes["process_same_event"] = False
    if args.no_mixed_event:
        changes["process_mixed_event"] = False
    if args.estimator is not None:
        changes["estimator"] = parse_estimator(args.estimator)
    if args.qa:
        changes["qa"] = replace(config.qa, qa_before=True, qa_after=True, qa_v0=True)
    mixing = config.mixing
    if args.n_mix is not None:
        mixing = replace(mixing, n_mix=args.n_mix)
    if args.seed is not None:
        mixing = replace(mixing, seed=args.seed)
    if mixing is not config.mixing:
        changes["mixing"] = mixing
    return config.with_overrides(**changes) if changes else config


if __name__ == "__main__":
    raise SystemExit(main())
