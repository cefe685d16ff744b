"""Risk Assessment Pipeline Script.

Reads a transaction dataset (CSV or JSON), runs the risk assessment and/or
the advanced analytics, and writes a JSON report. Large datasets are routed
through the offload channel unless disabled.
"""

import argparse
import asyncio
import json
from pathlib import Path
from typing import Optional

import pandas as pd

from .analytics.clustering import summarize_clusters
from .analytics.engine import generate_risk_assessment
from .analytics.scheduler import run_advanced_analytics
from .config import EngineConfig, load_config
from .data.queries import calculate_summary
from .data.schema import AdvancedAnalytics, RiskAssessment, Transaction, transactions_from_records
from .offload import (
    AdvancedAnalyticsRequest,
    AssessmentRequest,
    OffloadChannel,
    request_timeout_for,
    should_offload,
)
from .utils.logging import EngineLogger, get_logger

STRING_COLUMNS = {"id": str, "user_id": str, "account_id": str, "reference": str}


def load_transactions(input_path: str) -> list[Transaction]:
    """
    Load transactions from a CSV or JSON (array of records) file.

    Column names may be snake_case or camelCase.
    """
    path = Path(input_path)
    if path.suffix.lower() == ".json":
        df = pd.read_json(path, orient="records", dtype=False)
    else:
        df = pd.read_csv(path, dtype=STRING_COLUMNS)

    return transactions_from_records(df.to_dict("records"))


def _run_in_process(
    transactions: list[Transaction],
    mode: str,
    config: EngineConfig,
    log: EngineLogger,
) -> tuple[Optional[RiskAssessment], Optional[AdvancedAnalytics]]:
    assessment = None
    analytics = None

    if mode in ("assessment", "both"):
        assessment = generate_risk_assessment(transactions, config, logger=log)

    if mode in ("analytics", "both"):
        def on_progress(processed: int, total: int) -> None:
            print(f"       Analytics progress: {processed}/{total}")

        analytics = asyncio.run(
            run_advanced_analytics(
                transactions,
                on_progress=on_progress,
                config=config.scheduler,
                logger=log,
            )
        )

    return assessment, analytics


def _run_offloaded(
    transactions: list[Transaction],
    mode: str,
    config: EngineConfig,
    log: EngineLogger,
) -> tuple[Optional[RiskAssessment], Optional[AdvancedAnalytics]]:
    requests = {}
    if mode in ("assessment", "both"):
        requests["assessment"] = AssessmentRequest(transactions=transactions)
    if mode in ("analytics", "both"):
        requests["analytics"] = AdvancedAnalyticsRequest(transactions=transactions)

    # One worker serves the requests in turn, so each timer covers the whole queue
    timeout = request_timeout_for(len(transactions), config.channel) * len(requests)

    with OffloadChannel(config, logger=log) as channel:
        futures = {
            name: channel.submit(request, timeout=timeout)
            for name, request in requests.items()
        }
        results = {name: future.result() for name, future in futures.items()}

    return results.get("assessment"), results.get("analytics")


def assess_transactions(
    input_path: Optional[str] = None,
    output_path: Optional[str] = None,
    mode: str = "both",
    offload: Optional[bool] = None,
    config_path: Optional[str] = None,
    logger: Optional[EngineLogger] = None,
) -> dict:
    """
    Run the risk assessment pipeline on a transaction dataset.

    Args:
        input_path: Path to input CSV/JSON; defaults to ``data.input_path``.
        output_path: Path for the JSON report; defaults to ``data.output_path``.
        mode: ``assessment``, ``analytics`` or ``both``.
        offload: Force (True) or disable (False) the offload channel; by
            default it is used when the dataset reaches
            ``channel.offload_threshold``.
        config_path: Path to YAML configuration file.
        logger: Logger instance.

    Returns:
        The report written to ``output_path``.
    """
    config = load_config(config_path)
    log = logger or get_logger(
        level=config.logging.level,
        format=config.logging.format,
        log_file=config.logging.log_file,
    )
    input_path = input_path or config.data.input_path
    output_path = output_path or config.data.output_path

    print(f"=" * 60)
    print("TRANSACTION RISK ASSESSMENT PIPELINE")
    print(f"=" * 60)

    print(f"\n[1/4] Loading data from {input_path}...")
    log.start_timer("data_loading")
    transactions = load_transactions(input_path)
    log.stop_timer("data_loading")
    print(f"       Loaded {len(transactions)} transactions")

    summary = calculate_summary(transactions)

    use_offload = should_offload(len(transactions), config.channel) if offload is None else offload
    print(f"\n[2/4] Running {mode} ({'offload channel' if use_offload else 'in process'})...")
    log.start_timer("analysis")
    runner = _run_offloaded if use_offload else _run_in_process
    assessment, analytics = runner(transactions, mode, config, log)
    analysis_time = log.stop_timer("analysis")
    print(f"       Completed in {analysis_time:.2f}s")

    print(f"\n[3/4] Building report...")
    report: dict = {"summary": summary.model_dump(mode="json")}

    if assessment is not None:
        flagged = sorted(
            (t for t in assessment.fraud_scores if t.fraud_score > 0),
            key=lambda t: t.fraud_score,
            reverse=True,
        )
        clusters = summarize_clusters(assessment.behavior_clusters)
        report["assessment"] = assessment.model_dump(mode="json")
        report["flagged_transactions"] = [
            {"id": t.id, "merchant_name": t.merchant_name, "amount": t.amount, "fraud_score": t.fraud_score}
            for t in flagged
        ]
        report["cluster_summary"] = [
            {
                "cluster": c.cluster_key,
                "users": c.user_count,
                "transactions": c.transaction_count,
                "mean_amount": round(c.mean_amount, 2),
            }
            for c in clusters
        ]

    if analytics is not None:
        report["advanced_analytics"] = analytics.model_dump(mode="json")

    print(f"\n[4/4] Saving report to {output_path}...")
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w") as f:
        json.dump(report, f, indent=2)

    print(f"\n{'=' * 60}")
    print("ASSESSMENT SUMMARY")
    print(f"{'=' * 60}")
    print(f"Total transactions:     {summary.total_transactions}")
    print(f"Total amount:           {summary.total_amount:,.2f}")
    if assessment is not None:
        print(f"Flagged (score > 0):    {len(report['flagged_transactions'])}")
        print(f"Behaviour clusters:     {len(assessment.behavior_clusters)}")
        print(f"Days covered:           {len(assessment.time_series_data.moving_averages)}")
        print(f"Pairwise data points:   {assessment.data_points}")
        print(f"Processing time:        {assessment.processing_time:.1f} ms")

        if report["flagged_transactions"]:
            print(f"\nTop flagged transactions:")
            for row in report["flagged_transactions"][:5]:
                print(f"  - {row['id']}: {row['merchant_name']} {row['amount']:.2f} "
                      f"(score={row['fraud_score']:.1f})")
    if analytics is not None:
        print(f"High-risk transactions: {analytics.high_risk_transactions}")
        print(f"Total risk:             {analytics.total_risk:.2f}")
    elif mode in ("analytics", "both"):
        print(f"Advanced analytics:     skipped (fewer than "
              f"{config.scheduler.min_transactions} transactions)")
    print(f"Output file:            {output_file.absolute()}")
    print(f"{'=' * 60}\n")

    log.log_metrics(
        transactions=len(transactions),
        analysis_seconds=round(analysis_time, 3),
    )

    return report


def main(argv: Optional[list[str]] = None):
    """Main entry point for risk assessment."""
    parser = argparse.ArgumentParser(
        description="Run risk assessment and analytics on a transaction dataset"
    )
    parser.add_argument(
        "-i", "--input",
        type=str,
        default=None,
        help="Input CSV or JSON file path (default: data.input_path from config)"
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output JSON report path (default: data.output_path from config)"
    )
    parser.add_argument(
        "-m", "--mode",
        choices=["assessment", "analytics", "both"],
        default="both",
        help="What to compute (default: both)"
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file (default: config/default.yaml)"
    )
    offload_group = parser.add_mutually_exclusive_group()
    offload_group.add_argument(
        "--offload",
        dest="offload",
        action="store_true",
        default=None,
        help="Always run through the offload channel"
    )
    offload_group.add_argument(
        "--no-offload",
        dest="offload",
        action="store_false",
        help="Never use the offload channel"
    )

    args = parser.parse_args(argv)

    assess_transactions(
        input_path=args.input,
        output_path=args.output,
        mode=args.mode,
        offload=args.offload,
        config_path=args.config,
    )


if __name__ == "__main__":
    main()
