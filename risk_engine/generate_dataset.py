"""Dataset Generation Script.

Generates a synthetic transaction dataset with the Faker-based generator
and saves it to CSV for the assessment script.
"""

import argparse
from pathlib import Path
from typing import Optional

import pandas as pd

from .config import load_config
from .data.generator import TransactionGenerator
from .data.queries import calculate_summary


def generate_dataset(
    num_records: int = 1000,
    seed: int = 42,
    output_path: str = "data/transactions.csv",
    locale: str = "en_US",
    num_users: int = 200,
) -> pd.DataFrame:
    """
    Generate a synthetic transaction dataset.

    Args:
        num_records: Number of transactions to generate.
        seed: Random seed for reproducibility.
        output_path: Path to save the output CSV file.
        locale: Faker locale for region-specific data.
        num_users: Number of distinct users the transactions are spread over.

    Returns:
        DataFrame containing all generated transactions.
    """
    print(f"=" * 60)
    print("SYNTHETIC TRANSACTION DATASET GENERATOR")
    print(f"=" * 60)

    print(f"\n[1/3] Initializing generator (seed={seed}, locale={locale})...")
    generator = TransactionGenerator(seed=seed, locale=locale, num_users=num_users)

    print(f"\n[2/3] Generating {num_records} transactions...")
    transactions = generator.generate_transactions(
        num_records,
        on_progress=lambda done, total: print(f"       {done}/{total}"),
    )
    summary = calculate_summary(transactions)

    df = generator.to_dataframe(transactions)

    print(f"\n[3/3] Saving dataset to {output_path}...")
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_file, index=False)
    print(f"       Saved {len(df)} transactions")

    print(f"\n{'=' * 60}")
    print("DATASET SUMMARY")
    print(f"{'=' * 60}")
    print(f"Total transactions: {summary.total_transactions}")
    print(f"Total amount:       {summary.total_amount:,.2f}")
    print(f"Credits / debits:   {summary.total_credits:,.2f} / {summary.total_debits:,.2f}")
    print(f"Average amount:     {summary.avg_transaction_amount:,.2f}")
    print(f"Distinct users:     {df['user_id'].nunique()}")
    print("\n      Category breakdown:")
    for category, count in sorted(summary.category_counts.items()):
        print(f"        - {category}: {count}")
    print(f"Output file:        {output_file.absolute()}")
    print(f"{'=' * 60}\n")

    return df


def main(argv: Optional[list[str]] = None):
    """Main entry point for dataset generation."""
    parser = argparse.ArgumentParser(
        description="Generate a synthetic transaction dataset"
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file (default: config/default.yaml)"
    )
    parser.add_argument(
        "-n", "--num-records",
        type=int,
        default=None,
        help="Number of transactions to generate (default: from config)"
    )
    parser.add_argument(
        "-s", "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility (default: from config)"
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output CSV file path (default: data.input_path from config)"
    )
    parser.add_argument(
        "-l", "--locale",
        type=str,
        default=None,
        help="Faker locale for data generation (default: from config)"
    )

    args = parser.parse_args(argv)
    config = load_config(args.config)

    generate_dataset(
        num_records=args.num_records if args.num_records is not None else config.data.num_records,
        seed=args.seed if args.seed is not None else config.data.seed,
        output_path=args.output or config.data.input_path,
        locale=args.locale or config.data.locale,
        num_users=config.data.num_users,
    )


if __name__ == "__main__":
    main()
