"""Cross-category correlation of transaction amounts."""

from typing import Sequence

from ..data.schema import Transaction, require_fields, transactions_to_frame
from ..utils.stats import pearson_correlation


def group_amounts_by_category(transactions: Sequence[Transaction]) -> dict[str, list[float]]:
    """Amount series per category, categories and amounts in input order."""
    if not transactions:
        return {}

    df = transactions_to_frame(transactions)
    grouped = df.groupby("category", sort=False)["amount"]
    return {category: [float(a) for a in amounts] for category, amounts in grouped}


def calculate_market_correlation(
    transactions: Sequence[Transaction],
) -> dict[str, dict[str, float]]:
    """
    Pearson correlation matrix between the amount series of every category pair.

    Series of different lengths are paired over their common prefix. Pairs
    where either series has fewer than two values get 0. The matrix is
    square over the observed categories and symmetric; each upper-triangle
    value is computed once and mirrored.

    Args:
        transactions: Transactions to correlate.

    Returns:
        Nested mapping ``matrix[category_a][category_b] -> coefficient``.

    Raises:
        MissingFieldError: If a transaction lacks ``amount``.
    """
    for txn in transactions:
        require_fields(txn, "amount")

    series = group_amounts_by_category(transactions)
    categories = list(series)

    pairs: dict[tuple[str, str], float] = {}
    for i, cat1 in enumerate(categories):
        for cat2 in categories[i:]:
            x, y = series[cat1], series[cat2]
            value = pearson_correlation(x, y) if len(x) > 1 and len(y) > 1 else 0.0
            pairs[(cat1, cat2)] = pairs[(cat2, cat1)] = value

    return {
        cat1: {cat2: pairs[(cat1, cat2)] for cat2 in categories}
        for cat1 in categories
    }
