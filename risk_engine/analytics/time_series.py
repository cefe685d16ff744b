"""Daily aggregation and trailing moving averages of transaction amounts."""

from typing import Optional, Sequence

from ..config import TimeSeriesConfig
from ..data.schema import (
    DailyBucket,
    MovingAveragePoint,
    TimeSeriesData,
    Transaction,
    require_fields,
    transactions_to_frame,
)


def generate_time_series(
    transactions: Sequence[Transaction],
    config: Optional[TimeSeriesConfig] = None,
) -> TimeSeriesData:
    """
    Bucket transactions by calendar day and smooth the daily totals.

    Days are keyed by ISO date (``YYYY-MM-DD``), so lexical order is
    chronological order. Each moving average is the mean of the day's total
    and the totals of up to ``window_days - 1`` preceding days that are
    present in the data.

    Args:
        transactions: Transactions to aggregate.
        config: Window configuration.

    Returns:
        TimeSeriesData with one daily bucket and one moving-average point
        per distinct day, ascending.

    Raises:
        MissingFieldError: If a transaction lacks ``timestamp`` or ``amount``.
    """
    config = config or TimeSeriesConfig()
    if not transactions:
        return TimeSeriesData()

    for txn in transactions:
        require_fields(txn, "timestamp", "amount")

    df = transactions_to_frame(transactions)
    daily = df.groupby("day", sort=True)["amount"].agg(["sum", "count"])
    daily["average"] = daily["sum"] / daily["count"]
    moving = daily["sum"].rolling(window=config.window_days, min_periods=1).mean()

    daily_data = {
        day: DailyBucket(total=float(row["sum"]), count=int(row["count"]), average=float(row["average"]))
        for day, row in daily.to_dict("index").items()
    }
    moving_averages = [
        MovingAveragePoint(date=day, moving_average=float(value))
        for day, value in moving.items()
    ]

    return TimeSeriesData(daily_data=daily_data, moving_averages=moving_averages)
