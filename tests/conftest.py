"""Pytest configuration and fixtures for risk engine tests."""

from datetime import datetime, timedelta, timezone

import pytest

from risk_engine.data.schema import Transaction


BASE_TIME = datetime(2025, 7, 14, 12, 0, tzinfo=timezone.utc)


def make_transaction(id: str = "txn", **overrides) -> Transaction:
    """Build a valid transaction, overriding any field by keyword."""
    fields = {
        "id": id,
        "timestamp": BASE_TIME,
        "amount": 100.0,
        "currency": "USD",
        "type": "debit",
        "category": "Shopping",
        "description": "Purchase",
        "merchant_name": "Amazon",
        "status": "completed",
        "user_id": "user_1",
        "account_id": "acc_1",
        "location": "New York",
    }
    fields.update(overrides)
    return Transaction(**fields)


@pytest.fixture
def transaction_factory():
    """Factory for transactions with sensible defaults."""
    return make_transaction


@pytest.fixture
def mock_transactions() -> list[Transaction]:
    """Four transactions across two users.

    Returns:
        List containing:
        - txn_1: 02:00, 1200 at Amazon (night, large amount)
        - txn_2, txn_3: 500 and 510 at Amazon, an hour apart
        - txn_4: 2000 at Expedia for a second user
    """
    return [
        make_transaction(
            "txn_1",
            timestamp=datetime(2025, 7, 14, 2, 0, tzinfo=timezone.utc),
            amount=1200.0,
            type="credit",
            description="Purchase at Amazon",
        ),
        make_transaction(
            "txn_2",
            timestamp=datetime(2025, 7, 14, 12, 0, tzinfo=timezone.utc),
            amount=500.0,
            type="credit",
            description="Purchase at Amazon",
        ),
        make_transaction(
            "txn_3",
            timestamp=datetime(2025, 7, 14, 11, 0, tzinfo=timezone.utc),
            amount=510.0,
            type="credit",
            description="Purchase at Amazon",
        ),
        make_transaction(
            "txn_4",
            timestamp=datetime(2025, 7, 14, 12, 0, tzinfo=timezone.utc),
            amount=2000.0,
            type="credit",
            category="Travel",
            description="Flight booking",
            merchant_name="Expedia",
            user_id="user_2",
            account_id="acc_2",
            location="London",
        ),
    ]


@pytest.fixture
def spread_transactions() -> list[Transaction]:
    """Transactions over three days, two categories and three users."""
    rows = [
        # (day offset, hour, amount, category, merchant, user)
        (0, 9, 100.0, "Groceries", "Fresh Market", "user_a"),
        (0, 15, 300.0, "Dining", "Luigi's", "user_a"),
        (1, 10, 200.0, "Groceries", "Fresh Market", "user_b"),
        (1, 20, 400.0, "Dining", "Luigi's", "user_b"),
        (2, 8, 50.0, "Groceries", "Fresh Mart", "user_c"),
        (2, 19, 250.0, "Dining", "Luigi's", "user_c"),
    ]
    return [
        make_transaction(
            f"s{i}",
            timestamp=BASE_TIME.replace(hour=hour) + timedelta(days=day),
            amount=amount,
            category=category,
            merchant_name=merchant,
            user_id=user,
        )
        for i, (day, hour, amount, category, merchant, user) in enumerate(rows)
    ]


@pytest.fixture
def bulk_transactions() -> list[Transaction]:
    """300 transactions for ten users, spread over ten days."""
    return [
        make_transaction(
            f"bulk_{i}",
            timestamp=BASE_TIME + timedelta(hours=i * 0.8),
            amount=50.0 + (i % 20) * 75.0,
            merchant_name=f"Merchant {i % 7}",
            category=["Groceries", "Dining", "Travel"][i % 3],
            user_id=f"user_{i % 10}",
            location=f"City {i % 4}",
        )
        for i in range(300)
    ]
