"""Synthetic Transaction Data Generator.

Generates transactions using the Faker library: a fixed pool of merchants
and locations per generator so that merchant familiarity, velocity and
location heuristics have realistic repeats to work with.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pandas as pd
from faker import Faker

from .schema import Transaction, TransactionStatus, TransactionType


CATEGORIES = [
    "Groceries",
    "Dining",
    "Transport",
    "Shopping",
    "Entertainment",
    "Utilities",
    "Travel",
    "Healthcare",
    "Education",
    "Other",
]

SECONDS_PER_YEAR = 365 * 24 * 60 * 60


class TransactionGenerator:
    """
    Generates synthetic transactions for exercising the risk engine.

    Uses Faker to create merchant names, cities, descriptions and references.
    With a seed and a fixed ``reference_time`` the output is fully
    reproducible.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        locale: str = "en_US",
        num_users: int = 1000,
        num_accounts: int = 100,
        num_merchants: int = 40,
        num_locations: int = 25,
        reference_time: Optional[datetime] = None,
    ):
        """
        Initialize the generator.

        Args:
            seed: Random seed for reproducibility.
            locale: Faker locale for region-specific data generation.
            num_users: Size of the user id pool.
            num_accounts: Size of the account id pool.
            num_merchants: Number of distinct merchant names.
            num_locations: Number of distinct locations.
            reference_time: Latest possible timestamp; timestamps fall in the
                year before it. Defaults to the current UTC time.
        """
        self.seed = seed
        self.locale = locale
        self.num_users = num_users
        self.num_accounts = num_accounts
        self.reference_time = reference_time or datetime.now(timezone.utc)
        self.faker = Faker(locale)

        if seed is not None:
            self.faker.seed_instance(seed)

        self.merchants = self._unique_pool(self.faker.company, num_merchants)
        self.locations = self._unique_pool(self.faker.city, num_locations)
        self._transaction_counter = 0

    def _unique_pool(self, provider: Callable[[], str], size: int) -> list[str]:
        pool: list[str] = []
        for _ in range(size * 10):
            value = provider()
            if value not in pool:
                pool.append(value)
            if len(pool) == size:
                break
        return pool

    def _generate_transaction_id(self) -> str:
        """Generate a unique transaction ID."""
        self._transaction_counter += 1
        return f"TXN-{self._transaction_counter:08d}"

    def _generate_status(self) -> TransactionStatus:
        # 90% completed, the rest split between pending and failed
        if self.faker.random.random() > 0.1:
            return TransactionStatus.COMPLETED
        return self.faker.random_element([TransactionStatus.PENDING, TransactionStatus.FAILED])

    def generate_single_transaction(self) -> Transaction:
        """
        Generate one transaction.

        Roughly 70% of transactions carry a location and half carry a
        reference. Debits outnumber credits 2 to 3.
        """
        rng = self.faker.random
        txn_id = self._generate_transaction_id()
        offset = rng.uniform(0, SECONDS_PER_YEAR)

        return Transaction(
            id=txn_id,
            timestamp=self.reference_time - timedelta(seconds=offset),
            amount=round(rng.uniform(1, 5001), 2),
            currency="USD",
            type=TransactionType.DEBIT if rng.random() > 0.6 else TransactionType.CREDIT,
            category=self.faker.random_element(CATEGORIES),
            description=f"Transaction {self._transaction_counter} - {self.faker.sentence(nb_words=4)}",
            merchant_name=self.faker.random_element(self.merchants),
            status=self._generate_status(),
            user_id=f"user_{rng.randrange(self.num_users)}",
            account_id=f"acc_{rng.randrange(self.num_accounts)}",
            location=self.faker.random_element(self.locations) if rng.random() > 0.3 else None,
            reference=f"REF{rng.randrange(1_000_000)}" if rng.random() > 0.5 else None,
        )

    def generate_transactions(
        self,
        count: int,
        batch_size: int = 1000,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> list[Transaction]:
        """
        Generate multiple transactions.

        Args:
            count: Number of transactions to generate.
            batch_size: Progress is reported once per batch of this size.
            on_progress: Called as ``on_progress(generated, count)``.

        Returns:
            List of Transaction objects.
        """
        transactions = []
        for start in range(0, count, batch_size):
            end = min(start + batch_size, count)
            transactions.extend(self.generate_single_transaction() for _ in range(start, end))
            if on_progress is not None:
                on_progress(end, count)
        return transactions

    @staticmethod
    def to_dataframe(transactions: list[Transaction]) -> pd.DataFrame:
        """
        Convert transactions to a DataFrame ready for CSV output.

        Timestamps become ISO-8601 strings and enums their values.
        """
        columns = list(Transaction.model_fields)
        return pd.DataFrame(
            [t.model_dump(mode="json") for t in transactions],
            columns=columns,
        )
