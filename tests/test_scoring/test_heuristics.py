"""Tests for the per-transaction risk heuristics."""

from datetime import datetime, timedelta, timezone

import pytest

from risk_engine.exceptions import MissingFieldError, NoHistoryError
from risk_engine.scoring.heuristics import (
    HeuristicIndex,
    analyze_transaction_patterns,
    calculate_risk_factors,
    detect_anomalies,
)


class TestCalculateRiskFactors:
    """Tests for merchant, amount and time-of-day risk."""

    def test_high_risk_night_large_unfamiliar(self, mock_transactions):
        """Test 02:00, 1200 at a merchant seen fewer than 5 times scores 1.8."""
        result = calculate_risk_factors(mock_transactions[0], mock_transactions)
        assert result == pytest.approx(0.8 + 0.6 + 0.4)

    def test_low_risk_midday_small_familiar(self, transaction_factory):
        """Test a familiar merchant, small amount at midday scores 0.4."""
        txn = transaction_factory("w", merchant_name="Walmart", amount=500.0)
        history = [transaction_factory(f"w{i}", merchant_name="Walmart") for i in range(6)]

        result = calculate_risk_factors(txn, history)
        assert result == pytest.approx(0.2 + 0.1 + 0.1)

    def test_empty_comparison_set(self, mock_transactions):
        """Test heuristics are self-contained when there are no peers."""
        result = calculate_risk_factors(mock_transactions[0], [])
        assert result == pytest.approx(1.8)

    def test_exactly_five_merchant_transactions_is_familiar(self, transaction_factory):
        txn = transaction_factory("t", amount=50.0)
        history = [transaction_factory(f"h{i}") for i in range(5)]

        assert calculate_risk_factors(txn, history) == pytest.approx(0.2 + 0.1 + 0.1)

    def test_amount_boundary(self, transaction_factory):
        """Test exactly 1000 is not a large amount."""
        txn = transaction_factory("t", amount=1000.0)
        assert calculate_risk_factors(txn, []) == pytest.approx(0.8 + 0.1 + 0.1)

    def test_hour_six_is_daytime(self, transaction_factory):
        txn = transaction_factory("t", timestamp=datetime(2025, 7, 14, 6, 0, tzinfo=timezone.utc))
        assert calculate_risk_factors(txn, []) == pytest.approx(0.8 + 0.1 + 0.1)

    def test_uses_timestamp_wall_clock_hour(self, transaction_factory):
        """Test the hour is read in the timestamp's own timezone."""
        tz = timezone(timedelta(hours=-5))
        txn = transaction_factory("t", timestamp=datetime(2025, 7, 14, 3, 0, tzinfo=tz))
        assert calculate_risk_factors(txn, []) == pytest.approx(0.8 + 0.1 + 0.4)

    def test_missing_amount_and_timestamp(self, transaction_factory, mock_transactions):
        """Test missing fields raise MissingFieldError naming the transaction."""
        txn = transaction_factory("broken", amount=None, timestamp=None)

        with pytest.raises(MissingFieldError) as exc_info:
            calculate_risk_factors(txn, mock_transactions)

        assert exc_info.value.transaction_id == "broken"
        assert exc_info.value.fields == ["amount", "timestamp"]

    def test_missing_timestamp_only(self, transaction_factory):
        with pytest.raises(MissingFieldError, match="timestamp is required"):
            calculate_risk_factors(transaction_factory("t", timestamp=None), [])


class TestAnalyzeTransactionPatterns:
    """Tests for the similar-payment and velocity pattern score."""

    def test_similar_and_velocity(self, mock_transactions):
        """Test 4+ similar payments and 6+ transactions within an hour score 0.8."""
        base = mock_transactions[1]
        all_transactions = mock_transactions + [
            base.model_copy(update={"id": "txn_5", "amount": 505.0}),
            base.model_copy(update={"id": "txn_6", "amount": 495.0}),
            base.model_copy(update={"id": "txn_7", "timestamp": datetime(2025, 7, 14, 11, 30, tzinfo=timezone.utc)}),
            base.model_copy(update={"id": "txn_8", "timestamp": datetime(2025, 7, 14, 11, 45, tzinfo=timezone.utc)}),
            base.model_copy(update={"id": "txn_9", "timestamp": datetime(2025, 7, 14, 12, 15, tzinfo=timezone.utc)}),
        ]

        result = analyze_transaction_patterns(base, all_transactions)
        assert result == pytest.approx(0.3 + 0.5)

    def test_no_patterns(self, mock_transactions):
        """Test a lone transaction scores exactly 0."""
        assert analyze_transaction_patterns(mock_transactions[3], mock_transactions) == 0

    def test_empty_comparison_set(self, mock_transactions):
        assert analyze_transaction_patterns(mock_transactions[0], []) == 0

    def test_similar_only(self, transaction_factory):
        """Test 4 near-identical payments spread over days score 0.3."""
        peers = [
            transaction_factory(
                f"p{i}",
                amount=100.0 + i,
                timestamp=datetime(2025, 7, 1 + i, 12, tzinfo=timezone.utc),
            )
            for i in range(4)
        ]
        assert analyze_transaction_patterns(peers[0], peers) == pytest.approx(0.3)

    def test_velocity_window_is_inclusive(self, transaction_factory):
        """Test a transaction exactly one hour away counts towards velocity."""
        base = datetime(2025, 7, 14, 12, 0, tzinfo=timezone.utc)
        peers = [
            transaction_factory(
                f"v{i}",
                merchant_name=f"Shop {i}",
                timestamp=base + timedelta(minutes=12 * i),
            )
            for i in range(6)
        ]
        # Offsets 0..60 minutes: all six within one hour of the first
        assert analyze_transaction_patterns(peers[0], peers) == pytest.approx(0.5)

    def test_missing_fields(self, transaction_factory):
        txn = transaction_factory("t", merchant_name=None, user_id=None)

        with pytest.raises(MissingFieldError) as exc_info:
            analyze_transaction_patterns(txn, [])

        assert exc_info.value.fields == ["merchant_name", "user_id"]


class TestDetectAnomalies:
    """Tests for spend deviation and location anomaly."""

    def test_large_deviation_new_location_is_clamped(self, mock_transactions, transaction_factory):
        """Test a 5000 payment at an unseen location is clamped to 1."""
        txn = transaction_factory("new", amount=5000.0, location="Tokyo")
        avg = (1200 + 500 + 510) / 3

        result = detect_anomalies(txn, mock_transactions)

        assert result == pytest.approx(min(abs(5000 - avg) / avg * 0.3 + 0.4, 1))
        assert result == 1.0

    def test_known_location_small_deviation(self, mock_transactions):
        txn = mock_transactions[1]
        avg = (1200 + 500 + 510) / 3

        assert detect_anomalies(txn, mock_transactions) == pytest.approx(abs(500 - avg) / avg * 0.3)

    def test_no_location_means_no_location_anomaly(self, mock_transactions, transaction_factory):
        txn = transaction_factory("t", amount=(1200 + 500 + 510) / 3, location=None)
        assert detect_anomalies(txn, mock_transactions) == pytest.approx(0.0)

    def test_only_last_ten_locations_count(self, transaction_factory):
        """Test a location seen only before the user's last 10 transactions is new."""
        history = [transaction_factory("old", location="Paris")] + [
            transaction_factory(f"h{i}", location="Berlin") for i in range(10)
        ]
        txn = transaction_factory("t", location="Paris")

        assert detect_anomalies(txn, history) == pytest.approx(0.4)

    def test_user_without_history(self, mock_transactions, transaction_factory):
        """Test a user with zero transactions in the set raises NoHistoryError."""
        txn = transaction_factory("t", user_id="user_unknown")

        with pytest.raises(NoHistoryError):
            detect_anomalies(txn, mock_transactions)

    def test_empty_set_raises(self, mock_transactions):
        with pytest.raises(NoHistoryError):
            detect_anomalies(mock_transactions[0], [])

    def test_missing_amount(self, transaction_factory, mock_transactions):
        with pytest.raises(MissingFieldError):
            detect_anomalies(transaction_factory("t", amount=None), mock_transactions)


def _pattern_counts_by_scan(txn, all_transactions):
    similar = sum(
        1 for o in all_transactions
        if o.merchant_name == txn.merchant_name
        and o.amount is not None
        and abs(o.amount - txn.amount) < 10
    )
    velocity = sum(
        1 for o in all_transactions
        if o.user_id == txn.user_id
        and o.timestamp is not None
        and abs((o.timestamp - txn.timestamp).total_seconds()) <= 3600
    )
    return similar, velocity


def _anomaly_by_scan(txn, all_transactions):
    history = [t for t in all_transactions if t.user_id == txn.user_id and t.amount is not None]
    avg = sum(t.amount for t in history) / len(history)
    location = 0.4 if txn.location and txn.location not in {t.location for t in history[-10:]} else 0.0
    return min(abs(txn.amount - avg) / avg * 0.3 + location, 1.0)


@pytest.fixture
def dense_transactions(transaction_factory):
    """600 transactions, four minutes apart, for five users at four merchants."""
    base = datetime(2025, 7, 14, 0, 0, tzinfo=timezone.utc)
    return [
        transaction_factory(
            f"d{i}",
            timestamp=base + timedelta(minutes=4 * i, seconds=i % 3),
            amount=100.0 + (i * 7.3) % 40,
            merchant_name=f"Shop {i % 4}",
            user_id=f"user_{i % 5}",
            location=f"City {i % 13}",
        )
        for i in range(600)
    ]


class TestHeuristicIndex:
    """Tests for whole-set scoring through the precomputed index."""

    def test_counts_match_direct_scan(self, dense_transactions):
        index = HeuristicIndex(dense_transactions)

        for txn in dense_transactions[::7]:
            assert (index.similar_count(txn), index.velocity_count(txn)) == _pattern_counts_by_scan(
                txn, dense_transactions
            )

    def test_scores_match_direct_scan(self, dense_transactions):
        index = HeuristicIndex(dense_transactions)
        scored = dense_transactions[::11]

        patterns = [index.pattern_score(t) for t in scored]
        assert any(p > 0 for p in patterns)
        for txn, pattern in zip(scored, patterns):
            similar, velocity = _pattern_counts_by_scan(txn, dense_transactions)
            expected = (0.3 if similar > 3 else 0.0) + (0.5 if velocity > 5 else 0.0)
            assert pattern == pytest.approx(expected)
            assert index.anomaly_score(txn) == pytest.approx(_anomaly_by_scan(txn, dense_transactions))

    def test_similar_amount_boundary(self, transaction_factory):
        """Test a difference of exactly 10 is not similar but just under is."""
        amounts = [100.0, 110.0, 90.0, 109.99]
        peers = [transaction_factory(f"a{i}", amount=amount) for i, amount in enumerate(amounts)]
        index = HeuristicIndex(peers)

        assert index.similar_count(peers[0]) == 2

    def test_velocity_window_edge_is_exact(self, transaction_factory):
        """Test one microsecond past the hour falls outside the window."""
        base = datetime(2025, 7, 14, 12, 0, tzinfo=timezone.utc)
        peers = [
            transaction_factory("v0", timestamp=base),
            transaction_factory("v1", timestamp=base + timedelta(hours=1)),
            transaction_factory("v2", timestamp=base - timedelta(hours=1, microseconds=1)),
        ]

        assert HeuristicIndex(peers).velocity_count(peers[0]) == 2

    def test_skips_incomplete_peers(self, transaction_factory):
        peers = [
            transaction_factory("ok", amount=100.0),
            transaction_factory("no_amount", amount=None),
            transaction_factory("no_time", timestamp=None),
        ]
        index = HeuristicIndex(peers)

        assert index.similar_count(peers[0]) == 2
        assert index.velocity_count(peers[0]) == 2

    def test_unknown_user_has_no_history(self, mock_transactions, transaction_factory):
        index = HeuristicIndex(mock_transactions)

        with pytest.raises(NoHistoryError):
            index.anomaly_score(transaction_factory("x", user_id="ghost"))


class TestMixedTimezones:
    """Tests for sets mixing naive and timezone-aware timestamps."""

    def test_naive_timestamp_read_as_utc(self, transaction_factory):
        txn = transaction_factory("n", timestamp=datetime(2025, 7, 14, 3, 0))

        assert txn.timestamp == datetime(2025, 7, 14, 3, 0, tzinfo=timezone.utc)
        assert calculate_risk_factors(txn, []) == pytest.approx(0.8 + 0.1 + 0.4)

    def test_velocity_over_mixed_set(self, transaction_factory):
        peers = [
            transaction_factory("aware", timestamp=datetime(2025, 7, 14, 12, 0, tzinfo=timezone.utc)),
        ] + [
            transaction_factory(
                f"naive{i}",
                timestamp=datetime(2025, 7, 14, 12, 10 * i),
                merchant_name=f"Shop {i}",
            )
            for i in range(1, 6)
        ]

        assert HeuristicIndex(peers).velocity_count(peers[0]) == 6
        assert analyze_transaction_patterns(peers[0], peers) == pytest.approx(0.5)
