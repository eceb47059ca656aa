"""
Tests for risk aggregation and the blocking decision.
"""

import pytest

from payflow.fraud.aggregator import RiskAggregator
from payflow.fraud.models import FraudAlert, RiskTier, RuleId, Severity, TransactionStatus
from payflow.tests.conftest import make_transaction


def alerts_scoring(transaction, *scores):
    """Build alerts with the given scores for a transaction."""
    return [
        FraudAlert.create(
            transaction_id=transaction.id,
            rule=RuleId.HIGH_AMOUNT,
            tier=RiskTier(score, Severity.MEDIUM),
            details="test",
        )
        for score in scores
    ]


class TestBlockingDecision:
    """Tests for the score threshold."""

    @pytest.mark.parametrize("status", [TransactionStatus.PENDING, TransactionStatus.SUCCESS])
    def test_score_of_80_blocks(self, aggregator, status):
        """A summed score of 80 blocks pending and successful payments."""
        transaction = make_transaction(status=status)

        decision = aggregator.aggregate(transaction, alerts_scoring(transaction, 50, 30))

        assert decision.total_score == 80
        assert decision.new_status == TransactionStatus.BLOCKED
        assert decision.changed
        assert decision.blocked

    def test_score_of_79_leaves_status(self, aggregator):
        """Just under the threshold changes nothing."""
        transaction = make_transaction(status=TransactionStatus.SUCCESS)

        decision = aggregator.aggregate(transaction, alerts_scoring(transaction, 40, 39))

        assert decision.total_score == 79
        assert decision.new_status == TransactionStatus.SUCCESS
        assert not decision.changed

    def test_no_alerts_no_change(self, aggregator):
        """No alerts means no status change."""
        transaction = make_transaction(status=TransactionStatus.PENDING)

        decision = aggregator.aggregate(transaction, [])

        assert decision.total_score == 0
        assert decision.new_status == TransactionStatus.PENDING
        assert not decision.changed

    def test_custom_threshold(self):
        """Block threshold is configurable."""
        aggregator = RiskAggregator(block_threshold=25)
        transaction = make_transaction()

        decision = aggregator.aggregate(transaction, alerts_scoring(transaction, 25))

        assert decision.blocked


class TestStatusPrecedence:
    """Tests for which statuses a block may override."""

    def test_failed_is_never_overridden(self, aggregator):
        """A failed payment stays failed whatever the score."""
        transaction = make_transaction(status=TransactionStatus.FAILED)

        decision = aggregator.aggregate(transaction, alerts_scoring(transaction, 80, 70, 60))

        assert decision.total_score == 210
        assert decision.new_status == TransactionStatus.FAILED
        assert not decision.changed

    def test_blocked_stays_blocked(self, aggregator):
        """Re-blocking a blocked transaction is not a change."""
        transaction = make_transaction(status=TransactionStatus.BLOCKED)

        decision = aggregator.aggregate(transaction, alerts_scoring(transaction, 80))

        assert decision.new_status == TransactionStatus.BLOCKED
        assert not decision.changed

    def test_blocked_not_released_by_low_score(self, aggregator):
        """A low score never un-blocks a transaction."""
        transaction = make_transaction(status=TransactionStatus.BLOCKED)

        decision = aggregator.aggregate(transaction, alerts_scoring(transaction, 25))

        assert decision.new_status == TransactionStatus.BLOCKED


class TestIdempotence:
    """Tests that aggregation can be repeated safely."""

    def test_same_alerts_same_status(self, aggregator):
        """Aggregating the same alert set twice yields the same status."""
        transaction = make_transaction(status=TransactionStatus.SUCCESS)
        alerts = alerts_scoring(transaction, 60, 25)

        first = aggregator.aggregate(transaction, alerts)
        second = aggregator.aggregate(transaction.with_status(first.new_status), alerts)

        assert first.new_status == TransactionStatus.BLOCKED
        assert second.new_status == TransactionStatus.BLOCKED
        assert not second.changed
