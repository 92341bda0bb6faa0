"""
Conservation Conformance Tests

INVARIANT: The balance is the sum of points over the record log.

    ∀ log L:
        balance(L) = Σ r.points for r in L

Consequences:
- Order never matters
- Appending a record moves the balance by exactly its points
- Marking a voucher used never moves the balance
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from points_ledger import Document, balance, append_record, use_voucher, list_open_vouchers

from tests.factories import local
from tests.strategies import record_logs, records


class TestConservationProperties:
    """Property-based balance tests."""

    @given(record_logs)
    @settings(max_examples=50)
    def test_balance_is_sum_of_points(self, log):
        assert balance(log) == sum(r.points for r in log)

    @given(record_logs, st.randoms(use_true_random=False))
    @settings(max_examples=50)
    def test_balance_is_order_independent(self, log, rnd):
        """
        PROPERTY: Any permutation of the log has the same balance.
        """
        shuffled = list(log)
        rnd.shuffle(shuffled)
        assert balance(shuffled) == balance(log)

    @given(record_logs, records)
    @settings(max_examples=50)
    def test_append_moves_balance_by_record_points(self, log, record):
        doc = Document(records=tuple(log))
        assert balance(append_record(doc, record).records) == balance(log) + record.points

    @given(record_logs)
    @settings(max_examples=50)
    def test_using_vouchers_preserves_balance(self, log):
        """
        PROPERTY: Voucher use patches a flag, never points.
        """
        doc = Document(records=tuple(log))
        expected = balance(doc.records)
        for voucher in list_open_vouchers(log):
            if voucher in list_open_vouchers(doc.records):
                doc = use_voucher(doc, voucher, local(2025, 3, 13))
        assert balance(doc.records) == expected
        assert list_open_vouchers(doc.records) == []
