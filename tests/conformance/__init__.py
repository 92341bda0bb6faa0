"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the points ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Balance is the plain sum of the record log
2. temporal.py - Day windows and per-day counters
3. determinism.py - Derivations are pure functions of the log
4. atomicity.py - Rejected or failed actions leave no trace
5. idempotency.py - Once-per-day and once-per-voucher rules
6. quiz_scoring.py - Wager, payout and net result of a quiz

These tests use hypothesis for property-based testing.
"""
