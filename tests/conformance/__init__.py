"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the collateral engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. solvency.py - No operation leaves its caller below the minimum health factor
2. atomicity.py - All-or-nothing operations, external calls included
3. conversion_inverse.py - Price conversions round against the user
4. reentrancy.py - Nested entry is rejected, state is unchanged

These tests use hypothesis for property-based testing.
"""
