"""Property-based tests using Hypothesis.

These tests use generative testing to explore edge cases:
- payload codec round-trips with arbitrary JSON documents
- bookmark hash determinism and order independence
- diff/merge outcomes over arbitrary bookmark collections

To run property tests:
    pytest tests/property/ -v --hypothesis-show-statistics

Requires:
    hypothesis>=6.100.0
"""
