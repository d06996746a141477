"""
CLARK Entities - Property-Based Testing Suite

Property-based testing using Hypothesis to discover edge cases in the
learning object aggregate, its submission rules and document reconstruction.
"""
