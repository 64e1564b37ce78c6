"""
Household Finance - Source Package

The financial core of a couples' household finance application:
money arithmetic, expense splitting agreements, budget envelopes
and savings goals.

DESIGN PRINCIPLES:
1. Money is exact (integer cents, half-up rounding)
2. Fail early, fail visibly
3. No silent corrections
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Finance Team"
