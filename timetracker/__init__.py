"""
Time Tracker - Source Package

A household time, finance and debt tracker for two people sharing
one pooled budget.

DESIGN PRINCIPLES:
1. Rent is always reserved before anything else is paid
2. Derived money values are computed, never stored
3. Every automatic movement of money is logged
4. Persistence failures are reported, never hidden
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Time Tracker Team"
