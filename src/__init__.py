"""
Finance Dashboard - Source Package

A personal-finance dashboard over a hosted backend (Supabase) for people
who log their income and expenses through WhatsApp or the dashboard.

DESIGN PRINCIPLES:
1. The backend is the source of record; local state is a read cache
2. Fail early, fail visibly
3. No silent corrections
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Dashboard Team"
