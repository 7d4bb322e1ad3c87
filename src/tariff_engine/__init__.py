"""
Tariff Engine Package

Deterministic, auditable price estimates for moving jobs.
Resolves Tariff → Pricing Method → Crew → Base Charge → Surcharges for each request.
"""

__version__ = "1.0.0"
