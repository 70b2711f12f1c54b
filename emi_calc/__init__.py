"""EMI calculator: annuity loan math and amortization schedules."""

__version__ = "0.1.0"
