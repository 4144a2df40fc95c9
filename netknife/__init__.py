"""
NetKnife intelligence aggregation core.

Queries several independent threat-intelligence providers for one subject,
folds their answers into a single deterministic risk score and returns an
aggregate result for display.
"""

__version__ = "1.0.0"
