"""
Portfolio tracker core.

Position valuation, holdings management, instrument classification and
chart helpers behind the portfolio tracker UI.
"""

__version__ = "1.0.0"
