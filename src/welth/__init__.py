"""Welth: personal-finance backend.

Request-layer protections (shield, bot detection, rate limiting) and
the account/dashboard actions behind the Welth web app.
"""

__version__ = "0.1.0"
