"""
Copy Trade - position replication engine.

Mirrors a chosen trader's open positions into a follower account, scaled to
the follower's capital, and keeps the follower's book in sync on a fixed
cadence.
"""

__version__ = "0.3.0"
