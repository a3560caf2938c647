"""
kahootbot - Live quiz client over Bayeux/CometD long-polling.

Joins a running quiz game by its PIN and plays it to the end:
- Handshake and channel subscription
- Login with a nickname
- Long-poll connect cycles with push classification
- Answer submission (interactive or random answers)
- Score, rank and nemesis tracking
"""

__version__ = "0.1.0"
