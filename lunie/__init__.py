"""
Lunie chain-data core.

Normalizes raw Cosmos-SDK node responses into view records and keeps a
client's state persisted across sessions.
"""

__version__ = "0.1.0"
