"""
Matchmaking relay: queues WebSocket clients and hands them a game session
once the game server is up.
"""

__version__ = "1.0.0"
