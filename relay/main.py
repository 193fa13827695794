"""
Main entry point for the matchmaking relay.

Usage:
    python -m relay.main

Or:
    relay
"""

from relay.network.server import main


if __name__ == "__main__":
    main()
