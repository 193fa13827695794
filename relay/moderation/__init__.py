"""
Ban enforcement and administration.
"""

from relay.moderation.ban_gate import BanGate
from relay.moderation.admin import BanAdministration
from relay.moderation.console import AdminConsole


__all__ = [
    "BanGate",
    "BanAdministration",
    "AdminConsole",
]
