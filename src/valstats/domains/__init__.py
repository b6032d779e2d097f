"""
valstats Domains - Round-level game mechanics.

This module contains:
- sides: Attacking side per round across halftime and overtime
- combat: First bloods and trades from the kill feed
- rounds: Per-player round participation and KAST
"""

__all__: list[str] = []
