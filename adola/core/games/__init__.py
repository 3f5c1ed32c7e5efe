"""Stateful game rounds built on the win/loss engine."""

from .crash import CrashProfile, CrashRound, CrashState, PROFILES, get_profile
from .mines import MinesGame, mines_multiplier

__all__ = [
    "CrashProfile",
    "CrashRound",
    "CrashState",
    "PROFILES",
    "get_profile",
    "MinesGame",
    "mines_multiplier",
]
