"""
Static payout tables: candidate multipliers and stake bounds per game type.
Defaults can be overridden from GAME-TABLES.json, read once at startup.
"""

import json
import math
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from adola.core.logger import get_logger

logger = get_logger("tables")

DEFAULT_GAME = "default"

DEFAULT_MULTIPLIERS: Dict[str, list] = {
    "plinko": [1.5, 2.0, 2.5, 3.0, 4.0, 5.0],
    "aviator": [1.2, 1.5, 2.0, 3.0, 5.0, 10.0],
    "mines": [1.3, 1.8, 2.2, 2.8, 3.5, 4.2],
    "dice": [1.8, 2.0, 2.5, 3.0, 4.0],
    "slots": [2.0, 3.0, 5.0, 10.0, 25.0, 50.0],
    "roulette": [2.0, 3.0, 5.0, 8.0, 15.0, 35.0],
    "blackjack": [1.5, 2.0, 2.5],
    "poker": [2.0, 3.0, 5.0, 10.0],
    "baccarat": [1.8, 2.0, 2.5],
    "crash": [1.2, 1.5, 2.0, 3.0, 5.0, 8.0],
    "limbo": [1.5, 2.0, 3.0, 5.0, 10.0],
    "tower": [1.3, 1.8, 2.5, 4.0, 6.0],
    DEFAULT_GAME: [1.5, 2.0, 2.5, 3.0],
}

# (min, max) stake per game
DEFAULT_BET_BOUNDS: Dict[str, list] = {
    "plinko": [1, 1000],
    "aviator": [1, 500],
    "mines": [1, 1000],
    "dice": [1, 1000],
    "slots": [5, 100],
    "roulette": [1, 1000],
    "blackjack": [5, 500],
    "poker": [10, 1000],
    "baccarat": [5, 500],
    DEFAULT_GAME: [1, 1000],
}


class TableError(ValueError):
    """Raised when a table definition is malformed."""


class GameTables:
    """Immutable multiplier and bet-bound tables with a `default` fallback."""

    def __init__(self, multipliers: Mapping[str, list], bet_bounds: Mapping[str, list]):
        self.multipliers: Mapping[str, Tuple[float, ...]] = MappingProxyType(
            {game: _check_multipliers(game, values) for game, values in multipliers.items()}
        )
        self.bet_bounds: Mapping[str, Tuple[float, float]] = MappingProxyType(
            {game: _check_bounds(game, values) for game, values in bet_bounds.items()}
        )
        if DEFAULT_GAME not in self.multipliers:
            raise TableError("Multiplier table needs a 'default' entry")
        if DEFAULT_GAME not in self.bet_bounds:
            raise TableError("Bet bounds table needs a 'default' entry")

    def get_multipliers(self, game_type: str) -> Tuple[float, ...]:
        return self.multipliers.get(game_type) or self.multipliers[DEFAULT_GAME]

    def get_bet_bounds(self, game_type: str) -> Tuple[float, float]:
        return self.bet_bounds.get(game_type) or self.bet_bounds[DEFAULT_GAME]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "multipliers": {game: list(values) for game, values in self.multipliers.items()},
            "bet_bounds": {
                game: {"min": low, "max": high} for game, (low, high) in self.bet_bounds.items()
            },
        }


def _check_multipliers(game: str, values) -> Tuple[float, ...]:
    if isinstance(values, (str, Mapping)):
        raise TableError(f"Multipliers for {game} must be a list of numbers")
    try:
        values = tuple(float(v) for v in values)
    except (TypeError, ValueError):
        raise TableError(f"Multipliers for {game} must be a list of numbers")
    if not all(math.isfinite(v) for v in values):
        raise TableError(f"Multipliers for {game} must be finite")
    if not values:
        raise TableError(f"Multiplier list for {game} is empty")
    if any(v <= 0 for v in values):
        raise TableError(f"Multipliers for {game} must be positive")
    if list(values) != sorted(values):
        raise TableError(f"Multipliers for {game} must be ascending")
    return values


def _check_bounds(game: str, values) -> Tuple[float, float]:
    if isinstance(values, str):
        raise TableError(f"Bet bounds for {game} must be a [min, max] pair")
    if isinstance(values, Mapping):
        values = (values.get("min"), values.get("max"))
    try:
        low, high = (float(v) for v in values)
    except (TypeError, ValueError):
        raise TableError(f"Bet bounds for {game} must be a [min, max] pair")
    if not (math.isfinite(low) and math.isfinite(high)):
        raise TableError(f"Bet bounds for {game} must be finite")
    if low < 0 or low > high:
        raise TableError(f"Bet bounds for {game} are inverted or negative: {low}..{high}")
    return low, high


def default_tables() -> GameTables:
    return GameTables(DEFAULT_MULTIPLIERS, DEFAULT_BET_BOUNDS)


def _merge_over_defaults(data) -> GameTables:
    if not isinstance(data, Mapping):
        raise TableError("Tables file must hold a JSON object")
    overrides = {}
    for section in ("multipliers", "bet_bounds"):
        value = data.get(section, {})
        if not isinstance(value, Mapping):
            raise TableError(f"'{section}' must be an object keyed by game type")
        overrides[section] = value

    multipliers = dict(DEFAULT_MULTIPLIERS)
    multipliers.update(overrides["multipliers"])
    bet_bounds = dict(DEFAULT_BET_BOUNDS)
    bet_bounds.update(overrides["bet_bounds"])
    return GameTables(multipliers, bet_bounds)


def load_tables(path: Optional[Path] = None) -> GameTables:
    """
    Load the payout tables from a JSON file, layered over the defaults.

    The file may hold a "multipliers" and/or a "bet_bounds" object; games it
    names replace the default entry, other games keep their defaults. A missing
    file, invalid JSON or a malformed table falls back to the defaults.

    Args:
        path: JSON file location (defaults to settings.tables path)

    Returns:
        GameTables instance
    """
    if path is None:
        from adola.config import settings
        path = settings.tables.get_path()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning(f"{Path(path).name} not found, using default tables")
        return default_tables()
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {Path(path).name}: {e}")
        return default_tables()

    try:
        tables = _merge_over_defaults(data)
    except TableError as e:
        logger.error(f"Rejected tables from {Path(path).name}: {e}")
        return default_tables()

    logger.info(
        f"Loaded game tables from {Path(path).name}",
        extra={"games": len(tables.multipliers)},
    )
    return tables


_tables: Optional[GameTables] = None


def get_tables() -> GameTables:
    """Process-wide tables, loaded on first use."""
    global _tables
    if _tables is None:
        _tables = load_tables()
    return _tables


def get_multipliers(game_type: str) -> Tuple[float, ...]:
    return get_tables().get_multipliers(game_type)


def get_bet_bounds(game_type: str) -> Tuple[float, float]:
    return get_tables().get_bet_bounds(game_type)
