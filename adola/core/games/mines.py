"""
Mines - a 5x5 board hiding a chosen number of mines.
Reveal gems to raise the multiplier, cash out before hitting a mine.
The engine's win/loss decision shapes where the mines go.
"""

import math
import uuid
from typing import Dict, List, Optional, Set, Tuple

from adola.core.exceptions import RoundStateError
from adola.core.game_logic import GameLogicService
from adola.core.logger import get_logger

logger = get_logger("mines")

GRID_SIZE = 5
MIN_MINES = 1
MAX_MINES = GRID_SIZE * GRID_SIZE - 1

# Centre block kept clear of mines on a winning board
CENTER_TILES: Set[Tuple[int, int]] = {(row, col) for row in range(1, 4) for col in range(1, 4)}


def mines_multiplier(revealed: int, mines: int, grid_size: int = GRID_SIZE) -> float:
    """Fair multiplier after `revealed` gems: product of tiles_left / gems_left."""
    total_tiles = grid_size * grid_size
    gems = total_tiles - mines
    multiplier = 1.0
    for i in range(revealed):
        multiplier *= (total_tiles - i) / (gems - i)
    return multiplier


class MinesGame:
    """One mines board. Create a new instance (via start) for each game."""

    GAME_TYPE = "mines"

    def __init__(self, engine: GameLogicService):
        self.engine = engine
        self.game_id: Optional[str] = None
        self.active = False
        self.stake = 0.0
        self.balance = 0.0
        self.mine_count = 0
        self.mines: Set[Tuple[int, int]] = set()
        self.revealed: Set[Tuple[int, int]] = set()
        self.multiplier = 1.0
        self.payout = 0
        self.outcome: Optional[str] = None  # "won" | "lost" once finished

    def start(self, stake: float, balance: float, mines: int) -> Dict:
        """Start a new board. Returns an error dict when the stake is rejected."""
        if self.active:
            raise RoundStateError("Finish the current game first")
        if not MIN_MINES <= mines <= MAX_MINES:
            raise ValueError(f"Mine count must be between {MIN_MINES} and {MAX_MINES}")

        if not self.engine.can_play(stake, balance):
            return {
                "success": False,
                "error": self.engine.get_balance_validation_message(stake, balance),
            }
        check = self.engine.validate_stake_bounds(stake, self.GAME_TYPE)
        if not check.valid:
            return {"success": False, "error": check.message, "violation": check.violation.value}

        won = self.engine.decide_outcome()

        self.game_id = uuid.uuid4().hex[:12]
        self.active = True
        self.stake = stake
        self.balance = balance
        self.mine_count = mines
        self.mines = self._place_mines(mines, avoid_center=won)
        self.revealed = set()
        self.multiplier = 1.0
        self.payout = 0
        self.outcome = None

        logger.info(
            "Mines game started",
            extra={"game_id": self.game_id, "stake": stake, "mines": mines},
        )
        return {"success": True, "balance": balance - stake, **self.snapshot()}

    def _place_mines(self, count: int, avoid_center: bool) -> Set[Tuple[int, int]]:
        rng = self.engine.rng
        candidates = [
            (row, col)
            for row in range(GRID_SIZE)
            for col in range(GRID_SIZE)
            if not (avoid_center and (row, col) in CENTER_TILES)
        ]
        # Too many mines to keep the centre clear: fall back to the whole board
        if len(candidates) < count:
            candidates = [(row, col) for row in range(GRID_SIZE) for col in range(GRID_SIZE)]

        placed: Set[Tuple[int, int]] = set()
        while len(placed) < count:
            placed.add(candidates[rng.random_int(0, len(candidates) - 1)])
        return placed

    def reveal(self, row: int, col: int) -> Dict:
        if not self.active:
            raise RoundStateError("No active mines game")
        if not (0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE):
            raise ValueError(f"Tile ({row}, {col}) is off the board")
        tile = (row, col)
        if tile in self.revealed:
            raise RoundStateError("Tile already revealed")

        self.revealed.add(tile)

        if tile in self.mines:
            self.active = False
            self.outcome = "lost"
            self.payout = 0
            logger.info("Mines game lost", extra={"game_id": self.game_id, "tile": tile})
            return self.snapshot()

        self.multiplier = mines_multiplier(len(self.revealed), self.mine_count)

        gems = GRID_SIZE * GRID_SIZE - self.mine_count
        if len(self.revealed) == gems:
            return self._settle_win()
        return self.snapshot()

    def cash_out(self) -> Dict:
        if not self.active:
            raise RoundStateError("No active mines game")
        if not self.revealed:
            raise RoundStateError("Reveal at least one tile before cashing out")
        return self._settle_win()

    def _settle_win(self) -> Dict:
        self.active = False
        self.outcome = "won"
        self.payout = math.floor(self.stake * self.multiplier)
        logger.info(
            "Mines game cashed out",
            extra={"game_id": self.game_id, "multiplier": round(self.multiplier, 2), "payout": self.payout},
        )
        return self.snapshot()

    def board(self) -> List[List[str]]:
        """Rows of "hidden" / "gem" / "mine"; every mine is shown once the game ends."""
        show_all = not self.active and self.outcome is not None
        rows = []
        for row in range(GRID_SIZE):
            cells = []
            for col in range(GRID_SIZE):
                tile = (row, col)
                if tile in self.revealed or show_all:
                    cells.append("mine" if tile in self.mines else "gem")
                else:
                    cells.append("hidden")
            rows.append(cells)
        return rows

    def snapshot(self) -> Dict:
        data = {
            "game_id": self.game_id,
            "active": self.active,
            "stake": self.stake,
            "mines": self.mine_count,
            "revealed": len(self.revealed),
            "multiplier": round(self.multiplier, 2),
            "board": self.board(),
            "outcome": self.outcome,
        }
        if self.outcome is not None:
            data["payout"] = self.payout
            data["resulting_balance"] = self.balance - self.stake + self.payout
        return data
