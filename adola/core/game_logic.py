"""
Centralized win/loss engine.

Keeps a shuffled pattern of 2 wins to 8 losses (20% win rate), draws one
outcome per play, picks a payout multiplier from the game's table and
works out the resulting balance. The engine only computes what should
happen; persisting the balance is the caller's job.
"""

import math
import threading
from collections import deque
from bisect import bisect_right
from dataclasses import asdict, dataclass, field
from enum import Enum
from itertools import accumulate
from typing import Deque, Dict, List, Optional

from adola.config import EngineConfig
from adola.core.logger import get_logger
from adola.core.rng import TrueRNG, fisher_yates
from adola.core.tables import GameTables, get_tables

logger = get_logger("engine")


class RejectReason(str, Enum):
    INVALID_STAKE = "InvalidStake"
    INSUFFICIENT_BALANCE = "InsufficientBalance"


class StakeViolation(str, Enum):
    BELOW_MINIMUM = "BelowMinimumBet"
    ABOVE_MAXIMUM = "AboveMaximumBet"


@dataclass
class PlayResult:
    """Outcome of one play. `success` is False when the play was rejected."""
    won: bool
    multiplier: float
    payout: int
    stake: float
    resulting_balance: float
    message: str
    success: bool = True
    reason: Optional[RejectReason] = None
    game_type: str = ""

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["reason"] = self.reason.value if self.reason else None
        return data


@dataclass
class StakeCheck:
    valid: bool
    min_bet: float
    max_bet: float
    violation: Optional[StakeViolation] = None
    message: str = ""

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["violation"] = self.violation.value if self.violation else None
        return data


@dataclass
class WinLossQueue:
    """One generation of shuffled outcomes, consumed from the front."""
    outcomes: Deque[bool] = field(default_factory=deque)
    generation: int = 0

    def __len__(self) -> int:
        return len(self.outcomes)


class GameLogicService:
    """
    Win/loss engine with an in-memory shuffled outcome queue.

    Instances are independent: give each session (or test) its own.
    Queue access is serialized with a lock so one instance can be shared
    by concurrent request handlers.
    """

    def __init__(
        self,
        rng=None,
        tables: Optional[GameTables] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.rng = rng or TrueRNG()
        self.tables = tables or get_tables()
        self.config = config or EngineConfig()
        if not 0 <= self.config.pattern_wins <= self.config.pattern_length:
            raise ValueError("pattern_wins must be between 0 and pattern_length")
        if self.config.pattern_length < 1:
            raise ValueError("pattern_length must be at least 1")

        self._lock = threading.Lock()
        self._queue = WinLossQueue()
        self._refill()

    # ==================== Win/loss pattern ====================

    def _refill(self):
        """Replace the queue with a freshly shuffled generation. Caller holds the lock or owns the instance."""
        wins = self.config.pattern_wins
        losses = self.config.pattern_length - wins
        pattern: List[bool] = [True] * wins + [False] * losses
        fisher_yates(pattern, self.rng)
        self._queue = WinLossQueue(deque(pattern), self._queue.generation + 1)
        logger.debug(
            "Win/loss pattern reshuffled",
            extra={"generation": self._queue.generation, "wins": wins, "losses": losses},
        )

    def decide_outcome(self) -> bool:
        """
        Return the next win/loss decision.

        Follows the queued pattern most of the time; otherwise an independent
        draw slightly biased toward a loss.
        """
        with self._lock:
            if not self._queue.outcomes:
                self._refill()
            pattern_result = self._queue.outcomes.popleft()

        if self.rng.random_float() < self.config.pattern_follow_rate:
            return pattern_result
        return self.rng.random_float() < self.config.override_win_rate

    def get_win_loss_stats(self) -> Dict[str, int]:
        with self._lock:
            wins = sum(1 for outcome in self._queue.outcomes if outcome)
            total = len(self._queue.outcomes)
        return {
            "wins_remaining": wins,
            "losses_remaining": total - wins,
            "total_in_queue": total,
        }

    def reset_pattern(self):
        """Force an immediate reshuffle (testing and admin use)."""
        with self._lock:
            self._refill()

    # ==================== Stake checks ====================

    @staticmethod
    def _valid_stake(stake: float, balance: float) -> bool:
        return math.isfinite(stake) and math.isfinite(balance) and stake > 0

    @staticmethod
    def can_play(stake: float, balance: float) -> bool:
        return GameLogicService._valid_stake(stake, balance) and balance >= stake

    @staticmethod
    def get_balance_validation_message(stake: float, balance: float) -> str:
        if not GameLogicService._valid_stake(stake, balance):
            return "Please enter a valid bet amount"
        if balance < stake:
            return (
                f"Insufficient balance. You need {_fmt(stake)} coins "
                f"but only have {_fmt(balance)} coins."
            )
        return ""

    def validate_stake_bounds(self, stake: float, game_type: str) -> StakeCheck:
        """Check a stake against the game's min/max bet."""
        min_bet, max_bet = self.tables.get_bet_bounds(game_type)

        # NaN compares false both ways; treat it as below the minimum
        if not stake >= min_bet:
            return StakeCheck(
                valid=False,
                min_bet=min_bet,
                max_bet=max_bet,
                violation=StakeViolation.BELOW_MINIMUM,
                message=f"Minimum bet for {game_type} is {_fmt(min_bet)} coins",
            )
        if stake > max_bet:
            return StakeCheck(
                valid=False,
                min_bet=min_bet,
                max_bet=max_bet,
                violation=StakeViolation.ABOVE_MAXIMUM,
                message=f"Maximum bet for {game_type} is {_fmt(max_bet)} coins",
            )
        return StakeCheck(valid=True, min_bet=min_bet, max_bet=max_bet)

    # ==================== Payouts ====================

    def pick_multiplier(self, game_type: str, base_multiplier: Optional[float] = None) -> float:
        """
        Weighted pick from the game's multiplier list.

        Weights decay as multiplier_decay ** index, so the lowest multiplier is
        the most likely. `base_multiplier` is accepted for callers that pass
        one but does not change the table.
        """
        candidates = self.tables.get_multipliers(game_type)
        decay = self.config.multiplier_decay
        weights = [decay ** index for index in range(len(candidates))]
        total = sum(weights)
        cumulative = list(accumulate(w / total for w in weights))

        index = bisect_right(cumulative, self.rng.random_float())
        # Float rounding can leave the last cumulative weight just under 1.0
        return candidates[min(index, len(candidates) - 1)]

    def compute_result(
        self,
        stake: float,
        balance: float,
        game_type: str,
        base_multiplier: Optional[float] = None,
    ) -> PlayResult:
        """
        Decide one play and return the resulting balance.

        Rejected plays (non-positive or non-finite amounts, insufficient
        balance) come back with success=False and the balance unchanged.
        """
        if not self.can_play(stake, balance):
            reason = (
                RejectReason.INVALID_STAKE
                if not self._valid_stake(stake, balance)
                else RejectReason.INSUFFICIENT_BALANCE
            )
            return PlayResult(
                won=False,
                multiplier=0,
                payout=0,
                stake=stake,
                resulting_balance=balance,
                message=self.get_balance_validation_message(stake, balance),
                success=False,
                reason=reason,
                game_type=game_type,
            )

        won = self.decide_outcome()

        if won:
            multiplier = self.pick_multiplier(game_type, base_multiplier)
            payout = math.floor(stake * multiplier)
            message = f"You won {payout} coins! ({multiplier:.2f}x multiplier)"
        else:
            multiplier = 0
            payout = 0
            message = f"You lost {_fmt(stake)} coins. Better luck next time!"

        return PlayResult(
            won=won,
            multiplier=multiplier,
            payout=payout,
            stake=stake,
            resulting_balance=balance - stake + payout,
            message=message,
            game_type=game_type,
        )


def _fmt(amount: float) -> str:
    """Render whole amounts without a trailing .0"""
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:g}"
