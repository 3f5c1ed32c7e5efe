"""
Crash rounds - a multiplier climbs from 1.00x until it explodes.
Players bet while the round is waiting and must cash out before the explosion.
One state machine serves every crash-style game; profiles set the timing
and the explosion-point distributions.

    WAITING -> ROLLING -> CRASHED -> WAITING
"""

import math
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from adola.core.exceptions import RoundStateError, UnknownProfileError
from adola.core.game_logic import GameLogicService
from adola.core.logger import get_logger

logger = get_logger("crash")

HISTORY_SIZE = 10


class CrashState(str, Enum):
    WAITING = "waiting"
    ROLLING = "rolling"
    CRASHED = "crashed"


# (probability, low, high): explosion point is uniform in [low, high)
Band = Tuple[float, float, float]


@dataclass(frozen=True)
class CrashProfile:
    name: str
    game_type: str
    win_bands: Tuple[Band, ...]
    loss_bands: Tuple[Band, ...]
    waiting_seconds: float = 5.0
    cooldown_seconds: float = 3.0
    tick_seconds: float = 0.1
    increment: float = 0.01

    def explosion_point(self, won: bool, rng) -> float:
        """Draw an explosion point from the win or loss distribution."""
        bands = self.win_bands if won else self.loss_bands
        roll = rng.random_float()
        cumulative = 0.0
        for probability, low, high in bands:
            cumulative += probability
            if roll < cumulative:
                return rng.random_uniform(low, high)
        _, low, high = bands[-1]
        return rng.random_uniform(low, high)


PROFILES: Dict[str, CrashProfile] = {
    "aviator": CrashProfile(
        name="aviator",
        game_type="aviator",
        win_bands=((1.0, 2.0, 10.0),),
        loss_bands=((1.0, 1.1, 2.5),),
        waiting_seconds=10.0,
        cooldown_seconds=5.0,
    ),
    "rollmaster": CrashProfile(
        name="rollmaster",
        game_type="rollmaster",
        win_bands=((0.5, 2.0, 5.0), (0.3, 5.0, 10.0), (0.2, 10.0, 25.0)),
        loss_bands=((0.6, 1.0, 1.8), (0.3, 1.8, 3.0), (0.1, 3.0, 5.0)),
        waiting_seconds=5.0,
        cooldown_seconds=3.0,
    ),
}


def get_profile(name: str) -> CrashProfile:
    try:
        return PROFILES[name.lower()]
    except KeyError:
        raise UnknownProfileError(name) from None


class CrashRound:
    """
    A single player's crash game, one round at a time.

    Time is passed in explicitly (seconds, any monotonic clock) so the round
    can be driven by a request handler, a UI timer or a test.
    """

    def __init__(self, profile: CrashProfile, engine: GameLogicService, now: Optional[float] = None):
        self.profile = profile
        self.engine = engine
        self.history: List[float] = []
        self._open(_now(now))

    def _open(self, now: float):
        self.round_id = uuid.uuid4().hex[:12]
        self.state = CrashState.WAITING
        self.opened_at = now
        self.started_at: Optional[float] = None
        self.crashed_at: Optional[float] = None
        self.stake: Optional[float] = None
        self.balance: Optional[float] = None
        self.cashed_out = False
        self.cashout_multiplier: Optional[float] = None
        self.payout = 0
        self._explosion_point: Optional[float] = None

    # ==================== Transitions ====================

    def place_bet(self, stake: float, balance: float, now: Optional[float] = None) -> Dict:
        """Place this round's single bet. Only allowed while waiting."""
        now = _now(now)
        self.advance(now)
        if self.state != CrashState.WAITING:
            raise RoundStateError("Betting is not available right now")
        if self.stake is not None:
            raise RoundStateError("A bet is already placed for this round")

        if not self.engine.can_play(stake, balance):
            return {
                "success": False,
                "error": self.engine.get_balance_validation_message(stake, balance),
            }
        check = self.engine.validate_stake_bounds(stake, self.profile.game_type)
        if not check.valid:
            return {"success": False, "error": check.message, "violation": check.violation.value}

        self.stake = stake
        self.balance = balance
        logger.info(
            "Crash bet placed",
            extra={"game": self.profile.name, "round_id": self.round_id, "stake": stake},
        )
        return {"success": True, "balance": balance - stake, **self.snapshot(now)}

    def start(self, now: Optional[float] = None):
        """WAITING -> ROLLING. The explosion point is fixed here and stays hidden."""
        now = _now(now)
        if self.state != CrashState.WAITING:
            raise RoundStateError(f"Cannot start a round that is {self.state.value}")

        # Without a bet there is nothing to win: use the loss distribution
        won = self.engine.decide_outcome() if self.stake is not None else False
        self._explosion_point = round(self.profile.explosion_point(won, self.engine.rng), 2)
        self.state = CrashState.ROLLING
        self.started_at = now

    def multiplier_at(self, now: Optional[float] = None) -> float:
        """Current multiplier; crashes the round once the explosion point is reached."""
        now = _now(now)
        if self.state == CrashState.WAITING:
            return 1.0
        if self.state == CrashState.CRASHED:
            return self._explosion_point

        ticks = math.floor((now - self.started_at) / self.profile.tick_seconds + 1e-9)
        multiplier = round(1.0 + self.profile.increment * max(ticks, 0), 2)
        if multiplier >= self._explosion_point:
            self._crash(self.started_at + self._ticks_to_explode() * self.profile.tick_seconds)
            return self._explosion_point
        return multiplier

    def cash_out(self, now: Optional[float] = None) -> Dict:
        """Take the current multiplier. Only while rolling, before the explosion."""
        now = _now(now)
        multiplier = self.multiplier_at(now)
        if self.state == CrashState.WAITING:
            raise RoundStateError("Round has not started yet")
        if self.state == CrashState.CRASHED:
            raise RoundStateError("Round has already crashed")
        if self.stake is None:
            raise RoundStateError("No bet placed this round")
        if self.cashed_out:
            raise RoundStateError("Already cashed out")

        self.cashed_out = True
        self.cashout_multiplier = multiplier
        self.payout = math.floor(self.stake * multiplier)
        logger.info(
            "Crash cash out",
            extra={
                "game": self.profile.name,
                "round_id": self.round_id,
                "multiplier": multiplier,
                "payout": self.payout,
            },
        )
        return {
            "success": True,
            "multiplier": multiplier,
            "payout": self.payout,
            "stake": self.stake,
            "resulting_balance": self.balance - self.stake + self.payout,
            "message": f"You cashed out at {multiplier:.2f}x and won {self.payout} coins!",
        }

    def reset(self, now: Optional[float] = None):
        """CRASHED -> WAITING for the next round."""
        now = _now(now)
        if self.state != CrashState.CRASHED:
            raise RoundStateError(f"Cannot reset a round that is {self.state.value}")
        self._open(now)

    def advance(self, now: Optional[float] = None) -> CrashState:
        """Apply every transition that is due by `now` on the profile's clock."""
        now = _now(now)
        for _ in range(3):
            state = self.state
            if state == CrashState.WAITING:
                start_at = self.opened_at + self.profile.waiting_seconds
                if now >= start_at:
                    self.start(start_at)
            elif state == CrashState.ROLLING:
                self.multiplier_at(now)
            elif state == CrashState.CRASHED:
                reopen_at = self.crashed_at + self.profile.cooldown_seconds
                if now >= reopen_at:
                    self.reset(reopen_at)
            if self.state == state:
                break
        return self.state

    # ==================== Internals ====================

    def _ticks_to_explode(self) -> int:
        return max(math.ceil((self._explosion_point - 1.0) / self.profile.increment - 1e-9), 0)

    def _crash(self, at: float):
        self.state = CrashState.CRASHED
        self.crashed_at = at
        self.history.insert(0, self._explosion_point)
        del self.history[HISTORY_SIZE:]
        if self.stake is not None and not self.cashed_out:
            logger.info(
                "Crash round lost",
                extra={
                    "game": self.profile.name,
                    "round_id": self.round_id,
                    "explosion_point": self._explosion_point,
                },
            )

    def result(self) -> Optional[Dict]:
        """Settlement for a bet whose round has crashed without a cash out."""
        if self.state != CrashState.CRASHED or self.stake is None or self.cashed_out:
            return None
        return {
            "won": False,
            "payout": 0,
            "stake": self.stake,
            "resulting_balance": self.balance - self.stake,
            "message": f"Crashed at {self._explosion_point:.2f}x. You lost {self.stake:g} coins.",
        }

    def snapshot(self, now: Optional[float] = None) -> Dict:
        now = _now(now)
        multiplier = self.multiplier_at(now)
        data = {
            "game": self.profile.name,
            "round_id": self.round_id,
            "state": self.state.value,
            "multiplier": multiplier,
            "has_bet": self.stake is not None,
            "stake": self.stake,
            "cashed_out": self.cashed_out,
            "cashout_multiplier": self.cashout_multiplier,
            "history": list(self.history),
        }
        if self.state == CrashState.WAITING:
            data["starts_in"] = max(self.opened_at + self.profile.waiting_seconds - now, 0.0)
        if self.state == CrashState.CRASHED:
            data["explosion_point"] = self._explosion_point
            data["next_round_in"] = max(self.crashed_at + self.profile.cooldown_seconds - now, 0.0)
            data["result"] = self.result()
        return data


def _now(now: Optional[float]) -> float:
    return time.monotonic() if now is None else now
