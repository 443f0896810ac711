"""
Monte Carlo симуляция матча.

Гоняет MatchSession с автоигроком и считает фактический RTP.

Usage:
    from game.simulator import AutoStrategy, simulate
    result = simulate(GameRules(), AutoStrategy(action="cash_out", checkpoint=0), rounds=10_000)
    print(result.to_dict())
"""

import math
import random
from dataclasses import dataclass, field
from typing import Optional

from game.models import Choice, OutcomeType, Phase
from game.rules import GameRules
from game.session import MatchSession
from game.wallet import Wallet

FRAME_DT = 1 / 60


@dataclass
class AutoStrategy:
    """Автоигрок: продолжает до чекпоинта checkpoint, затем кэшаут или удар"""
    action: str = "cash_out"  # "cash_out" | "shoot"
    checkpoint: int = 0
    participant: int = 0

    def __post_init__(self):
        if self.action not in ("cash_out", "shoot"):
            raise ValueError(f"Неизвестное действие: {self.action}")
        if self.checkpoint < 0:
            raise ValueError("Номер чекпоинта не может быть отрицательным")

    def choose(self, session: MatchSession) -> Choice:
        choices = session.available_choices()
        if session.decision_index >= self.checkpoint or Choice.CONTINUE not in choices:
            return Choice.CASH_OUT if self.action == "cash_out" else Choice.SHOOT
        return Choice.CONTINUE


@dataclass
class SimResult:
    """Результаты симуляции"""
    strategy: str
    rounds: int
    total_wagered: int
    total_returned: int
    rtp: float
    hit_rate: float
    avg_multiplier: float
    max_multiplier_hit: float
    confidence_95: tuple = (0.0, 0.0)
    outcomes: dict = field(default_factory=dict)
    distribution: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "rounds": self.rounds,
            "total_wagered": self.total_wagered,
            "total_returned": self.total_returned,
            "rtp": round(self.rtp, 4),
            "hit_rate": round(self.hit_rate, 4),
            "avg_multiplier": round(self.avg_multiplier, 4),
            "max_multiplier_hit": round(self.max_multiplier_hit, 2),
            "confidence_95": [round(x, 4) for x in self.confidence_95],
            "outcomes": self.outcomes,
            "distribution": self.distribution,
        }


def _bucket(mult: float) -> str:
    if mult == 0:
        return "0x"
    elif mult < 2:
        return "0-2x"
    elif mult < 5:
        return "2-5x"
    elif mult < 10:
        return "5-10x"
    elif mult < 50:
        return "10-50x"
    elif mult < 100:
        return "50-100x"
    return "100x+"


def play_round(session: MatchSession, strategy: AutoStrategy, stake: int,
               dt: float = FRAME_DT, max_ticks: int = 100_000) -> None:
    """Играет один раунд до фазы OUTCOME"""
    session.start(strategy.participant, stake)

    for _ in range(max_ticks):
        if session.phase is Phase.OUTCOME:
            return
        if session.phase is Phase.RUNNING:
            session.tick(dt)
        elif session.phase is Phase.DECISION:
            session.decide(strategy.choose(session))
        elif session.phase is Phase.SHOOTING:
            zone = session.draws.random_zone(len(session.board)) if session.board else None
            session.take_shot(zone)
        elif session.phase is Phase.BONUS_ROUND:
            session.take_bonus_shot(session.draws.random_zone(len(session.board)))

    raise RuntimeError(f"Раунд не завершился за {max_ticks} шагов")


def simulate(rules: Optional[GameRules] = None, strategy: Optional[AutoStrategy] = None,
             rounds: int = 10_000, seed: int = 42, stake: Optional[int] = None,
             dt: float = FRAME_DT) -> SimResult:
    """Запускает Monte Carlo симуляцию"""
    rules = rules or GameRules()
    strategy = strategy or AutoStrategy()
    stake = stake or rules.stakes[0]
    if rounds <= 0:
        raise ValueError("rounds должен быть положительным")

    # Кошелёк с запасом: симуляция не должна упираться в баланс
    wallet = Wallet(stake * rounds)
    session = MatchSession(wallet, rules, rng=random.Random(seed))

    total_returned = 0
    wins = 0
    max_mult = 0.0
    sum_sq = 0.0
    outcomes = {t.value: 0 for t in OutcomeType}
    buckets = {}

    for _ in range(rounds):
        play_round(session, strategy, stake, dt=dt)
        outcome = session.outcome
        mult = outcome.total_multiplier

        total_returned += outcome.final_value
        sum_sq += mult * mult
        outcomes[outcome.outcome_type.value] += 1
        if outcome.won:
            wins += 1
        if mult > max_mult:
            max_mult = mult
        bucket = _bucket(mult)
        buckets[bucket] = buckets.get(bucket, 0) + 1

        session.replay()

    total_wagered = stake * rounds
    rtp = total_returned / total_wagered
    variance = max(0.0, sum_sq / rounds - rtp * rtp)
    std_err = math.sqrt(variance / rounds)

    return SimResult(
        strategy=f"{strategy.action}@{strategy.checkpoint}",
        rounds=rounds,
        total_wagered=total_wagered,
        total_returned=total_returned,
        rtp=rtp,
        hit_rate=wins / rounds,
        avg_multiplier=rtp,
        max_multiplier_hit=max_mult,
        confidence_95=(rtp - 1.96 * std_err, rtp + 1.96 * std_err),
        outcomes=outcomes,
        distribution={k: round(v / rounds, 4) for k, v in sorted(buckets.items())},
    )
