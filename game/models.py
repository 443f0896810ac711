import enum
from dataclasses import dataclass, field
from typing import List, Optional


# ==========================
# ENUM типы
# ==========================

class Phase(enum.Enum):
    SELECTION = "selection"
    RUNNING = "running"
    DECISION = "decision"
    SHOOTING = "shooting"
    BONUS_ROUND = "bonus_round"
    OUTCOME = "outcome"


class Choice(enum.Enum):
    CONTINUE = "continue"
    PASS = "pass"
    SHOOT = "shoot"
    CASH_OUT = "cash_out"


class EncounterOutcome(enum.Enum):
    TACKLE = "tackle"
    DODGE = "dodge"
    SKILL = "skill"


class OutcomeType(enum.Enum):
    WIN_CASHOUT = "win_cashout"
    WIN_GOAL = "win_goal"
    LOSS_CRASH = "loss_crash"
    LOSS_MISS = "loss_miss"

    @property
    def won(self) -> bool:
        return self in (OutcomeType.WIN_CASHOUT, OutcomeType.WIN_GOAL)


# ==========================
# Состояние матча
# ==========================

@dataclass
class Participant:
    index: int
    name: str
    active: bool = True


@dataclass
class Encounter:
    """Столкновение игрока с соперником за один тик"""
    participant: int
    outcome: EncounterOutcome
    forced: bool = False
    bonus_awarded: int = 0  # пенсы, только за финт владельца мяча
    passed_to: Optional[int] = None  # автопас после подката
    bonus_round: bool = False


@dataclass
class Outcome:
    """Итог раунда с разбивкой выплаты"""
    outcome_type: OutcomeType
    stake: int
    final_value: int  # пенсы, уже зачислены в кошелёк
    running_multiplier: float
    bonus_won: int = 0
    shooting_multiplier: Optional[float] = None
    zone_multiplier: Optional[int] = None

    @property
    def won(self) -> bool:
        return self.outcome_type.won

    @property
    def cashed_out(self) -> bool:
        return self.outcome_type is OutcomeType.WIN_CASHOUT

    @property
    def total_multiplier(self) -> float:
        if not self.stake:
            return 0.0
        return self.final_value / self.stake

    def to_dict(self) -> dict:
        return {
            "outcome_type": self.outcome_type.value,
            "won": self.won,
            "cashed_out": self.cashed_out,
            "stake": self.stake,
            "final_value": self.final_value,
            "running_multiplier": round(self.running_multiplier, 4),
            "bonus_won": self.bonus_won,
            "shooting_multiplier": round(self.shooting_multiplier, 4) if self.shooting_multiplier else None,
            "zone_multiplier": self.zone_multiplier,
            "total_multiplier": round(self.total_multiplier, 4),
        }


@dataclass
class TickReport:
    """Что произошло за один тик фазы RUNNING"""
    phase: Phase
    multiplier: float
    cash_value: int
    encounters: List[Encounter] = field(default_factory=list)
    checkpoint: Optional[int] = None
