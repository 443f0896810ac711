from dataclasses import dataclass, field, fields
from typing import Tuple

SHOT_MODES = ("strike", "penalty")


@dataclass(frozen=True)
class GameRules:
    """
    Все игровые константы матча.

    Суммы - в пенсах, множители - доли ставки.
    Значения по умолчанию:
    чекпоинты 3x/8x/13x/20x, рост 1.5x в секунду, 15% шанс соперника в секунду.
    """

    stakes: Tuple[int, ...] = (5, 10, 25, 50, 100, 200)
    starting_balance: int = 10000  # £100.00

    max_multiplier: float = 500.0
    multiplier_rate: float = 1.5  # прирост множителя в секунду
    decision_multipliers: Tuple[float, ...] = (3.0, 8.0, 13.0, 20.0)

    crash_chance_per_second: float = 0.15
    # Подкат / обводка / финт
    encounter_weights: Tuple[float, float, float] = (0.5, 0.25, 0.25)

    bonus_chance: float = 0.2
    goal_chance: float = 0.5
    shooting_multiplier_range: Tuple[float, float] = (5.0, 10.0)
    bonus_zone_multipliers: Tuple[int, ...] = (5, 10, 20, 50, 100)
    penalty_zone_multipliers: Tuple[int, ...] = (1, 2, 5, 10, 25)

    shot_mode: str = "strike"
    bonus_resumes_run: bool = False

    # Отладочные флаги
    force_goal: bool = False
    force_bonus: bool = False
    test_mode: bool = False
    forced_crashes: bool = False

    participant_names: Tuple[str, ...] = field(
        default=("Footballer 1", "Footballer 2", "Footballer 3", "Footballer 4")
    )

    @property
    def participant_count(self) -> int:
        return len(self.participant_names)

    @property
    def final_checkpoint(self) -> int:
        return len(self.decision_multipliers) - 1

    def validate(self) -> "GameRules":
        """Проверяет согласованность таблиц, возвращает self"""
        if not self.stakes or any(s <= 0 for s in self.stakes):
            raise ValueError("Ставки должны быть положительными")
        if self.starting_balance < 0:
            raise ValueError("Стартовый баланс не может быть отрицательным")
        if not self.decision_multipliers:
            raise ValueError("Нужен хотя бы один чекпоинт")
        if list(self.decision_multipliers) != sorted(set(self.decision_multipliers)):
            raise ValueError("Чекпоинты должны строго возрастать")
        if self.decision_multipliers[-1] > self.max_multiplier:
            raise ValueError("Последний чекпоинт выше максимального множителя")
        if self.multiplier_rate <= 0:
            raise ValueError("Скорость роста множителя должна быть положительной")
        if len(self.encounter_weights) != 3 or any(w < 0 for w in self.encounter_weights) \
                or sum(self.encounter_weights) <= 0:
            raise ValueError("Нужны три неотрицательных веса: подкат, обводка, финт")
        for name in ("crash_chance_per_second", "bonus_chance", "goal_chance"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ValueError(f"{name} должен быть в диапазоне [0, 1]")
        low, high = self.shooting_multiplier_range
        if low <= 0 or high < low:
            raise ValueError("Некорректный диапазон множителя удара")
        if not self.bonus_zone_multipliers or not self.penalty_zone_multipliers:
            raise ValueError("Таблицы зон не могут быть пустыми")
        if self.shot_mode not in SHOT_MODES:
            raise ValueError(f"shot_mode должен быть одним из {SHOT_MODES}")
        if self.participant_count < 2:
            raise ValueError("Нужно минимум два игрока")
        return self

    @classmethod
    def from_settings(cls, settings) -> "GameRules":
        """Собирает правила из Settings (config.py)"""
        values = {}
        for f in fields(cls):
            key = f.name.upper()
            if hasattr(settings, key):
                value = getattr(settings, key)
            elif hasattr(settings, f.name):
                value = getattr(settings, f.name)
            else:
                continue
            if isinstance(value, list):
                value = tuple(value)
            values[f.name] = value
        return cls(**values).validate()
