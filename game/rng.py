"""
Случайные события матча.

Каждый исход - независимая равномерная выборка против фиксированной
вероятности. Источник случайности внедряется снаружи (random.Random
или любой объект с random()/shuffle()), поэтому тесты управляют исходами.
"""

import random
from typing import List, Optional, Sequence

from game.models import EncounterOutcome
from game.rules import GameRules


class OutcomeDraws:
    """Генераторы исходов поверх одного источника случайности"""

    def __init__(self, rules: GameRules, rng: Optional[random.Random] = None):
        self.rules = rules
        self.rng = rng if rng is not None else random.Random()

    # ── Фаза бега ──────────────────────────────────────────────

    def encounter_happens(self, dt: float) -> bool:
        """Встреча с соперником за тик длиной dt секунд"""
        chance = min(1.0, self.rules.crash_chance_per_second * dt)
        return self.rng.random() < chance

    def encounter_outcome(self) -> EncounterOutcome:
        """Подкат / обводка / финт с весами 50/25/25"""
        tackle, dodge, skill = self.rules.encounter_weights
        r = self.rng.random() * (tackle + dodge + skill)
        if r < tackle:
            return EncounterOutcome.TACKLE
        if r < tackle + dodge:
            return EncounterOutcome.DODGE
        return EncounterOutcome.SKILL

    def bonus_triggered(self) -> bool:
        if self.rules.force_bonus:
            return True
        return self.rng.random() < self.rules.bonus_chance

    def pick_forced_crashes(self, chosen: int, game_number: int) -> dict:
        """
        Расписание принудительных падений по номеру игры (1-4).

        Игра 1: один игрок падает до первого чекпоинта
        Игра 2-4: двое падают между чекпоинтами N-1 и N
        Возвращает {stage: [индексы игроков]}.
        """
        others = [i for i in range(self.rules.participant_count) if i != chosen]
        self.rng.shuffle(others)
        if game_number == 1:
            return {0: others[:1]}
        if game_number in (2, 3, 4):
            return {game_number - 1: others[:2]}
        return {}

    # ── Удар и бонус ───────────────────────────────────────────

    def goal_scored(self) -> bool:
        if self.rules.force_goal:
            return True
        return self.rng.random() < self.rules.goal_chance

    def shooting_multiplier(self) -> float:
        low, high = self.rules.shooting_multiplier_range
        return low + self.rng.random() * (high - low)

    def _shuffled(self, values: Sequence[int]) -> List[int]:
        board = list(values)
        self.rng.shuffle(board)
        return board

    def bonus_board(self) -> List[int]:
        return self._shuffled(self.rules.bonus_zone_multipliers)

    def penalty_board(self) -> List[int]:
        return self._shuffled(self.rules.penalty_zone_multipliers)

    def random_zone(self, size: int) -> int:
        return int(self.rng.random() * size) % size
