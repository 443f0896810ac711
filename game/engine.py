from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from game.exceptions import InvalidTargetError
from game.payout import cash_out_value, goal_value


class ShotGame(ABC):
    """Базовый класс для ударов по воротам"""

    def __init__(self, stake: int, running_multiplier: float, bonus_won: int = 0):
        self.stake = stake
        self.running_multiplier = running_multiplier
        self.bonus_won = bonus_won

    @abstractmethod
    def get_emoji(self) -> str:
        """Возвращает эмодзи для удара"""
        pass

    @abstractmethod
    def analyze_result(self, scored: bool, **kwargs) -> Dict:
        """Анализирует результат удара"""
        pass

    @property
    def current_prize(self) -> int:
        """Приз до удара: множитель + бонус, в пенсах"""
        return cash_out_value(self.stake, self.running_multiplier, self.bonus_won)

    def calculate_payout(self, multiplier: float) -> int:
        """
        Выплата в пенсах за забитый удар.

        Пример:
        - Ставка: 100 (£1.00), множитель 3.0, бонус 0
        - Приз до удара: 300
        - Множитель удара 5.0 -> 1500 (£15.00)
        """
        if multiplier == 0:
            return 0
        return goal_value(self.stake, self.running_multiplier, self.bonus_won, multiplier)


class ZoneShotGame(ShotGame):
    """Удар с выбором одной из зон ворот"""

    ZONE_NAMES = ("top-left", "top-right", "center", "bottom-left", "bottom-right")

    def __init__(self, stake: int, running_multiplier: float, bonus_won: int, board: List[int]):
        super().__init__(stake, running_multiplier, bonus_won)
        self.board = list(board)

    def zone_multiplier(self, zone: Optional[int]) -> int:
        if zone is None or isinstance(zone, bool) or not 0 <= zone < len(self.board):
            raise InvalidTargetError(f"Зона должна быть от 0 до {len(self.board) - 1}: {zone!r}")
        return self.board[zone]

    def zone_name(self, zone: int) -> str:
        if zone < len(self.ZONE_NAMES):
            return self.ZONE_NAMES[zone]
        return f"zone-{zone}"
