from typing import Dict, Optional

from .engine import ShotGame, ZoneShotGame
from .payout import penalty_value


class StrikeShot(ShotGame):
    """
    ⚽️ Удар с игры

    Гол - приз умножается на случайный множитель удара (5x-10x)
    Сейв - проигрыш
    """

    def get_emoji(self) -> str:
        return "⚽️"

    def analyze_result(self, scored: bool, shooting_multiplier: float = 0.0, **kwargs) -> Dict:
        """Проверяет выигрыш"""
        if scored:
            result = "win"
            multiplier = shooting_multiplier
        else:
            result = "loss"
            multiplier = 0

        payout = self.calculate_payout(multiplier)

        return {
            "result": result,
            "payout": payout,
            "multiplier": multiplier,
            "details": {
                "emoji": self.get_emoji(),
                "outcome": "Гол ⚽️" if scored else "Сейв 🧤",
                "prize_before_shot": self.current_prize,
            }
        }


class PenaltyShot(ZoneShotGame):
    """
    🥅 Пенальти

    Игрок выбирает одну из 5 зон, за каждой спрятан множитель ставки (1x-25x).
    Гол - выигрыш по зоне прибавляется к текущему призу
    Сейв - проигрыш
    """

    def get_emoji(self) -> str:
        return "🥅"

    def analyze_result(self, scored: bool, zone: Optional[int] = None, **kwargs) -> Dict:
        zone_multiplier = self.zone_multiplier(zone)

        if scored:
            result = "win"
            payout = penalty_value(self.stake, self.running_multiplier, self.bonus_won, zone_multiplier)
        else:
            result = "loss"
            payout = 0

        return {
            "result": result,
            "payout": payout,
            "multiplier": zone_multiplier if scored else 0,
            "details": {
                "zone": zone,
                "zone_name": self.zone_name(zone),
                "zone_multiplier": zone_multiplier,
                "emoji": self.get_emoji(),
                "outcome": "Гол ⚽️" if scored else "Сейв 🧤",
                "prize_before_shot": self.current_prize,
            }
        }


class BonusShot(ZoneShotGame):
    """
    🎁 Бонусный раунд

    Назначается, когда владельца мяча сбили. 5 зон, множители 5x-100x ставки.
    Гол - выигрыш по зоне уходит в бонус раунда
    Сейв - бонуса нет
    """

    def get_emoji(self) -> str:
        return "🎁"

    def analyze_result(self, scored: bool, zone: Optional[int] = None, **kwargs) -> Dict:
        zone_multiplier = self.zone_multiplier(zone)
        payout = self.stake * zone_multiplier if scored else 0

        return {
            "result": "win" if scored else "loss",
            "payout": payout,
            "multiplier": zone_multiplier if scored else 0,
            "details": {
                "zone": zone,
                "zone_name": self.zone_name(zone),
                "zone_multiplier": zone_multiplier,
                "emoji": self.get_emoji(),
                "outcome": "Гол ⚽️" if scored else "Сейв 🧤",
            }
        }
