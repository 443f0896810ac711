"""Общие заготовки для тестов."""

from game.rules import GameRules


class ScriptedRandom:
    """
    Источник случайности с заранее заданными значениями.

    random() отдаёт значения по очереди, после них - default.
    default=0.99 означает "ничего не случилось": нет встреч, нет бонуса, сейв.
    shuffle() оставляет порядок как есть.
    """

    def __init__(self, values=(), default: float = 0.99):
        self.values = list(values)
        self.default = default
        self.calls = 0

    def push(self, *values):
        self.values.extend(values)

    def random(self) -> float:
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        return self.default

    def shuffle(self, seq):
        return None


def quiet_rules(**overrides) -> GameRules:
    """Правила без встреч с соперниками"""
    overrides.setdefault("test_mode", True)
    return GameRules(**overrides)
