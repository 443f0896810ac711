class GameError(Exception):
    """Базовая ошибка игрового движка"""


class InvalidPhaseError(GameError):
    """Операция вызвана не в той фазе матча"""

    def __init__(self, operation: str, phase):
        self.operation = operation
        self.phase = phase
        super().__init__(f"Операция '{operation}' недоступна в фазе {phase.name}")


class InvalidStakeError(GameError, ValueError):
    """Некорректная ставка"""


class InsufficientFundsError(GameError):
    """Ставка больше баланса"""

    def __init__(self, stake: int, balance: int):
        self.stake = stake
        self.balance = balance
        super().__init__(f"Недостаточно средств: ставка {stake}, баланс {balance}")


class InvalidChoiceError(GameError):
    """Решение недоступно на текущем чекпоинте"""


class InvalidTargetError(GameError, ValueError):
    """Некорректный игрок или зона"""
