import logging

from game.exceptions import InsufficientFundsError, InvalidStakeError

logger = logging.getLogger(__name__)


class Wallet:
    """Кошелёк игрока в пенсах"""

    def __init__(self, balance: int = 0):
        if balance < 0:
            raise ValueError("Баланс не может быть отрицательным")
        self.balance = int(balance)

    def can_afford(self, stake: int) -> bool:
        return 0 < stake <= self.balance

    def place_stake(self, stake: int) -> int:
        """Списывает ставку, возвращает новый баланс"""
        if not isinstance(stake, int) or isinstance(stake, bool) or stake <= 0:
            raise InvalidStakeError(f"Ставка должна быть положительным целым числом пенсов: {stake!r}")
        if stake > self.balance:
            logger.warning(f"Ставка {stake} больше баланса {self.balance}")
            raise InsufficientFundsError(stake, self.balance)

        self.balance -= stake
        logger.info(f"Списана ставка {stake}, баланс {self.balance}")
        return self.balance

    def credit(self, amount: int) -> int:
        """Зачисляет выигрыш"""
        if amount < 0:
            raise ValueError(f"Нельзя зачислить отрицательную сумму: {amount}")
        self.balance += int(amount)
        if amount:
            logger.info(f"Зачислено {amount}, баланс {self.balance}")
        return self.balance

    def __repr__(self):
        return f"<Wallet(balance={self.balance})>"
