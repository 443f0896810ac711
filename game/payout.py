"""
Денежная арифметика раунда.

Все суммы внутри движка - целые пенсы. В фунты переводим только на
границе отображения, округляя до пенса на каждом преобразовании.

Пример:
- Ставка: 100 (£1.00)
- Множитель на первом чекпоинте: 3.0
- Кэшаут: 100 * 3.0 = 300 (£3.00)
"""

from decimal import Decimal, ROUND_HALF_UP

PENCE = Decimal(100)


def _to_pence(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _dec(value) -> Decimal:
    # str() чтобы не тащить двоичный хвост float в Decimal
    return Decimal(str(value))


def bonus_multiplier(bonus: int, stake: int) -> Decimal:
    """Бонус, выраженный в долях ставки"""
    if stake <= 0:
        return Decimal(0)
    return Decimal(bonus) / Decimal(stake)


def cash_value(stake: int, multiplier: float) -> int:
    """Текущая стоимость ставки при множителе (без бонуса)"""
    return _to_pence(Decimal(stake) * _dec(multiplier))


def cash_out_value(stake: int, multiplier: float, bonus: int = 0) -> int:
    """stake * (multiplier + bonus/stake)"""
    total = _dec(multiplier) + bonus_multiplier(bonus, stake)
    return _to_pence(Decimal(stake) * total)


def goal_value(stake: int, multiplier: float, bonus: int, shooting_multiplier: float) -> int:
    """Гол с игры: (multiplier + bonus/stake) * shooting_multiplier"""
    total = (_dec(multiplier) + bonus_multiplier(bonus, stake)) * _dec(shooting_multiplier)
    return _to_pence(Decimal(stake) * total)


def penalty_value(stake: int, multiplier: float, bonus: int, zone_multiplier: int) -> int:
    """Пенальти: выигрыш по зоне прибавляется к текущему призу"""
    return cash_out_value(stake, multiplier, bonus) + stake * int(zone_multiplier)


def to_major(pence: int) -> Decimal:
    """Пенсы -> фунты с двумя знаками"""
    return (Decimal(pence) / PENCE).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_money(pence: int, short: bool = False) -> str:
    """
    Форматирует сумму для показа игроку.
    short=True: суммы меньше фунта как '5p' (подписи ставок).
    """
    if short and 0 <= pence < 100:
        return f"{pence}p"
    return f"£{to_major(pence)}"
