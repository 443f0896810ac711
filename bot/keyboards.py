from typing import List, Sequence

from aiogram.types import ReplyKeyboardMarkup, KeyboardButton, InlineKeyboardMarkup, InlineKeyboardButton

from game.models import Choice, Participant
from game.payout import format_money

# ==================== ГЛАВНОЕ МЕНЮ ====================

def get_main_menu():
    """Главное меню с кнопками"""
    keyboard = ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text="⚽️ Играть")],
            [KeyboardButton(text="💰 Баланс"), KeyboardButton(text="📊 Статистика")],
            [KeyboardButton(text="ℹ️ Помощь")]
        ],
        resize_keyboard=True
    )
    return keyboard

# ==================== ВЫБОР ИГРОКА ====================

def get_runners_keyboard(participants: Sequence[Participant]):
    """Выбор футболиста, на которого ставим"""
    rows = [
        [InlineKeyboardButton(text=f"🏃 {p.name}", callback_data=f"runner_{p.index}")]
        for p in participants
    ]
    rows.append([InlineKeyboardButton(text="🏠 Главное меню", callback_data="back_main")])
    return InlineKeyboardMarkup(inline_keyboard=rows)

# ==================== СТАВКА ====================

def get_stakes_keyboard(stakes: Sequence[int], balance: int):
    """Кнопки ставок; недоступные по балансу помечены замком"""
    buttons = []
    for stake in stakes:
        label = format_money(stake, short=True)
        if stake > balance:
            label = f"🔒 {label}"
        buttons.append(InlineKeyboardButton(text=label, callback_data=f"stake_{stake}"))

    rows = [buttons[i:i + 3] for i in range(0, len(buttons), 3)]
    rows.append([InlineKeyboardButton(text="◀️ Назад", callback_data="back_to_runners")])
    return InlineKeyboardMarkup(inline_keyboard=rows)

# ==================== РЕШЕНИЕ НА ЧЕКПОИНТЕ ====================

CHOICE_LABELS = {
    Choice.CONTINUE: "▶️ Бежать дальше",
    Choice.PASS: "🔁 Пас",
    Choice.SHOOT: "⚽️ Удар по воротам",
}

def get_decision_keyboard(choices: List[Choice], cash_value: int):
    """Только доступные на этом чекпоинте решения"""
    rows = []
    for choice in choices:
        if choice is Choice.CASH_OUT:
            text = f"💰 Забрать {format_money(cash_value)}"
        else:
            text = CHOICE_LABELS[choice]
        rows.append([InlineKeyboardButton(text=text, callback_data=f"decide_{choice.value}")])
    return InlineKeyboardMarkup(inline_keyboard=rows)

def get_pass_keyboard(participants: Sequence[Participant], targets: List[int]):
    """Кому отдать пас"""
    rows = [
        [InlineKeyboardButton(text=f"🔁 {participants[i].name}", callback_data=f"pass_{i}")]
        for i in targets
    ]
    rows.append([InlineKeyboardButton(text="◀️ Назад", callback_data="back_to_decision")])
    return InlineKeyboardMarkup(inline_keyboard=rows)

# ==================== ЗОНЫ ВОРОТ ====================

ZONE_LABELS = ("↖️", "↗️", "⏺", "↙️", "↘️")

def get_zones_keyboard(size: int):
    """Зоны ворот; множители за ними скрыты до удара"""
    buttons = [
        InlineKeyboardButton(
            text=ZONE_LABELS[i] if i < len(ZONE_LABELS) else str(i + 1),
            callback_data=f"zone_{i}"
        )
        for i in range(size)
    ]
    rows = [row for row in (buttons[:2], buttons[2:3], buttons[3:]) if row]
    return InlineKeyboardMarkup(inline_keyboard=rows)

# ==================== ИТОГ ====================

def get_replay_keyboard():
    """Кнопки после завершения матча"""
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🔄 Играть снова", callback_data="replay")],
        [InlineKeyboardButton(text="🏠 Главное меню", callback_data="back_main")]
    ])
