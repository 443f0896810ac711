from aiogram import Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject
from aiogram.types import Message, CallbackQuery
from aiogram.fsm.context import FSMContext
import asyncio
import uuid
import logging
from typing import Optional

from .keyboards import *
from .sessions import SessionStore
from .states import MatchFlow
from config import settings
from database.database import async_session_maker
from database.crud import UserCRUD, GameCRUD
from database.models import GameStatus, TransactionKind
from game.exceptions import GameError
from game.models import Choice, EncounterOutcome, Outcome, OutcomeType, Phase, TickReport
from game.payout import format_money
from game.session import MatchSession

router = Router()
store = SessionStore()
logger = logging.getLogger(__name__)

# ==================== ТЕКСТЫ ====================

OUTCOME_TITLES = {
    OutcomeType.WIN_CASHOUT: "💰 <b>Деньги забраны!</b>",
    OutcomeType.WIN_GOAL: "⚽️ <b>ГОООЛ!</b>",
    OutcomeType.LOSS_CRASH: "💥 <b>Все игроки сбиты</b>",
    OutcomeType.LOSS_MISS: "🧤 <b>Вратарь взял мяч</b>",
}


def get_players_line(session: MatchSession) -> str:
    """Строка состояния игроков: мяч, в игре, сбит"""
    marks = []
    for p in session.participants:
        if p.index == session.ball_holder:
            mark = "⚽️"
        elif p.active:
            mark = "🟢"
        else:
            mark = "❌"
        marks.append(f"{mark} {p.name}")
    return "\n".join(marks)


def get_events_text(session: MatchSession, report: Optional[TickReport]) -> str:
    """События последнего тика"""
    if report is None:
        return ""
    lines = []
    for encounter in report.encounters:
        name = session.participants[encounter.participant].name
        if encounter.outcome is EncounterOutcome.TACKLE:
            if encounter.bonus_round:
                lines.append(f"💥 {name} сбит с мячом!")
            elif encounter.passed_to is not None:
                receiver = session.participants[encounter.passed_to].name
                lines.append(f"💥 {name} сбит, мяч у {receiver}")
            else:
                lines.append(f"💥 {name} сбит")
        elif encounter.outcome is EncounterOutcome.DODGE:
            lines.append(f"💨 {name} увернулся")
        elif encounter.bonus_awarded:
            lines.append(f"✨ {name} финт! +{format_money(encounter.bonus_awarded)}")
        else:
            lines.append(f"✨ {name} финт")
    return "\n".join(lines)


def get_running_text(session: MatchSession, report: Optional[TickReport] = None) -> str:
    """Сообщение во время бега"""
    text = (
        f"🏃 <b>Бег!</b>\n\n"
        f"📈 Множитель: <b>{session.display_multiplier:.2f}x</b>\n"
        f"💰 Стоимость: <b>{format_money(session.cash_value)}</b>\n"
    )
    if session.next_checkpoint is not None:
        text += f"🎯 Чекпоинт: {session.next_checkpoint:g}x\n"
    if session.bonus_won:
        text += f"🎁 Бонус: {format_money(session.bonus_won)}\n"
    text += f"\n{get_players_line(session)}"
    events = get_events_text(session, report)
    if events:
        text += f"\n\n<blockquote>{events}</blockquote>"
    return text


def get_decision_text(session: MatchSession) -> str:
    """Сообщение на чекпоинте"""
    text = (
        f"⏸ <b>Чекпоинт {session.decision_index + 1} из {len(session.rules.decision_multipliers)}</b>\n\n"
        f"📈 Множитель: <b>{session.display_multiplier:.2f}x</b>\n"
        f"💰 Можно забрать: <b>{format_money(session.cash_value)}</b>\n\n"
        f"{get_players_line(session)}\n\n"
    )
    if session.is_final_checkpoint:
        text += "🏁 Последний чекпоинт: бей или забирай!"
    else:
        text += "Что дальше?"
    return text


def get_outcome_text(outcome: Outcome, balance: int) -> str:
    """Итог матча с расчётом выплаты"""
    text = f"{OUTCOME_TITLES[outcome.outcome_type]}\n\n"
    if outcome.won:
        text += f"🎉 Выигрыш: <b>{format_money(outcome.final_value)}</b>\n\n"
    else:
        text += "Ставка сгорела. Попробуй ещё раз! 🍀\n\n"

    breakdown = (
        f"┣ Ставка: {format_money(outcome.stake, short=True)}\n"
        f"┣ Множитель бега: {outcome.running_multiplier:.2f}x\n"
    )
    if outcome.bonus_won:
        breakdown += f"┣ Бонус: {format_money(outcome.bonus_won)}\n"
    if outcome.shooting_multiplier is not None:
        breakdown += f"┣ Удар: x{outcome.shooting_multiplier:.2f}\n"
    if outcome.zone_multiplier is not None:
        breakdown += f"┣ Зона: {outcome.zone_multiplier}x\n"
    breakdown += f"┗ Итоговый множитель: {outcome.total_multiplier:.2f}x"

    text += f"<blockquote>{breakdown}</blockquote>\n\n💳 Баланс: <b>{format_money(balance)}</b>"
    return text


def get_stake_text(names, runner: int, balance: int) -> str:
    return (
        f"🏃 Игрок: <b>{names[runner]}</b>\n"
        f"💳 Баланс: <b>{format_money(balance)}</b>\n\n"
        f"💵 Выбери ставку:"
    )

# ==================== СЛУЖЕБНОЕ ====================

async def get_user(session, from_user):
    return await UserCRUD.get_or_create(
        session,
        telegram_id=from_user.id,
        username=from_user.username or "Unknown",
        first_name=from_user.first_name or "User",
        starting_balance=settings.STARTING_BALANCE
    )


async def safe_edit(message: Message, text: str, reply_markup=None):
    """Редактирует сообщение; 'message is not modified' и удалённые сообщения не ломают матч"""
    try:
        await message.edit_text(text, reply_markup=reply_markup, parse_mode="HTML")
    except TelegramBadRequest as e:
        logger.warning(f"Не удалось обновить сообщение {message.message_id}: {e}")


async def get_active_session(callback: CallbackQuery) -> Optional[MatchSession]:
    session = store.get(callback.from_user.id)
    if session is None:
        await callback.answer("Матч не найден. Начни новый ⚽️", show_alert=True)
    return session

# ==================== ЦИКЛ МАТЧА ====================

async def run_match(message: Message, state: FSMContext, user_id: int):
    """Тикает сессию раз в TICK_SECONDS, пока идёт бег"""
    session = store.get(user_id)
    if session is None:
        return
    await state.set_state(MatchFlow.running)
    report = None

    while session.phase is Phase.RUNNING:
        await asyncio.sleep(settings.TICK_SECONDS)
        report = session.tick(settings.TICK_SECONDS)
        if session.phase is Phase.RUNNING:
            await safe_edit(message, get_running_text(session, report))

    await show_phase(message, state, user_id, report)


async def show_phase(message: Message, state: FSMContext, user_id: int, report: Optional[TickReport] = None):
    """Показывает экран текущей фазы сессии"""
    session = store.get(user_id)
    events = get_events_text(session, report)
    prefix = f"<blockquote>{events}</blockquote>\n\n" if events else ""

    if session.phase is Phase.RUNNING:
        await safe_edit(message, get_running_text(session))
        store.start_loop(user_id, run_match(message, state, user_id))

    elif session.phase is Phase.DECISION:
        await state.set_state(MatchFlow.deciding)
        await safe_edit(
            message,
            prefix + get_decision_text(session),
            reply_markup=get_decision_keyboard(session.available_choices(), session.cash_value)
        )

    elif session.phase is Phase.BONUS_ROUND:
        await state.set_state(MatchFlow.bonus_round)
        await safe_edit(
            message,
            prefix + "🎁 <b>Бонусный раунд!</b>\n\n"
            f"За каждой зоной ворот спрятан множитель ставки "
            f"({min(session.board)}x-{max(session.board)}x).\nВыбери, куда бить:",
            reply_markup=get_zones_keyboard(len(session.board))
        )

    elif session.phase is Phase.SHOOTING:
        await state.set_state(MatchFlow.shooting)
        await safe_edit(
            message,
            "🥅 <b>Пенальти!</b>\n\n"
            f"💰 На кону: <b>{format_money(session.cash_value)}</b>\n"
            f"Гол добавит от {min(session.board)}x до {max(session.board)}x ставки.\nВыбери зону:",
            reply_markup=get_zones_keyboard(len(session.board))
        )

    elif session.phase is Phase.OUTCOME:
        await finish_match(message, state, user_id, prefix)


async def finish_match(message: Message, state: FSMContext, user_id: int, prefix: str = ""):
    """Записывает итог в БД и показывает результат"""
    session = store.get(user_id)
    data = await state.get_data()
    game_id = data.get("game_id")
    balance = session.wallet.balance

    async with async_session_maker() as db:
        game = await GameCRUD.get_by_game_id(db, game_id) if game_id else None
        if game is not None and game.status is GameStatus.PENDING:
            await GameCRUD.complete_game(db, game, session.outcome, session.snapshot())
        user = await UserCRUD.get_by_telegram_id(db, user_id)
        if user is not None:
            balance = user.balance

    await state.set_state(MatchFlow.outcome)
    await safe_edit(message, prefix + get_outcome_text(session.outcome, balance), reply_markup=get_replay_keyboard())

# ==================== КОМАНДЫ И МЕНЮ ====================

@router.message(Command("start"))
async def cmd_start(message: Message, state: FSMContext):
    """Регистрация пользователя при /start"""
    match = store.get(message.from_user.id)
    # game_id идущего матча живёт в FSM, его нельзя терять до итога
    if match is None or match.phase in (Phase.SELECTION, Phase.OUTCOME):
        await state.clear()
    async with async_session_maker() as session:
        user = await get_user(session, message.from_user)

    await message.answer(
        "<b>⚽️ Crash Football</b>\n\n"
        "Выбери футболиста, поставь и смотри, как растёт множитель.\n"
        "На чекпоинтах решай: бежать дальше, отдать пас, бить по воротам или забрать деньги.\n\n"
        f"💳 Баланс: <b>{format_money(user.balance)}</b>\n\n"
        "Выбери действие:",
        reply_markup=get_main_menu(),
        parse_mode="HTML"
    )

@router.message(F.text == "⚽️ Играть")
async def show_runners(message: Message, state: FSMContext):
    """Начало матча: выбор игрока"""
    session = store.get(message.from_user.id)
    if session is not None and session.phase not in (Phase.SELECTION, Phase.OUTCOME):
        await message.answer("⏳ Матч уже идёт, доиграй его!")
        return

    await state.clear()
    await state.set_state(MatchFlow.choosing_runner)
    await message.answer(
        "🏃 <b>На кого ставим?</b>",
        reply_markup=get_runners_keyboard(store.participants()),
        parse_mode="HTML"
    )

@router.message(F.text == "💰 Баланс")
async def show_balance(message: Message):
    """Текущий баланс"""
    async with async_session_maker() as session:
        user = await get_user(session, message.from_user)
    await message.answer(f"💳 Баланс: <b>{format_money(user.balance)}</b>", parse_mode="HTML")

@router.message(F.text == "📊 Статистика")
async def show_stats(message: Message):
    """Вывод статистики пользователя"""
    async with async_session_maker() as session:
        user = await get_user(session, message.from_user)
        stats = await UserCRUD.get_stats(session, user.id)

    username = user.username or "Без имени"
    names = store.rules.participant_names
    favorite = stats["favorite_participant"]
    favorite_name = names[favorite] if favorite is not None and favorite < len(names) else "Не определён"

    stats_message = (
        f"🗂 Информация по пользователю <b>{username}</b>\n\n"
        f"⚙️ Статистика :\n"
        f"┣ Любимый игрок: {favorite_name}\n"
        f"┣ Сыгранные матчи: {stats['games_played']}\n"
        f"┣ Поставлено: {format_money(stats['total_wagered'])}\n"
        f"┣ Выиграно: {format_money(stats['total_won'])}\n"
        f"┗ Самый большой выигрыш: {format_money(stats['max_win'])}"
    )
    await message.answer(stats_message, parse_mode="HTML")

@router.message(F.text == "ℹ️ Помощь")
async def show_help(message: Message):
    """Краткие правила"""
    checkpoints = ", ".join(f"{m:g}x" for m in store.rules.decision_multipliers)
    await message.answer(
        "ℹ️ <b>Краткая инструкция к игре:</b>\n\n"
        "<b>1.</b> Выбери футболиста\n"
        "<b>2.</b> Выбери ставку\n"
        f"<b>3.</b> Множитель растёт, пока игроки бегут. Чекпоинты: {checkpoints}\n"
        "<b>4.</b> На чекпоинте: беги дальше, отдай пас, бей или забирай деньги\n\n"
        "💥 Сбили игрока с мячом - мяч уходит партнёру, а иногда начинается бонусный раунд\n"
        "✨ Финт игрока с мячом добавляет ставку в бонус\n"
        "🏁 На последнем чекпоинте - только удар или выплата",
        parse_mode="HTML"
    )

@router.message(Command("topup"))
async def cmd_topup(message: Message, command: CommandObject):
    """Пополнение баланса администратором: /topup <telegram_id> <пенсы>"""
    if not settings.admin_id or str(message.from_user.id) != str(settings.admin_id):
        return

    args = (command.args or "").split()
    if len(args) != 2 or not all(arg.isdigit() for arg in args):
        await message.answer("Использование: /topup &lt;telegram_id&gt; &lt;пенсы&gt;", parse_mode="HTML")
        return

    telegram_id, amount = (int(arg) for arg in args)
    async with async_session_maker() as session:
        user = await UserCRUD.get_by_telegram_id(session, telegram_id)
        if user is None:
            await message.answer("❌ Пользователь не найден")
            return
        await UserCRUD.credit(session, user, amount, TransactionKind.TOP_UP)

    match = store.get(telegram_id)
    if match is not None and match.phase in (Phase.SELECTION, Phase.OUTCOME):
        match.wallet.balance = user.balance
    logger.info(f"Админ {message.from_user.id} пополнил баланс {telegram_id} на {amount}")
    await message.answer(f"✅ Зачислено {format_money(amount)}. Баланс: {format_money(user.balance)}")

# ==================== ВЫБОР ИГРОКА И СТАВКИ ====================

@router.callback_query(F.data.startswith("runner_"))
async def choose_runner(callback: CallbackQuery, state: FSMContext):
    runner = int(callback.data.replace("runner_", ""))
    if not 0 <= runner < store.rules.participant_count:
        await callback.answer("Нет такого игрока", show_alert=True)
        return

    async with async_session_maker() as session:
        user = await get_user(session, callback.from_user)

    await state.update_data(runner=runner)
    await state.set_state(MatchFlow.choosing_stake)
    await callback.message.edit_text(
        get_stake_text(store.rules.participant_names, runner, user.balance),
        reply_markup=get_stakes_keyboard(store.rules.stakes, user.balance),
        parse_mode="HTML"
    )
    await callback.answer()

@router.callback_query(F.data.startswith("stake_"))
async def choose_stake(callback: CallbackQuery, state: FSMContext):
    stake = int(callback.data.replace("stake_", ""))
    runner = (await state.get_data()).get("runner")
    if runner is None:
        await callback.answer("Сначала выбери игрока", show_alert=True)
        return

    user_id = callback.from_user.id
    async with async_session_maker() as db:
        user = await get_user(db, callback.from_user)
        if stake > user.balance:
            await callback.answer(
                f"❌ Недостаточно средств: баланс {format_money(user.balance)}", show_alert=True
            )
            return

        session = store.get_or_create(user_id, user.balance)
        try:
            if session.phase is Phase.OUTCOME:
                session.replay()
            session.start(runner, stake)
        except GameError as e:
            await callback.answer(f"⚠️ {e}", show_alert=True)
            return

        game_id = str(uuid.uuid4())
        try:
            game = await GameCRUD.create(db, game_id, user.id, runner, stake)
            await UserCRUD.debit_stake(db, user, stake, game)
        except Exception:
            # Без записи в БД сессия не должна жить со списанной ставкой
            store.drop(user_id)
            await callback.answer("Ошибка. Попробуй позже.", show_alert=True)
            raise

    await state.update_data(game_id=game_id)
    await callback.answer("🏃 Поехали!")
    await show_phase(callback.message, state, user_id)

# ==================== РЕШЕНИЯ ====================

@router.callback_query(F.data.startswith("decide_"))
async def decide(callback: CallbackQuery, state: FSMContext):
    session = await get_active_session(callback)
    if session is None:
        return
    user_id = callback.from_user.id

    try:
        choice = Choice(callback.data.replace("decide_", ""))
        if choice is Choice.PASS:
            if Choice.PASS not in session.available_choices():
                await callback.answer("Пас сейчас недоступен", show_alert=True)
                return
            await state.set_state(MatchFlow.passing)
            await callback.message.edit_text(
                "🔁 <b>Кому отдать пас?</b>",
                reply_markup=get_pass_keyboard(session.participants, session.pass_targets()),
                parse_mode="HTML"
            )
            await callback.answer()
            return

        session.decide(choice)
        if session.phase is Phase.SHOOTING and session.rules.shot_mode == "strike":
            await safe_edit(callback.message, "⚽️ <b>Удар!</b>")
            await asyncio.sleep(1)
            session.take_shot()
    except GameError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return
    except ValueError:
        await callback.answer("Неизвестное решение", show_alert=True)
        return

    await callback.answer()
    await show_phase(callback.message, state, user_id)

@router.callback_query(F.data.startswith("pass_"))
async def pass_ball(callback: CallbackQuery, state: FSMContext):
    session = await get_active_session(callback)
    if session is None:
        return

    try:
        session.decide(Choice.PASS, target=int(callback.data.replace("pass_", "")))
    except GameError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await callback.answer("🔁 Пас!")
    await show_phase(callback.message, state, callback.from_user.id)

@router.callback_query(F.data == "back_to_decision")
async def back_to_decision(callback: CallbackQuery, state: FSMContext):
    session = await get_active_session(callback)
    if session is None:
        return
    await callback.answer()
    await show_phase(callback.message, state, callback.from_user.id)

# ==================== УДАР ПО ЗОНЕ ====================

@router.callback_query(F.data.startswith("zone_"))
async def shoot_zone(callback: CallbackQuery, state: FSMContext):
    session = await get_active_session(callback)
    if session is None:
        return
    zone = int(callback.data.replace("zone_", ""))

    try:
        if session.phase is Phase.BONUS_ROUND:
            result = session.take_bonus_shot(zone)
            details = result["details"]
            await callback.answer(
                f"{details['emoji']} {details['outcome']} Зона {details['zone_multiplier']}x"
                + (f", +{format_money(result['payout'])}" if result["payout"] else "")
            )
        else:
            outcome = session.take_shot(zone)
            await callback.answer(f"{session.history[-1]['emoji']} Зона {outcome.zone_multiplier}x")
    except GameError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await show_phase(callback.message, state, callback.from_user.id)

# ==================== НАВИГАЦИЯ ====================

@router.callback_query(F.data == "replay")
async def replay(callback: CallbackQuery, state: FSMContext):
    session = store.get(callback.from_user.id)
    if session is not None and session.phase is Phase.OUTCOME:
        session.replay()
    elif session is not None and session.phase is not Phase.SELECTION:
        await callback.answer("⏳ Матч ещё идёт", show_alert=True)
        return

    await state.clear()
    await state.set_state(MatchFlow.choosing_runner)
    await callback.message.answer(
        "🏃 <b>На кого ставим?</b>",
        reply_markup=get_runners_keyboard(store.participants()),
        parse_mode="HTML"
    )
    await callback.answer()

@router.callback_query(F.data == "back_to_runners")
async def back_to_runners(callback: CallbackQuery, state: FSMContext):
    await state.set_state(MatchFlow.choosing_runner)
    await callback.message.edit_text(
        "🏃 <b>На кого ставим?</b>",
        reply_markup=get_runners_keyboard(store.participants()),
        parse_mode="HTML"
    )
    await callback.answer()

@router.callback_query(F.data == "back_main")
async def back_to_main(callback: CallbackQuery, state: FSMContext):
    session = store.get(callback.from_user.id)
    if session is None or session.phase in (Phase.SELECTION, Phase.OUTCOME):
        await state.clear()
    await callback.message.answer(
        "🏠 Главное меню",
        reply_markup=get_main_menu()
    )
    await callback.answer()
