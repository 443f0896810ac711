import asyncio
import unittest
from types import SimpleNamespace
from unittest import mock

from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bot import handlers
from bot.sessions import SessionStore
from bot.states import MatchFlow
from database.crud import GameCRUD, TransactionCRUD, UserCRUD
from database.database import init_db, make_engine
from database.models import GameResult, GameStatus, TransactionKind
from game.models import OutcomeType, Phase
from tests.helpers import ScriptedRandom, quiet_rules

USER_ID = 555


def make_callback(data: str):
    message = mock.MagicMock()
    message.edit_text = mock.AsyncMock()
    message.answer = mock.AsyncMock()
    return SimpleNamespace(
        data=data,
        from_user=SimpleNamespace(id=USER_ID, username="tester", first_name="Test"),
        message=message,
        answer=mock.AsyncMock(),
    )


class HandlerTestCase(unittest.IsolatedAsyncioTestCase):
    """Хэндлеры против sqlite в памяти и отдельного SessionStore"""

    rules = quiet_rules(multiplier_rate=30.0)

    async def asyncSetUp(self):
        self.engine = make_engine("sqlite+aiosqlite:///:memory:")
        await init_db(self.engine)
        self.session_maker = async_sessionmaker(bind=self.engine, class_=AsyncSession, expire_on_commit=False)
        self.store = SessionStore(rules=self.rules, rng=ScriptedRandom())
        self.state = FSMContext(
            storage=MemoryStorage(),
            key=StorageKey(bot_id=1, chat_id=USER_ID, user_id=USER_ID),
        )

        for patcher in (
            mock.patch.object(handlers, "async_session_maker", self.session_maker),
            mock.patch.object(handlers, "store", self.store),
            mock.patch.object(handlers.settings, "TICK_SECONDS", 0.05),
            mock.patch.object(handlers.settings, "STARTING_BALANCE", 10000),
        ):
            patcher.start()
            self.addCleanup(patcher.stop)

    async def asyncTearDown(self):
        self.store.cancel_all()
        await self.engine.dispose()

    async def wait_for_checkpoint(self):
        for _ in range(200):
            if not self.store.is_running(USER_ID):
                return
            await asyncio.sleep(0.01)
        self.fail("цикл бега не дошёл до чекпоинта")

    async def place_stake(self, stake=100, runner=0):
        await self.state.update_data(runner=runner)
        callback = make_callback(f"stake_{stake}")
        await handlers.choose_stake(callback, self.state)
        return callback

    async def db_user(self):
        async with self.session_maker() as db:
            return await UserCRUD.get_by_telegram_id(db, USER_ID)


class TestStakeAndCashOut(HandlerTestCase):

    async def test_stake_debits_db_and_starts_loop(self):
        callback = await self.place_stake()

        session = self.store.get(USER_ID)
        self.assertIs(session.phase, Phase.RUNNING)
        self.assertEqual(session.stake, 100)
        self.assertTrue(self.store.is_running(USER_ID))
        self.assertIsNotNone((await self.state.get_data()).get("game_id"))
        callback.answer.assert_awaited_with("🏃 Поехали!")

        user = await self.db_user()
        self.assertEqual(user.balance, 9900)

    async def test_loop_pauses_on_checkpoint(self):
        callback = await self.place_stake()
        await self.wait_for_checkpoint()

        self.assertIs(self.store.get(USER_ID).phase, Phase.DECISION)
        self.assertEqual(await self.state.get_state(), MatchFlow.deciding.state)
        text = callback.message.edit_text.await_args.args[0]
        self.assertIn("Чекпоинт 1", text)

    async def test_cash_out_credits_db_once(self):
        callback = await self.place_stake()
        await self.wait_for_checkpoint()

        await handlers.decide(make_callback("decide_cash_out"), self.state)
        session = self.store.get(USER_ID)
        self.assertIs(session.outcome.outcome_type, OutcomeType.WIN_CASHOUT)
        self.assertEqual(await self.state.get_state(), MatchFlow.outcome.state)

        user = await self.db_user()
        self.assertEqual(user.balance, 10000 - 100 + 300)

        # повторный показ итога не платит второй раз
        await handlers.finish_match(callback.message, self.state, USER_ID)
        user = await self.db_user()
        self.assertEqual(user.balance, 10200)

        async with self.session_maker() as db:
            games = await GameCRUD.get_user_games(db, user.id)
            transactions = await TransactionCRUD.get_user_transactions(db, user.id)
        self.assertEqual(len(games), 1)
        self.assertIs(games[0].status, GameStatus.COMPLETED)
        self.assertIs(games[0].result, GameResult.WIN)
        self.assertEqual(games[0].payout, 300)
        self.assertEqual(
            [(t.kind, t.amount) for t in transactions],
            [(TransactionKind.PAYOUT, 300), (TransactionKind.STAKE, -100)],
        )


class TestLossPersistence(HandlerTestCase):

    rules = quiet_rules(multiplier_rate=30.0, shot_mode="penalty")

    async def test_saved_penalty_is_recorded_as_loss(self):
        await self.place_stake()
        await self.wait_for_checkpoint()

        await handlers.decide(make_callback("decide_shoot"), self.state)
        self.assertIs(self.store.get(USER_ID).phase, Phase.SHOOTING)

        # ScriptedRandom по умолчанию даёт 0.99: вратарь берёт мяч
        zone = make_callback("zone_0")
        await handlers.shoot_zone(zone, self.state)
        self.assertIs(self.store.get(USER_ID).outcome.outcome_type, OutcomeType.LOSS_MISS)
        self.assertIn("🥅", zone.answer.await_args.args[0])

        user = await self.db_user()
        self.assertEqual(user.balance, 9900)
        async with self.session_maker() as db:
            games = await GameCRUD.get_user_games(db, user.id)
            stats = await UserCRUD.get_stats(db, user.id)
        self.assertIs(games[0].status, GameStatus.COMPLETED)
        self.assertIs(games[0].result, GameResult.LOSS)
        self.assertEqual(games[0].payout, 0)
        self.assertEqual(stats["games_played"], 1)
        self.assertEqual(stats["total_wagered"], 100)
        self.assertEqual(stats["total_won"], 0)


class TestStakeRejected(HandlerTestCase):

    async def test_stake_above_db_balance(self):
        async with self.session_maker() as db:
            await UserCRUD.get_or_create(db, USER_ID, "tester", "Test", starting_balance=50)

        callback = await self.place_stake(stake=100)

        self.assertIsNone(self.store.get(USER_ID))
        self.assertTrue(callback.answer.await_args.kwargs["show_alert"])
        self.assertIn("Недостаточно средств", callback.answer.await_args.args[0])
        self.assertEqual((await self.db_user()).balance, 50)

    async def test_stake_needs_runner(self):
        callback = make_callback("stake_100")
        await handlers.choose_stake(callback, self.state)
        callback.answer.assert_awaited_with("Сначала выбери игрока", show_alert=True)
        self.assertIsNone(self.store.get(USER_ID))

    async def test_db_failure_drops_session(self):
        failing = mock.AsyncMock(side_effect=RuntimeError("db down"))
        with mock.patch.object(handlers.GameCRUD, "create", failing):
            with self.assertRaises(RuntimeError):
                await self.place_stake()

        self.assertIsNone(self.store.get(USER_ID))
        self.assertFalse(self.store.is_running(USER_ID))
        self.assertEqual((await self.db_user()).balance, 10000)
