import asyncio
import logging
from typing import Coroutine, Dict, List, Optional

from game.models import Participant, Phase
from game.rules import GameRules
from game.session import MatchSession
from game.wallet import Wallet

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Сессии матчей по telegram_id.

    Баланс в БД - источник правды: между раундами кошелёк сессии
    выравнивается по нему. Цикл бега каждого игрока - одна asyncio задача.
    """

    def __init__(self, rules: Optional[GameRules] = None, rng=None):
        self._rules = rules
        self._rng = rng
        self._sessions: Dict[int, MatchSession] = {}
        self._loops: Dict[int, asyncio.Task] = {}

    @property
    def rules(self) -> GameRules:
        if self._rules is None:
            from config import settings
            self._rules = GameRules.from_settings(settings)
        return self._rules

    def participants(self) -> List[Participant]:
        """Состав на выбор до начала матча"""
        return [Participant(index=i, name=name) for i, name in enumerate(self.rules.participant_names)]

    def get(self, user_id: int) -> Optional[MatchSession]:
        return self._sessions.get(user_id)

    def get_or_create(self, user_id: int, balance: int) -> MatchSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = MatchSession(Wallet(balance), self.rules, self._rng)
            self._sessions[user_id] = session
            logger.info(f"Создана сессия для пользователя {user_id}, баланс={balance}")
        elif session.phase in (Phase.SELECTION, Phase.OUTCOME):
            session.wallet.balance = balance
        return session

    def start_loop(self, user_id: int, coro: Coroutine) -> asyncio.Task:
        """Запускает цикл бега; предыдущий цикл игрока отменяется"""
        self.cancel_loop(user_id)
        task = asyncio.create_task(coro)
        self._loops[user_id] = task
        task.add_done_callback(lambda t: self._loop_done(user_id, t))
        return task

    def _loop_done(self, user_id: int, task: asyncio.Task):
        if self._loops.get(user_id) is task:
            del self._loops[user_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Цикл бега пользователя {user_id} упал: {task.exception()}")

    def is_running(self, user_id: int) -> bool:
        task = self._loops.get(user_id)
        return task is not None and not task.done()

    def cancel_loop(self, user_id: int) -> None:
        task = self._loops.pop(user_id, None)
        if task is not None and not task.done():
            task.cancel()
            logger.debug(f"Цикл бега пользователя {user_id} отменён")

    def cancel_all(self) -> None:
        for user_id in list(self._loops):
            self.cancel_loop(user_id)

    def drop(self, user_id: int) -> None:
        self.cancel_loop(user_id)
        self._sessions.pop(user_id, None)

    def __len__(self):
        return len(self._sessions)
