import json
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from database.models import User, Game, Transaction, GameStatus, GameResult, TransactionKind
from datetime import datetime
from typing import Optional, List
import logging

from game.exceptions import InsufficientFundsError
from game.models import Outcome

# Настройка логирования
logger = logging.getLogger(__name__)

class UserCRUD:
    """Класс для работы с моделью User"""

    @staticmethod
    async def get_or_create(session: AsyncSession, telegram_id: int, username: str = None,
                            first_name: str = None, starting_balance: int = 0) -> User:
        """Получить или создать пользователя по telegram_id"""
        try:
            result = await session.execute(
                select(User).where(User.telegram_id == telegram_id)
            )
            user = result.scalar_one_or_none()

            if user is None:
                user = User(
                    telegram_id=telegram_id,
                    username=username or f"user_{telegram_id}",
                    first_name=first_name,
                    balance=starting_balance,
                    total_wagered=0,
                    total_won=0,
                    games_played=0,
                )
                session.add(user)
                await session.commit()
                await session.refresh(user)
                logger.info(f"Создан новый пользователь: telegram_id={telegram_id}, баланс={starting_balance}")
            else:
                logger.debug(f"Найден существующий пользователь: telegram_id={telegram_id}")
            return user
        except Exception as e:
            logger.error(f"Ошибка при создании/получении пользователя: {e}")
            raise

    @staticmethod
    async def get_by_telegram_id(session: AsyncSession, telegram_id: int) -> Optional[User]:
        """Получить пользователя по telegram_id"""
        try:
            result = await session.execute(
                select(User).where(User.telegram_id == telegram_id)
            )
            user = result.scalar_one_or_none()
            logger.debug(f"Поиск пользователя по telegram_id={telegram_id}: {'Найден' if user else 'Не найден'}")
            return user
        except Exception as e:
            logger.error(f"Ошибка при поиске пользователя: {e}")
            raise

    @staticmethod
    async def debit_stake(session: AsyncSession, user: User, stake: int, game: Optional[Game] = None) -> User:
        """Списать ставку с баланса (ставка не больше баланса)"""
        if stake > user.balance:
            raise InsufficientFundsError(stake, user.balance)
        try:
            user.balance -= stake
            await TransactionCRUD.create(session, user.id, TransactionKind.STAKE, -stake, user.balance,
                                         game_id=game.id if game else None, commit=False)
            await session.commit()
            logger.info(f"Списана ставка {stake} у пользователя {user.id}, баланс={user.balance}")
            return user
        except Exception as e:
            logger.error(f"Ошибка при списании ставки у пользователя {user.id}: {e}")
            await session.rollback()
            raise

    @staticmethod
    async def credit(session: AsyncSession, user: User, amount: int,
                     kind: TransactionKind = TransactionKind.PAYOUT, game: Optional[Game] = None) -> User:
        """Зачислить сумму на баланс"""
        if amount < 0:
            raise ValueError(f"Нельзя зачислить отрицательную сумму: {amount}")
        try:
            user.balance += amount
            await TransactionCRUD.create(session, user.id, kind, amount, user.balance,
                                         game_id=game.id if game else None, commit=False)
            await session.commit()
            logger.info(f"Зачислено {amount} ({kind.value}) пользователю {user.id}, баланс={user.balance}")
            return user
        except Exception as e:
            logger.error(f"Ошибка при зачислении пользователю {user.id}: {e}")
            await session.rollback()
            raise

    @staticmethod
    async def update_stats(session: AsyncSession, user: User, wagered: int = 0, won: int = 0, games: int = 0) -> None:
        """Обновить статистику пользователя"""
        try:
            user.total_wagered += wagered
            user.total_won += won
            user.games_played += games
            user.last_activity = datetime.utcnow()
            await session.commit()
            logger.info(f"Обновлена статистика пользователя {user.id}: wagered={user.total_wagered}, won={user.total_won}, games={user.games_played}")
        except Exception as e:
            logger.error(f"Ошибка при обновлении статистики пользователя {user.id}: {e}")
            await session.rollback()
            raise

    @staticmethod
    async def get_stats(session: AsyncSession, user_id: int) -> dict:
        """Получить статистику пользователя"""
        try:
            result = await session.execute(
                select(User.total_wagered, User.total_won, User.games_played, User.balance).where(User.id == user_id)
            )
            stats = result.fetchone()
            if not stats:
                return {"total_wagered": 0, "total_won": 0, "games_played": 0, "balance": 0,
                        "max_win": 0, "favorite_participant": None}

            max_win = await session.scalar(
                select(func.coalesce(func.max(Game.payout), 0))
                .where(Game.user_id == user_id, Game.status == GameStatus.COMPLETED)
            )
            favorite = await session.execute(
                select(Game.participant, func.count(Game.id).label("cnt"))
                .where(Game.user_id == user_id, Game.status == GameStatus.COMPLETED)
                .group_by(Game.participant)
                .order_by(func.count(Game.id).desc())
                .limit(1)
            )
            favorite_row = favorite.fetchone()

            return {
                "total_wagered": stats[0] or 0,
                "total_won": stats[1] or 0,
                "games_played": stats[2] or 0,
                "balance": stats[3] or 0,
                "max_win": max_win or 0,
                "favorite_participant": favorite_row[0] if favorite_row else None,
            }
        except Exception as e:
            logger.error(f"Ошибка при получении статистики пользователя {user_id}: {e}")
            raise


class GameCRUD:
    """Класс для работы с моделью Game"""

    @staticmethod
    async def create(session: AsyncSession, game_id: str, user_id: int, participant: int, stake: int) -> Game:
        """Создать новый раунд"""
        try:
            game = Game(
                game_id=game_id,
                user_id=user_id,
                participant=participant,
                stake=stake,
                status=GameStatus.PENDING,
                payout=0,
                final_multiplier=0.0,
                bonus_won=0,
            )
            session.add(game)
            await session.commit()
            await session.refresh(game)
            logger.info(f"Создан новый раунд: game_id={game_id}, user_id={user_id}, ставка={stake}")
            return game
        except Exception as e:
            logger.error(f"Ошибка при создании раунда {game_id}: {e}")
            await session.rollback()
            raise

    @staticmethod
    async def get_by_game_id(session: AsyncSession, game_id: str) -> Optional[Game]:
        """Получить раунд по game_id"""
        try:
            result = await session.execute(
                select(Game).where(Game.game_id == game_id)
            )
            game = result.scalar_one_or_none()
            logger.debug(f"Поиск раунда по game_id={game_id}: {'Найден' if game else 'Не найден'}")
            return game
        except Exception as e:
            logger.error(f"Ошибка при поиске раунда {game_id}: {e}")
            raise

    @staticmethod
    async def complete_game(session: AsyncSession, game: Game, outcome: Outcome, game_data: Optional[dict] = None) -> None:
        """Завершить раунд: записать итог, выплатить выигрыш и обновить статистику"""
        try:
            game.status = GameStatus.COMPLETED
            game.result = GameResult.WIN if outcome.won else GameResult.LOSS
            game.outcome_type = outcome.outcome_type.value
            game.payout = outcome.final_value
            game.final_multiplier = outcome.total_multiplier
            game.bonus_won = outcome.bonus_won
            game.game_data = json.dumps(game_data, ensure_ascii=False) if game_data is not None else None
            game.completed_at = datetime.utcnow()

            user = await session.get(User, game.user_id)
            if user:
                if outcome.final_value > 0:
                    await UserCRUD.credit(session, user, outcome.final_value, TransactionKind.PAYOUT, game=game)
                await UserCRUD.update_stats(session, user, wagered=game.stake, won=outcome.final_value, games=1)

            await session.commit()
            logger.info(f"Раунд завершён: game_id={game.game_id}, итог={outcome.outcome_type.value}, выплата={outcome.final_value}")
        except Exception as e:
            logger.error(f"Ошибка при завершении раунда {game.game_id}: {e}")
            await session.rollback()
            raise

    @staticmethod
    async def get_user_games(session: AsyncSession, user_id: int) -> List[Game]:
        """Получить все раунды пользователя"""
        try:
            result = await session.execute(
                select(Game).where(Game.user_id == user_id).order_by(Game.created_at.desc(), Game.id.desc())
            )
            return result.scalars().all()
        except Exception as e:
            logger.error(f"Ошибка при получении раундов пользователя {user_id}: {e}")
            raise


class TransactionCRUD:
    """Класс для работы с моделью Transaction"""

    @staticmethod
    async def create(session: AsyncSession,
                     user_id: int,
                     kind: TransactionKind,
                     amount: int,
                     balance_after: int,
                     game_id: Optional[int] = None,
                     commit: bool = True) -> Transaction:
        """
        Записать движение по кошельку.
        amount со знаком: ставка - минус, выплата - плюс.
        commit=False - запись в рамках внешней операции (списание, выплата)
        """
        try:
            transaction = Transaction(
                user_id=user_id,
                game_id=game_id,
                kind=kind,
                amount=amount,
                balance_after=balance_after,
            )
            session.add(transaction)
            if commit:
                await session.commit()
                await session.refresh(transaction)
            logger.debug(f"Транзакция: user_id={user_id}, kind={kind.value}, amount={amount}")
            return transaction
        except Exception as e:
            logger.error(f"Ошибка при создании транзакции для пользователя {user_id}: {e}")
            await session.rollback()
            raise

    @staticmethod
    async def get_user_transactions(session: AsyncSession, user_id: int) -> List[Transaction]:
        """Получить все транзакции пользователя"""
        try:
            result = await session.execute(
                select(Transaction).where(Transaction.user_id == user_id).order_by(Transaction.id.desc())
            )
            return result.scalars().all()
        except Exception as e:
            logger.error(f"Ошибка при получении транзакций пользователя {user_id}: {e}")
            raise
