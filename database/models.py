from sqlalchemy import BigInteger, Column, Integer, String, Float, DateTime, Enum as SQLEnum, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from database.database import Base

# ==========================
# ENUM типы
# ==========================

class GameStatus(enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"

class GameResult(enum.Enum):
    WIN = "win"
    LOSS = "loss"

class TransactionKind(enum.Enum):
    STAKE = "stake"      # списание ставки
    PAYOUT = "payout"    # выплата выигрыша
    TOP_UP = "top_up"    # пополнение администратором

# ==========================
# МОДЕЛИ
# ==========================

class User(Base):
    """Модель пользователя"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    telegram_id = Column(BigInteger, unique=True, nullable=False, index=True)
    username = Column(String(255))
    first_name = Column(String(255))

    # Кошелёк (пенсы)
    balance = Column(Integer, nullable=False, default=0)

    # Статистика (пенсы)
    total_wagered = Column(Integer, default=0)
    total_won = Column(Integer, default=0)
    games_played = Column(Integer, default=0)

    # Временные метки
    created_at = Column(DateTime, default=datetime.utcnow)
    last_activity = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Связи
    games = relationship("Game", back_populates="user", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, telegram_id={self.telegram_id}, balance={self.balance})>"

class Game(Base):
    """Модель раунда"""
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(String(100), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Данные раунда
    participant = Column(Integer, nullable=False)
    stake = Column(Integer, nullable=False)

    # Статус и результат
    status = Column(SQLEnum(GameStatus), default=GameStatus.PENDING)
    result = Column(SQLEnum(GameResult), nullable=True)
    outcome_type = Column(String(20), nullable=True)
    payout = Column(Integer, default=0)
    final_multiplier = Column(Float, default=0.0)
    bonus_won = Column(Integer, default=0)

    # Дополнительные данные (JSON строка)
    game_data = Column(Text, nullable=True)

    # Временные метки
    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    # Связи
    user = relationship("User", back_populates="games")
    transactions = relationship("Transaction", back_populates="game")

    def __repr__(self):
        return f"<Game(id={self.id}, game_id={self.game_id}, stake={self.stake}, status={self.status})>"

class Transaction(Base):
    """Движение по кошельку"""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="SET NULL"), nullable=True)

    # Данные транзакции (пенсы, списания со знаком минус)
    kind = Column(SQLEnum(TransactionKind), nullable=False)
    amount = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)

    # Временные метки
    created_at = Column(DateTime, default=datetime.utcnow)

    # Связи
    user = relationship("User", back_populates="transactions")
    game = relationship("Game", back_populates="transactions")

    def __repr__(self):
        return f"<Transaction(id={self.id}, kind={self.kind}, amount={self.amount})>"
