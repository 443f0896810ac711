from aiogram.fsm.state import State, StatesGroup

class MatchFlow(StatesGroup):
    """FSM состояния матча (повторяют фазы сессии)"""
    choosing_runner = State()
    choosing_stake = State()
    running = State()
    deciding = State()
    passing = State()
    shooting = State()
    bonus_round = State()
    outcome = State()
