"""
Машина состояний матча.

Selection -> Running -> {Decision <-> Running} -> {Shooting | BonusRound} -> Outcome -> Selection

Один экземпляр MatchSession - одна явная сессия игрока вместо глобального
реестра: ставка, владелец мяча, множитель, кошелёк и флаги живут здесь.
Время двигает внешний цикл через tick(dt): кадр в браузере, таймер в боте,
цикл симуляции.
"""

import logging
from typing import List, Optional, Union

from game.exceptions import (
    InvalidChoiceError,
    InvalidPhaseError,
    InvalidStakeError,
    InvalidTargetError,
)
from game.football import BonusShot, PenaltyShot, StrikeShot
from game.models import (
    Choice,
    Encounter,
    EncounterOutcome,
    Outcome,
    OutcomeType,
    Participant,
    Phase,
    TickReport,
)
from game.payout import cash_out_value
from game.rng import OutcomeDraws
from game.rules import GameRules
from game.wallet import Wallet

logger = logging.getLogger(__name__)

# Номер игры для расписания принудительных падений идёт по кругу 1..4
FORCED_CRASH_CYCLE = 4


class MatchSession:
    """Сессия одного игрока: ставка, бег, решения, удар, итог"""

    def __init__(self, wallet: Wallet, rules: Optional[GameRules] = None, rng=None):
        self.rules = (rules or GameRules()).validate()
        self.wallet = wallet
        self.draws = OutcomeDraws(self.rules, rng)
        self.game_number = 0
        self._reset()

    def _reset(self):
        self.phase = Phase.SELECTION
        self.stake = 0
        self.chosen: Optional[int] = None
        self.ball_holder: Optional[int] = None
        self.participants = [
            Participant(index=i, name=name)
            for i, name in enumerate(self.rules.participant_names)
        ]
        self.multiplier = 0.0
        self.bonus_won = 0
        self.decision_index = 0
        self.elapsed = 0.0
        self.checkpoints_fired: List[int] = []
        self.forced_schedule: dict = {}
        self.board: Optional[List[int]] = None
        self.outcome: Optional[Outcome] = None
        self.history: List[dict] = []

    # ==========================
    # Состояние
    # ==========================

    @property
    def active_flags(self) -> List[bool]:
        return [p.active for p in self.participants]

    @property
    def cash_value(self) -> int:
        """Текущая стоимость: ставка * множитель + бонус, в пенсах"""
        if not self.stake:
            return 0
        return cash_out_value(self.stake, self.multiplier, self.bonus_won)

    @property
    def display_multiplier(self) -> float:
        """Множитель с учётом бонуса, как его видит игрок"""
        if not self.stake:
            return self.multiplier
        return self.multiplier + self.bonus_won / self.stake

    @property
    def next_checkpoint(self) -> Optional[float]:
        if self.decision_index < len(self.rules.decision_multipliers):
            return self.rules.decision_multipliers[self.decision_index]
        return None

    @property
    def is_final_checkpoint(self) -> bool:
        return self.decision_index == self.rules.final_checkpoint

    def pass_targets(self) -> List[int]:
        return [
            p.index for p in self.participants
            if p.active and p.index != self.ball_holder
        ]

    def snapshot(self) -> dict:
        """Состояние сессии для логов и game_data"""
        return {
            "phase": self.phase.value,
            "game_number": self.game_number,
            "stake": self.stake,
            "chosen": self.chosen,
            "ball_holder": self.ball_holder,
            "multiplier": round(self.multiplier, 4),
            "bonus_won": self.bonus_won,
            "decision_index": self.decision_index,
            "active": self.active_flags,
            "elapsed": round(self.elapsed, 3),
            "checkpoints_fired": list(self.checkpoints_fired),
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "history": list(self.history),
        }

    def _require(self, operation: str, *phases: Phase):
        if self.phase not in phases:
            raise InvalidPhaseError(operation, self.phase)

    # ==========================
    # Selection
    # ==========================

    def start(self, participant: int, stake: int) -> None:
        """Проверяет ставку, списывает её и запускает бег"""
        self._require("start", Phase.SELECTION)

        if isinstance(participant, bool) or not isinstance(participant, int) \
                or not 0 <= participant < self.rules.participant_count:
            raise InvalidTargetError(f"Нет игрока с индексом {participant!r}")
        if stake not in self.rules.stakes:
            raise InvalidStakeError(f"Ставка {stake!r} не из списка {list(self.rules.stakes)}")

        self.wallet.place_stake(stake)

        self.stake = stake
        self.chosen = participant
        self.ball_holder = participant
        self.game_number = self.game_number % FORCED_CRASH_CYCLE + 1
        if self.rules.forced_crashes:
            self.forced_schedule = self.draws.pick_forced_crashes(participant, self.game_number)

        self.phase = Phase.RUNNING
        self.history.append({"event": "start", "participant": participant, "stake": stake})
        logger.info(
            f"Матч начат: игрок={participant}, ставка={stake}, игра №{self.game_number}, "
            f"баланс={self.wallet.balance}"
        )

    # ==========================
    # Running
    # ==========================

    def tick(self, dt: float) -> TickReport:
        """Двигает матч на dt секунд. Вне фазы RUNNING ничего не делает."""
        if self.phase is not Phase.RUNNING:
            return TickReport(phase=self.phase, multiplier=self.multiplier, cash_value=self.cash_value)
        if dt < 0:
            raise ValueError(f"dt не может быть отрицательным: {dt}")

        self.elapsed += dt
        # Рост не проходит мимо ближайшего чекпоинта, даже если тик закончится бонусным раундом
        limit = self.rules.max_multiplier
        if self.next_checkpoint is not None:
            limit = min(limit, self.next_checkpoint)
        self.multiplier = min(self.multiplier + self.rules.multiplier_rate * dt, limit)

        encounters = []
        for participant in self.participants:
            if self.phase is not Phase.RUNNING:
                break
            if not participant.active:
                continue
            encounter = self._draw_encounter(participant, dt)
            if encounter is not None:
                encounters.append(encounter)

        checkpoint = None
        if self.phase is Phase.RUNNING:
            checkpoint = self._check_checkpoint()

        logger.debug(f"tick dt={dt:.3f}: множитель={self.multiplier:.3f}, фаза={self.phase.name}")
        return TickReport(
            phase=self.phase,
            multiplier=self.multiplier,
            cash_value=self.cash_value,
            encounters=encounters,
            checkpoint=checkpoint,
        )

    def _draw_encounter(self, participant: Participant, dt: float) -> Optional[Encounter]:
        if self.rules.test_mode:
            return None

        forced = self._take_forced_crash(participant.index)
        if forced:
            outcome = EncounterOutcome.TACKLE
        elif self.draws.encounter_happens(dt):
            outcome = self.draws.encounter_outcome()
        else:
            return None

        encounter = Encounter(participant=participant.index, outcome=outcome, forced=forced)
        if outcome is EncounterOutcome.TACKLE:
            self._tackle(participant, encounter)
        elif outcome is EncounterOutcome.SKILL and participant.index == self.ball_holder:
            # Финт владельца мяча приносит одну ставку в бонус
            self.bonus_won += self.stake
            encounter.bonus_awarded = self.stake

        self.history.append({
            "event": "encounter",
            "participant": participant.index,
            "outcome": outcome.value,
            "forced": forced,
            "multiplier": round(self.multiplier, 4),
        })
        return encounter

    def _take_forced_crash(self, index: int) -> bool:
        scheduled = self.forced_schedule.get(self.decision_index)
        if scheduled and index in scheduled:
            scheduled.remove(index)
            return True
        return False

    def _tackle(self, participant: Participant, encounter: Encounter):
        if participant.index != self.ball_holder:
            participant.active = False
            logger.info(f"Игрок {participant.index} сбит")
            return

        if self.draws.bonus_triggered():
            encounter.bonus_round = True
            self.board = self.draws.bonus_board()
            self.phase = Phase.BONUS_ROUND
            logger.info(f"Владелец мяча {participant.index} сбит - бонусный раунд, зоны {self.board}")
            return

        participant.active = False
        receiver = next((p for p in self.participants if p.active), None)
        if receiver is None:
            logger.info(f"Владелец мяча {participant.index} сбит, передать некому")
            self._finish(OutcomeType.LOSS_CRASH, 0)
            return

        self.ball_holder = receiver.index
        encounter.passed_to = receiver.index
        logger.info(f"Владелец мяча {participant.index} сбит, автопас игроку {receiver.index}")

    def _check_checkpoint(self) -> Optional[int]:
        target = self.next_checkpoint
        if target is None or self.multiplier < target:
            return None

        # Рост множителя останавливается ровно на чекпоинте
        self.multiplier = float(target)
        self.checkpoints_fired.append(self.decision_index)
        self.phase = Phase.DECISION
        logger.info(f"Чекпоинт {self.decision_index}: множитель {target}x, стоимость {self.cash_value}")
        return self.decision_index

    # ==========================
    # Decision
    # ==========================

    def available_choices(self) -> List[Choice]:
        self._require("available_choices", Phase.DECISION)
        if self.is_final_checkpoint:
            return [Choice.SHOOT, Choice.CASH_OUT]

        choices = [Choice.CONTINUE]
        if self.pass_targets():
            choices.append(Choice.PASS)
        choices.extend([Choice.SHOOT, Choice.CASH_OUT])
        return choices

    def decide(self, choice: Union[Choice, str], target: Optional[int] = None) -> None:
        self._require("decide", Phase.DECISION)
        try:
            choice = Choice(choice)
        except ValueError:
            raise InvalidChoiceError(f"Неизвестное решение: {choice!r}") from None

        if choice not in self.available_choices():
            raise InvalidChoiceError(f"Решение {choice.value} недоступно на чекпоинте {self.decision_index}")
        if choice is Choice.PASS and (isinstance(target, bool) or target not in self.pass_targets()):
            raise InvalidTargetError(f"Нельзя отдать пас игроку {target!r}")

        self.history.append({
            "event": "decision",
            "checkpoint": self.decision_index,
            "choice": choice.value,
            "target": target,
        })
        logger.info(f"Решение на чекпоинте {self.decision_index}: {choice.value}")

        if choice is Choice.CONTINUE:
            self._resume()
        elif choice is Choice.PASS:
            logger.info(f"Пас: {self.ball_holder} -> {target}")
            self.ball_holder = target
            self._resume()
        elif choice is Choice.SHOOT:
            if self.rules.shot_mode == "penalty":
                self.board = self.draws.penalty_board()
            self.phase = Phase.SHOOTING
        else:
            value = cash_out_value(self.stake, self.multiplier, self.bonus_won)
            self._finish(OutcomeType.WIN_CASHOUT, value)

    def _resume(self):
        self.decision_index += 1
        self.phase = Phase.RUNNING

    # ==========================
    # Shooting / BonusRound
    # ==========================

    def take_shot(self, zone: Optional[int] = None) -> Outcome:
        """Удар по воротам: одна выборка гол/сейв"""
        self._require("take_shot", Phase.SHOOTING)

        if self.rules.shot_mode == "penalty":
            shot = PenaltyShot(self.stake, self.multiplier, self.bonus_won, self.board)
            shot.zone_multiplier(zone)
            scored = self.draws.goal_scored()
            result = shot.analyze_result(scored, zone=zone)
            shooting_multiplier = None
            zone_multiplier = result["details"]["zone_multiplier"]
        else:
            shot = StrikeShot(self.stake, self.multiplier, self.bonus_won)
            scored = self.draws.goal_scored()
            shooting_multiplier = self.draws.shooting_multiplier() if scored else None
            result = shot.analyze_result(scored, shooting_multiplier=shooting_multiplier or 0.0)
            zone_multiplier = None

        self.history.append({"event": "shot", "zone": zone, "result": result["result"],
                             "emoji": result["details"]["emoji"]})
        self.board = None

        if result["result"] == "win":
            self._finish(OutcomeType.WIN_GOAL, result["payout"],
                         shooting_multiplier=shooting_multiplier, zone_multiplier=zone_multiplier)
        else:
            self._finish(OutcomeType.LOSS_MISS, 0, zone_multiplier=zone_multiplier)
        return self.outcome

    def take_bonus_shot(self, zone: int) -> dict:
        """Удар в бонусном раунде: гол добавляет выигрыш по зоне в бонус"""
        self._require("take_bonus_shot", Phase.BONUS_ROUND)

        shot = BonusShot(self.stake, self.multiplier, self.bonus_won, self.board)
        shot.zone_multiplier(zone)
        scored = self.draws.goal_scored()
        result = shot.analyze_result(scored, zone=zone)

        self.bonus_won += result["payout"]
        self.board = None
        self.history.append({"event": "bonus_shot", "zone": zone, "result": result["result"],
                             "payout": result["payout"]})
        logger.info(f"Бонусный удар в зону {zone}: {result['result']}, +{result['payout']}")

        zone_multiplier = result["details"]["zone_multiplier"]
        if self.rules.bonus_resumes_run:
            self.phase = Phase.RUNNING
        elif scored:
            value = cash_out_value(self.stake, self.multiplier, self.bonus_won)
            self._finish(OutcomeType.WIN_GOAL, value, zone_multiplier=zone_multiplier)
        else:
            self._finish(OutcomeType.LOSS_MISS, 0, zone_multiplier=zone_multiplier)
        return result

    # ==========================
    # Outcome
    # ==========================

    def _finish(self, outcome_type: OutcomeType, final_value: int,
                shooting_multiplier: Optional[float] = None, zone_multiplier: Optional[int] = None):
        self.outcome = Outcome(
            outcome_type=outcome_type,
            stake=self.stake,
            final_value=final_value,
            running_multiplier=self.multiplier,
            bonus_won=self.bonus_won,
            shooting_multiplier=shooting_multiplier,
            zone_multiplier=zone_multiplier,
        )
        self.wallet.credit(final_value)
        self.phase = Phase.OUTCOME
        logger.info(
            f"Матч завершён: {outcome_type.value}, выплата={final_value}, "
            f"множитель={self.multiplier:.2f}, бонус={self.bonus_won}, баланс={self.wallet.balance}"
        )

    def replay(self) -> None:
        """Возврат к выбору ставки; кошелёк и счётчик игр сохраняются"""
        self._require("replay", Phase.OUTCOME)
        self._reset()
