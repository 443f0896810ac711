import random
import unittest
from types import SimpleNamespace

from game.models import EncounterOutcome
from game.rng import OutcomeDraws
from game.rules import GameRules
from tests.helpers import ScriptedRandom


class TestGameRules(unittest.TestCase):

    def test_defaults_are_valid(self):
        rules = GameRules().validate()
        self.assertEqual(rules.participant_count, 4)
        self.assertEqual(rules.final_checkpoint, 3)
        self.assertEqual(rules.decision_multipliers, (3.0, 8.0, 13.0, 20.0))

    def test_inconsistent_tables_rejected(self):
        bad = [
            dict(decision_multipliers=(3.0, 3.0, 8.0)),
            dict(decision_multipliers=(8.0, 3.0)),
            dict(decision_multipliers=(3.0, 600.0)),
            dict(participant_names=("Solo",)),
            dict(shot_mode="lob"),
            dict(goal_chance=1.5),
            dict(encounter_weights=(0.5, 0.5)),
            dict(stakes=(0, 10)),
            dict(shooting_multiplier_range=(10.0, 5.0)),
        ]
        for overrides in bad:
            with self.subTest(**{k: str(v) for k, v in overrides.items()}):
                with self.assertRaises(ValueError):
                    GameRules(**overrides).validate()

    def test_from_settings_reads_upper_and_lower_names(self):
        settings = SimpleNamespace(
            STAKES=[10, 20],
            DECISION_MULTIPLIERS=[2.0, 4.0],
            SHOT_MODE="penalty",
            force_goal=True,
        )
        rules = GameRules.from_settings(settings)
        self.assertEqual(rules.stakes, (10, 20))
        self.assertEqual(rules.decision_multipliers, (2.0, 4.0))
        self.assertEqual(rules.shot_mode, "penalty")
        self.assertTrue(rules.force_goal)
        self.assertEqual(rules.bonus_chance, 0.2)

    def test_from_settings_defaults_match_rules_defaults(self):
        from config import settings
        self.assertEqual(GameRules.from_settings(settings), GameRules())

    def test_from_settings_validates(self):
        with self.assertRaises(ValueError):
            GameRules.from_settings(SimpleNamespace(SHOT_MODE="volley"))


class TestOutcomeDraws(unittest.TestCase):

    def draws(self, values=(), **overrides):
        return OutcomeDraws(GameRules(**overrides), ScriptedRandom(values))

    def test_encounter_chance_scales_with_dt(self):
        # 0.15 в секунду * 0.1 с = 0.015
        self.assertTrue(self.draws([0.014]).encounter_happens(0.1))
        self.assertFalse(self.draws([0.016]).encounter_happens(0.1))
        # шанс не больше единицы
        self.assertTrue(self.draws([0.999]).encounter_happens(10.0))

    def test_encounter_outcome_split(self):
        cases = [
            (0.0, EncounterOutcome.TACKLE),
            (0.49, EncounterOutcome.TACKLE),
            (0.5, EncounterOutcome.DODGE),
            (0.74, EncounterOutcome.DODGE),
            (0.75, EncounterOutcome.SKILL),
            (0.99, EncounterOutcome.SKILL),
        ]
        for value, expected in cases:
            with self.subTest(value=value):
                self.assertIs(self.draws([value]).encounter_outcome(), expected)

    def test_encounter_outcome_frequencies(self):
        draws = OutcomeDraws(GameRules(), random.Random(7))
        n = 20000
        counts = {o: 0 for o in EncounterOutcome}
        for _ in range(n):
            counts[draws.encounter_outcome()] += 1
        self.assertAlmostEqual(counts[EncounterOutcome.TACKLE] / n, 0.5, delta=0.02)
        self.assertAlmostEqual(counts[EncounterOutcome.DODGE] / n, 0.25, delta=0.02)
        self.assertAlmostEqual(counts[EncounterOutcome.SKILL] / n, 0.25, delta=0.02)

    def test_bonus_trigger(self):
        self.assertTrue(self.draws([0.19]).bonus_triggered())
        self.assertFalse(self.draws([0.2]).bonus_triggered())

    def test_forced_flags_skip_draws(self):
        draws = self.draws(force_bonus=True, force_goal=True)
        self.assertTrue(draws.bonus_triggered())
        self.assertTrue(draws.goal_scored())
        self.assertEqual(draws.rng.calls, 0)

    def test_goal_and_shooting_multiplier(self):
        draws = self.draws([0.49, 0.5, 0.5])
        self.assertTrue(draws.goal_scored())
        self.assertFalse(draws.goal_scored())
        self.assertAlmostEqual(draws.shooting_multiplier(), 7.5)

    def test_forced_crash_schedule(self):
        draws = self.draws()
        self.assertEqual(draws.pick_forced_crashes(2, 1), {0: [0]})
        self.assertEqual(draws.pick_forced_crashes(0, 2), {1: [1, 2]})
        self.assertEqual(draws.pick_forced_crashes(0, 4), {3: [1, 2]})
        self.assertEqual(draws.pick_forced_crashes(0, 5), {})

    def test_boards_are_permutations(self):
        draws = OutcomeDraws(GameRules(), random.Random(3))
        self.assertEqual(sorted(draws.bonus_board()), [5, 10, 20, 50, 100])
        self.assertEqual(sorted(draws.penalty_board()), [1, 2, 5, 10, 25])

    def test_random_zone_in_range(self):
        draws = OutcomeDraws(GameRules(), random.Random(11))
        zones = {draws.random_zone(5) for _ in range(500)}
        self.assertEqual(zones, {0, 1, 2, 3, 4})


if __name__ == "__main__":
    unittest.main()
