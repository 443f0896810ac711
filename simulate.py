"""
Оценка RTP стратегий автоигры.

    python simulate.py --rounds 100000 --action shoot --checkpoint 1
    python simulate.py --all --mode penalty
"""

import argparse
import json
import logging
from dataclasses import replace

from game.rules import GameRules
from game.simulator import AutoStrategy, simulate
from utils.logger import setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Monte Carlo симуляция Crash Football")
    parser.add_argument("--rounds", type=int, default=10_000)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--stake", type=int, default=None, help="ставка в пенсах")
    parser.add_argument("--action", choices=("cash_out", "shoot"), default="cash_out")
    parser.add_argument("--checkpoint", type=int, default=0, help="номер чекпоинта (с нуля)")
    parser.add_argument("--mode", choices=("strike", "penalty"), default=None)
    parser.add_argument("--bonus-resumes-run", action="store_true")
    parser.add_argument("--from-settings", action="store_true", help="взять правила из .env")
    parser.add_argument("--all", action="store_true", help="все стратегии на всех чекпоинтах")
    parser.add_argument("--json", action="store_true", help="полный отчёт в JSON")
    return parser


def load_rules(args) -> GameRules:
    if args.from_settings:
        from config import settings
        rules = GameRules.from_settings(settings)
    else:
        rules = GameRules()
    return replace(rules, shot_mode=args.mode or rules.shot_mode,
                   bonus_resumes_run=args.bonus_resumes_run or rules.bonus_resumes_run).validate()


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logger(log_file="simulation.log", level=logging.WARNING)
    rules = load_rules(args)

    if args.all:
        strategies = [
            AutoStrategy(action=action, checkpoint=checkpoint)
            for action in ("cash_out", "shoot")
            for checkpoint in range(len(rules.decision_multipliers))
        ]
    else:
        strategies = [AutoStrategy(action=args.action, checkpoint=args.checkpoint)]

    print("=" * 60)
    print(f"СИМУЛЯЦИЯ: {args.rounds} раундов, режим удара {rules.shot_mode}")
    print("=" * 60)
    for strategy in strategies:
        result = simulate(rules, strategy, rounds=args.rounds, seed=args.seed, stake=args.stake)
        low, high = result.confidence_95
        print(f"{result.strategy:<14} RTP {result.rtp:.2%}  [{low:.2%} - {high:.2%}]  "
              f"попаданий {result.hit_rate:.2%}  макс {result.max_multiplier_hit:.1f}x")
        if args.json:
            print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    print("=" * 60)


if __name__ == "__main__":
    main()
