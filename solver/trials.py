from __future__ import annotations

import argparse
import json
import logging
import random
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from seahaven.Core import GameConfig
from solver.search import STATUS_ABANDONED, STATUS_SOLVED, Game, SolveResult

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Tally:
    totalGames: int = 0
    winnable: int = 0
    losers: int = 0
    abandoned: int = 0

    def record(self, result: SolveResult) -> None:
        self.totalGames += 1
        if result.status == STATUS_SOLVED:
            self.winnable += 1
        elif result.status == STATUS_ABANDONED:
            self.abandoned += 1
        else:
            self.losers += 1

    def to_dict(self) -> dict:
        return asdict(self)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deal Seahaven Towers layouts and try to solve each one.")
    parser.add_argument("--config", type=str, default="", help="Optional key=value config file.")
    parser.add_argument("--trials", type=int, default=None, help="How many layouts to deal.")
    parser.add_argument("--start-seed", type=int, default=None, help="Seed of the first layout (random if omitted).")
    parser.add_argument("--abandon-threshold", type=int, default=None, help="Unique boards before giving up a trial.")
    parser.add_argument("--jsonl", type=str, default="", help="Optional output jsonl path.")
    parser.add_argument("--show", action="store_true", help="Print each initial layout.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> GameConfig:
    config = GameConfig.loadFromFile(args.config) if args.config else GameConfig()
    if args.trials is not None:
        config.trials = args.trials
    if args.start_seed is not None:
        config.seed = args.start_seed
    if args.abandon_threshold is not None:
        config.abandonThreshold = args.abandon_threshold
    if config.seed is None:
        config.seed = random.randrange(1, 2**31)
        print(f"start-seed not set; selected random start_seed={config.seed}")
    return config


def run_trials(config: GameConfig, out_path: Optional[Path] = None, show: bool = False) -> Tally:
    tally = Tally()
    logger.debug(f"Running {config.trials} trials from seed {config.seed}")
    for i in range(config.trials):
        seed = config.seed + i
        game = Game.from_seed(seed, config)
        layout = game.board.snapshot()
        if show:
            print("\n".join(game.board.describe()))

        t0 = time.perf_counter()
        result = game.solve()
        wall_ms = (time.perf_counter() - t0) * 1000.0
        tally.record(result)

        if out_path is not None:
            payload = {"seed": seed, "layout": layout, "wall_ms": round(wall_ms, 3)}
            payload.update(result.to_dict())
            with out_path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(payload, ensure_ascii=False) + "\n")

        print(
            f"seed={seed} status={result.status} moves={result.total_moves} "
            f"unique={result.unique_boards} repeats={result.repeats_avoided} "
            f"depth={result.max_depth} ms={wall_ms:.1f}"
        )
    return tally


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    config = build_config(args)

    out_path = Path(args.jsonl).expanduser() if args.jsonl else None
    if out_path is not None:
        out_path.parent.mkdir(parents=True, exist_ok=True)

    started = time.perf_counter()
    tally = run_trials(config, out_path=out_path, show=args.show)
    total_ms = (time.perf_counter() - started) * 1000.0
    print(
        f"summary games={tally.totalGames} winnable={tally.winnable} losers={tally.losers} "
        f"abandoned={tally.abandoned} total_ms={total_ms:.1f}"
    )


if __name__ == "__main__":
    main()
