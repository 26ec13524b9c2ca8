from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass
from typing import Optional

from seahaven.Core import (
    CELL_COUNT,
    TABLEAU_COUNT,
    Board,
    BoardError,
    GameConfig,
    HistoryRecorder,
    Move,
    Position,
    StackType,
)
from seahaven.Interface import Interface

logger = logging.getLogger(__name__)

# Cells first, then tableau stacks; candidate moves are tried in this order.
SOURCE_ORDER: tuple[Position, ...] = tuple(
    [Position(StackType.CELL, i) for i in range(CELL_COUNT)]
    + [Position(StackType.TABLEAU, i) for i in range(TABLEAU_COUNT)]
)

RECURSION_LIMIT = 20_000

STATUS_SOLVED = "solved"
STATUS_UNSOLVED = "unsolved"
STATUS_ABANDONED = "abandoned"


@dataclass(slots=True)
class SolveResult:
    status: str
    moves: tuple[Move, ...]
    total_moves: int
    unique_boards: int
    repeats_avoided: int
    max_depth: int
    elapsed_ms: float

    @property
    def solved(self) -> bool:
        return self.status == STATUS_SOLVED

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "moves": [move.to_notation() for move in self.moves],
            "total_moves": self.total_moves,
            "unique_boards": self.unique_boards,
            "repeats_avoided": self.repeats_avoided,
            "max_depth": self.max_depth,
            "elapsed_ms": self.elapsed_ms,
        }


class Game:
    """
    Depth-first search over one board with backtracking.

    Every applied move is logged as single-card moves in `history`, so a
    multi-card extent is undone by popping its parts one by one.
    """

    def __init__(self, board: Board, config: Optional[GameConfig] = None, interface: Optional[Interface] = None):
        self.board = board
        self.config = config or GameConfig()
        self.history = HistoryRecorder()
        self.seen: set[bytes] = set()
        self.stack_size = 0
        self.max_depth = 0
        self.total_moves = 0
        self.repeats_avoided = 0
        self.abandoned = False
        self.interface = None
        if interface is not None:
            self.register_interface(interface)

    @staticmethod
    def from_seed(seed: Optional[int], config: Optional[GameConfig] = None) -> "Game":
        config = config or GameConfig()
        return Game(config.initBoard(seed), config)

    def register_interface(self, interface: Interface) -> None:
        self.interface = interface
        interface.game = self

    @property
    def unique_boards(self) -> int:
        return len(self.seen)

    @property
    def moves(self) -> tuple[Move, ...]:
        return self.history.moves()

    def candidate_moves(self) -> list[Move]:
        candidates = []
        for source in SOURCE_ORDER:
            move = self.board.findLegalMove(source)
            if move is not None:
                candidates.append(move)
        return candidates

    def register_board(self) -> bool:
        """Record the current board; False when the search must not descend from it."""
        key = self.board.checksum()
        if key in self.seen:
            self.repeats_avoided += 1
            return False
        self.seen.add(key)
        if len(self.seen) > self.config.abandonThreshold:
            if not self.abandoned:
                logger.info(f"Abandoning search after {len(self.seen)} unique boards at depth {self.stack_size}")
                if self.interface is not None:
                    self.interface.onAbandon()
            self.abandoned = True
            return False
        return True

    def _apply(self, source: Position, target: Position) -> None:
        self.board.moveCard(source, target)
        step = Move(source, target, 1)
        self.history.log(step)
        if self.interface is not None:
            self.interface.onEvent(step)

    def make_move(self, move: Move) -> None:
        if move.extent <= 1:
            self._apply(move.source, move.target)
        else:
            cells = self.board.findFreeCells()[: move.extent - 1]
            if len(cells) < move.extent - 1:
                raise BoardError(f"{move.to_notation()} needs {move.extent - 1} free cells, found {len(cells)}")
            for cell in cells:
                self._apply(move.source, cell)
            self._apply(move.source, move.target)
            for cell in reversed(cells):
                self._apply(cell, move.target)
        self.total_moves += 1

    def undo_move(self, move: Move) -> None:
        for _ in range((move.extent - 1) * 2 + 1):
            step = self.history.pop()
            self.board.moveCard(step.target, step.source)
            if self.interface is not None:
                self.interface.onUndoEvent(step)

    def explore(self, depth: int) -> bool:
        self.stack_size = depth
        self.max_depth = max(self.max_depth, depth)
        for move in self.candidate_moves():
            if self.attempt(move, depth):
                return True
        return False

    def attempt(self, move: Move, depth: int) -> bool:
        self.make_move(move)
        if self.board.isSuccess():
            return True
        if self.register_board() and self.explore(depth + 1):
            return True
        self.stack_size = depth
        self.undo_move(move)
        return False

    def solve(self) -> SolveResult:
        started = time.perf_counter()
        if self.interface is not None:
            self.interface.onStart(self.board)
        logger.debug(f"Starting search, abandon threshold {self.config.abandonThreshold}")

        if self.board.isSuccess():
            solved = True
        else:
            self.register_board()
            limit = sys.getrecursionlimit()
            sys.setrecursionlimit(max(limit, RECURSION_LIMIT))
            try:
                solved = self.explore(0)
            finally:
                sys.setrecursionlimit(limit)

        if solved:
            status = STATUS_SOLVED
            if self.interface is not None:
                self.interface.onWin()
        elif self.abandoned:
            status = STATUS_ABANDONED
        else:
            status = STATUS_UNSOLVED

        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 3)
        logger.debug(
            f"Search finished: {status}, {self.total_moves} moves, {len(self.seen)} unique boards, "
            f"{self.repeats_avoided} repeats"
        )
        return SolveResult(
            status=status,
            moves=self.moves,
            total_moves=self.total_moves,
            unique_boards=len(self.seen),
            repeats_avoided=self.repeats_avoided,
            max_depth=self.max_depth,
            elapsed_ms=elapsed_ms,
        )

    def replay(self, moves) -> None:
        """Re-apply a recorded single-card move list."""
        for step in moves:
            self._apply(step.source, step.target)

    def rewind(self) -> None:
        while len(self.history) > 0:
            step = self.history.pop()
            self.board.moveCard(step.target, step.source)
            if self.interface is not None:
                self.interface.onUndoEvent(step)
