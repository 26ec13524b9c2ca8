import hashlib
import logging
import random
from dataclasses import dataclass
from enum import IntEnum

logger = logging.getLogger(__name__)

GOAL_COUNT = 4
CELL_COUNT = 4
TABLEAU_COUNT = 10
DEAL_DEPTH = 5
DECK_SIZE = 52
# Cells that receive the two cards left over after the tableau deal.
DEALT_CELLS = (1, 2)

# Run length that can no longer be moved as one unit once it buries a lower card.
BLOCKING_RUN = 5
STACK_SEPARATOR = 0

DEFAULT_ABANDON_THRESHOLD = 500000


class BoardError(Exception):
    """Raised when the board is driven into an impossible state."""


class Rank(IntEnum):
    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13

    def symbol(self):
        return {Rank.ACE: "A", Rank.JACK: "J", Rank.QUEEN: "Q", Rank.KING: "K"}.get(self, str(int(self)))


class Suit(IntEnum):
    SPADES = 0
    HEARTS = 1
    DIAMONDS = 2
    CLUBS = 3

    def symbol(self):
        return "SHDC"[self]


@dataclass(frozen=True)
class Card:
    rank: Rank
    suit: Suit

    def value(self) -> int:
        """Numeric code used for hashing boards."""
        return int(self.suit) * 20 + int(self.rank)

    def name(self) -> str:
        return self.rank.symbol() + self.suit.symbol()

    def __str__(self):
        return self.name()

    def __repr__(self):
        return self.name()

    def isAce(self):
        return self.rank == Rank.ACE

    def isKing(self):
        return self.rank == Rank.KING

    def suitableAsBaseFor(self, upper):
        return self.suit == upper.suit and self.rank == upper.rank + 1


def cardValue(card):
    if card is None:
        return 0
    return card.value()


def cardName(card, fallback=" - "):
    if card is None:
        return fallback
    return card.name()


def newDeck():
    return [Card(Rank(r), Suit(s)) for s in range(4) for r in range(1, 14)]


def shuffledDeck(seed=None):
    deck = newDeck()
    random.Random(seed).shuffle(deck)
    return deck


class StackType(IntEnum):
    GOAL = 0
    CELL = 1
    TABLEAU = 2

    def letter(self):
        return "GCT"[self]


@dataclass(frozen=True)
class Position:
    type: StackType
    index: int

    def __str__(self):
        return f"{self.type.letter()}{self.index}"


@dataclass(frozen=True)
class Move:
    source: Position
    target: Position
    extent: int = 1

    def to_notation(self) -> str:
        if self.extent > 1:
            return f"{self.source}->{self.target}x{self.extent}"
        return f"{self.source}->{self.target}"


class Stack:
    def __init__(self, cards=()):
        self.pile = list(cards)

    def __len__(self):
        return len(self.pile)

    def __iter__(self):
        return iter(self.pile)

    def top(self):
        if not self.pile:
            return None
        return self.pile[-1]

    def push(self, card):
        self.pile.append(card)

    def pop(self):
        if not self.pile:
            raise BoardError("pop from an empty stack")
        return self.pile.pop()

    def cardAt(self, depth):
        """Card `depth` positions from the top, 1 being the top card."""
        return self.pile[-depth]


class Board:
    """
    Seahaven Towers layout: 4 goal stacks, 4 single-card cells, 10 tableau stacks.

    is*** / find*** : read-only queries used by the solver.
    moveCard : raw single-card move, no legality check.
    """

    def __init__(self, deck=None):
        self.goals = [Stack() for _ in range(GOAL_COUNT)]
        self.cells = [Stack() for _ in range(CELL_COUNT)]
        self.stacks = [Stack() for _ in range(TABLEAU_COUNT)]
        if deck is not None:
            self.deal(deck)

    @staticmethod
    def fromStacks(goals=(), cells=(), tableau=()):
        board = Board()
        for kind, given, stacks in (("goal", goals, board.goals), ("cell", cells, board.cells),
                                    ("tableau", tableau, board.stacks)):
            if len(given) > len(stacks):
                raise BoardError(f"too many {kind} stacks: {len(given)}")
            for i, cards in enumerate(given):
                stacks[i].pile = list(cards)
        for i, cell in enumerate(board.cells):
            if len(cell) > 1:
                raise BoardError(f"cell {i} holds {len(cell)} cards")
        return board

    def deal(self, deck):
        deck = list(deck)
        if len(deck) != DECK_SIZE:
            raise BoardError(f"cannot deal a deck of {len(deck)} cards")
        for stack in self.stacks:
            for _ in range(DEAL_DEPTH):
                stack.push(deck.pop())
        for i in DEALT_CELLS:
            self.cells[i].push(deck.pop())

    def resolvePosition(self, position):
        stacks = self.__stacksOf(position.type)
        if position.index < 0 or position.index >= len(stacks):
            raise BoardError(f"position out of range: {position}")
        return stacks[position.index]

    def __stacksOf(self, stackType):
        if stackType == StackType.GOAL:
            return self.goals
        if stackType == StackType.CELL:
            return self.cells
        return self.stacks

    def allCards(self):
        cards = []
        for stack in self.goals + self.cells + self.stacks:
            cards.extend(stack.pile)
        return cards

    def cardCount(self):
        return len(self.allCards())

    def isSuccess(self):
        return sum(len(goal) for goal in self.goals) == DECK_SIZE

    def isLegalMove(self, card, target, extentLength=1):
        stack = self.resolvePosition(target)
        top = stack.top()
        if target.type == StackType.GOAL:
            if top is None:
                return card.isAce()
            return top.suit == card.suit and top.rank == card.rank - 1
        if target.type == StackType.CELL:
            return top is None
        if top is None:
            return card.isKing()
        if not top.suitableAsBaseFor(card):
            return False
        return not self.isBlockingMove(card, stack, extentLength)

    def isBlockingMove(self, card, targetStack, extentLength):
        pile = targetStack.pile
        if len(pile) < BLOCKING_RUN:
            return False
        buried = False
        for below in reversed(pile[:-1]):
            if below.suit == card.suit and below.rank < card.rank:
                buried = True
                break
        if not buried:
            return False
        return self.stackOrderedCount(targetStack) + extentLength >= BLOCKING_RUN

    @staticmethod
    def stackOrderedCount(stack):
        pile = stack.pile
        if not pile:
            return 0
        count = 1
        for i in range(len(pile) - 1, 0, -1):
            if not pile[i - 1].suitableAsBaseFor(pile[i]):
                break
            count += 1
        return count

    def findFreeCells(self):
        return [Position(StackType.CELL, i) for i, cell in enumerate(self.cells) if len(cell) == 0]

    def freeCellCount(self):
        return len(self.findFreeCells())

    def findExtent(self, stack):
        run = self.stackOrderedCount(stack)
        if run <= self.freeCellCount() + 1:
            return run
        return 0

    def isFullyOrdered(self, stack):
        capacity = self.freeCellCount() + 1
        return len(stack) > capacity and self.stackOrderedCount(stack) > capacity

    def findLegalMove(self, source):
        """
        Pick at most one move for `source`.
        Goals first, then tableau stacks, then the first free cell.
        """
        sourceStack = self.resolvePosition(source)
        top = sourceStack.top()
        if top is None:
            return None

        for i in range(len(self.goals)):
            target = Position(StackType.GOAL, i)
            if self.isLegalMove(top, target, 1):
                return Move(source, target, 1)

        isTableau = source.type == StackType.TABLEAU
        if isTableau and self.isFullyOrdered(sourceStack):
            return None

        extent = 1 if source.type == StackType.CELL else self.findExtent(sourceStack)
        if isTableau and extent == 0:
            return None

        card = sourceStack.cardAt(extent)
        for i in range(len(self.stacks)):
            target = Position(StackType.TABLEAU, i)
            if target == source:
                continue
            if self.isLegalMove(card, target, extent):
                return Move(source, target, extent)

        if source.type == StackType.CELL:
            return None

        freeCells = self.findFreeCells()
        if freeCells and extent <= 1:
            return Move(source, freeCells[0], 1)
        return None

    def moveCard(self, source, target):
        card = self.resolvePosition(source).pop()
        self.resolvePosition(target).push(card)
        return card

    def checksum(self):
        """
        Canonical digest of the board shape.
        Goals are left out; cell order and tableau stack order are normalised away.
        """
        cellCodes = sorted(cardValue(cell.top()) for cell in self.cells)
        stackCodes = [[card.value() for card in stack] for stack in self.stacks]
        stackCodes.sort(key=lambda codes: codes[0] if codes else 0)

        digest = hashlib.sha256()
        for codes in stackCodes:
            digest.update(bytes(codes))
            digest.update(bytes([STACK_SEPARATOR]))
        digest.update(bytes(cellCodes))
        return digest.digest()

    def snapshot(self):
        def names(stacks):
            return [[card.name() for card in stack] for stack in stacks]

        return {
            "goals": names(self.goals),
            "cells": names(self.cells),
            "tableau": names(self.stacks),
        }

    def describe(self):
        lines = [
            "goals: " + " ".join(cardName(goal.top(), " - ").rjust(3) for goal in self.goals),
            "cells: " + " ".join(cardName(cell.top(), " x ").rjust(3) for cell in self.cells),
            "".join(f"{i:>4}" for i in range(len(self.stacks))),
        ]
        depth = max(len(stack) for stack in self.stacks)
        for row in range(depth):
            line = ""
            for stack in self.stacks:
                card = stack.pile[row] if row < len(stack) else None
                line += cardName(card, "").rjust(4)
            lines.append(line.rstrip())
        return lines


class GameConfig:
    INT_KEYS = ("abandonThreshold", "trials", "seed")

    def __init__(self):
        self.abandonThreshold = DEFAULT_ABANDON_THRESHOLD
        self.trials = 1
        self.seed = None

    @staticmethod
    def loadFromFile(path):
        config = GameConfig()
        try:
            with open(path, encoding="utf-8") as f:
                lines = f.readlines()
        except FileNotFoundError:
            logger.debug(f"Config file {path} not found, using defaults")
            return config
        for line in lines:
            line = line.strip()
            if len(line) == 0 or line.startswith("#"):
                continue
            if "=" not in line:
                raise ValueError(f"config line {line!r} is not of the form key=value")
            (k, v) = line.split("=", 1)
            k = k.strip()
            v = v.strip()
            if k not in GameConfig.INT_KEYS:
                logger.warning(f"Ignoring unknown config key: {k}")
                continue
            if k == "seed" and v in ("", "None"):
                config.__setattr__(k, None)
                continue
            try:
                config.__setattr__(k, int(v))
            except ValueError:
                raise ValueError(f"config key {k} expects an integer, got {v!r}") from None
        return config

    def saveToFile(self, path):
        with open(path, "w+", encoding="utf-8") as f:
            for k, v in self.__dict__.items():
                f.write(f"{k}={'' if v is None else v}\n")

    def initBoard(self, seed=None):
        return Board(shuffledDeck(seed))


class HistoryRecorder:
    """Chronological list of applied single-card moves."""

    def __init__(self):
        self.lst = []

    def __len__(self):
        return len(self.lst)

    def log(self, move):
        self.lst.append(move)

    def pop(self):
        if not self.lst:
            raise BoardError("undo with an empty history")
        return self.lst.pop()

    def moves(self):
        return tuple(self.lst)
