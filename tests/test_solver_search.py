import unittest

from seahaven.Core import Board, BoardError, Card, GameConfig, Move, Position, Rank, StackType, Suit, shuffledDeck
from seahaven.Interface import Interface
from solver.search import SOURCE_ORDER, Game


def card(suit, rank):
    return Card(Rank(rank), Suit(suit))


S, H, D, C = 0, 1, 2, 3


def goal(i):
    return Position(StackType.GOAL, i)


def cell(i):
    return Position(StackType.CELL, i)


def tab(i):
    return Position(StackType.TABLEAU, i)


def config_with(threshold):
    config = GameConfig()
    config.abandonThreshold = threshold
    return config


def three_kings_left():
    """Everything is on the goals except three kings."""
    goals = [[card(suit, rank) for rank in range(1, 13)] for suit in (S, H, D)]
    goals.append([card(C, rank) for rank in range(1, 14)])
    return Board.fromStacks(goals=goals, cells=[[card(S, 13)]], tableau=[[card(H, 13)], [card(D, 13)]])


class RecordingInterface(Interface):
    def __init__(self):
        super().__init__()
        self.started = False
        self.won = False
        self.abandoned = False
        self.events = []
        self.undo_events = []

    def onStart(self, board):
        self.started = True

    def onEvent(self, move):
        self.events.append(move)
        super().onEvent(move)

    def onUndoEvent(self, move):
        self.undo_events.append(move)
        super().onUndoEvent(move)

    def onWin(self):
        self.won = True

    def onAbandon(self):
        self.abandoned = True


class SourceOrderTestCase(unittest.TestCase):
    def test_cells_come_before_tableau(self):
        self.assertEqual(14, len(SOURCE_ORDER))
        self.assertEqual([cell(i) for i in range(4)], list(SOURCE_ORDER[:4]))
        self.assertEqual([tab(i) for i in range(10)], list(SOURCE_ORDER[4:]))


class MoveUndoTestCase(unittest.TestCase):
    def test_single_move_round_trip(self):
        board = Board(shuffledDeck(9))
        game = Game(board)
        before = board.snapshot()
        checksum = board.checksum()

        move = Move(tab(0), cell(0), 1)
        game.make_move(move)
        self.assertEqual(1, len(game.history))
        self.assertNotEqual(checksum, board.checksum())

        game.undo_move(move)
        self.assertEqual(0, len(game.history))
        self.assertEqual(before, board.snapshot())
        self.assertEqual(checksum, board.checksum())

    def test_extent_move_goes_through_free_cells(self):
        board = Board.fromStacks(tableau=[[card(H, 2), card(S, 9), card(S, 8), card(S, 7)], [card(S, 10)]])
        game = Game(board)
        before = board.snapshot()
        checksum = board.checksum()

        move = board.findLegalMove(tab(0))
        self.assertEqual(Move(tab(0), tab(1), 3), move)
        game.make_move(move)

        self.assertEqual(5, len(game.history))
        self.assertEqual(1, game.total_moves)
        self.assertEqual([card(H, 2)], board.stacks[0].pile)
        self.assertEqual([card(S, 10), card(S, 9), card(S, 8), card(S, 7)], board.stacks[1].pile)
        self.assertEqual(4, board.freeCellCount())
        self.assertEqual(
            [
                Move(tab(0), cell(0)),
                Move(tab(0), cell(1)),
                Move(tab(0), tab(1)),
                Move(cell(1), tab(1)),
                Move(cell(0), tab(1)),
            ],
            list(game.moves),
        )

        game.undo_move(move)
        self.assertEqual(0, len(game.history))
        self.assertEqual(before, board.snapshot())
        self.assertEqual(checksum, board.checksum())

    def test_extent_move_without_enough_free_cells_raises(self):
        cells = [[card(D, 1)], [card(D, 2)], [card(D, 3)]]
        run = [card(H, 2), card(S, 9), card(S, 8), card(S, 7)]
        board = Board.fromStacks(cells=cells, tableau=[run, [card(S, 10)], [card(C, 5)]])
        game = Game(board)
        game.make_move(Move(tab(2), cell(3)))
        before = board.snapshot()
        checksum = board.checksum()

        with self.assertRaises(BoardError):
            game.make_move(Move(tab(0), tab(1), 3))

        self.assertEqual(before, board.snapshot())
        self.assertEqual(checksum, board.checksum())
        self.assertEqual([Move(tab(2), cell(3))], list(game.moves))
        self.assertEqual(1, game.total_moves)


class RegisterBoardTestCase(unittest.TestCase):
    def test_duplicate_board_is_not_recursable(self):
        game = Game(Board(shuffledDeck(4)))
        self.assertTrue(game.register_board())
        self.assertFalse(game.register_board())
        self.assertEqual(1, game.repeats_avoided)
        self.assertEqual(1, game.unique_boards)
        self.assertFalse(game.abandoned)

    def test_abandonment_is_sticky(self):
        interface = RecordingInterface()
        board = Board(shuffledDeck(4))
        game = Game(board, config_with(1), interface)

        self.assertTrue(game.register_board())
        board.moveCard(tab(0), cell(0))
        self.assertFalse(game.register_board())
        self.assertTrue(game.abandoned)
        self.assertTrue(interface.abandoned)

        board.moveCard(tab(1), cell(3))
        self.assertFalse(game.register_board())
        self.assertTrue(game.abandoned)
        board.moveCard(cell(3), tab(1))
        self.assertFalse(game.register_board())
        self.assertTrue(game.abandoned)


class SolveTestCase(unittest.TestCase):
    def test_solves_three_move_layout(self):
        board = three_kings_left()
        initial = board.checksum()
        initial_layout = board.snapshot()
        interface = RecordingInterface()
        game = Game(board, interface=interface)

        result = game.solve()

        self.assertEqual("solved", result.status)
        self.assertTrue(result.solved)
        self.assertEqual(
            [Move(cell(0), goal(0)), Move(tab(0), goal(1)), Move(tab(1), goal(2))],
            list(result.moves),
        )
        self.assertEqual(["C0->G0", "T0->G1", "T1->G2"], result.to_dict()["moves"])
        self.assertEqual(3, result.total_moves)
        self.assertTrue(board.isSuccess())
        self.assertTrue(interface.started)
        self.assertTrue(interface.won)
        self.assertEqual(3, len(interface.events))

        game.rewind()
        self.assertEqual(initial, board.checksum())
        self.assertEqual(initial_layout, board.snapshot())

        game.replay(result.moves)
        self.assertTrue(board.isSuccess())

    def test_exhausted_search_is_unsolved(self):
        board = Board.fromStacks(tableau=[[card(S, 2)]])
        game = Game(board)

        result = game.solve()

        self.assertEqual("unsolved", result.status)
        self.assertFalse(game.abandoned)
        self.assertEqual(1, result.total_moves)
        self.assertEqual(2, result.unique_boards)
        self.assertEqual((), result.moves)
        self.assertEqual([card(S, 2)], board.stacks[0].pile)

    def test_symmetric_boards_are_skipped(self):
        board = Board.fromStacks(tableau=[[card(H, 5), card(S, 13)]])
        game = Game(board)

        result = game.solve()

        self.assertEqual("unsolved", result.status)
        self.assertGreater(result.repeats_avoided, 0)
        self.assertEqual([card(H, 5), card(S, 13)], board.stacks[0].pile)

    def test_tiny_threshold_abandons(self):
        interface = RecordingInterface()
        game = Game.from_seed(2024, config_with(1))
        game.register_interface(interface)

        result = game.solve()

        self.assertEqual("abandoned", result.status)
        self.assertTrue(game.abandoned)
        self.assertTrue(interface.abandoned)
        self.assertFalse(interface.won)
        self.assertEqual(0, result.max_depth)

    def test_search_conserves_deck_and_undoes_failures(self):
        game = Game.from_seed(31, config_with(300))
        before = game.board.snapshot()

        result = game.solve()

        cards = game.board.allCards()
        self.assertEqual(52, len(cards))
        self.assertEqual(52, len(set(cards)))
        self.assertIn(result.status, {"solved", "unsolved", "abandoned"})
        self.assertGreater(result.unique_boards, 1)
        game.rewind()
        self.assertEqual(before, game.board.snapshot())

    def test_already_solved_board(self):
        goals = [[card(suit, rank) for rank in range(1, 14)] for suit in (S, H, D, C)]
        result = Game(Board.fromStacks(goals=goals)).solve()
        self.assertEqual("solved", result.status)
        self.assertEqual((), result.moves)


if __name__ == "__main__":
    unittest.main()
