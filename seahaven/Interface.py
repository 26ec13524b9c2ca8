from seahaven.Core import Board, Move


class Interface:
    """Receives solver notifications; every hook is a no-op by default."""

    def __init__(self):
        self.game = None

    def onStart(self, board: Board):
        """Called once before the search starts, with the dealt board."""

    def onEvent(self, move: Move):
        """
        Called after each single card is moved.
        An extent move arrives as its parts: cards out to free cells, the
        bottom card onto the target, then the parked cards back on top.
        :param move: single-card step, extent is always 1
        """
        self.notifyRedraw()

    def onUndoEvent(self, move: Move):
        """
        Called after a single-card step is taken back, newest first.
        :param move: the step as originally applied; its card went from target back to source
        """
        self.notifyRedraw()

    def notifyRedraw(self):
        """Hook for views that redraw after every board change."""

    def onWin(self):
        """Called when all 52 cards reached the goals."""

    def onAbandon(self):
        """Called once, when the visited-board threshold is first exceeded."""
