# session.py - one Klondike game: click handling, undo, win tracking
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Optional

from klondike.common import PileKind, Position, Settings, UndoManager, load_settings
from klondike import mechanics as M
from klondike.state import GameState, card_at, check_conservation, initialize_game, is_won

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    position: Position
    card_index: Optional[int] = None


class KlondikeGame:
    """
    The live game a presentation layer talks to.

    Clicks arrive as positions. With nothing selected a click on a playable
    card arms it as the move source; the next click either deselects (same
    spot), or tries to move the armed run there. Failed attempts just drop
    the selection. Every state change is snapshotted for undo first.
    """

    def __init__(self, settings: Optional[Settings] = None, rng: Optional[random.Random] = None):
        self.settings = settings or load_settings()
        if rng is None and self.settings.seed is not None:
            rng = random.Random(self.settings.seed)
        self._rng = rng
        self.history = UndoManager(self.settings.undo_limit)
        self._state = GameState()
        self._initial_state = self._state
        self._selection: Optional[Selection] = None
        self._won = False
        self.new_game()

    # ---------- Queries ----------
    @property
    def state(self) -> GameState:
        return self._state

    @property
    def selection(self) -> Optional[Selection]:
        return self._selection

    @property
    def armed(self) -> bool:
        return self._selection is not None

    @property
    def history_depth(self) -> int:
        return len(self.history)

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo()

    @property
    def won(self) -> bool:
        return self._won

    @property
    def move_count(self) -> int:
        return self._state.move_count

    # ---------- Game lifecycle ----------
    def new_game(self, seed: Optional[int] = None):
        rng = random.Random(seed) if seed is not None else self._rng
        self._state = initialize_game(rng)
        self._initial_state = self._state
        self._reset_session()
        logger.info("New game dealt")

    def restart(self):
        """Back to the opening deal of the current game."""
        self._state = self._initial_state
        self._reset_session()
        logger.info("Game restarted")

    def _reset_session(self):
        self.history.clear()
        self._selection = None
        self._won = False

    def _commit(self, new_state: GameState):
        if self.settings.strict:
            check_conservation(new_state)
        self.history.push(self._state)
        foundations_changed = new_state.foundations != self._state.foundations
        self._state = new_state
        if foundations_changed and not self._won and is_won(new_state):
            self._won = True
            logger.info("Game won in %d moves", new_state.move_count)

    # ---------- Commands ----------
    def draw_stock(self) -> bool:
        self._selection = None
        new_state = M.draw_from_stock(self._state)
        if new_state is None:
            return False
        self._commit(new_state)
        return True

    def select_or_move(self, position: Position, card_index: Optional[int] = None) -> bool:
        """Feed one click. Returns True only when a move was made."""
        if position.kind is not PileKind.TABLEAU:
            card_index = None

        if self._selection is None:
            if self._is_valid_source(position, card_index):
                self._selection = Selection(position, card_index)
            return False

        source = self._selection
        if source.position == position and source.card_index == card_index:
            self._selection = None
            return False

        self._selection = None
        if source.position == position:
            logger.debug("Rejected move of %s onto itself", position.name)
            return False
        run = M.gather_run(self._state, source.position, source.card_index)
        if not M.can_accept(self._state, position, run):
            logger.debug("Rejected %s from %s to %s",
                         [c.label for c in run], source.position.name, position.name)
            return False
        self._commit(M.execute_move(self._state, source.position, position, run))
        return True

    def auto_move_to_foundation(self, position: Position) -> bool:
        """Send the top card of the waste or a tableau pile to the first foundation that takes it."""
        self._selection = None
        if position.kind not in (PileKind.WASTE, PileKind.TABLEAU):
            return False
        card = card_at(self._state, position)
        if card is None or not card.face_up:
            return False
        fi = M.first_accepting_foundation(self._state, card)
        if fi is None:
            return False
        self._commit(M.execute_move(self._state, position, Position.foundation(fi), (card,)))
        return True

    def auto_finish(self) -> int:
        """Play every tableau card home in one undoable step. Returns how many moved."""
        self._selection = None
        if not M.can_auto_finish(self._state):
            return 0
        state = self._state
        moved = 0
        nxt = M.find_next_auto_move(state)
        while nxt is not None:
            ti, fi = nxt
            source = Position.tableau(ti)
            state = M.execute_move(state, source, Position.foundation(fi), state.tableau[ti][-1:])
            moved += 1
            nxt = M.find_next_auto_move(state)
        if moved:
            self._commit(state)
        return moved

    def undo(self) -> bool:
        previous = self.history.pop()
        if previous is None:
            return False
        self._state = previous
        self._selection = None
        self._won = is_won(previous)
        return True

    def _is_valid_source(self, position: Position, card_index: Optional[int]) -> bool:
        if position.kind is PileKind.STOCK:
            return False
        if position.kind in (PileKind.WASTE, PileKind.FOUNDATION):
            return bool(self._state.pile(position))
        if position.kind is PileKind.TABLEAU:
            pile = self._state.tableau[position.index]
            if not pile:
                return False
            idx = len(pile) - 1 if card_index is None else card_index
            return 0 <= idx < len(pile) and pile[idx].face_up
        raise ValueError(f"unknown pile kind: {position.kind!r}")
