# mechanics.py - move rules, move execution and the stock
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Sequence, Tuple

from klondike.common import FOUNDATION_COUNT, Card, PileKind, Position
from klondike.state import GameState, Pile

logger = logging.getLogger(__name__)


# ---------- Rules ----------
def can_move_to_foundation(card: Card, pile: Pile) -> bool:
    if not pile:
        return card.rank == 1  # Ace
    top = pile[-1]
    return card.suit == top.suit and card.rank == top.rank + 1


def can_move_to_tableau(card: Card, pile: Pile) -> bool:
    if not pile:
        return card.rank == 13  # King
    top = pile[-1]
    return card.color != top.color and card.rank == top.rank - 1


def can_accept(state: GameState, target: Position, run: Sequence[Card]) -> bool:
    """
    Whether ``target`` takes ``run``. Only the lead card is checked; a
    tableau run is valid by construction. Foundations take single cards,
    stock and waste take nothing.
    """
    if not run:
        return False
    lead = run[0]
    if target.kind is PileKind.FOUNDATION:
        return len(run) == 1 and can_move_to_foundation(lead, state.foundations[target.index])
    if target.kind is PileKind.TABLEAU:
        return can_move_to_tableau(lead, state.tableau[target.index])
    if target.kind in (PileKind.STOCK, PileKind.WASTE):
        return False
    raise ValueError(f"unknown pile kind: {target.kind!r}")


def gather_run(state: GameState, position: Position, card_index: Optional[int] = None) -> Tuple[Card, ...]:
    """Cards a click on ``position`` would pick up."""
    if position.kind is PileKind.STOCK:
        return ()
    if position.kind in (PileKind.WASTE, PileKind.FOUNDATION):
        return state.pile(position)[-1:]
    if position.kind is PileKind.TABLEAU:
        pile = state.tableau[position.index]
        if not pile:
            return ()
        split = len(pile) - 1 if card_index is None else card_index
        if not 0 <= split < len(pile):
            return ()
        return pile[split:]
    raise ValueError(f"unknown pile kind: {position.kind!r}")


# ---------- Moves ----------
def execute_move(state: GameState, source: Position, target: Position, cards: Sequence[Card]) -> GameState:
    """
    Move ``cards`` from the top of ``source`` onto ``target`` and return the
    new state. Legality is the caller's job; this only refuses input that
    cannot be carried out at all, and does so before building anything.
    """
    cards = tuple(cards)
    if not cards:
        raise ValueError("nothing to move")
    if source.kind is PileKind.STOCK or target.kind is PileKind.STOCK:
        raise ValueError("the stock only changes by drawing")
    if target.kind is PileKind.WASTE:
        raise ValueError("cards cannot be moved onto the waste")
    if source == target:
        raise ValueError("source and target are the same pile")
    if source.kind in (PileKind.WASTE, PileKind.FOUNDATION) and len(cards) != 1:
        raise ValueError(f"{source.kind.value} gives up one card at a time")
    if target.kind is PileKind.FOUNDATION and len(cards) != 1:
        raise ValueError("foundations take one card at a time")

    pile = state.pile(source)
    n = len(cards)
    if n > len(pile) or pile[-n:] != cards:
        raise ValueError(f"{cards} is not on top of {source.name}")

    remaining = pile[:-n]
    if source.kind is PileKind.TABLEAU and remaining and not remaining[-1].face_up:
        remaining = remaining[:-1] + (remaining[-1].flipped(True),)

    new_state = state.with_pile(source, remaining)
    new_state = new_state.with_pile(target, new_state.pile(target) + cards)
    logger.debug("Moved %s from %s to %s", [c.label for c in cards], source.name, target.name)
    return replace(new_state, move_count=state.move_count + 1)


def draw_from_stock(state: GameState) -> Optional[GameState]:
    """
    Turn the stock's top card onto the waste, or recycle the waste into the
    stock when the stock is empty. Returns None when both are empty.
    """
    if state.stock:
        card = state.stock[-1].flipped(True)
        logger.debug("Drew %s", card.label)
        return replace(
            state,
            stock=state.stock[:-1],
            waste=state.waste + (card,),
            move_count=state.move_count + 1,
        )
    if not state.waste:
        return None
    logger.debug("Recycled %d waste cards into the stock", len(state.waste))
    return replace(
        state,
        stock=tuple(c.flipped(False) for c in reversed(state.waste)),
        waste=(),
        move_count=state.move_count + 1,
    )


# ---------- Auto finish ----------
def can_auto_finish(state: GameState) -> bool:
    """Eligible when stock and waste are empty and all tableau cards are face-up."""
    if state.stock or state.waste:
        return False
    return all(c.face_up for pile in state.tableau for c in pile)


def find_next_auto_move(state: GameState) -> Optional[Tuple[int, int]]:
    """First (tableau index, foundation index) whose top card can go home."""
    for ti, pile in enumerate(state.tableau):
        if not pile:
            continue
        fi = first_accepting_foundation(state, pile[-1])
        if fi is not None:
            return ti, fi
    return None


def first_accepting_foundation(state: GameState, card: Card) -> Optional[int]:
    for fi in range(FOUNDATION_COUNT):
        if can_move_to_foundation(card, state.foundations[fi]):
            return fi
    return None
