# state.py - the table, the deck and the deal
from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from klondike.common import (
    DECK_SIZE,
    FOUNDATION_COUNT,
    RANKS,
    RANKS_PER_SUIT,
    SUITS,
    TABLEAU_COUNT,
    Card,
    PileKind,
    Position,
)

logger = logging.getLogger(__name__)

Pile = Tuple[Card, ...]


class InvariantError(AssertionError):
    """The table no longer holds exactly one of each of the 52 cards."""


@dataclass(frozen=True)
class GameState:
    """Everything on the table plus the move counter. Never mutated; every
    accepted action builds a new one."""

    stock: Pile = ()
    waste: Pile = ()
    foundations: Tuple[Pile, ...] = ((),) * FOUNDATION_COUNT
    tableau: Tuple[Pile, ...] = ((),) * TABLEAU_COUNT
    move_count: int = 0

    def pile(self, position: Position) -> Pile:
        if position.kind is PileKind.STOCK:
            return self.stock
        if position.kind is PileKind.WASTE:
            return self.waste
        if position.kind is PileKind.FOUNDATION:
            return self.foundations[position.index]
        if position.kind is PileKind.TABLEAU:
            return self.tableau[position.index]
        raise ValueError(f"unknown pile kind: {position.kind!r}")

    def with_pile(self, position: Position, cards: Sequence[Card]) -> "GameState":
        cards = tuple(cards)
        if position.kind is PileKind.STOCK:
            return replace(self, stock=cards)
        if position.kind is PileKind.WASTE:
            return replace(self, waste=cards)
        if position.kind is PileKind.FOUNDATION:
            piles = list(self.foundations)
            piles[position.index] = cards
            return replace(self, foundations=tuple(piles))
        if position.kind is PileKind.TABLEAU:
            piles = list(self.tableau)
            piles[position.index] = cards
            return replace(self, tableau=tuple(piles))
        raise ValueError(f"unknown pile kind: {position.kind!r}")

    def all_cards(self):
        yield from self.stock
        yield from self.waste
        for pile in self.foundations:
            yield from pile
        for pile in self.tableau:
            yield from pile


# ---------- Deck ----------
def build_deck() -> Tuple[Card, ...]:
    """All 52 cards face-down, suits in SUITS order, Ace to King within each."""
    return tuple(Card(suit, rank, False) for suit in SUITS for rank in RANKS)


def shuffle_deck(deck: Sequence[Card], rng: Optional[random.Random] = None) -> Tuple[Card, ...]:
    """Return a uniformly shuffled copy of ``deck`` (Fisher-Yates)."""
    randint = rng.randint if rng is not None else random.randint
    cards = list(deck)
    for i in range(len(cards) - 1, 0, -1):
        j = randint(0, i)
        cards[i], cards[j] = cards[j], cards[i]
    return tuple(cards)


def initialize_game(rng: Optional[random.Random] = None, deck: Optional[Sequence[Card]] = None) -> GameState:
    """
    Deal a fresh game. Cards come off the end of the shuffled deck: round i
    puts one card on each column from i to 6, and the card that closes a
    column (i == j) is turned face-up. What is left becomes the stock.

    Passing ``deck`` skips the shuffle and deals that exact order.
    """
    cards = list(shuffle_deck(build_deck(), rng) if deck is None else deck)
    tableau = [[] for _ in range(TABLEAU_COUNT)]
    for i in range(TABLEAU_COUNT):
        for j in range(i, TABLEAU_COUNT):
            c = cards.pop()
            tableau[j].append(c.flipped(i == j))

    state = GameState(
        stock=tuple(c.flipped(False) for c in cards),
        waste=(),
        foundations=((),) * FOUNDATION_COUNT,
        tableau=tuple(tuple(col) for col in tableau),
        move_count=0,
    )
    check_conservation(state)
    logger.debug("Dealt tableau tops %s, %d cards in stock",
                 [col[-1].label for col in state.tableau], len(state.stock))
    return state


# ---------- Queries ----------
def card_at(state: GameState, position: Position) -> Optional[Card]:
    """Top card of a pile, or None for the stock and for empty piles."""
    if position.kind is PileKind.STOCK:
        return None
    pile = state.pile(position)
    return pile[-1] if pile else None


def check_conservation(state: GameState):
    counts = Counter(c.identity for c in state.all_cards())
    total = sum(counts.values())
    dupes = sorted(f"{s.value}-{r}" for (s, r), n in counts.items() if n > 1)
    if total != DECK_SIZE or len(counts) != DECK_SIZE or dupes:
        raise InvariantError(
            f"expected {DECK_SIZE} distinct cards, found {total} ({len(counts)} distinct, duplicates: {dupes})"
        )


def is_won(state: GameState) -> bool:
    return all(len(f) == RANKS_PER_SUIT for f in state.foundations)
