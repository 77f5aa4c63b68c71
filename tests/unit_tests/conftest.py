from typing import Optional, Sequence

import pytest

from klondike.common import FOUNDATION_COUNT, TABLEAU_COUNT, Card, Settings, Suit
from klondike.session import KlondikeGame
from klondike.state import GameState, build_deck

SUIT_CODES = {"H": Suit.HEARTS, "D": Suit.DIAMONDS, "C": Suit.CLUBS, "S": Suit.SPADES}
RANK_CODES = {"A": 1, "J": 11, "Q": 12, "K": 13}


def parse_card(code: str, up: bool = True) -> Card:
    # "9H", "10S", "KD"; a trailing "-" means face-down
    if code.endswith("-"):
        code, up = code[:-1], False
    rank, suit = code[:-1], code[-1]
    return Card(SUIT_CODES[suit], RANK_CODES.get(rank) or int(rank), up)


def pile(*codes: str):
    return tuple(parse_card(c) for c in codes)


def suit_run(suit: str, top: int):
    """Ace up to ``top`` of one suit, as a foundation holds them."""
    names = {1: "A", 11: "J", 12: "Q", 13: "K"}
    return pile(*(f"{names.get(r, r)}{suit}" for r in range(1, top + 1)))


def make_table(
    waste: Sequence[Card] = (),
    foundations: Optional[Sequence[Sequence[Card]]] = None,
    tableau: Optional[Sequence[Sequence[Card]]] = None,
    stock: Optional[Sequence[Card]] = None,
    move_count: int = 0,
) -> GameState:
    """Build a state; cards not placed anywhere go face-down into the stock."""
    foundations = list(foundations or [])
    foundations += [()] * (FOUNDATION_COUNT - len(foundations))
    tableau = list(tableau or [])
    tableau += [()] * (TABLEAU_COUNT - len(tableau))
    if stock is None:
        placed = {c.identity for p in [waste, *foundations, *tableau] for c in p}
        stock = [c for c in build_deck() if c.identity not in placed]
    return GameState(
        stock=tuple(stock),
        waste=tuple(waste),
        foundations=tuple(tuple(p) for p in foundations),
        tableau=tuple(tuple(p) for p in tableau),
        move_count=move_count,
    )


@pytest.fixture
def game_at():
    """A KlondikeGame sitting on a hand-built table."""

    def _make(state: GameState, **settings) -> KlondikeGame:
        game = KlondikeGame(Settings(**settings))
        game._state = state
        game._initial_state = state
        return game

    return _make
