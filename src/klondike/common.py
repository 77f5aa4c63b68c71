# common.py - shared vocabulary for the Klondike engine
from __future__ import annotations

import logging
import os
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Deque, Optional

logger = logging.getLogger(__name__)


# ---------- Configuration ----------
# Fixed by the Klondike variant, not settings.
TABLEAU_COUNT = 7
FOUNDATION_COUNT = 4
RANKS_PER_SUIT = 13
DECK_SIZE = 52

_DEFAULT_SETTINGS = {
    "undo_limit": 11,     # previous ten states plus the newest
    "strict": True,       # run the conservation check after every transition
    "seed": None,         # fixed shuffle seed for reproducible deals
}


def _env_int(key: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r", key, raw)
        return default


def _env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key, "").strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    return default


@dataclass(frozen=True)
class Settings:
    undo_limit: int = _DEFAULT_SETTINGS["undo_limit"]
    strict: bool = _DEFAULT_SETTINGS["strict"]
    seed: Optional[int] = _DEFAULT_SETTINGS["seed"]


def load_settings() -> Settings:
    """Read KLONDIKE_* environment variables, falling back to defaults."""
    limit = _env_int("KLONDIKE_UNDO_LIMIT", _DEFAULT_SETTINGS["undo_limit"])
    if limit < 1:
        logger.warning("KLONDIKE_UNDO_LIMIT must be positive, using %d", _DEFAULT_SETTINGS["undo_limit"])
        limit = _DEFAULT_SETTINGS["undo_limit"]
    return Settings(
        undo_limit=limit,
        strict=_env_bool("KLONDIKE_STRICT", _DEFAULT_SETTINGS["strict"]),
        seed=_env_int("KLONDIKE_SEED", _DEFAULT_SETTINGS["seed"]),
    )


def configure_logging(level=logging.INFO):
    # The engine installs no handlers of its own; hosts may call this.
    root = logging.getLogger("klondike")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)
    root.setLevel(level)


# ---------- Cards ----------
class Color(Enum):
    RED = "RED"
    BLACK = "BLACK"


class Suit(Enum):
    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"
    SPADES = "♠"

    @property
    def color(self) -> Color:
        return Color.RED if self in (Suit.HEARTS, Suit.DIAMONDS) else Color.BLACK


SUITS = [Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS, Suit.SPADES]
RANKS = list(range(1, RANKS_PER_SUIT + 1))
RANK_TO_TEXT = {1: "A", 11: "J", 12: "Q", 13: "K"}
for _r in range(2, 11):
    RANK_TO_TEXT[_r] = str(_r)


def is_red(suit: Suit) -> bool:
    return suit.color is Color.RED


@dataclass(frozen=True)
class Card:
    suit: Suit
    rank: int   # 1..13
    face_up: bool = False

    def __post_init__(self):
        if self.rank not in RANK_TO_TEXT:
            raise ValueError(f"rank out of range: {self.rank}")

    @property
    def id(self) -> str:
        return f"{self.suit.value}-{self.rank}"

    @property
    def identity(self):
        return (self.suit, self.rank)

    @property
    def color(self) -> Color:
        return self.suit.color

    @property
    def symbol(self) -> str:
        return self.suit.value

    @property
    def rank_text(self) -> str:
        return RANK_TO_TEXT[self.rank]

    @property
    def label(self) -> str:
        return f"{self.rank_text}{self.symbol}"

    def flipped(self, face_up: bool) -> "Card":
        if self.face_up == face_up:
            return self
        return replace(self, face_up=face_up)

    def __repr__(self):
        return f"{self.label}{'↑' if self.face_up else '↓'}"


# ---------- Positions ----------
class PileKind(Enum):
    STOCK = "stock"
    WASTE = "waste"
    FOUNDATION = "foundation"
    TABLEAU = "tableau"


PILE_NAMES = {
    PileKind.STOCK: "Stock",
    PileKind.WASTE: "Waste",
    PileKind.FOUNDATION: "Foundation",
    PileKind.TABLEAU: "Tableau",
}

_PILE_COUNTS = {
    PileKind.STOCK: 1,
    PileKind.WASTE: 1,
    PileKind.FOUNDATION: FOUNDATION_COUNT,
    PileKind.TABLEAU: TABLEAU_COUNT,
}


@dataclass(frozen=True)
class Position:
    """A pile on the table. Stock and waste always use index 0."""

    kind: PileKind
    index: int = 0

    def __post_init__(self):
        if not isinstance(self.kind, PileKind):
            raise ValueError(f"unknown pile kind: {self.kind!r}")
        if not isinstance(self.index, int) or isinstance(self.index, bool):
            raise ValueError(f"pile index must be an int: {self.index!r}")
        if not 0 <= self.index < _PILE_COUNTS[self.kind]:
            raise ValueError(f"{self.kind.value} index out of range: {self.index}")

    @classmethod
    def stock(cls) -> "Position":
        return cls(PileKind.STOCK)

    @classmethod
    def waste(cls) -> "Position":
        return cls(PileKind.WASTE)

    @classmethod
    def foundation(cls, index: int) -> "Position":
        return cls(PileKind.FOUNDATION, index)

    @classmethod
    def tableau(cls, index: int) -> "Position":
        return cls(PileKind.TABLEAU, index)

    @property
    def name(self) -> str:
        if self.kind in (PileKind.FOUNDATION, PileKind.TABLEAU):
            return f"{PILE_NAMES[self.kind]} {self.index + 1}"
        return PILE_NAMES[self.kind]


# ---------- Undo ----------
class UndoManager:
    """
    Sliding window of game-state snapshots. Push the current state
    immediately before each mutating action; pop it to undo. Once the
    window is full the oldest snapshot falls off.
    """

    def __init__(self, limit: int = _DEFAULT_SETTINGS["undo_limit"]):
        if limit < 1:
            raise ValueError("undo limit must be positive")
        self._stack: Deque = deque(maxlen=limit)

    @property
    def limit(self) -> int:
        return self._stack.maxlen

    def push(self, snapshot):
        # GameState is immutable, so the value itself is a deep snapshot.
        self._stack.append(snapshot)

    def pop(self):
        if not self._stack:
            return None
        return self._stack.pop()

    def can_undo(self) -> bool:
        return len(self._stack) > 0

    def clear(self):
        self._stack.clear()

    def __len__(self):
        return len(self._stack)
