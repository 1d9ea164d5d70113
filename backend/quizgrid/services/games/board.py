"""Board geometry and the claim rule.

Everything here is pure: functions take a :class:`Board` snapshot and never
touch the database, so the coordinator can re-run them inside its critical
section against freshly loaded rows.
"""

import random
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

Coord = Tuple[int, int]

# up, down, left, right; diagonals never count
ORTHOGONAL_STEPS = ((0, -1), (0, 1), (-1, 0), (1, 0))


class Board:
    """Square grid of tile owners addressed by ``(x, y)``."""

    def __init__(self, size: int, owners: Optional[Dict[Coord, Optional[int]]] = None) -> None:
        if size < 1:
            raise ValueError('board size must be positive')
        self.size = size
        self._owners: Dict[Coord, Optional[int]] = {}
        for coord, owner in (owners or {}).items():
            if not self.contains(*coord):
                raise ValueError(f'tile {coord} is outside a {size}x{size} board')
            self._owners[coord] = owner

    @classmethod
    def from_tiles(cls, size: int, tiles: Iterable) -> 'Board':
        return cls(size, {(t.x, t.y): t.owner_id for t in tiles})

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.size and 0 <= y < self.size

    def owner(self, x: int, y: int) -> Optional[int]:
        return self._owners.get((x, y))

    def is_owned(self, x: int, y: int) -> bool:
        return self.owner(x, y) is not None

    def set_owner(self, x: int, y: int, player_id: Optional[int]) -> None:
        if not self.contains(x, y):
            raise ValueError(f'tile {(x, y)} is outside the board')
        self._owners[(x, y)] = player_id

    def neighbors(self, x: int, y: int) -> Iterator[Coord]:
        for dx, dy in ORTHOGONAL_STEPS:
            nx, ny = x + dx, y + dy
            if self.contains(nx, ny):
                yield nx, ny

    def tiles_of(self, player_id: int) -> List[Coord]:
        return sorted(c for c, owner in self._owners.items() if owner == player_id)

    def claimable_tiles(self, player_id: int) -> List[Coord]:
        found = set()
        for x, y in self.tiles_of(player_id):
            for nx, ny in self.neighbors(x, y):
                if not self.is_owned(nx, ny):
                    found.add((nx, ny))
        return sorted(found)

    def perimeter(self) -> List[Coord]:
        """Edge cells clockwise from the top-left corner."""
        n = self.size
        if n == 1:
            return [(0, 0)]
        top = [(x, 0) for x in range(n)]
        right = [(n - 1, y) for y in range(1, n)]
        bottom = [(x, n - 1) for x in range(n - 2, -1, -1)]
        left = [(0, y) for y in range(n - 2, 0, -1)]
        return top + right + bottom + left

    @property
    def center(self) -> Coord:
        return self.size // 2, self.size // 2


def is_claimable(board: Board, tile: Coord, player_id: int) -> bool:
    """True when ``tile`` is vacant and touches one of ``player_id``'s tiles."""
    x, y = tile
    if not board.contains(x, y) or board.is_owned(x, y):
        return False
    return any(board.owner(nx, ny) == player_id for nx, ny in board.neighbors(x, y))


def evenly_spaced_edge_cell(board: Board, index: int, player_count: int) -> Coord:
    """Perimeter cell for ``index`` when ``player_count`` players share the edge."""
    cells = board.perimeter()
    return cells[(len(cells) * index) // player_count]


def random_edge_cell(board: Board, rng: random.Random) -> Coord:
    n = board.size
    side = rng.randrange(4)
    if side == 0:
        return rng.randrange(n), 0
    if side == 1:
        return n - 1, rng.randrange(n)
    if side == 2:
        return rng.randrange(n), n - 1
    return 0, rng.randrange(n)


def choose_starting_tile(board: Board, player_index: int, attempts: int = 50,
                         rng: Optional[random.Random] = None) -> Optional[Coord]:
    """Pick a vacant starting cell for the ``player_index``-th player to join.

    Tries the evenly spaced edge cell first, then up to ``attempts`` random
    edge cells, then the centre, then the first vacant edge cell. Returns
    None only when every one of those is taken.
    """
    rng = rng or random.Random()
    proposal = evenly_spaced_edge_cell(board, player_index, player_index + 1)
    if not board.is_owned(*proposal):
        return proposal

    for _ in range(attempts):
        cell = random_edge_cell(board, rng)
        if not board.is_owned(*cell):
            return cell

    if not board.is_owned(*board.center):
        return board.center

    for cell in board.perimeter():
        if not board.is_owned(*cell):
            return cell
    return None
