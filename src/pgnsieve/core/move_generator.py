"""Legal and pseudo-legal move generation + attack detection.

Replaying recorded games needs far fewer legal moves than playing them: a
SAN token names its destination square, so :meth:`MoveGenerator.legal_moves_to`
only tests the pseudo-legal candidates that land there.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pgnsieve.core.enums import CastlingRights, Color, MoveFlag, PieceType
from pgnsieve.core.move import Move
from pgnsieve.core.piece import Piece
from pgnsieve.core.types import Square, make_square

if TYPE_CHECKING:
    from pgnsieve.core.position import Position


KNIGHT_OFFSETS: tuple[tuple[int, int], ...] = (
    (-2, -1),
    (-2, 1),
    (-1, -2),
    (-1, 2),
    (1, -2),
    (1, 2),
    (2, -1),
    (2, 1),
)

KING_OFFSETS: tuple[tuple[int, int], ...] = (
    (-1, -1),
    (-1, 0),
    (-1, 1),
    (0, -1),
    (0, 1),
    (1, -1),
    (1, 0),
    (1, 1),
)

BISHOP_DIRS: tuple[tuple[int, int], ...] = ((-1, -1), (-1, 1), (1, -1), (1, 1))
ROOK_DIRS: tuple[tuple[int, int], ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))
QUEEN_DIRS: tuple[tuple[int, int], ...] = BISHOP_DIRS + ROOK_DIRS

_PROMOTION_TYPES: tuple[PieceType, ...] = (
    PieceType.QUEEN,
    PieceType.ROOK,
    PieceType.BISHOP,
    PieceType.KNIGHT,
)

# Per color: (push step, start rank, promotion-from rank).
_PAWN_GEOMETRY: dict[Color, tuple[int, int, int]] = {
    Color.WHITE: (8, 1, 6),
    Color.BLACK: (-8, 6, 1),
}

# Per color: (rank offset, king-side right, queen-side right).
_CASTLING_GEOMETRY: dict[Color, tuple[int, CastlingRights, CastlingRights]] = {
    Color.WHITE: (0, CastlingRights.WHITE_KINGSIDE, CastlingRights.WHITE_QUEENSIDE),
    Color.BLACK: (56, CastlingRights.BLACK_KINGSIDE, CastlingRights.BLACK_QUEENSIDE),
}


# -- Precomputed lookup tables ---------------------------------------------


def _build_targets(
    offsets: tuple[tuple[int, int], ...],
) -> tuple[tuple[Square, ...], ...]:
    targets: list[tuple[Square, ...]] = []
    for sq in range(64):
        file_idx = sq & 7
        rank_idx = sq >> 3
        moves: list[Square] = []
        for df, dr in offsets:
            af = file_idx + df
            ar = rank_idx + dr
            if 0 <= af < 8 and 0 <= ar < 8:
                moves.append(make_square(af, ar))
        targets.append(tuple(moves))
    return tuple(targets)


def _build_attack_masks(targets: tuple[tuple[Square, ...], ...]) -> tuple[int, ...]:
    masks: list[int] = [0] * 64
    for sq in range(64):
        for to_sq in targets[sq]:
            masks[sq] |= 1 << to_sq
    return tuple(masks)


def _build_pawn_captures(color: Color) -> tuple[tuple[Square, ...], ...]:
    """Squares a *color* pawn standing on each square attacks."""
    rank_step = 1 if color == Color.WHITE else -1
    return _build_targets(((-1, rank_step), (1, rank_step)))


def _build_rays(
    directions: tuple[tuple[int, int], ...],
) -> tuple[tuple[tuple[Square, ...], ...], ...]:
    rays_per_square: list[tuple[tuple[Square, ...], ...]] = []
    for sq in range(64):
        file_idx = sq & 7
        rank_idx = sq >> 3
        square_rays: list[tuple[Square, ...]] = []
        for df, dr in directions:
            af = file_idx + df
            ar = rank_idx + dr
            ray: list[Square] = []
            while 0 <= af < 8 and 0 <= ar < 8:
                ray.append(make_square(af, ar))
                af += df
                ar += dr
            square_rays.append(tuple(ray))
        rays_per_square.append(tuple(square_rays))
    return tuple(rays_per_square)


_KNIGHT_TARGETS = _build_targets(KNIGHT_OFFSETS)
_KING_TARGETS = _build_targets(KING_OFFSETS)
_KNIGHT_ATTACK_MASKS = _build_attack_masks(_KNIGHT_TARGETS)
_KING_ATTACK_MASKS = _build_attack_masks(_KING_TARGETS)
_PAWN_CAPTURES: dict[Color, tuple[tuple[Square, ...], ...]] = {
    color: _build_pawn_captures(color) for color in Color
}
# A square is attacked by a *color* pawn standing where an opposite-colored
# pawn on that square would capture.
_PAWN_ATTACKER_MASKS: dict[Color, tuple[int, ...]] = {
    color: _build_attack_masks(_PAWN_CAPTURES[color.opposite]) for color in Color
}

_BISHOP_RAYS = _build_rays(BISHOP_DIRS)
_ROOK_RAYS = _build_rays(ROOK_DIRS)
_QUEEN_RAYS = _build_rays(QUEEN_DIRS)

_SLIDER_RAYS: dict[PieceType, tuple[tuple[tuple[Square, ...], ...], ...]] = {
    PieceType.BISHOP: _BISHOP_RAYS,
    PieceType.ROOK: _ROOK_RAYS,
    PieceType.QUEEN: _QUEEN_RAYS,
}


class MoveGenerator:
    """Generates legal moves for a given :class:`Position`.

    The generator mutates the position via ``make_move`` / ``unmake_move``
    internally but always restores it before returning.
    """

    __slots__ = ("_pos", "_board")

    def __init__(self, position: Position) -> None:
        self._pos = position
        self._board = position.board

    # -- Public API ---------------------------------------------------------

    def generate_legal_moves(self) -> list[Move]:
        """All strictly legal moves for the side to move."""
        return [m for m in self.generate_pseudo_legal_moves() if self._is_legal(m)]

    def legal_moves_to(
        self, to_sq: Square, piece_type: PieceType | None = None
    ) -> list[Move]:
        """Legal moves landing on *to_sq*, optionally only by *piece_type*."""
        board = self._board
        candidates = [
            m
            for m in self.generate_pseudo_legal_moves()
            if m.to_sq == to_sq
            and (piece_type is None or _piece_type_on(board[m.from_sq]) == piece_type)
        ]
        return [m for m in candidates if self._is_legal(m)]

    def castling_move(self, flag: MoveFlag) -> Move | None:
        """The legal castling move with *flag*, if there is one."""
        color = self._pos.side_to_move
        moves: list[Move] = []
        self._gen_castling(self._board.king_square(color), color, moves)
        for move in moves:
            if move.flag == flag and self._is_legal(move):
                return move
        return None

    def has_legal_move(self) -> bool:
        """Whether the side to move has at least one legal move."""
        return any(self._is_legal(m) for m in self.generate_pseudo_legal_moves())

    def generate_pseudo_legal_moves(self) -> list[Move]:
        """All pseudo-legal moves (may leave own king in check)."""
        moves: list[Move] = []
        color = self._pos.side_to_move
        board = self._board

        for sq in board.pieces(color, PieceType.PAWN):
            self._gen_pawn(sq, color, moves)
        for sq in board.pieces(color, PieceType.KNIGHT):
            self._gen_steps(sq, color, _KNIGHT_TARGETS[sq], moves)
        for piece_type, rays in _SLIDER_RAYS.items():
            for sq in board.pieces(color, piece_type):
                self._gen_sliding(sq, color, rays[sq], moves)
        for sq in board.pieces(color, PieceType.KING):
            self._gen_steps(sq, color, _KING_TARGETS[sq], moves)
            self._gen_castling(sq, color, moves)
        return moves

    # -- Attack detection (public) -----------------------------------------

    def is_in_check(self, color: Color) -> bool:
        """Is *color*'s king attacked by the opponent?"""
        king_sq = self._board.king_square(color)
        return self.is_square_attacked(king_sq, color.opposite)

    def is_square_attacked(self, sq: Square, by_color: Color) -> bool:
        """Is *sq* attacked by any piece of *by_color*?"""
        board = self._board

        if (
            board.pieces_bitboard(by_color, PieceType.PAWN)
            & _PAWN_ATTACKER_MASKS[by_color][sq]
        ):
            return True
        if board.pieces_bitboard(by_color, PieceType.KNIGHT) & _KNIGHT_ATTACK_MASKS[sq]:
            return True
        if board.pieces_bitboard(by_color, PieceType.KING) & _KING_ATTACK_MASKS[sq]:
            return True

        queens = board.pieces_bitboard(by_color, PieceType.QUEEN)
        for slider, rays in (
            (PieceType.BISHOP, _BISHOP_RAYS[sq]),
            (PieceType.ROOK, _ROOK_RAYS[sq]),
        ):
            if not (board.pieces_bitboard(by_color, slider) or queens):
                continue
            for ray in rays:
                for to_sq in ray:
                    piece = board[to_sq]
                    if piece is None:
                        continue
                    if piece.color == by_color and piece.piece_type in (
                        slider,
                        PieceType.QUEEN,
                    ):
                        return True
                    break

        return False

    # -- Helpers (private) ---------------------------------------------------

    def _is_legal(self, move: Move) -> bool:
        moving_color = self._pos.side_to_move
        self._pos.make_move(move)
        try:
            return not self.is_in_check(moving_color)
        finally:
            self._pos.unmake_move(move)

    def _gen_pawn(self, sq: Square, color: Color, moves: list[Move]) -> None:
        board = self._board
        step, start_rank, promo_rank = _PAWN_GEOMETRY[color]
        promotes = (sq >> 3) == promo_rank

        one_step = sq + step
        if 0 <= one_step < 64 and board.is_empty(one_step):
            if promotes:
                _add_promotions(sq, one_step, moves)
            else:
                moves.append(Move(sq, one_step))
                two_step = one_step + step
                if (sq >> 3) == start_rank and board.is_empty(two_step):
                    moves.append(Move(sq, two_step, MoveFlag.DOUBLE_PAWN))

        for cap_sq in _PAWN_CAPTURES[color][sq]:
            target = board[cap_sq]
            if target is not None and target.color != color:
                if promotes:
                    _add_promotions(sq, cap_sq, moves)
                else:
                    moves.append(Move(sq, cap_sq))
            elif target is None and cap_sq == self._pos.en_passant:
                moves.append(Move(sq, cap_sq, MoveFlag.EN_PASSANT))

    def _gen_steps(
        self,
        sq: Square,
        color: Color,
        targets: tuple[Square, ...],
        moves: list[Move],
    ) -> None:
        board = self._board
        for to_sq in targets:
            target = board[to_sq]
            if target is None or target.color != color:
                moves.append(Move(sq, to_sq))

    def _gen_sliding(
        self,
        sq: Square,
        color: Color,
        rays: tuple[tuple[Square, ...], ...],
        moves: list[Move],
    ) -> None:
        board = self._board
        for ray in rays:
            for to_sq in ray:
                target = board[to_sq]
                if target is None:
                    moves.append(Move(sq, to_sq))
                    continue
                if target.color != color:
                    moves.append(Move(sq, to_sq))
                break

    def _gen_castling(self, king_sq: Square, color: Color, moves: list[Move]) -> None:
        offset, kingside, queenside = _CASTLING_GEOMETRY[color]
        if not self._pos.castling & (kingside | queenside):
            return
        if king_sq != offset + 4 or self.is_in_check(color):
            return

        board = self._board
        opponent = color.opposite
        rook = Piece(color, PieceType.ROOK)

        if (
            self._pos.castling & kingside
            and board[offset + 7] == rook
            and board.is_empty(offset + 5)
            and board.is_empty(offset + 6)
            and not self.is_square_attacked(offset + 5, opponent)
            and not self.is_square_attacked(offset + 6, opponent)
        ):
            moves.append(Move(king_sq, offset + 6, MoveFlag.CASTLE_KINGSIDE))

        if (
            self._pos.castling & queenside
            and board[offset] == rook
            and board.is_empty(offset + 1)
            and board.is_empty(offset + 2)
            and board.is_empty(offset + 3)
            and not self.is_square_attacked(offset + 2, opponent)
            and not self.is_square_attacked(offset + 3, opponent)
        ):
            moves.append(Move(king_sq, offset + 2, MoveFlag.CASTLE_QUEENSIDE))


def _add_promotions(from_sq: Square, to_sq: Square, moves: list[Move]) -> None:
    for pt in _PROMOTION_TYPES:
        moves.append(Move(from_sq, to_sq, MoveFlag.PROMOTION, pt))


def _piece_type_on(piece: Piece | None) -> PieceType | None:
    return None if piece is None else piece.piece_type
