"""Position: board plus side to move, rights and clocks, with make/unmake."""

from __future__ import annotations

from dataclasses import dataclass

from pgnsieve.core.board import Board
from pgnsieve.core.enums import CastlingRights, Color, MoveFlag, PieceType
from pgnsieve.core.move import Move
from pgnsieve.core.piece import Piece
from pgnsieve.core.types import Square, file_of, make_square, rank_of, square_name
from pgnsieve.core import zobrist


@dataclass(slots=True)
class _PositionState:
    """Snapshot saved before each move so we can undo it."""

    castling: CastlingRights
    en_passant: Square | None
    halfmove_clock: int
    captured_piece: Piece | None


_ROOK_CORNERS: dict[Square, CastlingRights] = {
    make_square(0, 0): CastlingRights.WHITE_QUEENSIDE,
    make_square(7, 0): CastlingRights.WHITE_KINGSIDE,
    make_square(0, 7): CastlingRights.BLACK_QUEENSIDE,
    make_square(7, 7): CastlingRights.BLACK_KINGSIDE,
}

# Castling flag -> (rook file before, rook file after).
_ROOK_SLIDES: dict[MoveFlag, tuple[int, int]] = {
    MoveFlag.CASTLE_KINGSIDE: (7, 5),
    MoveFlag.CASTLE_QUEENSIDE: (0, 3),
}


class Position:
    """Full chess position: board + side to move + castling + en passant + clocks.

    :meth:`make_move` / :meth:`unmake_move` keep an undo stack, the
    incremental Zobrist key and a count of every key reached so far, which
    gives repetition counts for free while a game is replayed.
    """

    __slots__ = (
        "board",
        "side_to_move",
        "castling",
        "en_passant",
        "halfmove_clock",
        "fullmove_number",
        "_zobrist_hash",
        "_history",
        "_key_stack",
        "_key_counts",
    )

    def __init__(
        self,
        board: Board | None = None,
        side_to_move: Color = Color.WHITE,
        castling: CastlingRights = CastlingRights.ALL,
        en_passant: Square | None = None,
        halfmove_clock: int = 0,
        fullmove_number: int = 1,
    ) -> None:
        self.board = board if board is not None else Board.initial()
        self.side_to_move = side_to_move
        self.castling = castling
        self.en_passant = en_passant
        self.halfmove_clock = halfmove_clock
        self.fullmove_number = fullmove_number
        self._zobrist_hash = self._compute_zobrist_hash()
        self._history: list[_PositionState] = []
        key = self._zobrist_hash
        self._key_stack: list[int] = [key]
        self._key_counts: dict[int, int] = {key: 1}

    # ── Core move operations ─────────────────────────────────────────────

    def make_move(self, move: Move) -> None:
        """Apply *move*, pushing undo state onto the history stack."""
        if move.is_null:
            self._make_null_move()
            return

        captured = self.board[move.to_sq]
        capture_sq = move.to_sq

        # En passant: the captured pawn sits on a different square
        if move.flag == MoveFlag.EN_PASSANT:
            capture_sq = make_square(file_of(move.to_sq), rank_of(move.from_sq))
            captured = self.board[capture_sq]

        piece = self.board[move.from_sq]
        if piece is None:
            raise ValueError(f"No piece on {square_name(move.from_sq)}")

        self._history.append(
            _PositionState(
                castling=self.castling,
                en_passant=self.en_passant,
                halfmove_clock=self.halfmove_clock,
                captured_piece=captured,
            )
        )

        self._lift(move.from_sq, piece)
        if captured is not None:
            self._lift(capture_sq, captured)

        placed_piece = piece
        if move.flag == MoveFlag.PROMOTION and move.promotion is not None:
            placed_piece = Piece(piece.color, move.promotion)
        self._place(move.to_sq, placed_piece)

        slide = _ROOK_SLIDES.get(move.flag)
        if slide is not None:
            rank = rank_of(move.from_sq)
            rook_from = make_square(slide[0], rank)
            rook = self.board[rook_from]
            if rook is None:
                raise ValueError(f"No rook on {square_name(rook_from)} to castle with")
            self._lift(rook_from, rook)
            self._place(make_square(slide[1], rank), rook)

        next_en_passant: Square | None = None
        if move.flag == MoveFlag.DOUBLE_PAWN:
            next_en_passant = make_square(
                file_of(move.from_sq),
                (rank_of(move.from_sq) + rank_of(move.to_sq)) // 2,
            )
        self._set_en_passant(next_en_passant)
        self._update_castling(move, piece)

        if piece.piece_type == PieceType.PAWN or captured is not None:
            self.halfmove_clock = 0
        else:
            self.halfmove_clock += 1

        self._finish_turn()

    def unmake_move(self, move: Move) -> None:
        """Undo the last :meth:`make_move`."""
        state = self._history.pop()
        key = self._key_stack.pop()
        key_count = self._key_counts[key] - 1
        if key_count:
            self._key_counts[key] = key_count
        else:
            del self._key_counts[key]

        self.side_to_move = self.side_to_move.opposite
        if self.side_to_move == Color.BLACK:
            self.fullmove_number -= 1

        if not move.is_null:
            self._restore_pieces(move, state.captured_piece)

        self.castling = state.castling
        self.en_passant = state.en_passant
        self.halfmove_clock = state.halfmove_clock
        self._zobrist_hash = self._key_stack[-1]

    def _make_null_move(self) -> None:
        self._history.append(
            _PositionState(
                castling=self.castling,
                en_passant=self.en_passant,
                halfmove_clock=self.halfmove_clock,
                captured_piece=None,
            )
        )
        self._set_en_passant(None)
        self.halfmove_clock += 1
        self._finish_turn()

    def _finish_turn(self) -> None:
        if self.side_to_move == Color.BLACK:
            self.fullmove_number += 1
        self.side_to_move = self.side_to_move.opposite
        self._zobrist_hash ^= zobrist.side_to_move_key()
        key = self._zobrist_hash
        self._key_stack.append(key)
        self._key_counts[key] = self._key_counts.get(key, 0) + 1

    def _restore_pieces(self, move: Move, captured: Piece | None) -> None:
        piece = self.board[move.to_sq]
        assert piece is not None

        if move.flag == MoveFlag.PROMOTION:
            piece = Piece(piece.color, PieceType.PAWN)

        self.board[move.from_sq] = piece
        if move.flag == MoveFlag.EN_PASSANT:
            self.board[move.to_sq] = None
            self.board[make_square(file_of(move.to_sq), rank_of(move.from_sq))] = (
                captured
            )
        else:
            self.board[move.to_sq] = captured

        slide = _ROOK_SLIDES.get(move.flag)
        if slide is not None:
            rank = rank_of(move.from_sq)
            self.board[make_square(slide[0], rank)] = self.board[
                make_square(slide[1], rank)
            ]
            self.board[make_square(slide[1], rank)] = None

    # ── Hash bookkeeping ─────────────────────────────────────────────────

    def _update_castling(self, move: Move, piece: Piece) -> None:
        next_castling = self.castling
        if piece.piece_type == PieceType.KING:
            if piece.color == Color.WHITE:
                next_castling &= ~CastlingRights.WHITE_BOTH
            else:
                next_castling &= ~CastlingRights.BLACK_BOTH

        for sq in (move.from_sq, move.to_sq):
            right = _ROOK_CORNERS.get(sq)
            if right is not None:
                next_castling &= ~right

        self._set_castling(next_castling)

    def _lift(self, sq: Square, piece: Piece) -> None:
        self._zobrist_hash ^= zobrist.piece_key(piece, sq)
        self.board[sq] = None

    def _place(self, sq: Square, piece: Piece) -> None:
        self.board[sq] = piece
        self._zobrist_hash ^= zobrist.piece_key(piece, sq)

    def _set_castling(self, castling: CastlingRights) -> None:
        if castling == self.castling:
            return
        self._zobrist_hash ^= zobrist.castling_key(self.castling)
        self.castling = castling
        self._zobrist_hash ^= zobrist.castling_key(self.castling)

    def _set_en_passant(self, en_passant: Square | None) -> None:
        if en_passant == self.en_passant:
            return
        if self.en_passant is not None:
            self._zobrist_hash ^= zobrist.en_passant_key(self.en_passant)
        self.en_passant = en_passant
        if self.en_passant is not None:
            self._zobrist_hash ^= zobrist.en_passant_key(self.en_passant)

    # ── Utilities ────────────────────────────────────────────────────────

    def copy(self) -> Position:
        """Deep copy without the undo stack; repetition history is kept."""
        pos = Position(
            board=self.board.copy(),
            side_to_move=self.side_to_move,
            castling=self.castling,
            en_passant=self.en_passant,
            halfmove_clock=self.halfmove_clock,
            fullmove_number=self.fullmove_number,
        )
        pos._zobrist_hash = self._zobrist_hash
        pos._key_stack = self._key_stack.copy()
        pos._key_counts = self._key_counts.copy()
        return pos

    def repetition_count(self) -> int:
        """How many times the current position key occurred in game history."""
        return self._key_counts.get(self._key_stack[-1], 0)

    @property
    def zobrist_hash(self) -> int:
        """Current Zobrist key for the full position."""
        return self._key_stack[-1]

    def fingerprint(self, include_rights: bool = False) -> int:
        """Position fingerprint: placement and side to move, optionally rights."""
        if include_rights:
            return self.zobrist_hash
        return zobrist.strip_rights(self.zobrist_hash, self.castling, self.en_passant)

    def _compute_zobrist_hash(self) -> int:
        key = zobrist.placement_key(self.board, self.side_to_move)
        return key ^ zobrist.rights_key(self.castling, self.en_passant)
