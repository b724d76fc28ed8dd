"""Serialisation of games in every supported output format."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from pgnsieve.config import FormatOptions, OutputFormat
from pgnsieve.core.enums import Color
from pgnsieve.output.lines import LineWriter
from pgnsieve.pgn.models import SEVEN_TAG_ROSTER, Game, MoveNode, Variation
from pgnsieve.simulation.models import PlyRecord, PositionSnapshot, SimulatedGame

_ROSTER_DEFAULTS: dict[str, str] = {"Date": "????.??.??"}


def escape_tag_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _tsv_field(value: str) -> str:
    return " ".join(value.split()) or "?"


class GameFormatter:
    """Renders a ``(game, simulated)`` pair as text.

    The simulated game must line up with the game's move tree. Moves past
    the end of a broken replay fall back to the text they were read as.
    """

    __slots__ = ("options", "_formatters")

    def __init__(self, options: FormatOptions) -> None:
        self.options = options
        self._formatters: dict[OutputFormat, Callable[[Game, SimulatedGame], str]] = {
            OutputFormat.SAN: self._format_pgn,
            OutputFormat.LALG: self._format_pgn,
            OutputFormat.UCI: self._format_pgn,
            OutputFormat.FEN: self._format_fen,
            OutputFormat.EPD: self._format_epd,
            OutputFormat.JSON: self._format_json,
            OutputFormat.TSV: self._format_tsv,
        }

    def format(self, game: Game, simulated: SimulatedGame) -> str:
        return self._formatters[self.options.output_format](game, simulated)

    # ── Tags ─────────────────────────────────────────────────────────────

    def ordered_tags(self, game: Game) -> list[tuple[str, str]]:
        """Seven-tag roster first, with placeholders, then the rest in order.

        An allow-list of wanted tags replaces the roster, and dropped roster
        tags get no placeholder.
        """
        tags = game.tags
        opts = self.options
        if opts.only_output_wanted_tags:
            return list(tags.items())
        pairs = [
            (name, tags.get(name) or _roster_default(name, game))
            for name in SEVEN_TAG_ROSTER
            if name not in opts.dropped_tags
        ]
        pairs.extend(
            (name, value)
            for name, value in tags.items()
            if name not in SEVEN_TAG_ROSTER
        )
        return pairs

    def _tag_lines(self, game: Game) -> list[str]:
        if not self.options.keep_tags:
            return []
        return [
            f'[{name} "{escape_tag_value(value)}"]'
            for name, value in self.ordered_tags(game)
        ]

    # ── Moves ────────────────────────────────────────────────────────────

    def move_text(self, record: PlyRecord | None, node: MoveNode) -> str:
        """A move in the configured notation."""
        opts = self.options
        if record is None:
            return node.text
        fmt = opts.output_format
        if fmt == OutputFormat.LALG:
            text = record.lalg
        elif fmt == OutputFormat.UCI:
            text = "--" if record.move.is_null else record.move.uci
        else:
            text = record.san
            if not opts.keep_checks:
                text = text.rstrip("+#")
        return text

    # ── PGN ──────────────────────────────────────────────────────────────

    def _format_pgn(self, game: Game, simulated: SimulatedGame) -> str:
        opts = self.options
        writer = LineWriter(opts.max_line_length)

        for comment in game.prefix_comments:
            self._write_comment(writer, comment)

        initial = simulated.initial
        work: list[_PgnStep] = [
            _PgnStep(
                game.moves,
                simulated.plies,
                _first_mover(initial),
                _start_number(initial),
            )
        ]
        while work:
            step = work[-1]
            if step.index >= len(step.nodes):
                work.pop()
                # An empty variation was never opened.
                if step.variation is not None and not step.opening:
                    self._close_variation(writer, step.variation)
                continue
            self._write_move(writer, step)
            node = step.nodes[step.index]
            record = step.record()
            mover, number = step.mover, step.number
            step.advance()
            if node.variations:
                # The variation replaces the move just written.
                branches = record.variations if record is not None else []
                for v_index in reversed(range(len(node.variations))):
                    variation = node.variations[v_index]
                    line = branches[v_index] if v_index < len(branches) else None
                    work.append(
                        _PgnStep(
                            variation.moves,
                            line.plies if line is not None else [],
                            mover,
                            number,
                            variation=variation,
                        )
                    )
                step.needs_number = True

        if opts.keep_results:
            writer.add(game.result.value)
        movetext = writer.text()

        lines = self._tag_lines(game)
        if lines:
            lines.append("")
        lines.append(movetext)
        return "\n".join(lines) + "\n\n"

    def _write_move(self, writer: LineWriter, step: _PgnStep) -> None:
        opts = self.options
        if step.opening:
            step.opening = False
            writer.prefix_next("(")
            for comment in step.variation.prefix_comments if step.variation else ():
                self._write_comment(writer, comment)
            step.needs_number = True

        node = step.nodes[step.index]
        record = step.record()
        if opts.keep_move_numbers:
            if step.mover == Color.WHITE:
                writer.add(f"{step.number}.")
            elif step.needs_number:
                writer.add(f"{step.number}...")
        writer.add(self.move_text(record, node))
        step.needs_number = False
        for nag in node.nags:
            writer.add(f"${nag}")
        for comment in node.comments:
            self._write_comment(writer, comment)
            step.needs_number = True

    def _close_variation(self, writer: LineWriter, variation: Variation) -> None:
        if variation.result is not None and self.options.keep_results:
            writer.add(variation.result.value)
        writer.append_to_last(")")
        for comment in variation.suffix_comments:
            self._write_comment(writer, comment)

    def _write_comment(self, writer: LineWriter, comment: str) -> None:
        separate = self.options.comments_on_separate_lines
        if separate:
            writer.break_line()
        words = comment.split() or [""]
        words[0] = "{" + words[0]
        words[-1] += "}"
        for word in words:
            writer.add(word)
        if separate:
            writer.break_line()

    # ── Position formats ─────────────────────────────────────────────────

    def _format_fen(self, game: Game, simulated: SimulatedGame) -> str:
        lines = self._tag_lines(game)
        if lines:
            lines.append("")
        lines.extend(snap.fen for snap in simulated.mainline.snapshots())
        return "\n".join(lines) + "\n\n"

    def _format_epd(self, game: Game, simulated: SimulatedGame) -> str:
        tags = game.tags
        c0 = escape_tag_value(
            f"{tags.get('White', '?')}-{tags.get('Black', '?')} "
            f"{tags.get('Event', '?')} {tags.get('Date', '?')}"
        )
        sequence = game.provenance.sequence
        lines = [
            f'{snap.epd} c0 "{c0}"; id "{sequence}.{snap.ply}";'
            for snap in simulated.mainline.snapshots()
        ]
        return "\n".join(lines) + "\n"

    # ── JSON / TSV ───────────────────────────────────────────────────────

    def game_object(self, game: Game, simulated: SimulatedGame) -> dict[str, Any]:
        obj: dict[str, Any] = {}
        if self.options.keep_tags:
            obj["Tags"] = dict(self.ordered_tags(game))
        if game.prefix_comments:
            obj["Comments"] = list(game.prefix_comments)
        obj["Moves"] = self._move_objects(game.moves, simulated.plies)
        obj["Result"] = game.result.value
        return obj

    def _move_objects(
        self, nodes: list[MoveNode], records: list[PlyRecord]
    ) -> list[dict[str, Any]]:
        root: list[dict[str, Any]] = []
        work: list[tuple[list[MoveNode], list[PlyRecord], list[dict[str, Any]]]] = [
            (nodes, records, root)
        ]
        while work:
            line_nodes, line_records, out = work.pop()
            for index, node in enumerate(line_nodes):
                record = line_records[index] if index < len(line_records) else None
                item: dict[str, Any] = {"move": self.move_text(record, node)}
                if node.nags:
                    item["nags"] = list(node.nags)
                if node.comments:
                    item["comments"] = list(node.comments)
                if self.options.json_fen and record is not None:
                    item["FEN"] = record.snapshot.fen
                if node.variations:
                    branches = record.variations if record is not None else []
                    item["variations"] = []
                    for v_index, variation in enumerate(node.variations):
                        moves: list[dict[str, Any]] = []
                        item["variations"].append(moves)
                        line = branches[v_index] if v_index < len(branches) else None
                        plies = line.plies if line is not None else []
                        work.append((variation.moves, plies, moves))
                out.append(item)
        return root

    def _format_json(self, game: Game, simulated: SimulatedGame) -> str:
        return json.dumps(self.game_object(game, simulated), ensure_ascii=False)

    def _format_tsv(self, game: Game, simulated: SimulatedGame) -> str:
        opts = self.options
        columns = [_tsv_field(game.tags.get(name, "")) for name in opts.tsv_tags]
        moves: list[str] = []
        mover = _first_mover(simulated.initial)
        number = _start_number(simulated.initial)
        for index, node in enumerate(game.moves):
            record = simulated.plies[index] if index < len(simulated.plies) else None
            if opts.keep_move_numbers:
                if mover == Color.WHITE:
                    moves.append(f"{number}.")
                elif index == 0:
                    moves.append(f"{number}...")
            moves.append(self.move_text(record, node))
            if mover == Color.BLACK:
                number += 1
            mover = mover.opposite
        if opts.keep_results:
            moves.append(game.result.value)
        columns.append(" ".join(moves))
        return "\t".join(columns) + "\n"


class _PgnStep:
    """Progress through one move list while writing PGN."""

    __slots__ = (
        "nodes",
        "records",
        "mover",
        "number",
        "index",
        "variation",
        "opening",
        "needs_number",
    )

    def __init__(
        self,
        nodes: list[MoveNode],
        records: list[PlyRecord],
        mover: Color,
        number: int,
        *,
        variation: Variation | None = None,
    ) -> None:
        self.nodes = nodes
        self.records = records
        self.mover = mover
        self.number = number
        self.index = 0
        self.variation = variation
        self.opening = variation is not None
        self.needs_number = True

    def record(self) -> PlyRecord | None:
        if self.index < len(self.records):
            return self.records[self.index]
        return None

    def advance(self) -> None:
        self.index += 1
        if self.mover == Color.BLACK:
            self.number += 1
        self.mover = self.mover.opposite


def _first_mover(initial: PositionSnapshot | None) -> Color:
    return initial.side_to_move if initial is not None else Color.WHITE


def _start_number(initial: PositionSnapshot | None) -> int:
    return initial.fullmove_number if initial is not None else 1


def _roster_default(name: str, game: Game) -> str:
    if name == "Result":
        return game.result.value
    return _ROSTER_DEFAULTS.get(name, "?")
