"""Command-line entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterable

from tqdm import tqdm

from pgnsieve import __version__
from pgnsieve.config import FormatOptions, OutputFormat, RunConfig, RunOptions
from pgnsieve.errors import ConfigurationConflict, ConfigurationError
from pgnsieve.io import STDIO, OutputSink, SinkSet, load_eco_table, read_games
from pgnsieve.matching.criteria import (
    MatchCriteria,
    parse_eco_range,
    parse_fen_pattern,
    parse_material,
    parse_move_sequence,
    parse_tag_criterion,
    position_target_from_fen,
    position_target_from_hex,
    position_target_from_moves,
)
from pgnsieve.pgn.models import Game
from pgnsieve.pgn.parser import ParseOptions
from pgnsieve.pipeline import Counters, Pipeline, RunContext

_LOGGER = logging.getLogger(__name__)

_SUFFIXES: dict[OutputFormat, str] = {
    OutputFormat.FEN: ".fen",
    OutputFormat.EPD: ".epd",
    OutputFormat.JSON: ".json",
    OutputFormat.TSV: ".tsv",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgnsieve",
        description="Select, deduplicate and reformat games from PGN files.",
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        default=[STDIO],
        help="PGN files (.pgn or .pgn.zst); '-' reads stdin",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    out = parser.add_argument_group("output")
    out.add_argument(
        "-o",
        "--output",
        default=STDIO,
        help="matched games; a directory with --games-per-file",
    )
    out.add_argument("-n", "--non-matching", metavar="FILE")
    out.add_argument("-d", "--duplicates", metavar="FILE")
    out.add_argument(
        "-W",
        "--format",
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.SAN.value,
    )
    out.add_argument("--games-per-file", type=int, default=0, metavar="N")
    out.add_argument("--progress", action="store_true", help="progress bar on stderr")

    log = parser.add_argument_group("logging")
    log.add_argument("-v", "--verbose", action="count", default=0)
    log.add_argument("-q", "--quiet", action="store_true")
    log.add_argument("--log-file", metavar="FILE")

    parse = parser.add_argument_group("parsing")
    parse.add_argument("--nested-comments", action="store_true")
    parse.add_argument("--allow-null-moves", action="store_true")
    parse.add_argument("--keep-broken", action="store_true")
    parse.add_argument("--reject-inconsistent-results", action="store_true")

    match = parser.add_argument_group("matching")
    match.add_argument(
        "-x",
        "--moves",
        action="append",
        default=[],
        metavar="SAN",
        help="move sequence, e.g. '1. e4 c5 2. Nf3'",
    )
    match.add_argument("--no-permutations", action="store_true")
    match.add_argument("--search-variations", action="store_true")
    match.add_argument("--startply", type=int, default=1)
    match.add_argument("--fen", action="append", default=[])
    match.add_argument(
        "--position-line",
        action="append",
        default=[],
        metavar="SAN",
        help="match the position these moves reach",
    )
    match.add_argument("--hashcode", action="append", default=[], metavar="HEX")
    match.add_argument(
        "--depth", type=int, default=0, help="plies searched for positions; 0 for all"
    )
    match.add_argument("--include-rights", action="store_true")
    match.add_argument("--fen-pattern", action="append", default=[], metavar="PATTERN")
    match.add_argument("--fen-pattern-inverse", action="store_true")
    match.add_argument(
        "-z",
        "--material",
        action="append",
        default=[],
        metavar="DESC",
        help="e.g. 'KQ KR' or '3 KP2+ KL'",
    )
    match.add_argument("--material-both-colours", action="store_true")
    match.add_argument(
        "-t",
        "--tag",
        action="append",
        default=[],
        metavar="CRITERION",
        help="e.g. 'White \"Carlsen\"' or 'Elo >= 2500'",
    )
    match.add_argument("--tag-anywhere", action="store_true")
    match.add_argument("--soundex", action="store_true")
    match.add_argument("--check-results", action="store_true")
    match.add_argument("--eco", action="append", default=[], metavar="RANGE")
    match.add_argument("--eco-file", metavar="FILE")
    match.add_argument("-D", "--detect-duplicates", action="store_true")
    match.add_argument("--fuzzy-depth", type=int, default=0, metavar="N")
    match.add_argument(
        "-c",
        "--check-file",
        action="append",
        default=[],
        metavar="FILE",
        help="games that count as already seen",
    )
    match.add_argument("--minply", type=int)
    match.add_argument("--maxply", type=int)
    match.add_argument("--lower-move-bound", type=int)
    match.add_argument("--upper-move-bound", type=int)
    for flag in (
        "--checkmate",
        "--stalemate",
        "--insufficient",
        "--underpromotion",
        "--repetition",
        "--fifty",
        "--seventy-five",
        "--setup-only",
        "--no-setup",
        "--commented",
        "--negate",
    ):
        match.add_argument(flag, action="store_true")

    fmt = parser.add_argument_group("formatting")
    fmt.add_argument("-C", "--no-comments", action="store_true")
    fmt.add_argument("-V", "--no-variations", action="store_true")
    fmt.add_argument("-N", "--no-nags", action="store_true")
    fmt.add_argument("-w", "--line-length", type=int, default=75)
    fmt.add_argument("--seven-tag-roster", action="store_true")
    fmt.add_argument("-e", "--add-eco", action="store_true")
    fmt.add_argument("--tags-wanted", default="", metavar="NAMES")
    fmt.add_argument("--drop-tag", action="append", default=[], metavar="NAME")
    fmt.add_argument("--tsv-tags", default="White,Black,Result", metavar="NAMES")
    fmt.add_argument("--drop-ply", type=int, default=0, metavar="N")
    fmt.add_argument("--ply-limit", type=int, metavar="N")
    for flag in (
        "--no-move-numbers",
        "--no-results",
        "--no-checks",
        "--no-tags",
        "--separate-comment-lines",
        "--add-hashcode-tag",
        "--add-match-label",
        "--add-ply-count",
        "--add-total-ply-count",
        "--fen-comments",
        "--hashcode-comments",
        "--match-comments",
        "--fix-result-tags",
        "--add-fen-castling",
        "--json-fen",
        "--split-variations",
    ):
        fmt.add_argument(flag, action="store_true")

    run = parser.add_argument_group("selection")
    run.add_argument("--first-game", type=int, default=1, metavar="N")
    run.add_argument("--game-limit", type=int, default=0, metavar="N")
    run.add_argument("--max-matches", type=int, default=0, metavar="N")
    run.add_argument(
        "--select-only", default="", metavar="RANGES", help="e.g. '1-10,15'"
    )
    run.add_argument("--skip-matching", default="", metavar="RANGES")
    run.add_argument("--suppress-duplicates", action="store_true")
    run.add_argument("--suppress-originals", action="store_true")
    run.add_argument("--suppress-matched", action="store_true")
    return parser


# ── Configuration ────────────────────────────────────────────────────────


def parse_ranges(text: str) -> tuple[tuple[int, int], ...]:
    """``"1-5,8"`` to ``((1, 5), (8, 8))``."""
    ranges: list[tuple[int, int]] = []
    for part in filter(None, (p.strip() for p in text.split(","))):
        low_text, _, high_text = part.partition("-")
        try:
            low = int(low_text)
            high = int(high_text) if high_text else low
        except ValueError:
            raise ConfigurationError(f"Invalid game number range {part!r}") from None
        ranges.append((low, high))
    return tuple(ranges)


def _names(text: str) -> tuple[str, ...]:
    return tuple(name.strip() for name in text.split(",") if name.strip())


def build_config(args: argparse.Namespace) -> RunConfig:
    """Translate parsed arguments into a :class:`RunConfig`.

    Raises :class:`ConfigurationError` for unparseable criteria.
    """
    rights = args.include_rights
    criteria = MatchCriteria(
        move_sequences=tuple(parse_move_sequence(text) for text in args.moves),
        match_permutations=not args.no_permutations,
        search_variations=args.search_variations,
        startply=args.startply,
        positions=(
            *(position_target_from_fen(fen, include_rights=rights) for fen in args.fen),
            *(
                position_target_from_moves(line, include_rights=rights)
                for line in args.position_line
            ),
            *(position_target_from_hex(code) for code in args.hashcode),
        ),
        depth_of_positional_search=args.depth,
        include_rights=rights,
        fen_patterns=tuple(
            parse_fen_pattern(text, include_inverse=args.fen_pattern_inverse)
            for text in args.fen_pattern
        ),
        materials=tuple(
            parse_material(text, both_colours=args.material_both_colours)
            for text in args.material
        ),
        tags=tuple(parse_tag_criterion(text) for text in args.tag),
        tag_match_anywhere=args.tag_anywhere,
        use_soundex=args.soundex,
        check_results=args.check_results,
        eco_ranges=tuple(parse_eco_range(text) for text in args.eco),
        detect_duplicates=(
            args.detect_duplicates or bool(args.duplicates) or bool(args.check_file)
        ),
        fuzzy_match_depth=args.fuzzy_depth,
        minply=args.minply,
        maxply=args.maxply,
        lower_move_bound=args.lower_move_bound,
        upper_move_bound=args.upper_move_bound,
        match_checkmate=args.checkmate,
        match_stalemate=args.stalemate,
        match_insufficient=args.insufficient,
        match_underpromotion=args.underpromotion,
        match_repetition=args.repetition,
        match_fifty_move=args.fifty,
        match_seventy_five_move=args.seventy_five,
        setup_only=args.setup_only,
        no_setup=args.no_setup,
        commented_only=args.commented,
        negate=args.negate,
    )
    fmt = FormatOptions(
        output_format=OutputFormat(args.format),
        keep_comments=not args.no_comments,
        keep_variations=not args.no_variations,
        keep_nags=not args.no_nags,
        keep_move_numbers=not args.no_move_numbers,
        keep_results=not args.no_results,
        keep_checks=not args.no_checks,
        keep_tags=not args.no_tags,
        max_line_length=args.line_length,
        comments_on_separate_lines=args.separate_comment_lines,
        seven_tag_roster=args.seven_tag_roster,
        only_output_wanted_tags=_names(args.tags_wanted),
        dropped_tags=tuple(args.drop_tag),
        tsv_tags=_names(args.tsv_tags),
        add_hashcode_tag=args.add_hashcode_tag,
        add_match_label_tag=args.add_match_label,
        add_ply_count=args.add_ply_count,
        add_total_ply_count=args.add_total_ply_count,
        add_fen_comments=args.fen_comments,
        add_hashcode_comments=args.hashcode_comments,
        add_match_comments=args.match_comments,
        fix_result_tags=args.fix_result_tags,
        add_fen_castling=args.add_fen_castling,
        add_eco_tags=args.add_eco,
        json_fen=args.json_fen,
        split_variations=args.split_variations,
        drop_ply_number=args.drop_ply,
        output_ply_limit=args.ply_limit,
    )
    run = RunOptions(
        first_game_number=args.first_game,
        game_limit=args.game_limit,
        maximum_matches=args.max_matches,
        select_only=parse_ranges(args.select_only),
        skip_matching=parse_ranges(args.skip_matching),
        suppress_duplicates=args.suppress_duplicates,
        suppress_originals=args.suppress_originals,
        suppress_matched=args.suppress_matched,
        non_matching_wanted=bool(args.non_matching),
        duplicates_wanted=bool(args.duplicates),
        games_per_file=args.games_per_file,
    )
    parse = ParseOptions(
        allow_nested_comments=args.nested_comments,
        allow_null_moves=args.allow_null_moves,
        keep_broken_games=args.keep_broken,
        reject_inconsistent_results=args.reject_inconsistent_results,
    )
    if run.games_per_file and args.output == STDIO:
        raise ConfigurationConflict("--games-per-file needs an output directory (-o)")
    return RunConfig(parse=parse, criteria=criteria, format=fmt, run=run)


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.WARNING
    if args.quiet:
        level = logging.ERROR
    elif args.verbose >= 2:
        level = logging.DEBUG
    elif args.verbose == 1:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        filename=args.log_file,
        force=True,
    )


def _open_sinks(args: argparse.Namespace, config: RunConfig) -> SinkSet:
    output_format = config.format.output_format
    suffix = _SUFFIXES.get(output_format, ".pgn")
    json_array = output_format == OutputFormat.JSON
    matched = OutputSink(
        args.output,
        suffix=suffix,
        split=config.run.games_per_file > 0,
        json_array=json_array,
    )
    non_matching = None
    if args.non_matching:
        non_matching = OutputSink(args.non_matching, json_array=json_array)
    duplicates = None
    if args.duplicates:
        duplicates = OutputSink(args.duplicates, json_array=json_array)
    return SinkSet(matched, non_matching, duplicates)


def _log_summary(counters: Counters) -> None:
    _LOGGER.info(
        "%d games processed, %d matched, %d not matched, %d duplicates, %d broken",
        counters.processed,
        counters.matched,
        counters.non_matching,
        counters.duplicates,
        counters.broken,
    )
    if counters.eco_misses:
        _LOGGER.info("%d games without ECO classification", counters.eco_misses)


def run(argv: list[str] | None = None) -> int:
    """Run pgnsieve with *argv*; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)

    try:
        config = build_config(args)
        eco_table = None
        if args.eco_file:
            eco_table = load_eco_table(
                args.eco_file,
                include_rights=config.criteria.include_rights,
                options=config.parse,
            )
        context = RunContext(config, eco_table)
    except ConfigurationError as exc:
        _LOGGER.error("%s", exc)
        return 2
    except OSError as exc:
        _LOGGER.error("Cannot read ECO file: %s", exc)
        return 1

    pipeline = Pipeline(context)
    try:
        with _open_sinks(args, config) as sinks:
            for game in read_games(args.check_file, config.parse):
                pipeline.register_check_game(game)

            games: Iterable[Game] = read_games(args.inputs, config.parse)
            if args.progress:
                games = tqdm(games, desc="Games", unit="game")
            for processed in pipeline.run(games):
                sinks.write(processed)
    except OSError as exc:
        _LOGGER.error("%s", exc)
        return 1

    _log_summary(context.counters)
    return 0


def main() -> None:
    sys.exit(run())
