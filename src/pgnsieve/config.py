"""Run configuration, one immutable record per component.

``RunConfig.validate`` is the single place where options are checked
against each other; it raises before the first game is read.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from pgnsieve.errors import ConfigurationConflict, ConfigurationError
from pgnsieve.matching.criteria import MatchCriteria
from pgnsieve.pgn.parser import ParseOptions


class OutputFormat(StrEnum):
    SAN = "san"
    LALG = "lalg"
    UCI = "uci"
    FEN = "fen"
    EPD = "epd"
    JSON = "json"
    TSV = "tsv"

    @property
    def is_pgn(self) -> bool:
        return self in (OutputFormat.SAN, OutputFormat.LALG, OutputFormat.UCI)


@dataclass(frozen=True, slots=True)
class FormatOptions:
    output_format: OutputFormat = OutputFormat.SAN

    keep_comments: bool = True
    keep_variations: bool = True
    keep_nags: bool = True
    keep_move_numbers: bool = True
    keep_results: bool = True
    keep_checks: bool = True
    keep_tags: bool = True
    max_line_length: int = 75
    comments_on_separate_lines: bool = False

    seven_tag_roster: bool = False
    only_output_wanted_tags: tuple[str, ...] = ()
    dropped_tags: tuple[str, ...] = ()
    tsv_tags: tuple[str, ...] = ("White", "Black", "Result")

    add_hashcode_tag: bool = False
    add_match_label_tag: bool = False
    add_ply_count: bool = False
    add_total_ply_count: bool = False
    add_fen_comments: bool = False
    add_hashcode_comments: bool = False
    add_match_comments: bool = False
    match_comment: str = "MATCH"
    fix_result_tags: bool = False
    add_fen_castling: bool = False
    add_eco_tags: bool = False
    json_fen: bool = False

    split_variations: bool = False
    drop_ply_number: int = 0
    output_ply_limit: int | None = None


@dataclass(frozen=True, slots=True)
class RunOptions:
    first_game_number: int = 1
    game_limit: int = 0
    maximum_matches: int = 0
    select_only: tuple[tuple[int, int], ...] = ()
    skip_matching: tuple[tuple[int, int], ...] = ()

    suppress_duplicates: bool = False
    suppress_originals: bool = False
    suppress_matched: bool = False
    non_matching_wanted: bool = False
    duplicates_wanted: bool = False
    games_per_file: int = 0


@dataclass(frozen=True, slots=True)
class RunConfig:
    parse: ParseOptions = field(default_factory=ParseOptions)
    criteria: MatchCriteria = field(default_factory=MatchCriteria)
    format: FormatOptions = field(default_factory=FormatOptions)
    run: RunOptions = field(default_factory=RunOptions)

    @property
    def detect_duplicates(self) -> bool:
        """Whether games have to be checked against the corpus index."""
        return (
            self.criteria.detect_duplicates
            or self.criteria.fuzzy_match_depth > 0
            or self.run.suppress_duplicates
            or self.run.suppress_originals
            or self.run.duplicates_wanted
        )

    def validate(self) -> RunConfig:
        """Raise on invalid or conflicting options; return ``self``."""
        run = self.run
        criteria = self.criteria
        fmt = self.format

        if run.suppress_duplicates and run.suppress_originals:
            raise ConfigurationConflict(
                "suppress_duplicates and suppress_originals are mutually exclusive"
            )
        if criteria.setup_only and criteria.no_setup:
            raise ConfigurationConflict(
                "setup_only and no_setup are mutually exclusive"
            )
        if fmt.split_variations and not fmt.keep_variations:
            raise ConfigurationConflict("split_variations needs variations to be kept")
        if fmt.only_output_wanted_tags and fmt.seven_tag_roster:
            raise ConfigurationConflict(
                "only_output_wanted_tags and seven_tag_roster are mutually exclusive"
            )

        low, high = criteria.ply_bounds
        if high is not None and low > high:
            raise ConfigurationConflict(
                f"lower bound ({low} plies) exceeds upper bound ({high} plies)"
            )

        _non_negative(
            game_limit=run.game_limit,
            maximum_matches=run.maximum_matches,
            games_per_file=run.games_per_file,
            fuzzy_match_depth=criteria.fuzzy_match_depth,
            depth_of_positional_search=criteria.depth_of_positional_search,
            drop_ply_number=fmt.drop_ply_number,
            max_line_length=fmt.max_line_length,
            minply=criteria.minply,
            maxply=criteria.maxply,
            lower_move_bound=criteria.lower_move_bound,
            upper_move_bound=criteria.upper_move_bound,
            output_ply_limit=fmt.output_ply_limit,
        )
        if run.first_game_number < 1:
            raise ConfigurationError("first_game_number must be at least 1")
        if criteria.startply < 1:
            raise ConfigurationError("startply must be at least 1")
        for low_n, high_n in (*run.select_only, *run.skip_matching):
            if low_n < 1 or high_n < low_n:
                raise ConfigurationError(f"Invalid game number range {low_n}-{high_n}")
        return self


def _non_negative(**values: int | None) -> None:
    for name, value in values.items():
        if value is not None and value < 0:
            raise ConfigurationError(f"{name} must not be negative (got {value})")
