"""Matching: criteria, predicates, ECO classification and duplicate detection."""

from pgnsieve.matching.criteria import (
    EcoRange,
    FenPattern,
    MatchCriteria,
    MaterialCriterion,
    MoveSequence,
    MoveToken,
    Occurrence,
    PieceRequirement,
    PositionTarget,
    TagCriterion,
    TagOperator,
    parse_eco_range,
    parse_fen_pattern,
    parse_material,
    parse_move_sequence,
    parse_tag_criterion,
    position_target_from_fen,
    position_target_from_hex,
    position_target_from_moves,
)
from pgnsieve.matching.duplicates import CorpusIndex, GameSignature, edit_distance
from pgnsieve.matching.eco import EcoEntry, EcoTable
from pgnsieve.matching.matcher import Matcher, MatchOutcome, Verdict
from pgnsieve.matching.tags import soundex

__all__ = [
    # Criteria
    "EcoRange",
    "FenPattern",
    "MatchCriteria",
    "MaterialCriterion",
    "MoveSequence",
    "MoveToken",
    "Occurrence",
    "PieceRequirement",
    "PositionTarget",
    "TagCriterion",
    "TagOperator",
    "parse_eco_range",
    "parse_fen_pattern",
    "parse_material",
    "parse_move_sequence",
    "parse_tag_criterion",
    "position_target_from_fen",
    "position_target_from_hex",
    "position_target_from_moves",
    # Evaluation
    "Matcher",
    "MatchOutcome",
    "Verdict",
    "soundex",
    # Corpus-wide state
    "CorpusIndex",
    "EcoEntry",
    "EcoTable",
    "GameSignature",
    "edit_distance",
]
