"""Text-level parsing: delimiter detection, tokenizing and schema classification."""

from .delimiter import detect_delimiter
from .schema import classify, detect_slots, guess_key_column, is_valid_key
from .tokenizer import split_lines, tokenize, tokenize_line

__all__ = [
    "detect_delimiter",
    "split_lines",
    "tokenize",
    "tokenize_line",
    "classify",
    "detect_slots",
    "guess_key_column",
    "is_valid_key",
]
