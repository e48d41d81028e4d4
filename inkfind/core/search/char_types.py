"""
Character classification used to decide word boundaries.
"""

from enum import IntEnum


class CharacterType(IntEnum):
    SPACE = 0
    ALPHA_LETTER = 1
    PUNCT = 2
    HAN_LETTER = 3
    KATAKANA_LETTER = 4
    HIRAGANA_LETTER = 5
    HALFWIDTH_KATAKANA_LETTER = 6
    THAI_LETTER = 7


def _is_alphabetical_script(code: int) -> bool:
    return code < 0x2E80


def _is_ascii(code: int) -> bool:
    return (code & 0xFF80) == 0


def _is_ascii_alpha(code: int) -> bool:
    return 0x61 <= code <= 0x7A or 0x41 <= code <= 0x5A


def _is_ascii_digit(code: int) -> bool:
    return 0x30 <= code <= 0x39


def _is_ascii_space(code: int) -> bool:
    return code in (0x20, 0x09, 0x0D, 0x0A)


def _is_han(code: int) -> bool:
    return 0x3400 <= code <= 0x9FFF or 0xF900 <= code <= 0xFAFF


def _is_katakana(code: int) -> bool:
    return 0x30A0 <= code <= 0x30FF


def _is_hiragana(code: int) -> bool:
    return 0x3040 <= code <= 0x309F


def _is_halfwidth_katakana(code: int) -> bool:
    return 0xFF60 <= code <= 0xFF9F


def _is_thai(code: int) -> bool:
    return (code & 0xFF80) == 0x0E00


def get_character_type(char: str) -> CharacterType:
    """
    Classify a single character.

    Two neighbouring characters of the same type are considered part of
    the same word.
    """
    code = ord(char)
    if _is_alphabetical_script(code):
        if _is_ascii(code):
            if _is_ascii_space(code):
                return CharacterType.SPACE
            if _is_ascii_alpha(code) or _is_ascii_digit(code) or code == 0x5F:
                return CharacterType.ALPHA_LETTER
            return CharacterType.PUNCT
        if _is_thai(code):
            return CharacterType.THAI_LETTER
        if code == 0xA0:
            return CharacterType.SPACE
        return CharacterType.ALPHA_LETTER

    if _is_han(code):
        return CharacterType.HAN_LETTER
    if _is_katakana(code):
        return CharacterType.KATAKANA_LETTER
    if _is_hiragana(code):
        return CharacterType.HIRAGANA_LETTER
    if _is_halfwidth_katakana(code):
        return CharacterType.HALFWIDTH_KATAKANA_LETTER
    return CharacterType.ALPHA_LETTER
