"""
32-bit string hashes used for song and artist identity.

Both hashes are DJB2 variants: seeded at 5381, each step computes
``x = (x << 5) + x + byte`` truncated to 32 bits.

- ``raw_hash`` runs over the UTF-8 bytes as they are and identifies songs by
  their URI.
- ``folded_hash`` first folds Latin diacritics onto their ASCII letter and
  lowercases ASCII, so "Beyoncé", "beyonce" and "BEYONCE" share one artist
  identity.
"""

from typing import Iterable, Optional

HASH_SEED = 5381
HASH_MASK = 0xFFFFFFFF

# Code point ranges (inclusive) folding onto each ASCII letter
_FOLD_RANGES: dict[str, tuple[tuple[int, int], ...]] = {
    "a": ((0x00C0, 0x00C5), (0x00E0, 0x00E5), (0x0100, 0x0105)),
    "c": ((0x00C7, 0x00C7), (0x00E7, 0x00E7), (0x0106, 0x010D)),
    "d": ((0x010E, 0x0111),),
    "e": ((0x00C8, 0x00CB), (0x00E8, 0x00EB), (0x0112, 0x011B)),
    "g": ((0x011C, 0x0123),),
    "h": ((0x0124, 0x0127),),
    "i": ((0x00CC, 0x00CF), (0x00EC, 0x00EF), (0x0128, 0x0131)),
    "j": ((0x0134, 0x0135),),
    "k": ((0x0136, 0x0137),),
    "l": ((0x0139, 0x0142),),
    "n": ((0x00D1, 0x00D1), (0x00F1, 0x00F1), (0x0143, 0x0149)),
    "o": (
        (0x00D2, 0x00D6),
        (0x00D8, 0x00D8),
        (0x00F2, 0x00F6),
        (0x00F8, 0x00F8),
        (0x014C, 0x0151),
    ),
    "r": ((0x0154, 0x0159),),
    "s": ((0x015A, 0x0161),),
    "t": ((0x0162, 0x0167),),
    "u": ((0x00D9, 0x00DC), (0x00F9, 0x00FC), (0x0168, 0x0173)),
    "w": ((0x0174, 0x0175),),
    "y": ((0x00DD, 0x00DD), (0x00FD, 0x00FD), (0x00FF, 0x00FF), (0x0176, 0x0178)),
    "z": ((0x0179, 0x017E),),
}


def _build_fold_table() -> dict[int, int]:
    table = {}
    for letter, ranges in _FOLD_RANGES.items():
        for first, last in ranges:
            for code_point in range(first, last + 1):
                table[code_point] = ord(letter)
    return table


FOLD_TABLE = _build_fold_table()


def _accumulate(values: Iterable[int]) -> int:
    value = HASH_SEED
    for byte in values:
        value = ((value << 5) + value + byte) & HASH_MASK
    return value


def raw_hash(text: Optional[str]) -> int:
    """Hash the UTF-8 bytes of ``text``; empty or None gives 0."""
    if not text:
        return 0
    return _accumulate(text.encode("utf-8"))


def _folded_bytes(text: str) -> Iterable[int]:
    for char in text:
        code_point = ord(char)
        if code_point < 0x80:
            if 0x41 <= code_point <= 0x5A:
                code_point += 0x20
            yield code_point
        else:
            # Characters outside the table contribute their low byte
            yield FOLD_TABLE.get(code_point, code_point & 0xFF)


def folded_hash(text: Optional[str]) -> int:
    """Case and diacritic insensitive hash of ``text``; empty or None gives 0."""
    if not text:
        return 0
    return _accumulate(_folded_bytes(text))


def fold_character(char: str) -> str:
    """Fold a single character onto its ASCII letter, if the table covers it.

    Examples:
        >>> fold_character("é")
        'e'
        >>> fold_character("Ø")
        'o'
        >>> fold_character("€")
        '€'
    """
    code_point = ord(char)
    if code_point < 0x80:
        return char.lower()
    folded = FOLD_TABLE.get(code_point)
    return chr(folded) if folded is not None else char
