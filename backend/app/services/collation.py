"""
Name collation for student ordering.

Student names are mostly Turkish, so plain code-point ordering puts
"Çağla" after "Zeynep" and "İsmail" after everything. name_sort_key()
orders names by the Turkish alphabet instead, folding case the Turkish
way (I -> ı, İ -> i). The raw name is appended last so two different
names never compare equal and the sort is total.

The student list and the dashboard attention list both sort with this
key, so same-priority alerts appear in list order.
"""

import unicodedata

# Turkish alphabet with q, w, x slotted in at their Latin positions
ALPHABET = "abcçdefgğhıijklmnoöpqrsştuüvwxyz"
_LETTER_RANK = {letter: rank for rank, letter in enumerate(ALPHABET)}


def _turkish_lower(text: str) -> str:
    return text.replace("I", "ı").replace("İ", "i").lower()


def _char_key(char: str) -> tuple:
    if char in _LETTER_RANK:
        return (2, _LETTER_RANK[char])
    if char.isspace() or not char.isalnum():
        return (0, ord(char))
    if char.isdigit():
        return (1, ord(char))
    # Accented letters outside the alphabet (é, à, ...) sort with their base letter
    base = unicodedata.normalize("NFD", char)[0]
    if base in _LETTER_RANK:
        return (2, _LETTER_RANK[base])
    return (3, ord(char))


def name_sort_key(name: str) -> tuple:
    """Sort key ordering names by Turkish collation, ties broken by raw name."""
    name = unicodedata.normalize("NFC", (name or "").strip())
    return (tuple(_char_key(c) for c in _turkish_lower(name)), name)
