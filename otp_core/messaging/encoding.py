"""
Encoding Helpers
================
Keeps SMS text inside the ASCII range so gateways never switch to UCS-2.
"""

import unicodedata

# Characters NFKD does not decompose to an ASCII base letter
_TRANSLITERATIONS = str.maketrans({
    "ı": "i",
    "İ": "I",
    "ß": "ss",
    "æ": "ae",
    "Æ": "AE",
    "ø": "o",
    "Ø": "O",
    "đ": "d",
    "Đ": "D",
    "ł": "l",
    "Ł": "L",
})


def is_ascii(text: str) -> bool:
    """Return True if every character is 7-bit ASCII."""
    return all(ord(char) < 128 for char in text)


def to_ascii(text: str) -> str:
    """
    Transliterate text to ASCII.

    Turkish and other Latin diacritics are folded to their base letters
    ("Giriş" -> "Giris"); anything without an ASCII equivalent is dropped.

    Args:
        text: Message content

    Returns:
        ASCII-only string
    """
    if is_ascii(text):
        return text
    decomposed = unicodedata.normalize("NFKD", text.translate(_TRANSLITERATIONS))
    return decomposed.encode("ascii", "ignore").decode("ascii")
