from __future__ import annotations

import re
from typing import Optional

from unidecode import unidecode

DEFAULT_FOLDER_NAME = "geral"

# Всё, что не буква, цифра, пробел или дефис, удаляется целиком
_DISALLOWED_RE = re.compile(r"[^a-z0-9\s-]")
_SEPARATOR_RE = re.compile(r"[\s-]+")

# Символы, которые slugify превращает в слова, а не удаляет
_SYMBOL_WORDS = str.maketrans(
    {
        "$": "dollar",
        "%": "percent",
        "<": "less",
        ">": "greater",
        "|": "or",
        "¢": "cent",
        "£": "pound",
        "¥": "yen",
        "€": "euro",
        "₽": "ruble",
        "∞": "infinity",
        "♥": "love",
    }
)


def slugify_name(name: Optional[str], default: str = DEFAULT_FOLDER_NAME) -> str:
    """Привести отображаемое имя к безопасному имени папки.

    - ``&`` заменяется на дефис, чтобы ``"A & B"`` не склеивалось в одно слово.
    - Знаки вроде ``$`` и ``%`` превращаются в слова: ``"100%"`` -> ``"100percent"``.
    - Диакритика снимается транслитерацией в ASCII, регистр понижается.
    - Прочие символы удаляются, пробелы и дефисы схлопываются в один дефис.
    - Пустой результат заменяется на ``default``.
    """
    if not name:
        return default

    text = unidecode(name.replace("&", "-").translate(_SYMBOL_WORDS)).lower()
    text = _DISALLOWED_RE.sub("", text)
    text = _SEPARATOR_RE.sub("-", text).strip("-")
    return text or default


def is_slug(value: str) -> bool:
    """Return ``True`` if *value* is already a well-formed slug."""
    return bool(value) and slugify_name(value, default="") == value


__all__ = ["DEFAULT_FOLDER_NAME", "slugify_name", "is_slug"]
