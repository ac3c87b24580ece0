"""Normalisation de texte et de raisons sociales."""

from __future__ import annotations

import re
import unicodedata

_LEADING_ARTICLE = re.compile(r"^(?:l'|(?:le|la|les|l|un|une|des|the|a|an)\s+)")
_LEGAL_SUFFIX = re.compile(r"\s+(?:sarl|sas|eurl|eirl|sa|snc|scs|sca|scm|sci)$")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def _remove_diacritics(s: str) -> str:
    """Retire les diacritiques (accents) d'une chaîne."""
    nfd = unicodedata.normalize("NFD", s)
    return "".join(c for c in nfd if unicodedata.category(c) != "Mn")


def norm_text(
    s: str | float | int | None,
    *,
    lower: bool = True,
    remove_diacritics: bool = False,
) -> str:
    """
    Normalise un texte : NFKC, espaces multiples → espace simple, lower, strip.

    Args:
        s: Valeur à normaliser (convertie en str si numérique).
        lower: Mettre en minuscules.
        remove_diacritics: Supprimer les accents.

    Returns:
        Chaîne normalisée.
    """
    if s is None or (isinstance(s, float) and (s != s or s == float("inf"))):
        return ""
    text = unicodedata.normalize("NFKC", str(s))
    text = re.sub(r"\s+", " ", text).strip()
    if lower:
        text = text.lower()
    if remove_diacritics:
        text = _remove_diacritics(text)
    return text


def _normalize_once(text: str) -> str:
    text = _remove_diacritics(text.lower()).strip()
    text = _LEADING_ARTICLE.sub("", text, count=1)
    text = _LEGAL_SUFFIX.sub("", text, count=1)
    text = _NON_ALNUM.sub(" ", text)
    return re.sub(r"\s+", " ", text).strip()


def normalize_name(name: str | None) -> str:
    """
    Normalise une raison sociale ou une enseigne pour comparaison.

    Minuscules, accents retirés, un article initial (le, la, les, l', un, une,
    des, the, a, an) et une forme juridique finale (SARL, SAS, EURL...) retirés,
    ponctuation remplacée par des espaces, espaces compactés.

    La passe est répétée jusqu'à stabilité : normalize_name est idempotente.

    >>> normalize_name("Le Drugstore du Barriot")
    'drugstore du barriot'
    >>> normalize_name("L'Épicerie du Coin SARL")
    'epicerie du coin'
    """
    if not name:
        return ""
    current = str(name)
    while True:
        nxt = _normalize_once(current)
        if nxt == current:
            return nxt
        current = nxt


def name_words(normalized: str, *, min_length: int = 3) -> set[str]:
    """Mots significatifs (longueur >= min_length) d'un nom déjà normalisé."""
    return {w for w in normalized.split(" ") if len(w) >= min_length}
