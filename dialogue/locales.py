"""Locale registry — sets of mutually substitutable literal texts per locale.

Registering ``["'d_", "_would_"]`` for ``en`` makes a handler written with
"I would like" also accept "I'd like".  A variant wrapped in underscores has
to stand alone as a word; a single leading or trailing underscore requires a
word boundary on that side only.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from dialogue.errors import InvalidName, InvalidValue, UnknownLocale

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"

# Characters a variant may not hold: they would change the handler regex
_RESERVED_RE = re.compile(r"[-\[\]/{}()*+?.\\^$|!]")

# Characters escaped in handler literals
_ESCAPE_RE = re.compile(r"[-\[\]/{}()*+?.\\^$|]")


def escape_literal(text: str) -> str:
    """Escape regex metacharacters, leaving spaces, ``!``, ``#`` and quotes alone."""
    return _ESCAPE_RE.sub(lambda m: "\\" + m.group(0), text)


def variant_text(variant: str) -> str:
    """Turn the ``_`` word markers of a variant into spaces."""
    if len(variant) > 1 and variant.startswith("_") and variant.endswith("_"):
        return " " + variant[1:-1] + " "
    if variant.startswith("_"):
        return " " + variant[1:]
    if variant.endswith("_"):
        return variant[:-1] + " "
    return variant


def alternation(variants: tuple[str, ...] | list[str]) -> str:
    return "(?:" + "|".join(variant_text(v) for v in variants) + ")"


@dataclass(frozen=True)
class LocalePattern:
    """One registered set of equivalent texts."""

    locale: str
    variants: tuple[str, ...]

    @property
    def alternation(self) -> str:
        return alternation(self.variants)

    @property
    def regex(self) -> re.Pattern[str]:
        return re.compile(self.alternation)


class LocaleRegistry:
    """Locale patterns, keyed by two-letter locale code."""

    def __init__(self, current: str = DEFAULT_LOCALE) -> None:
        self._patterns: dict[str, list[LocalePattern]] = {DEFAULT_LOCALE: []}
        self._compiled: dict[str, list[tuple[re.Pattern[str], str]]] = {DEFAULT_LOCALE: []}
        self._current = DEFAULT_LOCALE
        if current != DEFAULT_LOCALE:
            self._patterns[current] = []
            self._compiled[current] = []
            self._current = current

    @property
    def current(self) -> str:
        return self._current

    def add_pattern(self, locale: str, variants: list[str]) -> LocalePattern:
        """Register a set of equivalent texts; the locale is created on first use."""
        if not isinstance(locale, str) or len(locale) != 2 or not locale.isalpha():
            raise InvalidName("locale", locale)
        if not isinstance(variants, (list, tuple)) or not variants:
            raise InvalidValue(f"No text was provided for locale '{locale}' pattern")

        seen: set[str] = set()
        for text in variants:
            if not isinstance(text, str) or not text:
                raise InvalidValue(
                    f"Bad replacement text for locale '{locale}', must be a non-empty string"
                )
            if _RESERVED_RE.search(text):
                raise InvalidValue(
                    f"Replacement texts can't contain regex-reserved symbols "
                    f"(locale '{locale}', text {text!r})"
                )
            if text in seen:
                raise InvalidValue(f"Duplicate replacement text {text!r} for locale '{locale}'")
            seen.add(text)

        pattern = LocalePattern(locale, tuple(variants))
        self._patterns.setdefault(locale, []).append(pattern)
        self._compiled.setdefault(locale, []).append((pattern.regex, pattern.alternation))
        logger.info("Registered pattern for locale %s: %s", locale, list(variants),
                    extra={"locale": locale})
        return pattern

    def has(self, locale: str) -> bool:
        return locale in self._patterns

    def use(self, locale: str) -> None:
        if locale not in self._patterns:
            raise UnknownLocale(locale)
        self._current = locale

    def locales(self) -> list[str]:
        return list(self._patterns)

    def patterns(self, locale: str) -> list[LocalePattern]:
        if locale not in self._patterns:
            raise UnknownLocale(locale)
        return list(self._patterns[locale])

    def translate_escaped(self, text: str, locale: str | None = None) -> str:
        """Replace every variant found in already-escaped *text* by the
        alternation of its set."""
        locale = locale or self._current
        if locale not in self._compiled:
            raise UnknownLocale(locale)
        for regex, replacement in self._compiled[locale]:
            text = regex.sub(lambda m, r=replacement: r, text)
        return text

    def translate(self, text: str, locale: str | None = None) -> str:
        """Regex text matching *text* and every locale-equivalent phrasing."""
        if not isinstance(text, str) or not text:
            raise InvalidValue("Text to translate must be a non-empty string")
        return self.translate_escaped(escape_literal(text), locale)

    def texts_equivalent(self, left: str, right: str, locale: str | None = None) -> bool:
        """Tell whether two texts only differ by the locale's substitutions."""
        if not left or not right:
            raise InvalidValue("Texts to compare must be non-empty strings")
        smaller, larger = (right, left) if len(left) > len(right) else (left, right)
        regex = re.compile("^ " + self.translate(smaller, locale) + " $")
        return regex.match(" " + larger + " ") is not None

    def export(self) -> dict[str, list[list[str]]]:
        return {
            locale: [list(p.variants) for p in patterns]
            for locale, patterns in self._patterns.items()
        }
