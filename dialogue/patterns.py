"""Handler pattern compiler — turns an authored pattern into an anchored regex.

Pattern syntax:

* literal text, matched case-insensitively; one space accepts any run of
  spaces and the locale's equivalent phrasings are accepted too;
* ``{name}``: a registered catcher;
* ``{?a|b}``: alternative texts (``{?a}`` is optional, ``{?:a|b}`` makes the
  whole list optional);
* ``{#regex}``: a raw regex placed verbatim inside one capturing group;
* ``*`` or ``{*}``: anything.

Each placeholder becomes exactly one capturing group, and the returned
catcher list follows the left-to-right order of those groups.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from dialogue.catchers import CatcherRegistry
from dialogue.errors import InvalidPattern, InvalidValue, UnknownCatcher
from dialogue.locales import LocaleRegistry, escape_literal

logger = logging.getLogger(__name__)

TOLERANT_GROUP = "(.*?)"
WILDCARD_GROUP = "(.+?)"

# Trailing punctuation made optional once the body is assembled
_TRAILING_DOT_RE = re.compile(r"(?: \+)?\\\.$")
_TRAILING_QUESTION_RE = re.compile(r"(?: \+)?\\\?$")
_TRAILING_FILLER = r"(?: *[!.])*"


@dataclass(frozen=True)
class CompiledPattern:
    """A compiled handler pattern and the catchers its groups belong to."""

    source: str
    regex: re.Pattern[str]
    catchers: tuple[str, ...]
    tolerant: bool = False

    @property
    def group_count(self) -> int:
        return self.regex.groups


@dataclass(frozen=True)
class LiteralText:
    text: str


@dataclass(frozen=True)
class Placeholder:
    body: str


def split_pattern(pattern: str) -> list[LiteralText | Placeholder]:
    """Cut *pattern* into literal runs and placeholders.

    Braces nest, so ``{#\\d{2}}`` is a single placeholder.  A bare ``*``
    is a placeholder of its own.
    """
    parts: list[LiteralText | Placeholder] = []
    literal: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "{":
            depth = 1
            j = i + 1
            while j < n and depth:
                if pattern[j] == "\\" and j + 1 < n:
                    j += 2
                    continue
                if pattern[j] == "{":
                    depth += 1
                elif pattern[j] == "}":
                    depth -= 1
                j += 1
            if depth:
                # Unbalanced brace: keep it as plain text
                literal.append(ch)
                i += 1
                continue
            if literal:
                parts.append(LiteralText("".join(literal)))
                literal = []
            parts.append(Placeholder(pattern[i + 1:j - 1]))
            i = j
            continue
        if ch == "*":
            if literal:
                parts.append(LiteralText("".join(literal)))
                literal = []
            parts.append(Placeholder("*"))
            i += 1
            continue
        literal.append(ch)
        i += 1
    if literal:
        parts.append(LiteralText("".join(literal)))
    return parts


def _spaces(text: str) -> str:
    return text.replace(" ", " +")


class PatternCompiler:
    """Compiles handler patterns against the catcher and locale registries."""

    def __init__(self, catchers: CatcherRegistry, locales: LocaleRegistry) -> None:
        self.catchers = catchers
        self.locales = locales

    def compile(self, pattern: str, locale: str | None = None, tolerant: bool = False) -> CompiledPattern:
        """Build the strict (or tolerant) regex of *pattern*."""
        if not isinstance(pattern, str) or not pattern.strip():
            raise InvalidValue("Handler pattern must be a non-empty string")
        locale = locale or self.locales.current

        caught: list[str] = []
        pieces: list[str] = []
        for part in split_pattern(pattern):
            if isinstance(part, LiteralText):
                text = escape_literal(part.text)
                text = self.locales.translate_escaped(text, locale)
                pieces.append(_spaces(text))
            else:
                pieces.append(self._placeholder(part.body, caught, tolerant))

        body = "".join(pieces)
        body = _TRAILING_DOT_RE.sub(lambda m: r" *(?:\.*)?", body)
        body = _TRAILING_QUESTION_RE.sub(lambda m: r" *(?:\?*)?", body)

        try:
            regex = re.compile("^" + body + _TRAILING_FILLER + "$", re.IGNORECASE)
        except re.error as exc:
            raise InvalidPattern(pattern, str(exc)) from exc

        logger.debug("Compiled %s pattern %r -> %s", "tolerant" if tolerant else "strict",
                     pattern, regex.pattern)
        return CompiledPattern(pattern, regex, tuple(caught), tolerant)

    def compile_pair(self, pattern: str, locale: str | None = None) -> tuple[CompiledPattern, CompiledPattern]:
        """Return the ``(strict, tolerant)`` compilations of *pattern*."""
        return self.compile(pattern, locale), self.compile(pattern, locale, tolerant=True)

    def _placeholder(self, body: str, caught: list[str], tolerant: bool) -> str:
        if body.startswith("?"):
            caught.append("?")
            choices = body[1:]
            if "|" not in choices:
                return "(" + _spaces(escape_literal(choices)) + "|)"
            optional = choices.startswith(":")
            if optional:
                choices = choices[1:]
            group = "|".join(_spaces(escape_literal(c)) for c in choices.split("|"))
            return "(" + group + ("|)" if optional else ")")

        if body.startswith("#"):
            caught.append("#")
            return "(" + body[1:] + ")"

        if body == "*":
            caught.append("*")
            return WILDCARD_GROUP

        name = body.strip()
        fragment = self.catchers.lookup(name)
        if fragment is None:
            raise UnknownCatcher(name)
        caught.append(name)
        if tolerant:
            return TOLERANT_GROUP
        return "(" + fragment + ")"
