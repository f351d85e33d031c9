"""Route declaration compiler.

A declaration is one of three shapes:

    /about                  literal, matched by string equality
    /api[/]*$               plain pattern, compiled as is
    /user/<id>/post/<pid>   variable pattern, each <name> becomes a capture group
"""

import re
from dataclasses import dataclass

from remux.errors import InvalidPatternError

VARIABLE_TOKEN = re.compile(r"<([A-Za-z0-9_]*?)>")
VARIABLE_MATCH = "(.+?)"

_METACHARACTERS = frozenset("\\.+*?()|[]{}^$")


@dataclass(slots=True, frozen=True)
class LiteralRoute:
    path: str


@dataclass(slots=True, frozen=True)
class PlainPattern:
    declaration: str
    matcher: re.Pattern[str]


@dataclass(slots=True, frozen=True)
class VariablePattern:
    """Pattern whose capture groups line up one-to-one with var_names."""

    declaration: str
    matcher: re.Pattern[str]
    var_names: tuple[str, ...]


type RouteKind = LiteralRoute | PlainPattern | VariablePattern


def is_literal(declaration: str) -> bool:
    """True if escaping regexp metacharacters would leave declaration unchanged."""
    return not any(c in _METACHARACTERS for c in declaration)


def compile_route(declaration: str, *, check_pattern: bool = True) -> RouteKind:
    """Classify and compile a route declaration.

    Declarations with no <name> tokens are literal unless they contain regexp
    metacharacters, in which case they are compiled as a plain pattern. With
    `check_pattern=False` the metacharacter check is skipped and every
    declaration without variable tokens is literal.

    Raises InvalidPatternError if the (substituted) declaration does not compile.
    """
    tokens = list(VARIABLE_TOKEN.finditer(declaration))
    if not tokens:
        if not check_pattern or is_literal(declaration):
            return LiteralRoute(declaration)
        return PlainPattern(declaration, _compile(declaration, declaration))

    var_names: list[str] = []
    parts: list[str] = []
    end = 0
    for token in tokens:
        parts.append(declaration[end : token.start()])
        parts.append(VARIABLE_MATCH)
        var_names.append(token.group(1))
        end = token.end()
    parts.append(declaration[end:])
    matcher = _compile("".join(parts), declaration)

    # a declaration can carry its own groups, e.g. "/(a|b)/<id>"
    if matcher.groups != len(var_names):
        msg = (
            f"declaration {declaration!r} has {matcher.groups} capture groups "
            f"but {len(var_names)} variables, use (?:...) for grouping"
        )
        raise InvalidPatternError(msg)
    return VariablePattern(declaration, matcher, tuple(var_names))


def _compile(source: str, declaration: str) -> re.Pattern[str]:
    try:
        return re.compile(source)
    except re.error as e:
        msg = f"invalid route pattern {declaration!r}: {e}"
        raise InvalidPatternError(msg) from e
