"""Module specifier scanning for JavaScript and TypeScript declaration files.

The scanner is a small lexer: it understands string literals, template
literals (including nested ``${}`` substitutions), line and block comments
and regular-expression literals, so ``import`` text that only appears
inside one of those is never reported. On top of the token stream it
recognizes:

- ``import ... from "x"`` and side-effect ``import "x"``
- ``import type ... from "x"``
- ``export ... from "x"`` (``*``, ``* as ns``, ``{ ... }``, ``type { ... }``)
- ``import("x")`` calls

``require()`` calls and TypeScript ``import x = require("x")`` are not
module references for our purposes and are skipped. Member calls such as
``loader.import("x")`` are ignored.
"""

from __future__ import annotations

from enum import Enum
from bisect import bisect_right
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple

__all__ = [
    "ReferenceKind",
    "ModuleReference",
    "scan_module_references",
    "split_specifier",
]


class ReferenceKind(str, Enum):
    IMPORT = "import"
    EXPORT = "export"
    DYNAMIC = "dynamic"


@dataclass(frozen=True)
class ModuleReference:
    """One module reference found in a source file.

    Attributes:
        kind: Static import, re-export, or dynamic ``import()``.
        specifier: The module specifier, or ``None`` for a dynamic import
            whose argument is not a literal.
        start: Offset of the opening quote (of ``import`` when computed).
        end: Offset just past the closing quote (past ``)`` when computed).
        quote: Quote character of the literal (``'``, ``"`` or a backtick).
        line: 1-based line number.
    """

    kind: ReferenceKind
    specifier: Optional[str]
    start: int
    end: int
    quote: str
    line: int

    @property
    def is_computed(self) -> bool:
        return self.specifier is None


def split_specifier(specifier: str) -> Tuple[str, str]:
    """Split a specifier into package name and subpath.

    Examples:
        >>> split_specifier("@scope/pkg/utils/helper")
        ('@scope/pkg', 'utils/helper')
        >>> split_specifier("lib")
        ('lib', '')
    """
    parts = specifier.split("/")
    size = 2 if specifier.startswith("@") else 1
    return "/".join(parts[:size]), "/".join(parts[size:])


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------

_IDENT = "ident"
_STRING = "string"
_TEMPLATE = "template"  # no substitutions
_TEMPLATE_PART = "template-part"  # head/middle/tail of a substituted template
_NUMBER = "number"
_REGEX = "regex"
_PUNCT = "punct"

_WHITESPACE = frozenset(" \t\r\n\f\v\ufeff\u00a0\u2028\u2029")

_KEYWORDS_BEFORE_REGEX = frozenset(
    {
        "return",
        "typeof",
        "instanceof",
        "in",
        "of",
        "new",
        "delete",
        "void",
        "throw",
        "case",
        "do",
        "else",
        "yield",
        "await",
    }
)

_STATEMENT_KEYWORDS = frozenset(
    {"import", "export", "const", "let", "var", "function", "class", "if", "return"}
)


class _Token(NamedTuple):
    kind: str
    value: str
    start: int
    end: int


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch in "_$" or ord(ch) > 0x7F


def _is_ident_part(ch: str) -> bool:
    return ch.isalnum() or ch in "_$" or ord(ch) > 0x7F


class _Lexer:
    def __init__(self, source: str) -> None:
        self.src = source
        self.n = len(source)
        self.tokens: List[_Token] = []
        self._brace_depth = 0
        self._template_depths: List[int] = []

    def run(self) -> List[_Token]:
        src, n = self.src, self.n
        i = self._skip_line(0) if src.startswith("#!") else 0

        while i < n:
            ch = src[i]
            nxt = src[i + 1] if i + 1 < n else ""

            if ch in _WHITESPACE:
                i += 1
            elif ch == "/" and nxt == "/":
                i = self._skip_line(i)
            elif ch == "/" and nxt == "*":
                end = src.find("*/", i + 2)
                i = n if end < 0 else end + 2
            elif ch == "/":
                end = self._scan_regex(i) if self._regex_allowed() else None
                if end is None:
                    self._emit(_PUNCT, "/", i, i + 1)
                    i += 1
                else:
                    self._emit(_REGEX, src[i:end], i, end)
                    i = end
            elif ch in "'\"":
                i = self._scan_string(i, ch)
            elif ch == "`":
                i = self._scan_template(i + 1, i)
            elif ch == "}" and self._template_depths and self._template_depths[-1] == self._brace_depth:
                self._template_depths.pop()
                i = self._scan_template(i + 1, None)
            elif ch == "{":
                self._brace_depth += 1
                self._emit(_PUNCT, ch, i, i + 1)
                i += 1
            elif ch == "}":
                self._brace_depth -= 1
                self._emit(_PUNCT, ch, i, i + 1)
                i += 1
            elif _is_ident_start(ch):
                j = i + 1
                while j < n and _is_ident_part(src[j]):
                    j += 1
                self._emit(_IDENT, src[i:j], i, j)
                i = j
            elif ch.isdigit() or (ch == "." and nxt.isdigit()):
                j = i + 1
                while j < n and (src[j].isalnum() or src[j] in "._"):
                    j += 1
                self._emit(_NUMBER, src[i:j], i, j)
                i = j
            elif src.startswith("...", i):
                self._emit(_PUNCT, "...", i, i + 3)
                i += 3
            elif ch == "?" and nxt == "." and not src[i + 2 : i + 3].isdigit():
                self._emit(_PUNCT, "?.", i, i + 2)
                i += 2
            else:
                self._emit(_PUNCT, ch, i, i + 1)
                i += 1

        return self.tokens

    def _emit(self, kind: str, value: str, start: int, end: int) -> None:
        self.tokens.append(_Token(kind, value, start, end))

    def _skip_line(self, i: int) -> int:
        end = self.src.find("\n", i)
        return self.n if end < 0 else end

    def _regex_allowed(self) -> bool:
        if not self.tokens:
            return True
        prev = self.tokens[-1]
        if prev.kind == _PUNCT:
            return prev.value not in (")", "]")
        if prev.kind == _IDENT:
            return prev.value in _KEYWORDS_BEFORE_REGEX
        if prev.kind == _TEMPLATE_PART:
            return prev.value == "${"
        return False

    def _scan_regex(self, i: int) -> Optional[int]:
        src, n = self.src, self.n
        j = i + 1
        in_class = False
        while j < n:
            ch = src[j]
            if ch == "\\":
                j += 2
                continue
            if ch == "\n":
                return None
            if in_class:
                if ch == "]":
                    in_class = False
            elif ch == "[":
                in_class = True
            elif ch == "/":
                j += 1
                while j < n and _is_ident_part(src[j]):
                    j += 1
                return j
            j += 1
        return None

    def _scan_string(self, i: int, quote: str) -> int:
        src, n = self.src, self.n
        j = i + 1
        while j < n:
            ch = src[j]
            if ch == "\\":
                j += 2
                continue
            if ch == quote:
                self._emit(_STRING, src[i + 1 : j], i, j + 1)
                return j + 1
            if ch == "\n":
                break
            j += 1
        # Unterminated; keep it as a non-literal so it is never rewritten.
        end = min(j, n)
        self._emit(_PUNCT, src[i:end], i, end)
        return end

    def _scan_template(self, i: int, start: Optional[int]) -> int:
        """Scan template text from ``i``.

        ``start`` is the opening backtick for a fresh template, or ``None``
        when resuming after a ``${...}`` substitution.
        """
        src, n = self.src, self.n
        j = i
        while j < n:
            ch = src[j]
            if ch == "\\":
                j += 2
                continue
            if ch == "`":
                if start is not None:
                    self._emit(_TEMPLATE, src[start + 1 : j], start, j + 1)
                else:
                    self._emit(_TEMPLATE_PART, "`", j, j + 1)
                return j + 1
            if ch == "$" and src[j + 1 : j + 2] == "{":
                self._emit(_TEMPLATE_PART, "${", start if start is not None else i, j + 2)
                self._template_depths.append(self._brace_depth)
                return j + 2
            j += 1
        self._emit(_TEMPLATE_PART, "", start if start is not None else i, n)
        return n


# ---------------------------------------------------------------------------
# Reference recognition
# ---------------------------------------------------------------------------


def _is(token: Optional[_Token], kind: str, value: Optional[str] = None) -> bool:
    return token is not None and token.kind == kind and (value is None or token.value == value)


class _Recognizer:
    def __init__(self, source: str, tokens: List[_Token]) -> None:
        self.source = source
        self.tokens = tokens
        self._line_starts = [0]
        self._line_starts.extend(idx + 1 for idx, ch in enumerate(source) if ch == "\n")

    def at(self, index: int) -> Optional[_Token]:
        if 0 <= index < len(self.tokens):
            return self.tokens[index]
        return None

    def line_of(self, offset: int) -> int:
        return bisect_right(self._line_starts, offset)

    def literal(self, kind: ReferenceKind, token: _Token) -> ModuleReference:
        quote = self._quote_of(token)
        return ModuleReference(
            kind=kind,
            specifier=token.value,
            start=token.start,
            end=token.end,
            quote=quote,
            line=self.line_of(token.start),
        )

    def _quote_of(self, token: _Token) -> str:
        # String and template spans include their quotes.
        return self.source[token.start]

    def references(self) -> List[ModuleReference]:
        found: List[ModuleReference] = []

        for index, token in enumerate(self.tokens):
            if token.kind != _IDENT or token.value not in ("import", "export"):
                continue

            prev = self.at(index - 1)
            if _is(prev, _PUNCT, ".") or _is(prev, _PUNCT, "?."):
                continue
            nxt = self.at(index + 1)
            if _is(nxt, _PUNCT, ":"):
                continue

            if token.value == "import":
                if _is(nxt, _PUNCT, "("):
                    ref = self._dynamic(index)
                elif _is(nxt, _PUNCT, "."):
                    ref = None
                else:
                    ref = self._static_import(index)
            else:
                ref = self._re_export(index)

            if ref is not None:
                found.append(ref)

        return found

    def _static_import(self, index: int) -> Optional[ModuleReference]:
        j = index + 1
        first = self.at(j)
        if _is(first, _STRING):
            return self.literal(ReferenceKind.IMPORT, first)

        depth = 0
        while j < len(self.tokens):
            tok = self.tokens[j]
            if tok.kind == _IDENT:
                if tok.value == "from" and _is(self.at(j + 1), _STRING):
                    return self.literal(ReferenceKind.IMPORT, self.tokens[j + 1])
                if tok.value in _STATEMENT_KEYWORDS:
                    return None
            elif tok.kind == _PUNCT:
                if tok.value == "{":
                    depth += 1
                elif tok.value == "}":
                    depth -= 1
                elif tok.value not in ("*", ","):
                    return None
            elif tok.kind == _STRING:
                # Arbitrary module namespace names: import { "a-b" as ab }
                if depth <= 0:
                    return None
            else:
                return None
            j += 1
        return None

    def _re_export(self, index: int) -> Optional[ModuleReference]:
        j = index + 1
        if _is(self.at(j), _IDENT, "type") and (
            _is(self.at(j + 1), _PUNCT, "{") or _is(self.at(j + 1), _PUNCT, "*")
        ):
            j += 1

        tok = self.at(j)
        if _is(tok, _PUNCT, "*"):
            j += 1
            if _is(self.at(j), _IDENT, "as"):
                j += 2
        elif _is(tok, _PUNCT, "{"):
            depth = 0
            while j < len(self.tokens):
                tok = self.tokens[j]
                if tok.kind == _PUNCT and tok.value == "{":
                    depth += 1
                elif tok.kind == _PUNCT and tok.value == "}":
                    depth -= 1
                    if depth == 0:
                        break
                j += 1
            j += 1
        else:
            return None

        if _is(self.at(j), _IDENT, "from") and _is(self.at(j + 1), _STRING):
            return self.literal(ReferenceKind.EXPORT, self.tokens[j + 1])
        return None

    def _dynamic(self, index: int) -> Optional[ModuleReference]:
        arg = self.at(index + 2)
        after = self.at(index + 3)
        if (_is(arg, _STRING) or _is(arg, _TEMPLATE)) and (
            _is(after, _PUNCT, ")") or _is(after, _PUNCT, ",")
        ):
            return self.literal(ReferenceKind.DYNAMIC, arg)

        close = self._matching_paren(index + 1)
        if close is None:
            return None
        # `import(...) {` is a method named "import", not a call.
        if _is(self.at(close + 1), _PUNCT, "{"):
            return None

        start = self.tokens[index].start
        return ModuleReference(
            kind=ReferenceKind.DYNAMIC,
            specifier=None,
            start=start,
            end=self.tokens[close].end,
            quote="",
            line=self.line_of(start),
        )

    def _matching_paren(self, open_index: int) -> Optional[int]:
        depth = 0
        for j in range(open_index, len(self.tokens)):
            tok = self.tokens[j]
            if tok.kind != _PUNCT:
                continue
            if tok.value == "(":
                depth += 1
            elif tok.value == ")":
                depth -= 1
                if depth == 0:
                    return j
        return None


def scan_module_references(source: str) -> List[ModuleReference]:
    """Return every module reference in ``source``, in source order.

    Example:
        >>> refs = scan_module_references("import { a } from 'lib'\\n")
        >>> refs[0].specifier, refs[0].quote, refs[0].line
        ('lib', "'", 1)
    """
    tokens = _Lexer(source).run()
    return _Recognizer(source, tokens).references()
