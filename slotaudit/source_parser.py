"""
slotaudit - Solidity Source Reader
Extracts contracts and their state variable declarations from Solidity
source text. Only declarations are read; function bodies are skipped.
"""

import logging
import re
from pathlib import Path

from .errors import SourceError
from .models import ContractModel, DeclaredVariable

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lexical helpers
# ---------------------------------------------------------------------------

_STRING_OR_COMMENT = re.compile(
    r"(\"(?:\\.|[^\"\\\n])*\"|'(?:\\.|[^'\\\n])*')|//[^\n]*|/\*.*?\*/",
    re.DOTALL,
)

CONTRACT_HEADER = re.compile(r"\b(abstract\s+)?(contract|library|interface)\s+(\w+)([^{;]*)\{")

IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")

VISIBILITIES = {"public", "private", "internal", "external"}

# `function (...)` with no name is a function type, not a definition
FUNCTION_TYPE = re.compile(r"^function\s*\(")
FUNCTION_TYPE_ATTRIBUTE = re.compile(r"^(internal|external|pure|view|payable)\b\s*")

# First words of top-level statements that never declare state
NON_STATE_KEYWORDS = {
    "function", "modifier", "event", "error", "using", "struct", "enum",
    "constructor", "fallback", "receive", "pragma", "import", "type",
}


def _strip_comments(content: str) -> str:
    """Blank out comments, keeping string literals and line breaks."""
    def repl(m: re.Match) -> str:
        if m.group(1):
            return m.group(1)
        return re.sub(r"[^\n]", " ", m.group(0))
    return _STRING_OR_COMMENT.sub(repl, content)


def _skip_string(text: str, start: int) -> int:
    """Index just past the string literal opening at `start`."""
    quote = text[start]
    i = start + 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote:
            return i + 1
        i += 1
    return len(text)


def _matching(text: str, start: int, open_ch: str, close_ch: str) -> int:
    """Index of the bracket closing the one at `start`, or -1."""
    depth = 0
    i = start
    while i < len(text):
        ch = text[i]
        if ch in "\"'":
            i = _skip_string(text, i)
            continue
        if ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _top_level_statements(body: str) -> list[str]:
    """`;`-terminated statements at brace depth 0 of a contract body."""
    statements: list[str] = []
    buf: list[str] = []
    depth = 0
    i = 0
    while i < len(body):
        ch = body[i]
        if ch in "\"'":
            end = _skip_string(body, i)
            if depth == 0:
                buf.append(body[i:end])
            i = end
            continue
        if ch == "{":
            if depth == 0:
                buf = []
            depth += 1
        elif ch == "}":
            depth = max(0, depth - 1)
        elif depth == 0:
            if ch == ";":
                statements.append("".join(buf).strip())
                buf = []
            else:
                buf.append(ch)
        i += 1
    return [s for s in statements if s]


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


def normalize_type(type_name: str) -> str:
    """Canonical spelling of a type so identical types compare equal."""
    t = " ".join(type_name.split())
    t = re.sub(r"\s*=>\s*", " => ", t)
    t = re.sub(r"\s*([()\[\]])\s*", r"\1", t)
    return t


def _split_initializer(text: str) -> tuple[str, str | None]:
    """Split `decl = value` on the first assignment outside brackets."""
    depth = 0
    for i, ch in enumerate(text):
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        elif ch == "=" and depth == 0:
            nxt = text[i + 1] if i + 1 < len(text) else ""
            prev = text[i - 1] if i else ""
            if nxt not in "=>" and prev not in "=!<>":
                return text[:i].strip(), text[i + 1:].strip()
    return text.strip(), None


def _split_function_type(text: str) -> tuple[str, str] | None:
    """Split `function (params) attrs [returns (params)] rest`."""
    open_idx = text.find("(")
    close_idx = _matching(text, open_idx, "(", ")")
    if close_idx == -1:
        return None
    parts = [f"function({normalize_type(text[open_idx + 1:close_idx])})"]
    rest = text[close_idx + 1:].lstrip()

    while True:
        m = FUNCTION_TYPE_ATTRIBUTE.match(rest)
        if not m:
            break
        parts.append(m.group(1))
        rest = rest[m.end():]

    if re.match(r"returns\s*\(", rest):
        open_idx = rest.find("(")
        close_idx = _matching(rest, open_idx, "(", ")")
        if close_idx == -1:
            return None
        parts.append(f"returns({normalize_type(rest[open_idx + 1:close_idx])})")
        rest = rest[close_idx + 1:]

    return " ".join(parts), rest


def _split_type(text: str) -> tuple[str, str] | None:
    """Split a declaration into (type, remainder)."""
    if FUNCTION_TYPE.match(text):
        split = _split_function_type(text)
        if split is None:
            return None
        type_name, rest = split
    elif text.startswith("mapping"):
        open_idx = text.find("(")
        close_idx = _matching(text, open_idx, "(", ")") if open_idx != -1 else -1
        if close_idx == -1:
            return None
        type_name, rest = normalize_type(text[:close_idx + 1]), text[close_idx + 1:]
    else:
        m = re.match(r"[A-Za-z_$][\w$.]*", text)
        if not m:
            return None
        type_name, rest = m.group(), text[m.end():]
        if type_name == "address" and re.match(r"\s+payable\b", rest):
            type_name = "address payable"
            rest = re.sub(r"^\s+payable", "", rest)

    # Array suffixes, possibly nested: T[], T[4][]
    rest = rest.lstrip()
    while rest.startswith("["):
        close_idx = _matching(rest, 0, "[", "]")
        if close_idx == -1:
            return None
        type_name += normalize_type(rest[:close_idx + 1])
        rest = rest[close_idx + 1:].lstrip()

    return type_name, rest


def parse_declaration(statement: str) -> DeclaredVariable | None:
    """Parse one top-level statement as a state variable, or None."""
    text = " ".join(statement.split())
    if not text:
        return None
    first = text.split(" ", 1)[0].split("(", 1)[0]
    if first in NON_STATE_KEYWORDS and not FUNCTION_TYPE.match(text):
        return None

    decl, initial_value = _split_initializer(text)
    split = _split_type(decl)
    if split is None:
        return None
    type_name, rest = split

    rest = re.sub(r"\boverride\s*\([^)]*\)", " override ", rest)
    tokens = rest.split()
    if not tokens or not IDENTIFIER.match(tokens[-1]):
        return None
    name, modifiers = tokens[-1], tokens[:-1]

    if "transient" in modifiers:
        log.debug(f"Skipping transient variable {name}")
        return None

    visibility = next((m for m in modifiers if m in VISIBILITIES), "internal")
    return DeclaredVariable(
        name=name,
        type_name=type_name,
        visibility=visibility,
        is_constant="constant" in modifiers,
        is_immutable="immutable" in modifiers,
        initial_value=initial_value,
    )


def _base_contracts(header: str) -> list[str]:
    header = header.strip()
    if not header.startswith("is"):
        return []
    bases = []
    depth = 0
    current = ""
    for ch in header[2:]:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            bases.append(current)
            current = ""
        else:
            current += ch
    bases.append(current)

    names = []
    for base in bases:
        m = re.match(r"\s*([\w.]+)", base)
        if m:
            names.append(m.group(1))
    return names


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_source(content: str, file_path: str = "") -> list[ContractModel]:
    """Parse every contract, library and interface in a source string."""
    text = _strip_comments(content)
    contracts: list[ContractModel] = []

    pos = 0
    while True:
        m = CONTRACT_HEADER.search(text, pos)
        if not m:
            break
        body_start = m.end() - 1
        body_end = _matching(text, body_start, "{", "}")
        if body_end == -1:
            log.warning(f"{file_path or '<source>'}: unterminated body for {m.group(3)}")
            break

        variables = []
        for statement in _top_level_statements(text[body_start + 1:body_end]):
            var = parse_declaration(statement)
            if var is not None:
                variables.append(var)

        contracts.append(ContractModel(
            name=m.group(3),
            variables=variables,
            base_contracts=_base_contracts(m.group(4)),
            kind=m.group(2),
            is_abstract=bool(m.group(1)),
            file_path=file_path,
        ))
        pos = body_end + 1

    return contracts


def parse_file(path: str) -> list[ContractModel]:
    """Read a .sol file and parse its contracts."""
    try:
        content = Path(path).read_text(encoding="utf-8", errors="ignore")
    except (IOError, OSError) as e:
        raise SourceError(f"Could not read {path}: {e}") from e

    contracts = parse_source(content, str(path))
    log.info(f"Parsed {path}: {len(contracts)} contract(s)")
    return contracts


def find_contract(contracts: list[ContractModel], name: str | None = None) -> ContractModel | None:
    """Pick a contract by name, or the first deployable one when no name is given."""
    if name:
        return next((c for c in contracts if c.name == name), None)
    for contract in contracts:
        if contract.kind == "contract":
            return contract
    return contracts[0] if contracts else None
