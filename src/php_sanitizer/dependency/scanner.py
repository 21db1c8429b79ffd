"""Module discovery and declaration/usage extraction for PHP sources.

Parsing is line-oriented pattern matching, not full PHP parsing. A
declaration or ``use`` statement written in an unusual style is simply not
seen; the resulting sets are smaller but the scan never fails because of it.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable, Pattern

from ..exceptions import InvalidConfigError
from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_EXTENSIONS = (".php", ".inc")

_DECLARATION_RE = re.compile(
    r"^\s*(?:abstract|final)?\s*(?:class|interface|trait)\s+([a-zA-Z0-9_]+)", re.MULTILINE
)
_NAMESPACE_RE = re.compile(r"^\s*namespace\s+([a-zA-Z0-9_\\]+)", re.MULTILINE)
_USE_RE = re.compile(r"^\s*use\s+([a-zA-Z0-9_\\]+)", re.MULTILINE)

# Delimited expression followed by PCRE modifier letters, e.g. "/regex/i"
_DELIMITED_REGEX_RE = re.compile(r"^(?P<expr>.{3,}?)(?P<flags>[imsxuADSUXJ]*)$", re.DOTALL)

_BRACKET_DELIMITERS = {"{": "}", "(": ")", "[": "]", "<": ">"}

# Characters that can't delimit an expression
_NON_DELIMITERS = set("*? \\")

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "u": 0,
    # Relative paths never end in a newline, so "$" already behaves as with D
    "D": 0,
    "S": 0,
    "X": 0,
    "J": 0,
}


def _split_delimited(module_pattern: str):
    """Return ``(body, flags)`` for a delimited regex, or None for a literal."""
    match = _DELIMITED_REGEX_RE.match(module_pattern)
    if match is None:
        return None

    expr = match.group("expr")
    start, end = expr[0], expr[-1]
    if start == end:
        if start.isalnum() or start in _NON_DELIMITERS:
            return None
    elif _BRACKET_DELIMITERS.get(start) != end:
        return None
    return expr[1:-1], match.group("flags")


def compile_module_pattern(module_pattern: str) -> Pattern[str]:
    """Compile a module-locating pattern.

    A delimited expression such as ``/^src\\/[^\\/]+$/`` or
    ``{^src/[^/]+$}`` is a regex searched in each directory's root-relative
    path. Anything else is a literal substring match.

    Raises:
        InvalidConfigError: If the regex uses the U modifier or doesn't compile
    """
    parts = _split_delimited(module_pattern)
    if parts is None:
        return re.compile(re.escape(module_pattern.replace("\\", "/")))

    body, modifiers = parts
    flags = 0
    for letter in modifiers:
        if letter not in _FLAG_MAP:
            raise InvalidConfigError(
                "module_pattern", module_pattern, f"unsupported modifier {letter!r}"
            )
        flags |= _FLAG_MAP[letter]

    if "A" in modifiers:
        # A trailing newline keeps a verbose-mode comment from swallowing ")"
        body = rf"\A(?:{body}" + ("\n)" if flags & re.VERBOSE else ")")

    try:
        return re.compile(body, flags)
    except re.error as e:
        raise InvalidConfigError("module_pattern", module_pattern, str(e))


def discover_modules(root_dir: str | Path, module_pattern: str) -> dict[str, Path]:
    """Find module root directories under ``root_dir``.

    Args:
        root_dir: Root of the unpacked project
        module_pattern: Pattern matched against each directory's relative path

    Returns:
        Mapping of module name (directory base name) to its absolute path.
        Empty when nothing matches.
    """
    root = Path(root_dir)
    pattern = compile_module_pattern(module_pattern)

    candidates: list[tuple[str, Path]] = []
    for dirpath, dirnames, _filenames in os.walk(root):
        dirnames.sort()
        base = Path(dirpath)
        for dirname in dirnames:
            directory = base / dirname
            rel_path = directory.relative_to(root).as_posix()
            if pattern.search(rel_path):
                candidates.append((rel_path, directory))

    candidates.sort(key=lambda item: item[0])

    modules: dict[str, Path] = {}
    for rel_path, directory in candidates:
        name = directory.name
        if name in modules:
            logger.warning(
                "Module name %r already taken by %s, ignoring %s", name, modules[name], rel_path
            )
            continue
        modules[name] = directory.resolve()

    logger.debug("Discovered %d modules under %s", len(modules), root)
    return modules


def parse_source(content: str) -> tuple[set[str], set[str]]:
    """Extract the symbols a file declares and the symbols it uses.

    Declared names are qualified with the file's namespace. A single
    leading backslash is stripped from used names.
    """
    classes = _DECLARATION_RE.findall(content)
    namespace_match = _NAMESPACE_RE.search(content)
    namespace = namespace_match.group(1) if namespace_match else ""

    declares = {f"{namespace}\\{name}" if namespace else name for name in classes}

    uses = set()
    for usage in _USE_RE.findall(content):
        if usage.startswith("\\"):
            usage = usage[1:]
        if usage:
            uses.add(usage)

    return declares, uses


def iter_source_files(path: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> list[Path]:
    """List source files under ``path`` with an allowed extension, sorted."""
    allowed = {ext.lower() for ext in extensions}
    return sorted(
        p for p in Path(path).rglob("*") if p.is_file() and p.suffix.lower() in allowed
    )


def scan_module(
    path: str | Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS
) -> tuple[frozenset[str], frozenset[str]]:
    """Union of declared and used symbols across a module's source files."""
    declares: set[str] = set()
    uses: set[str] = set()

    for file_path in iter_source_files(Path(path), extensions):
        content = file_path.read_text(encoding="utf-8", errors="replace")
        file_declares, file_uses = parse_source(content)
        declares.update(file_declares)
        uses.update(file_uses)

    return frozenset(declares), frozenset(uses)
