"""Diagnostic and symbol indices, keyed by workspace root.

Both indices are plain classes (not singletons) owned by whoever
activates the engine and passed into every ``BuildSession``.  ``commit``
is the only mutation entry point and replaces a root's whole entry in
one step, so readers only ever see the last committed snapshot.
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence

from reproto_ide.contracts import Diagnostic, Symbol


def root_key(root: str | os.PathLike[str]) -> str:
    """Canonical identity of a workspace root."""
    return os.path.normcase(os.path.normpath(os.path.abspath(os.fspath(root))))


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


class DiagnosticIndex:
    """root → (root-relative path → ordered diagnostics)."""

    __slots__ = ("_by_root",)

    def __init__(self) -> None:
        self._by_root: dict[str, dict[str, tuple[Diagnostic, ...]]] = {}

    def commit(
        self,
        root: str | os.PathLike[str],
        diagnostics: Mapping[str, Sequence[Diagnostic]],
    ) -> None:
        """Replace the root's entry; paths not in *diagnostics* are dropped."""
        self._by_root[root_key(root)] = {
            path: tuple(diags) for path, diags in diagnostics.items()
        }

    def get(self, root: str | os.PathLike[str]) -> dict[str, list[Diagnostic]]:
        entry = self._by_root.get(root_key(root), {})
        return {path: list(diags) for path, diags in entry.items()}

    def roots(self) -> list[str]:
        return sorted(self._by_root)

    def count(self, root: str | os.PathLike[str]) -> int:
        return sum(len(d) for d in self._by_root.get(root_key(root), {}).values())

    def __repr__(self) -> str:
        return f"DiagnosticIndex(roots={len(self._by_root)})"


# ---------------------------------------------------------------------------
# Symbols
# ---------------------------------------------------------------------------


class SymbolIndex:
    """Two synchronised views: per-root (workspace search) and per-file (outline)."""

    __slots__ = ("_by_root", "_by_file", "_files_of_root", "_owner")

    def __init__(self) -> None:
        self._by_root: dict[str, tuple[Symbol, ...]] = {}
        self._by_file: dict[str, tuple[Symbol, ...]] = {}
        self._files_of_root: dict[str, frozenset[str]] = {}
        # uri → key of the root that last committed it
        self._owner: dict[str, str] = {}

    def commit(
        self,
        root: str | os.PathLike[str],
        symbols: Sequence[Symbol],
        by_file: Mapping[str, Sequence[Symbol]] | None = None,
    ) -> None:
        """Replace the root's symbols and every file entry it owns.

        *by_file* defaults to grouping *symbols* by URI.  File entries the
        root owned before but no longer mentions are dropped, unless another
        root (e.g. a nested one) has committed them since.
        """
        key = root_key(root)
        if by_file is None:
            grouped: dict[str, list[Symbol]] = {}
            for sym in symbols:
                grouped.setdefault(sym.uri, []).append(sym)
            by_file = grouped

        files = {uri: tuple(syms) for uri, syms in by_file.items()}
        for stale in self._files_of_root.get(key, frozenset()) - files.keys():
            if self._owner.get(stale) == key:
                self._by_file.pop(stale, None)
                del self._owner[stale]

        self._by_file.update(files)
        self._owner.update(dict.fromkeys(files, key))
        self._files_of_root[key] = frozenset(files)
        self._by_root[key] = tuple(symbols)

    def for_root(self, root: str | os.PathLike[str]) -> list[Symbol]:
        return list(self._by_root.get(root_key(root), ()))

    def for_file(self, uri: str) -> list[Symbol]:
        return list(self._by_file.get(uri, ()))

    def search(self, query: str) -> list[Symbol]:
        """Case-insensitive substring match on names across every root."""
        q = query.lower()
        return [
            sym
            for symbols in self._by_root.values()
            for sym in symbols
            if q in sym.name.lower()
        ]

    def roots(self) -> list[str]:
        return sorted(self._by_root)

    def __repr__(self) -> str:
        return f"SymbolIndex(roots={len(self._by_root)}, files={len(self._by_file)})"


# ---------------------------------------------------------------------------
# Editor-facing provider interface
# ---------------------------------------------------------------------------


class IndexProvider:
    """Read-only view the presentation layer queries."""

    __slots__ = ("diagnostics", "symbols")

    def __init__(
        self,
        diagnostics: DiagnosticIndex | None = None,
        symbols: SymbolIndex | None = None,
    ) -> None:
        self.diagnostics = diagnostics or DiagnosticIndex()
        self.symbols = symbols or SymbolIndex()

    def get_diagnostics(self, root: str | os.PathLike[str]) -> dict[str, list[Diagnostic]]:
        return self.diagnostics.get(root)

    def get_document_symbols(self, uri: str) -> list[Symbol]:
        return self.symbols.for_file(uri)

    def search_workspace_symbols(self, query: str) -> list[Symbol]:
        return self.symbols.search(query)


__all__ = ["DiagnosticIndex", "IndexProvider", "SymbolIndex", "root_key"]
