"""
Module-name lookup table.

An alternative to the import-status tracking in ``callgate.resolution``:
every reference in a module is resolved up front to the module(s) it may
come from, and the rule then only asks "is the forbidden function's
defining module among them?".

Without interface information a wildcard import (``exposing (..)``) is a
candidate for every bare name, which makes the two approaches produce the
same diagnostics. Passing ``interfaces`` (module name -> exposed values)
narrows wildcard imports to the values the module really exposes.
"""

from __future__ import annotations

import logging
from typing import Iterator, Mapping, Optional

from callgate.config import RuleConfig
from callgate.diagnostics import Diagnostic
from callgate.names import join_module_name
from callgate.rules import active_bindings, make_diagnostic
from callgate.resolution import collect_forbidden_functions
from callgate.syntax.parser import FunctionOrValue, ModuleNode, Range, walk


logger = logging.getLogger(__name__)

ModuleName = tuple[str, ...]


class ModuleNameLookupTable:
    """Maps each reference's source range to its candidate defining modules."""

    def __init__(self, entries: Optional[Mapping[Range, tuple[ModuleName, ...]]] = None) -> None:
        self._entries: dict[Range, tuple[ModuleName, ...]] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, ref: FunctionOrValue, modules: tuple[ModuleName, ...]) -> None:
        self._entries[ref.range] = modules

    def module_names_for(self, ref: FunctionOrValue) -> tuple[ModuleName, ...]:
        """Candidate defining modules for ``ref``; empty when it is unresolved or local."""
        return self._entries.get(ref.range, ())


def _references(module: ModuleNode) -> Iterator[FunctionOrValue]:
    for decl in module.function_declarations():
        for node in walk(decl.body):
            if isinstance(node, FunctionOrValue):
                yield node


def _unique(modules) -> tuple[ModuleName, ...]:
    return tuple(dict.fromkeys(modules))


def build_lookup_table(
    module: ModuleNode,
    interfaces: Optional[Mapping[str, frozenset[str]]] = None,
) -> ModuleNameLookupTable:
    """Pre-resolve every reference in ``module`` from its imports."""
    imported = {imp.module_name for imp in module.imports}
    qualifiers = {imp.qualifier for imp in module.imports}
    table = ModuleNameLookupTable()

    for ref in _references(module):
        if ref.module_name:
            written = join_module_name(ref.module_name)
            modules = [imp.module_name for imp in module.imports if imp.qualifier == written]
            if ref.module_name not in imported and written not in qualifiers:
                # Qualified access without an import, unless an alias owns the prefix
                modules.append(ref.module_name)
        else:
            modules = []
            for imp in module.imports:
                if imp.exposing is None or not imp.exposing.exposes(ref.name):
                    continue
                known = (interfaces or {}).get(join_module_name(imp.module_name))
                if imp.exposing.is_all and known is not None and ref.name not in known:
                    continue
                modules.append(imp.module_name)

        if modules:
            table.add(ref, _unique(modules))

    logger.debug("%s: %d resolved reference(s)", module.dotted_name, len(table))
    return table


def check_module_with_lookup(
    config: RuleConfig,
    module: ModuleNode,
    table: Optional[ModuleNameLookupTable] = None,
) -> list[Diagnostic]:
    """Same contract as ``check_module``, resolving through a lookup table."""
    bindings = active_bindings(config, module.dotted_name)
    functions = collect_forbidden_functions(
        {index: binding.functions for index, binding in bindings.items()}
    )
    if not functions:
        return []

    if table is None:
        table = build_lookup_table(module)

    diagnostics: list[Diagnostic] = []
    for ref in _references(module):
        origins = table.module_names_for(ref)
        violated = [
            fn for fn in functions
            if fn.name == ref.name and fn.function.module_name in origins
        ]
        if violated:
            diagnostics.append(make_diagnostic(config, ref, violated))
    return diagnostics
