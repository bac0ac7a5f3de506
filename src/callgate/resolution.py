"""
Import resolution for forbidden functions.

For one module, tracks how each forbidden function is reachable by name,
based only on that module's import declarations taken in source order:

- NOT_IMPORTED: its defining module is not imported. Only the literal
  fully-qualified form (``Html.input``) can refer to it, and only while no
  other import has taken that prefix as its qualifier
  (``import Html.Styled as Html``).
- IMPORTED_QUALIFIED: its module is imported (possibly aliased). It is
  reachable as ``<qualifier>.<name>``.
- IMPORTED_EXPOSED: an import exposes it (explicitly or with ``(..)``).
  The bare name refers to it, and the qualified form stays valid.

Repeated imports of the same module accumulate: qualifiers are collected
and an exposed function stays exposed for the rest of the file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Iterable, Mapping

from callgate.names import FunctionName, join_module_name, split_function_name
from callgate.syntax.parser import ImportNode


logger = logging.getLogger(__name__)


class ResolutionStatus(Enum):
    NOT_IMPORTED = "not-imported"
    IMPORTED_QUALIFIED = "imported-qualified"
    IMPORTED_EXPOSED = "imported-exposed"


@dataclass(frozen=True)
class ImportResolution:
    """How a forbidden function is reachable in the current module."""
    status: ResolutionStatus = ResolutionStatus.NOT_IMPORTED
    qualifiers: tuple[str, ...] = ()

    @property
    def is_exposed(self) -> bool:
        return self.status is ResolutionStatus.IMPORTED_EXPOSED

    def with_import(self, imp: ImportNode, function: FunctionName) -> "ImportResolution":
        """Fold one import declaration into this resolution."""
        if imp.module_name != function.module_name:
            return self

        qualifiers = self.qualifiers
        if imp.qualifier not in qualifiers:
            qualifiers = qualifiers + (imp.qualifier,)

        if self.is_exposed or (imp.exposing is not None and imp.exposing.exposes(function.name)):
            status = ResolutionStatus.IMPORTED_EXPOSED
        else:
            status = ResolutionStatus.IMPORTED_QUALIFIED
        return ImportResolution(status=status, qualifiers=qualifiers)

    def matches(
        self,
        function: FunctionName,
        prefix: tuple[str, ...],
        taken: AbstractSet[str] = frozenset(),
    ) -> bool:
        """
        True if a reference written with ``prefix`` (empty for a bare name)
        denotes ``function``. The caller has already compared bare names.

        ``taken`` holds the qualifiers of every import in the module; a
        prefix in it belongs to that import, not to an unimported module.
        """
        if not prefix:
            return self.is_exposed
        written = join_module_name(prefix)
        if self.status is ResolutionStatus.NOT_IMPORTED:
            return written == function.module and written not in taken
        return written in self.qualifiers


@dataclass(frozen=True)
class ForbiddenFunction:
    """
    One configured function name, with the indices of every binding that
    forbids it in the current module.
    """
    qualified_name: str
    function: FunctionName
    bindings: tuple[int, ...]

    @property
    def name(self) -> str:
        return self.function.name


def collect_forbidden_functions(
    bindings_by_index: Mapping[int, Iterable[str]],
) -> tuple[ForbiddenFunction, ...]:
    """
    Group function names across the active bindings, one descriptor per
    distinct name, keeping first-occurrence order.
    """
    grouped: dict[str, list[int]] = {}
    for index, names in bindings_by_index.items():
        for name in names:
            owners = grouped.setdefault(name, [])
            if index not in owners:
                owners.append(index)

    return tuple(
        ForbiddenFunction(
            qualified_name=name,
            function=split_function_name(name),
            bindings=tuple(owners),
        )
        for name, owners in grouped.items()
    )


def track_imports(
    functions: Iterable[ForbiddenFunction],
    imports: Iterable[ImportNode],
) -> dict[str, ImportResolution]:
    """Resolve every forbidden function against the module's imports, in source order."""
    functions = tuple(functions)
    resolutions = {fn.qualified_name: ImportResolution() for fn in functions}

    for imp in imports:
        for fn in functions:
            resolutions[fn.qualified_name] = resolutions[fn.qualified_name].with_import(imp, fn.function)

    for name, resolution in resolutions.items():
        logger.debug("%s: %s %s", name, resolution.status.value, ", ".join(resolution.qualifiers))
    return resolutions
