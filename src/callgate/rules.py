"""
callgate - Forbidden function rule.

Flags references to configured functions made outside the modules that
are allowed to use them.

Analysis of one module is a two-phase fold:

1. ``build_context`` drops bindings the module is exempt from, then folds
   the module's imports into an immutable ``ModuleContext``.
2. A read-only traversal of every expression tree classifies each
   ``FunctionOrValue`` against that context and emits diagnostics in
   source order.

No state survives between modules; ``check_module`` is a pure function of
(configuration, module).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Sequence

from callgate.config import Binding, RuleConfig
from callgate.diagnostics import Diagnostic
from callgate.names import is_module_allowed
from callgate.resolution import (
    ForbiddenFunction,
    ImportResolution,
    collect_forbidden_functions,
    track_imports,
)
from callgate.syntax.parser import ExpressionVisitor, FunctionOrValue, ModuleNode


logger = logging.getLogger(__name__)

RULE_ID = "FORBIDDEN_FUNCTION"


@dataclass(frozen=True)
class ModuleContext:
    """Per-module resolution state, frozen before the expression pass."""
    module_name: str
    functions: tuple[ForbiddenFunction, ...]
    resolutions: Mapping[str, ImportResolution]
    qualifiers: frozenset[str] = frozenset()

    def candidates(self, name: str) -> tuple[ForbiddenFunction, ...]:
        """Forbidden functions whose bare name is ``name``."""
        return tuple(fn for fn in self.functions if fn.name == name)

    @property
    def is_empty(self) -> bool:
        return not self.functions


def active_bindings(config: RuleConfig, module_name: str) -> dict[int, Binding]:
    """Bindings the module is not exempt from, keyed by their position in the config."""
    return {
        index: binding
        for index, binding in enumerate(config.bindings)
        if not is_module_allowed(module_name, binding.allowed_modules)
    }


def build_context(config: RuleConfig, module: ModuleNode) -> ModuleContext:
    """Phase one: module header and imports."""
    module_name = module.dotted_name
    bindings = active_bindings(config, module_name)
    functions = collect_forbidden_functions(
        {index: binding.functions for index, binding in bindings.items()}
    )
    resolutions = track_imports(functions, module.imports)
    return ModuleContext(
        module_name=module_name,
        functions=functions,
        resolutions=MappingProxyType(resolutions),
        qualifiers=frozenset(imp.qualifier for imp in module.imports),
    )


def classify_reference(context: ModuleContext, ref: FunctionOrValue) -> list[ForbiddenFunction]:
    """Every forbidden function that ``ref`` resolves to in this module."""
    return [
        fn
        for fn in context.candidates(ref.name)
        if context.resolutions[fn.qualified_name].matches(fn.function, ref.module_name, context.qualifiers)
    ]


def allowed_modules_for(config: RuleConfig, violated: Sequence[ForbiddenFunction]) -> list[str]:
    """Union of the allowed modules of every violated binding, config order, no duplicates."""
    indices = sorted({index for fn in violated for index in fn.bindings})
    modules: dict[str, None] = {}
    for index in indices:
        for module in config.bindings[index].allowed_modules:
            modules.setdefault(module, None)
    return list(modules)


def make_diagnostic(
    config: RuleConfig,
    ref: FunctionOrValue,
    violated: Sequence[ForbiddenFunction],
) -> Diagnostic:
    """Build the diagnostic for one offending reference, named as it was written."""
    display = ref.qualified_name
    allowed = allowed_modules_for(config, violated)

    if allowed:
        details = (
            f"`{display}` is only allowed in the following modules:",
            "\n".join(f"  - {module}" for module in allowed),
        )
    else:
        details = (f"`{display}` is not allowed in any module.",)

    return Diagnostic(
        message=f"`{display}` is used outside of its allowed modules",
        details=details,
        range=ref.range,
    )


class _ReferenceChecker(ExpressionVisitor):
    """Phase two: read-only walk that checks every reference."""

    def __init__(self, config: RuleConfig, context: ModuleContext) -> None:
        self.config = config
        self.context = context
        self.diagnostics: list[Diagnostic] = []

    def visit_FunctionOrValue(self, node: FunctionOrValue) -> None:
        violated = classify_reference(self.context, node)
        if violated:
            self.diagnostics.append(make_diagnostic(self.config, node, violated))


def check_module(config: RuleConfig, module: ModuleNode) -> list[Diagnostic]:
    """
    Check one module against the configuration.

    Returns diagnostics in source order; an empty list when the module is
    clean.
    """
    context = build_context(config, module)
    if context.is_empty:
        logger.debug("%s: exempt from every binding", context.module_name)
        return []

    checker = _ReferenceChecker(config, context)
    checker.visit_module(module)
    logger.debug("%s: %d diagnostic(s)", context.module_name, len(checker.diagnostics))
    return checker.diagnostics


class ForbiddenFunctionRule:
    """The rule bound to one configuration, as the runner uses it."""

    rule_id = RULE_ID
    severity = "ERROR"

    def __init__(self, config: RuleConfig) -> None:
        self.config = config

    def check(self, module: ModuleNode) -> list[Diagnostic]:
        return check_module(self.config, module)
