"""
Function name decomposition and module eligibility.

Pure helpers shared by the scope tracker and the rule driver.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence


@dataclass(frozen=True)
class FunctionName:
    """A fully-qualified function name split into its defining module and bare name."""
    module_name: tuple[str, ...]
    name: str

    @property
    def module(self) -> str:
        return join_module_name(self.module_name)

    def __str__(self) -> str:
        return join_module_name(self.module_name + (self.name,))


def split_function_name(qualified: str) -> FunctionName:
    """
    Split ``"Html.Attributes.class"`` into ``(("Html", "Attributes"), "class")``.

    A name without a dot yields an empty module path and the whole string
    as the bare name.
    """
    parts = qualified.split(".")
    return FunctionName(module_name=tuple(parts[:-1]), name=parts[-1])


def join_module_name(segments: Sequence[str]) -> str:
    return ".".join(segments)


def is_module_allowed(module_name: str | Sequence[str], allowed: Iterable[str]) -> bool:
    """True if the module is exactly one of ``allowed``. No prefix or wildcard matching."""
    if not isinstance(module_name, str):
        module_name = join_module_name(module_name)
    return any(module_name == candidate for candidate in allowed)
