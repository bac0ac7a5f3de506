"""
callgate - forbidden function rule for Elm projects

Flags uses of designated functions (``Html.input``, ...) in any module
that is not on that function's allow-list, resolving qualified, aliased
and exposed imports per module.
"""

__version__ = "0.1.0"

from callgate.config import Binding, ConfigError, RuleConfig, load_rule_config
from callgate.diagnostics import Diagnostic
from callgate.rules import check_module
from callgate.lookup import check_module_with_lookup, build_lookup_table
