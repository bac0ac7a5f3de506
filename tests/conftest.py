"""
Pytest configuration and shared fixtures.
"""

import sys
import textwrap
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from callgate.config import RuleConfig
from callgate.syntax import parse_source


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def elm(source: str) -> str:
    """Dedent an inline Elm snippet so that its first line is line 1."""
    return textwrap.dedent(source).lstrip("\n")


def parse(source: str):
    """Parse an inline Elm snippet."""
    return parse_source(elm(source), "<test>")


def spans(diagnostics) -> list:
    """(start_row, start_col, end_row, end_col) for each diagnostic."""
    return [
        (d.range.start.row, d.range.start.column, d.range.end.row, d.range.end.column)
        for d in diagnostics
    ]


# =============================================================================
# CONFIG FIXTURES
# =============================================================================

@pytest.fixture
def input_config():
    """Html.input allowed only in View.Input."""
    return RuleConfig.from_pairs([("Html.input", "View.Input")])


@pytest.fixture
def form_config():
    """Html.input and Html.textarea allowed only in View.Form."""
    return RuleConfig.from_pairs([(["Html.input", "Html.textarea"], ["View.Form"])])
