"""
Tests for the forbidden function rule.
"""

import pytest

from callgate.config import RuleConfig
from callgate.rules import (
    ForbiddenFunctionRule,
    build_context,
    check_module,
    classify_reference,
)
from callgate.resolution import ResolutionStatus
from callgate.syntax import FunctionOrValue, Location, Range

from conftest import parse, spans


def page(imports: str, body: str, name: str = "Page") -> str:
    """A module with the given import lines and a single ``view`` body line."""
    return f"module {name} exposing (view)\n\n{imports}\n\n\nview =\n    {body}\n"


class TestExposedImports:
    """Bare references resolved through an exposing clause."""

    def test_exposed_input_outside_allowed_module(self, input_config):
        """Exposed input used in another module."""
        module = parse(page("import Html exposing (input)", "input [] []"))
        diagnostics = check_module(input_config, module)

        assert len(diagnostics) == 1
        assert spans(diagnostics) == [(7, 5, 7, 10)]
        assert "View.Input" in "\n".join(diagnostics[0].details)

    def test_allowed_module_has_no_diagnostics(self, input_config):
        """The allowed module may use it."""
        module = parse(page("import Html exposing (input)", "input [] []", name="View.Input"))
        assert check_module(input_config, module) == []

    def test_wildcard_exposing(self, input_config):
        """exposing (..) exposes input."""
        module = parse(page("import Html exposing (..)", "input [] []"))
        assert spans(check_module(input_config, module)) == [(7, 5, 7, 10)]

    def test_exposing_other_function_does_not_expose_input(self, input_config):
        """Only the listed names are exposed."""
        module = parse(page("import Html exposing (div)", "input [] []"))
        assert check_module(input_config, module) == []

    def test_qualified_form_still_detected_when_exposed(self, input_config):
        """Exposed and qualified forms are both checked."""
        module = parse(page("import Html exposing (input)", "[ input [] [], Html.input [] [] ]"))
        assert spans(check_module(input_config, module)) == [(7, 7, 7, 12), (7, 20, 7, 30)]

    def test_same_name_from_unrelated_module(self, input_config):
        """input from another module is fine."""
        module = parse(page("import SomeOther exposing (input)", "input [] []"))
        assert check_module(input_config, module) == []

    def test_longer_module_path_is_not_a_match(self, input_config):
        """Html.Extra is not Html."""
        module = parse(page("import Html.Extra exposing (input)", "input [] []"))
        assert check_module(input_config, module) == []


class TestQualifiedImports:
    """References written with a module qualifier."""

    def test_plain_import_qualified_call(self, input_config):
        """Html.input after import Html."""
        module = parse(page("import Html", "Html.input [] []"))
        diagnostics = check_module(input_config, module)

        assert spans(diagnostics) == [(7, 5, 7, 15)]
        assert "`Html.input`" in diagnostics[0].message

    def test_plain_import_bare_call_is_not_a_match(self, input_config):
        """Bare input is not exposed by a plain import."""
        module = parse(page("import Html", "input [] []"))
        assert check_module(input_config, module) == []

    def test_aliased_import(self, input_config):
        """Alias prefix is reported as written."""
        module = parse(page("import Html as Foo", "Foo.input [] []"))
        diagnostics = check_module(input_config, module)

        assert spans(diagnostics) == [(7, 5, 7, 14)]
        assert "`Foo.input`" in diagnostics[0].message

    def test_aliased_import_original_name_is_not_a_match(self, input_config):
        """Once aliased, the module path is not a qualifier."""
        module = parse(page("import Html as Foo", "Html.input [] []"))
        assert check_module(input_config, module) == []

    def test_qualified_without_import(self, input_config):
        """Fully qualified use without any import."""
        module = parse(page("import Browser", "Html.input [] []"))
        assert spans(check_module(input_config, module)) == [(7, 5, 7, 15)]

    def test_prefix_owned_by_another_alias(self, input_config):
        """Html.input means Html.Styled.input under `import Html.Styled as Html`."""
        module = parse(page("import Html.Styled as Html", "Html.input [] []"))
        assert check_module(input_config, module) == []

        styled = RuleConfig.from_pairs([("Html.Styled.input", "View.Input")])
        assert spans(check_module(styled, module)) == [(7, 5, 7, 15)]

    def test_bare_without_import(self, input_config):
        """Bare name with no import."""
        module = parse(page("import Browser", "input [] []"))
        assert check_module(input_config, module) == []

    def test_nested_module_path(self):
        """Multi-segment defining module."""
        config = RuleConfig.from_pairs([("Html.Attributes.value", "View.Input")])
        module = parse(page("import Html.Attributes as Attr", "[ Attr.value x, value y ]"))
        assert spans(check_module(config, module)) == [(7, 7, 7, 17)]


class TestRepeatedImports:
    """Two imports of the same module in one file."""

    def test_exposed_stays_exposed(self, input_config):
        """A later plain import does not hide an exposed name."""
        module = parse(page("import Html exposing (input)\nimport Html", "input [] []"))
        assert len(check_module(input_config, module)) == 1

    def test_later_exposing_upgrades(self, input_config):
        """A later exposing import exposes the name."""
        module = parse(page("import Html\nimport Html exposing (input)", "input [] []"))
        assert len(check_module(input_config, module)) == 1

    def test_both_qualifiers_are_valid(self, input_config):
        """Module path and alias both resolve."""
        module = parse(page("import Html\nimport Html as H", "[ Html.input, H.input ]"))
        assert len(check_module(input_config, module)) == 2


class TestMultipleFunctions:
    """A binding naming several functions."""

    SOURCE = """
module Page exposing (view)

import Html exposing (input, textarea)


view =
    div []
        [ input [] []
        , textarea [] []
        ]
"""

    def test_one_diagnostic_per_call_site(self, form_config):
        """Each call site is reported once."""
        diagnostics = check_module(form_config, parse(self.SOURCE))

        assert spans(diagnostics) == [(8, 11, 8, 16), (9, 11, 9, 19)]
        assert "`input`" in diagnostics[0].message
        assert "`textarea`" in diagnostics[1].message

    def test_allowed_module_has_no_diagnostics(self, form_config):
        """The allowed module may use both."""
        source = self.SOURCE.replace("module Page", "module View.Form")
        assert check_module(form_config, parse(source)) == []

    def test_source_order(self, form_config):
        """Diagnostics follow source order."""
        module = parse(page("import Html exposing (input, textarea)", "[ textarea, input, textarea ]"))
        diagnostics = check_module(form_config, module)
        assert [d.range.start.column for d in diagnostics] == [7, 17, 24]

    def test_idempotent(self, form_config):
        """Checking twice gives the same result."""
        module = parse(self.SOURCE)
        first = check_module(form_config, module)
        second = check_module(form_config, module)
        assert first == second
        assert [d.to_dict() for d in first] == [d.to_dict() for d in second]


class TestOverlappingBindings:
    """The same function named by more than one binding."""

    def test_allowed_modules_are_merged(self):
        """Union of allowed modules, config order."""
        config = RuleConfig.from_pairs([
            ("Html.input", "View.A"),
            (["Html.input", "Html.button"], ["View.B", "View.A"]),
        ])
        module = parse(page("import Html exposing (input)", "input"))
        diagnostics = check_module(config, module)

        assert len(diagnostics) == 1
        assert diagnostics[0].details[1] == "  - View.A\n  - View.B"

    def test_exempt_binding_is_not_disclosed(self):
        """Only violated bindings are listed."""
        config = RuleConfig.from_pairs([
            ("Html.input", "View.A"),
            ("Html.input", "View.B"),
        ])
        module = parse(page("import Html exposing (input)", "input", name="View.A"))
        diagnostics = check_module(config, module)

        assert len(diagnostics) == 1
        assert diagnostics[0].details[1] == "  - View.B"

    def test_empty_allow_list(self):
        """Forbidden everywhere."""
        config = RuleConfig.from_pairs([("Html.input", [])])
        diagnostics = check_module(config, parse(page("import Html", "Html.input")))
        assert diagnostics[0].details == ("`Html.input` is not allowed in any module.",)


class TestDiagnosticText:

    def test_message_and_details(self, input_config):
        """Message, details and range."""
        diagnostics = check_module(input_config, parse(page("import Html exposing (input)", "input")))
        diagnostic = diagnostics[0]

        assert diagnostic.message == "`input` is used outside of its allowed modules"
        assert diagnostic.details == (
            "`input` is only allowed in the following modules:",
            "  - View.Input",
        )
        assert diagnostic.override_range is None
        assert diagnostic.to_dict()["range"] == {
            "start": {"row": 7, "column": 5},
            "end": {"row": 7, "column": 10},
        }


class TestNonReferences:
    """Names in binding positions are never reported."""

    def test_record_field_names_and_accessors(self, input_config):
        """Field names and accessors are not references."""
        module = parse(page("import Html exposing (..)", "{ model | input = model.input, other = .input model }"))
        assert check_module(input_config, module) == []

    def test_let_binding_name(self, input_config):
        """The let-bound name is skipped, its use is not."""
        source = """
module Page exposing (view)

import Html exposing (input)


view =
    let
        input =
            1
    in
    input
"""
        # Shadowing is not tracked
        assert spans(check_module(input_config, parse(source))) == [(11, 5, 11, 10)]

    def test_function_argument_and_case_pattern(self, input_config):
        """Arguments, case patterns and lambda arguments."""
        source = """
module Page exposing (view)

import Html exposing (input)


view input =
    case model of
        input ->
            \\input -> 1
"""
        assert check_module(input_config, parse(source)) == []


class TestContextualNames:
    """effect, alias and infix are ordinary names in Elm code."""

    @pytest.mark.parametrize("word", ["effect", "alias", "infix"])
    def test_bare_exposed_name_is_flagged(self, word):
        """Exposed function named like a contextual word."""
        config = RuleConfig.from_pairs([(f"Effect.{word}", "Effect.Runner")])
        module = parse(page(f"import Effect exposing ({word})", f"{word} 1"))
        assert spans(check_module(config, module)) == [(7, 5, 7, 5 + len(word))]

    def test_effect_definition_does_not_hide_violations(self, input_config):
        """A top-level effect definition leaves the rest of the file checked."""
        source = """
module Page exposing (view)

import Html exposing (input)


effect =
    1


view =
    input [] []
"""
        assert spans(check_module(input_config, parse(source))) == [(11, 5, 11, 10)]


class TestContext:
    """Phase one state."""

    def test_resolution_status(self, form_config):
        """Exposed and qualified statuses side by side."""
        module = parse(page("import Html as H exposing (input)", "input"))
        context = build_context(form_config, module)

        assert context.resolutions["Html.input"].status is ResolutionStatus.IMPORTED_EXPOSED
        assert context.resolutions["Html.textarea"].status is ResolutionStatus.IMPORTED_QUALIFIED
        assert context.resolutions["Html.textarea"].qualifiers == ("H",)
        assert context.qualifiers == frozenset({"H"})

    def test_exempt_module_tracks_nothing(self, form_config):
        """Exempt module has an empty context."""
        module = parse(page("import Html", "Html.input", name="View.Form"))
        context = build_context(form_config, module)
        assert context.is_empty
        assert len(context.resolutions) == 0

    def test_classify_reference(self, input_config):
        """Only the matching reference is classified."""
        module = parse(page("import Html", "Html.input"))
        context = build_context(input_config, module)
        rng = Range(Location(1, 1), Location(1, 11))

        assert [fn.qualified_name for fn in classify_reference(context, FunctionOrValue(("Html",), "input", rng))] == ["Html.input"]
        assert classify_reference(context, FunctionOrValue((), "input", rng)) == []
        assert classify_reference(context, FunctionOrValue(("Html",), "div", rng)) == []


class TestRuleClass:

    def test_rule_delegates_to_check_module(self, input_config):
        """Rule class wraps check_module."""
        rule = ForbiddenFunctionRule(input_config)
        module = parse(page("import Html", "Html.input"))

        assert rule.rule_id == "FORBIDDEN_FUNCTION"
        assert rule.check(module) == check_module(input_config, module)

    def test_empty_config(self):
        """No bindings, no diagnostics."""
        rule = ForbiddenFunctionRule(RuleConfig())
        assert rule.check(parse(page("import Html", "Html.input"))) == []
