"""
Tests for the Elm lexer.
"""

import pytest

from callgate.syntax import Lexer, LexerError, TokenType


def kinds(source):
    return [(t.type, t.value) for t in Lexer(source).tokenize_all() if t.type != TokenType.EOF]


class TestNames:

    def test_qualified_name_is_one_token(self):
        """A dotted reference keeps a single span."""
        tokens = Lexer("Html.Attributes.class").tokenize_all()
        tok = tokens[0]
        assert tok.type == TokenType.QUALIFIED_NAME
        assert tok.value == "Html.Attributes.class"
        assert (tok.line, tok.column, tok.end_line, tok.end_column) == (1, 1, 1, 22)
        assert tokens[1].type == TokenType.EOF

    def test_qualified_constructor(self):
        """Qualified constructors are qualified names too."""
        assert kinds("Maybe.Just") == [(TokenType.QUALIFIED_NAME, "Maybe.Just")]

    def test_record_access(self):
        """Field access splits off the accessor."""
        assert kinds("model.input") == [
            (TokenType.LOWER_NAME, "model"),
            (TokenType.RECORD_ACCESS, ".input"),
        ]

    def test_record_access_after_qualified_value(self):
        """Qualified name stops after the first lowercase segment."""
        assert kinds("Foo.bar.baz") == [
            (TokenType.QUALIFIED_NAME, "Foo.bar"),
            (TokenType.RECORD_ACCESS, ".baz"),
        ]

    def test_keywords_and_names(self):
        """Import line tokens."""
        assert kinds("import Html exposing (input)") == [
            (TokenType.KEYWORD, "import"),
            (TokenType.UPPER_NAME, "Html"),
            (TokenType.KEYWORD, "exposing"),
            (TokenType.LPAREN, "("),
            (TokenType.LOWER_NAME, "input"),
            (TokenType.RPAREN, ")"),
        ]

    @pytest.mark.parametrize("word", ["effect", "alias", "infix", "left", "right", "non"])
    def test_contextual_words_are_names(self, word):
        """Words that are only special in context lex as plain names."""
        assert kinds(word) == [(TokenType.LOWER_NAME, word)]

    def test_is_name(self):
        """is_name matches lowercase names only."""
        alias, kw = Lexer("alias type").tokenize_all()[:2]
        assert alias.is_name("alias")
        assert not kw.is_name("type")
        assert kw.is_keyword("type")

    def test_wildcard_exposing(self):
        """(..) is an operator between parens."""
        assert kinds("(..)") == [
            (TokenType.LPAREN, "("),
            (TokenType.OPERATOR, ".."),
            (TokenType.RPAREN, ")"),
        ]


class TestLiterals:

    def test_strings_and_chars(self):
        """Escapes are decoded."""
        assert kinds('"a\\"b" \'x\' \'\\n\'') == [
            (TokenType.STRING, 'a"b'),
            (TokenType.CHAR, "x"),
            (TokenType.CHAR, "\n"),
        ]

    def test_multiline_string(self):
        """Triple-quoted string spans lines."""
        tokens = Lexer('x = """one\ntwo"""\ny').tokenize_all()
        string = tokens[2]
        assert string.type == TokenType.STRING
        assert string.value == "one\ntwo"
        assert (string.end_line, string.end_column) == (2, 7)
        assert tokens[3].value == "y"
        assert tokens[3].line_start is True

    def test_numbers(self):
        """Integer, float, exponent and hex."""
        assert [v for _, v in kinds("42 0.5 1e10 0xFF")] == ["42", "0.5", "1e10", "0xFF"]

    def test_unicode_escape(self):
        """\\u{..} escape."""
        assert kinds('"\\u{0041}"') == [(TokenType.STRING, "A")]

    def test_unterminated_string(self):
        """Error points at the opening quote."""
        with pytest.raises(LexerError) as exc:
            Lexer('x = "open\n').tokenize_all()
        assert exc.value.line == 1
        assert exc.value.column == 5


class TestComments:

    def test_line_comment(self):
        """Line comment is skipped."""
        assert kinds("a -- input\nb") == [
            (TokenType.LOWER_NAME, "a"),
            (TokenType.LOWER_NAME, "b"),
        ]

    def test_nested_block_comment(self):
        """Block comments nest."""
        assert kinds("a {- x {- input -} y -} b") == [
            (TokenType.LOWER_NAME, "a"),
            (TokenType.LOWER_NAME, "b"),
        ]

    def test_doc_comment(self):
        """Doc comment is skipped."""
        assert kinds("{-| Docs for `input`.\n-}\nview") == [(TokenType.LOWER_NAME, "view")]

    def test_unterminated_block_comment(self):
        """Unclosed block comment."""
        with pytest.raises(LexerError):
            Lexer("{- never closed").tokenize_all()


class TestLayout:

    def test_line_start(self):
        """First token of each line is marked."""
        tokens = Lexer("view =\n    input x").tokenize_all()
        assert [t.line_start for t in tokens[:-1]] == [True, False, True, False]
        assert tokens[2].column == 5

    def test_operators(self):
        """Multi-character operators."""
        assert [v for _, v in kinds("a |> b -> c :: d")] == ["a", "|>", "b", "->", "c", "::", "d"]

    def test_lambda_backslash(self):
        """Lambda backslash."""
        assert kinds("\\x")[0] == (TokenType.BACKSLASH, "\\")

    def test_unexpected_character(self):
        """Backtick is not Elm."""
        with pytest.raises(LexerError):
            Lexer("a ` b").tokenize_all()
