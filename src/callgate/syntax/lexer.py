"""
Elm Source Lexer (Tokenizer)

Converts raw .elm source text into a stream of tokens.
Handles: names (plain, capitalized, module-qualified), record accessors,
keywords, operators, brackets, strings, chars, numbers, comments.

Qualified names such as ``Html.input`` or ``Html.Attributes.class`` are
emitted as a single token so that a reference keeps one source span.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, List, Optional


class TokenType(Enum):
    """Types of tokens in Elm source."""
    LOWER_NAME = auto()      # input, view, _
    UPPER_NAME = auto()      # Html, Just, Msg
    QUALIFIED_NAME = auto()  # Html.input, Html.Attributes, Maybe.Just
    RECORD_ACCESS = auto()   # .field (both model.field and standalone .field)
    KEYWORD = auto()         # module, import, exposing, let, case, ...
    NUMBER = auto()          # 42, 0.5, 1e10, 0xFF
    STRING = auto()          # "text", """multi-line"""
    CHAR = auto()            # 'a'
    GLSL = auto()            # [glsl| ... |]
    OPERATOR = auto()        # =, ->, |>, ::, :, .., |
    LPAREN = auto()          # (
    RPAREN = auto()          # )
    LBRACKET = auto()        # [
    RBRACKET = auto()        # ]
    LBRACE = auto()          # {
    RBRACE = auto()          # }
    COMMA = auto()           # ,
    BACKSLASH = auto()       # \ (lambda)
    EOF = auto()             # End of file


# Reserved words. `effect`, `alias` and `infix` are contextual and lex as names.
KEYWORDS = frozenset({
    "module", "port", "where", "import", "as", "exposing",
    "type", "let", "in", "case", "of", "if", "then", "else",
})

INFIX_DIRECTIONS = frozenset({"left", "right", "non"})

OPERATOR_CHARS = frozenset("+-/*=.<>:&|^?%!")


@dataclass
class Token:
    """A single token from the lexer. ``end_column`` is exclusive."""
    type: TokenType
    value: str
    line: int
    column: int
    end_line: int = 0
    end_column: int = 0
    line_start: bool = False  # first token on its source line

    def is_keyword(self, word: str) -> bool:
        return self.type == TokenType.KEYWORD and self.value == word

    def is_name(self, word: str) -> bool:
        """True for a lowercase name spelled ``word`` (contextual words such as ``alias``)."""
        return self.type == TokenType.LOWER_NAME and self.value == word

    def is_operator(self, symbol: str) -> bool:
        return self.type == TokenType.OPERATOR and self.value == symbol

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, L{self.line}:{self.column})"


class LexerError(Exception):
    """Error during lexical analysis."""
    def __init__(self, message: str, line: int, column: int):
        self.line = line
        self.column = column
        self.message = message
        super().__init__(f"Lexer error at line {line}, column {column}: {message}")


class Lexer:
    """
    Tokenizer for Elm source files.

    Usage:
        lexer = Lexer(source_text)
        tokens = lexer.tokenize_all()
    """

    def __init__(self, source: str, filename: str = "<unknown>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.length = len(source)
        self._last_token_line = 0

    def _current(self) -> Optional[str]:
        """Get current character or None if at end."""
        if self.pos >= self.length:
            return None
        return self.source[self.pos]

    def _peek(self, offset: int = 1) -> Optional[str]:
        """Peek ahead by offset characters."""
        pos = self.pos + offset
        if pos >= self.length:
            return None
        return self.source[pos]

    def _startswith(self, text: str) -> bool:
        return self.source.startswith(text, self.pos)

    def _advance(self) -> Optional[str]:
        """Advance one character and return it."""
        ch = self._current()
        if ch is not None:
            self.pos += 1
            if ch == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        return ch

    def _advance_n(self, count: int) -> None:
        for _ in range(count):
            self._advance()

    def _skip_whitespace(self) -> None:
        """Skip spaces, tabs and newlines."""
        while self._current() in (' ', '\t', '\r', '\n'):
            self._advance()

    def _skip_line_comment(self) -> None:
        while self._current() not in (None, '\n'):
            self._advance()

    def _skip_block_comment(self) -> None:
        """Skip a (possibly nested) {- ... -} comment."""
        start_line, start_col = self.line, self.column
        depth = 0
        while True:
            if self._current() is None:
                raise LexerError("Unterminated block comment", start_line, start_col)
            if self._startswith("{-"):
                depth += 1
                self._advance_n(2)
            elif self._startswith("-}"):
                depth -= 1
                self._advance_n(2)
                if depth == 0:
                    return
            else:
                self._advance()

    def _read_escape(self, result: List[str]) -> None:
        """Read an escape sequence after a backslash."""
        self._advance()  # Skip backslash
        esc = self._current()
        if esc == 'u' and self._peek() == '{':
            # Unicode escape \u{1F600}
            code = []
            self._advance_n(2)
            while self._current() not in (None, '}'):
                code.append(self._advance())
            self._advance()
            try:
                result.append(chr(int(''.join(code), 16)))
            except ValueError:
                result.append('\\u{' + ''.join(code) + '}')
            return
        mapping = {'n': '\n', 't': '\t', 'r': '\r', '"': '"', "'": "'", '\\': '\\'}
        if esc is None:
            return
        result.append(mapping.get(esc, '\\' + esc))
        self._advance()

    def _read_string(self) -> str:
        """Read a single-line or triple-quoted string."""
        start_line, start_col = self.line, self.column
        triple = self._startswith('"""')
        self._advance_n(3 if triple else 1)

        result = []
        while True:
            ch = self._current()
            if ch is None or (ch == '\n' and not triple):
                raise LexerError("Unterminated string", start_line, start_col)
            if triple and self._startswith('"""'):
                self._advance_n(3)
                break
            if not triple and ch == '"':
                self._advance()
                break
            if ch == '\\':
                self._read_escape(result)
            else:
                result.append(ch)
                self._advance()

        return ''.join(result)

    def _read_char(self) -> str:
        """Read a character literal like 'a' or '\\n'."""
        start_line, start_col = self.line, self.column
        self._advance()  # Skip opening quote
        result: List[str] = []
        while True:
            ch = self._current()
            if ch is None or ch == '\n':
                raise LexerError("Unterminated character literal", start_line, start_col)
            if ch == "'":
                self._advance()
                break
            if ch == '\\':
                self._read_escape(result)
            else:
                result.append(ch)
                self._advance()
        return ''.join(result)

    def _read_glsl(self) -> str:
        start_line, start_col = self.line, self.column
        self._advance_n(len("[glsl|"))
        result = []
        while not self._startswith("|]"):
            ch = self._advance()
            if ch is None:
                raise LexerError("Unterminated glsl block", start_line, start_col)
            result.append(ch)
        self._advance_n(2)
        return ''.join(result)

    def _read_word(self) -> str:
        """Read letters, digits and underscores."""
        result = []
        while True:
            ch = self._current()
            if ch is not None and (ch.isalnum() or ch == '_'):
                result.append(ch)
                self._advance()
            else:
                break
        return ''.join(result)

    def _read_capitalized(self) -> tuple:
        """
        Read a capitalized name and any module-qualified continuation.

        ``Html.Attributes.class`` is read as one token; reading stops after
        the first lower-case segment so that ``Foo.bar.baz`` leaves
        ``.baz`` for a record accessor.
        """
        parts = [self._read_word()]
        while self._current() == '.':
            nxt = self._peek()
            if nxt is None or not nxt.isalpha():
                break
            self._advance()  # Skip dot
            parts.append(self._read_word())
            if nxt.islower():
                break

        text = '.'.join(parts)
        if len(parts) == 1:
            return TokenType.UPPER_NAME, text
        return TokenType.QUALIFIED_NAME, text

    def _read_number(self) -> str:
        """Read an integer, float or hex literal."""
        result = []
        if self._startswith("0x") or self._startswith("0X"):
            result.append(self._advance())
            result.append(self._advance())
            while self._current() is not None and self._current() in "0123456789abcdefABCDEF":
                result.append(self._advance())
            return ''.join(result)

        while self._current() is not None and self._current().isdigit():
            result.append(self._advance())
        if self._current() == '.' and (self._peek() or '').isdigit():
            result.append(self._advance())
            while self._current() is not None and self._current().isdigit():
                result.append(self._advance())
        if self._current() in ('e', 'E'):
            nxt = self._peek() or ''
            if nxt.isdigit() or (nxt in '+-' and (self._peek(2) or '').isdigit()):
                result.append(self._advance())
                if self._current() in ('+', '-'):
                    result.append(self._advance())
                while self._current() is not None and self._current().isdigit():
                    result.append(self._advance())
        return ''.join(result)

    def _read_operator(self) -> str:
        result = []
        while self._current() is not None and self._current() in OPERATOR_CHARS:
            # A comment starts mid-operator only at "--"
            if self._startswith("--") and result:
                break
            result.append(self._advance())
        return ''.join(result)

    def _make(self, token_type: TokenType, value: str, line: int, column: int) -> Token:
        token = Token(
            token_type, value, line, column,
            end_line=self.line,
            end_column=self.column,
            line_start=line != self._last_token_line,
        )
        self._last_token_line = self.line
        return token

    def tokenize(self) -> Iterator[Token]:
        """Generate tokens from the source. Comments and whitespace are skipped."""
        single = {
            '(': TokenType.LPAREN,
            ')': TokenType.RPAREN,
            '[': TokenType.LBRACKET,
            ']': TokenType.RBRACKET,
            '}': TokenType.RBRACE,
            ',': TokenType.COMMA,
            '\\': TokenType.BACKSLASH,
        }

        while True:
            self._skip_whitespace()

            ch = self._current()
            start_line = self.line
            start_col = self.column

            if ch is None:
                yield Token(TokenType.EOF, '', start_line, start_col, start_line, start_col, True)
                break

            # Comments
            if self._startswith("--"):
                self._skip_line_comment()
                continue
            if self._startswith("{-"):
                self._skip_block_comment()
                continue

            if ch == '{':
                self._advance()
                yield self._make(TokenType.LBRACE, '{', start_line, start_col)
                continue

            if self._startswith("[glsl|"):
                value = self._read_glsl()
                yield self._make(TokenType.GLSL, value, start_line, start_col)
                continue

            if ch in single:
                self._advance()
                yield self._make(single[ch], ch, start_line, start_col)
                continue

            if ch == '"':
                value = self._read_string()
                yield self._make(TokenType.STRING, value, start_line, start_col)
                continue

            if ch == "'":
                value = self._read_char()
                yield self._make(TokenType.CHAR, value, start_line, start_col)
                continue

            # Record accessor: .field (model.field or standalone .field)
            if ch == '.' and (self._peek() or '').islower():
                self._advance()
                name = self._read_word()
                yield self._make(TokenType.RECORD_ACCESS, '.' + name, start_line, start_col)
                continue

            if ch.isdigit():
                value = self._read_number()
                yield self._make(TokenType.NUMBER, value, start_line, start_col)
                continue

            if ch.isalpha() and ch.isupper():
                token_type, value = self._read_capitalized()
                yield self._make(token_type, value, start_line, start_col)
                continue

            if ch.isalpha() or ch == '_':
                word = self._read_word()
                token_type = TokenType.KEYWORD if word in KEYWORDS else TokenType.LOWER_NAME
                yield self._make(token_type, word, start_line, start_col)
                continue

            if ch in OPERATOR_CHARS:
                value = self._read_operator()
                yield self._make(TokenType.OPERATOR, value, start_line, start_col)
                continue

            raise LexerError(f"Unexpected character {ch!r}", start_line, start_col)

    def tokenize_all(self) -> List[Token]:
        """Tokenize the whole source into a list (EOF token included)."""
        return list(self.tokenize())
