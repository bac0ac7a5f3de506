"""
Elm Source Parser

Converts a token stream from the lexer into a module syntax tree:
module header, import declarations, and top-level declarations whose
bodies are expression trees.

Only as much of the grammar is modelled as name resolution needs.
Patterns (function arguments, lambda arguments, let-bound names, case
branch patterns) and type signatures are consumed without producing
expression nodes, so every ``FunctionOrValue`` in the tree is a genuine
reference to a function or value.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from callgate.syntax.lexer import INFIX_DIRECTIONS, Lexer, Token, TokenType


StopFn = Callable[[Token], bool]

_OPENERS = (TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE)
_CLOSERS = (TokenType.RPAREN, TokenType.RBRACKET, TokenType.RBRACE)
_LITERALS = (TokenType.NUMBER, TokenType.STRING, TokenType.CHAR, TokenType.GLSL)


def _never(token: Token) -> bool:
    return False


# =============================================================================
# Source locations
# =============================================================================

@dataclass(frozen=True)
class Location:
    """A 1-based (row, column) position in a source file."""
    row: int
    column: int

    def to_dict(self) -> Dict[str, int]:
        return {"row": self.row, "column": self.column}


@dataclass(frozen=True)
class Range:
    """A source span; ``end`` is exclusive."""
    start: Location
    end: Location

    @classmethod
    def from_token(cls, token: Token) -> "Range":
        return cls(Location(token.line, token.column), Location(token.end_line, token.end_column))

    @classmethod
    def covering(cls, first: "Range", last: "Range") -> "Range":
        return cls(first.start, last.end)

    @classmethod
    def empty_at(cls, token: Token) -> "Range":
        loc = Location(token.line, token.column)
        return cls(loc, loc)

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}


# =============================================================================
# Expression nodes
# =============================================================================

class Expression:
    """Base class for expression nodes."""

    def children(self) -> List["Expression"]:
        return []


@dataclass
class FunctionOrValue(Expression):
    """A reference to a function, value or constructor: ``input``, ``Html.input``."""
    module_name: Tuple[str, ...]
    name: str
    range: Range

    @property
    def qualified_name(self) -> str:
        return ".".join(self.module_name + (self.name,))

    def __repr__(self):
        return f"FunctionOrValue({self.qualified_name})"


@dataclass
class Literal(Expression):
    """A number, string, char or glsl literal."""
    value: str
    kind: str
    range: Range


@dataclass
class Operator(Expression):
    """An operator token appearing in an expression."""
    symbol: str
    range: Range


@dataclass
class RecordAccess(Expression):
    """A ``.field`` accessor, either ``record.field`` or the standalone ``.field`` function."""
    field: str
    range: Range


@dataclass
class Application(Expression):
    """A flat sequence of expressions at one nesting level (application and operators)."""
    items: List[Expression]
    range: Range

    def children(self) -> List[Expression]:
        return list(self.items)


@dataclass
class Parenthesized(Expression):
    """Parenthesized expression, tuple or unit; one entry per comma-separated element."""
    elements: List[Expression]
    range: Range

    def children(self) -> List[Expression]:
        return list(self.elements)


@dataclass
class ListExpression(Expression):
    """A list literal ``[ a, b ]``."""
    elements: List[Expression]
    range: Range

    def children(self) -> List[Expression]:
        return list(self.elements)


@dataclass
class RecordField(Expression):
    """``name = value`` inside a record expression; the field name is not a reference."""
    name: str
    value: Expression
    range: Range

    def children(self) -> List[Expression]:
        return [self.value]


@dataclass
class RecordExpression(Expression):
    """A record literal or update ``{ base | field = value }``."""
    base: Optional[FunctionOrValue]
    fields: List[RecordField]
    range: Range

    def children(self) -> List[Expression]:
        nodes: List[Expression] = [self.base] if self.base is not None else []
        return nodes + list(self.fields)


@dataclass
class Lambda(Expression):
    """An anonymous function ``\\x -> body``; argument patterns are not kept."""
    body: Expression
    range: Range

    def children(self) -> List[Expression]:
        return [self.body]


@dataclass
class LetDeclaration(Expression):
    """A value or function bound in a let block. ``name`` is None for destructuring."""
    name: Optional[str]
    body: Expression
    range: Range

    def children(self) -> List[Expression]:
        return [self.body]


@dataclass
class LetExpression(Expression):
    declarations: List[LetDeclaration]
    body: Expression
    range: Range

    def children(self) -> List[Expression]:
        return list(self.declarations) + [self.body]


@dataclass
class CaseBranch(Expression):
    """One ``pattern -> body`` branch; the pattern is not kept."""
    body: Expression
    range: Range

    def children(self) -> List[Expression]:
        return [self.body]


@dataclass
class CaseExpression(Expression):
    subject: Expression
    branches: List[CaseBranch]
    range: Range

    def children(self) -> List[Expression]:
        return [self.subject] + list(self.branches)


# =============================================================================
# Module-level nodes
# =============================================================================

@dataclass
class ExposedValue:
    """A plain function/value name in an exposing clause."""
    name: str
    range: Range


@dataclass
class Exposing:
    """An exposing clause: ``exposing (..)`` or an explicit list."""
    is_all: bool
    values: Tuple[ExposedValue, ...] = ()
    types: Tuple[str, ...] = ()
    range: Optional[Range] = None

    def exposes(self, name: str) -> bool:
        """True if ``name`` is made available unqualified by this clause."""
        return self.is_all or any(v.name == name for v in self.values)


@dataclass
class ImportNode:
    """``import Module.Name as Alias exposing (...)``"""
    module_name: Tuple[str, ...]
    alias: Optional[Tuple[str, ...]] = None
    exposing: Optional[Exposing] = None
    range: Optional[Range] = None

    @property
    def qualifier(self) -> str:
        """Prefix under which the module's functions are written qualified."""
        return ".".join(self.alias if self.alias else self.module_name)


@dataclass
class Declaration:
    """A top-level declaration that carries no expressions (type, alias, port, infix, signature)."""
    kind: str
    name: str
    range: Range


@dataclass
class FunctionDeclaration:
    """A top-level function or value definition."""
    name: str
    body: Expression
    range: Range


@dataclass
class ModuleNode:
    """A parsed Elm module."""
    name: Tuple[str, ...]
    imports: List[ImportNode] = field(default_factory=list)
    declarations: List[Any] = field(default_factory=list)
    filename: str = "<unknown>"

    @property
    def dotted_name(self) -> str:
        return ".".join(self.name)

    def function_declarations(self) -> List[FunctionDeclaration]:
        return [d for d in self.declarations if isinstance(d, FunctionDeclaration)]

    def __repr__(self):
        return f"Module({self.dotted_name}, imports={len(self.imports)}, declarations={len(self.declarations)})"


# =============================================================================
# Traversal
# =============================================================================

class ExpressionVisitor:
    """
    Walks expression trees in source order, dispatching to ``visit_<NodeClass>``.

    Subclasses that override a visit method call ``generic_visit`` to keep
    descending, the same contract as ``ast.NodeVisitor``.
    """

    def visit(self, node: Expression) -> None:
        method = getattr(self, "visit_" + type(node).__name__, self.generic_visit)
        method(node)

    def generic_visit(self, node: Expression) -> None:
        for child in node.children():
            self.visit(child)

    def visit_module(self, module: ModuleNode) -> None:
        for decl in module.function_declarations():
            self.visit(decl.body)


def walk(node: Expression) -> Iterator[Expression]:
    """Yield ``node`` and all its descendants, pre-order."""
    yield node
    for child in node.children():
        yield from walk(child)


# =============================================================================
# Parser
# =============================================================================

class ParseError(Exception):
    """Error during parsing."""
    def __init__(self, message: str, token: Token = None, line: int = None, column: int = None):
        self.token = token
        self.line = line or (token.line if token else 0)
        self.column = column or (token.column if token else 0)
        self.message = message
        if token:
            super().__init__(f"Parse error at line {token.line}, column {token.column}: {message}")
        elif line:
            super().__init__(f"Parse error at line {line}, column {column or 0}: {message}")
        else:
            super().__init__(f"Parse error: {message}")


class Parser:
    """
    Parser for Elm modules.

    Usage:
        parser = Parser(tokens)
        module = parser.parse()

    Top-level declarations are separated by the layout rule: a token in
    column 1 at the start of a line begins a new declaration.
    """

    def __init__(self, tokens: List[Token], filename: str = "<unknown>"):
        self.tokens = [t for t in tokens if t.type != TokenType.EOF]
        self.filename = filename
        self.pos = 0
        self.limit = len(self.tokens)
        self._previous: Optional[Token] = None

    def _current(self) -> Optional[Token]:
        """Get current token or None at the end of the current declaration."""
        if self.pos >= self.limit:
            return None
        return self.tokens[self.pos]

    def _peek(self, offset: int = 1) -> Optional[Token]:
        pos = self.pos + offset
        if pos >= self.limit:
            return None
        return self.tokens[pos]

    def _advance(self) -> Optional[Token]:
        """Advance one token and return it."""
        token = self._current()
        if token is not None:
            self.pos += 1
            self._previous = token
        return token

    def _expect(self, token_type: TokenType, message: str = None) -> Token:
        """Expect a specific token type, raise error if not found."""
        token = self._current()
        if token is None:
            raise ParseError(
                message or f"Expected {token_type.name}, got end of declaration",
                self._previous,
            )
        if token.type != token_type:
            raise ParseError(message or f"Expected {token_type.name}, got {token.type.name}", token)
        return self._advance()

    def _expect_keyword(self, word: str) -> Token:
        token = self._current()
        if token is None or not token.is_keyword(word):
            raise ParseError(f"Expected '{word}'", token or self._previous)
        return self._advance()

    def _range_from(self, first: Token) -> Range:
        last = self._previous or first
        return Range(Location(first.line, first.column), Location(last.end_line, last.end_column))

    # -------------------------------------------------------------------------
    # Module structure
    # -------------------------------------------------------------------------

    def _split_top_level(self) -> List[Tuple[int, int]]:
        """Split tokens into (start, end) index pairs, one per top-level chunk."""
        starts = [
            i for i, tok in enumerate(self.tokens)
            if i == 0 or (tok.line_start and tok.column == 1)
        ]
        bounds = starts[1:] + [len(self.tokens)]
        return list(zip(starts, bounds))

    def parse(self) -> ModuleNode:
        """Parse the token stream into a ModuleNode."""
        module = ModuleNode(name=("Main",), filename=self.filename)

        for index, (start, end) in enumerate(self._split_top_level()):
            self.pos, self.limit = start, end
            first = self._current()

            nxt = self._peek()
            if first.is_keyword("module") or (
                (first.is_keyword("port") or first.is_name("effect"))
                and nxt is not None and nxt.is_keyword("module")
            ):
                if index != 0:
                    raise ParseError("Module header must come first", first)
                module.name = self._parse_header()
            elif first.is_keyword("import"):
                module.imports.append(self._parse_import())
            else:
                module.declarations.append(self._parse_declaration())

        return module

    def _parse_module_name(self) -> Tuple[str, ...]:
        token = self._current()
        if token is None or token.type not in (TokenType.UPPER_NAME, TokenType.QUALIFIED_NAME):
            raise ParseError("Expected module name", token or self._previous)
        parts = tuple(token.value.split("."))
        if not all(p[:1].isupper() for p in parts):
            raise ParseError(f"Invalid module name {token.value!r}", token)
        self._advance()
        return parts

    def _parse_header(self) -> Tuple[str, ...]:
        if not self._current().is_keyword("module"):
            self._advance()  # port / effect
        self._expect_keyword("module")
        name = self._parse_module_name()
        # The module's own exposing clause does not affect resolution.
        self.pos = self.limit
        return name

    def _parse_import(self) -> ImportNode:
        first = self._expect_keyword("import")
        module_name = self._parse_module_name()
        alias = None
        exposing = None

        token = self._current()
        if token is not None and token.is_keyword("as"):
            self._advance()
            alias = self._parse_module_name()

        token = self._current()
        if token is not None and token.is_keyword("exposing"):
            self._advance()
            exposing = self._parse_exposing()

        token = self._current()
        if token is not None:
            raise ParseError(f"Unexpected {token.value!r} in import", token)

        return ImportNode(
            module_name=module_name,
            alias=alias,
            exposing=exposing,
            range=self._range_from(first),
        )

    def _parse_exposing(self) -> Exposing:
        open_paren = self._expect(TokenType.LPAREN, "Expected '(' after exposing")

        token = self._current()
        if token is not None and token.is_operator(".."):
            self._advance()
            self._expect(TokenType.RPAREN, "Expected ')' after '..'")
            return Exposing(is_all=True, range=self._range_from(open_paren))

        values: List[ExposedValue] = []
        types: List[str] = []
        while True:
            token = self._current()
            if token is None:
                raise ParseError("Unclosed exposing list", open_paren)
            if token.type == TokenType.RPAREN:
                self._advance()
                break
            if token.type == TokenType.COMMA:
                self._advance()
            elif token.type == TokenType.LOWER_NAME:
                self._advance()
                values.append(ExposedValue(token.value, Range.from_token(token)))
            elif token.type == TokenType.UPPER_NAME:
                self._advance()
                types.append(token.value)
                if self._current() is not None and self._current().type == TokenType.LPAREN:
                    self._skip_group()
            elif token.type == TokenType.LPAREN:
                # Exposed operator such as (|=); not a plain function
                self._skip_group()
            else:
                raise ParseError(f"Unexpected {token.value!r} in exposing list", token)

        return Exposing(
            is_all=False,
            values=tuple(values),
            types=tuple(types),
            range=self._range_from(open_paren),
        )

    def _skip_group(self) -> None:
        """Skip a balanced bracketed group starting at the current opener."""
        opener = self._advance()
        depth = 1
        while depth:
            token = self._advance()
            if token is None:
                raise ParseError("Unclosed bracket", opener)
            if token.type in _OPENERS:
                depth += 1
            elif token.type in _CLOSERS:
                depth -= 1

    def _parse_declaration(self):
        first = self._current()

        nxt = self._peek()
        kind = None
        if first.is_keyword("type"):
            kind = "type alias" if nxt is not None and nxt.is_name("alias") else "type"
            name_type = TokenType.UPPER_NAME
        elif first.is_keyword("port"):
            kind = "port"
            name_type = TokenType.LOWER_NAME
        elif (
            first.is_name("infix") and first.column == 1
            and nxt is not None and nxt.type == TokenType.LOWER_NAME
            and nxt.value in INFIX_DIRECTIONS
        ):
            kind = "infix"
            name_type = TokenType.OPERATOR

        if kind is not None:
            # `alias` and the infix direction lex as names, so match on the token kind
            name = next(
                (t.value for t in self.tokens[self.pos + 1:self.limit] if t.type == name_type),
                "",
            )
            self.pos = self.limit
            self._previous = self.tokens[self.limit - 1]
            return Declaration(kind=kind, name=name, range=self._range_from(first))

        if first.type != TokenType.LOWER_NAME:
            raise ParseError(f"Unexpected {first.value!r} at top level", first)

        if nxt is not None and nxt.is_operator(":"):
            self.pos = self.limit
            self._previous = self.tokens[self.limit - 1]
            return Declaration(kind="signature", name=first.value, range=self._range_from(first))

        self._skip_until(lambda t: t.is_operator("="), _never)
        if self._current() is None:
            raise ParseError(f"Expected '=' in definition of {first.value!r}", first)
        self._advance()
        body = self._parse_expression(_never)
        return FunctionDeclaration(name=first.value, body=body, range=self._range_from(first))

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def _skip_until(self, target: StopFn, stop: StopFn) -> None:
        """Skip pattern tokens until ``target`` (or ``stop``) matches at bracket depth 0."""
        depth = 0
        while True:
            token = self._current()
            if token is None:
                return
            if depth == 0 and (target(token) or stop(token)):
                return
            if token.type in _OPENERS:
                depth += 1
            elif token.type in _CLOSERS and depth > 0:
                depth -= 1
            self._advance()

    def _parse_expression(self, stop: StopFn) -> Application:
        start = self._current()
        items = self._parse_items(stop)
        if items:
            return Application(items=items, range=Range.covering(items[0].range, items[-1].range))
        anchor = start or self._previous
        return Application(items=[], range=Range.empty_at(anchor) if anchor else Range(Location(1, 1), Location(1, 1)))

    def _parse_items(self, stop: StopFn) -> List[Expression]:
        items: List[Expression] = []
        while True:
            token = self._current()
            if token is None or stop(token):
                return items
            node = self._parse_atom(stop)
            if node is not None:
                items.append(node)

    def _parse_atom(self, stop: StopFn) -> Optional[Expression]:
        """Parse one expression atom. Always consumes at least one token."""
        token = self._current()
        ttype = token.type

        if ttype in (TokenType.LOWER_NAME, TokenType.UPPER_NAME):
            self._advance()
            return FunctionOrValue((), token.value, Range.from_token(token))

        if ttype == TokenType.QUALIFIED_NAME:
            self._advance()
            parts = token.value.split(".")
            return FunctionOrValue(tuple(parts[:-1]), parts[-1], Range.from_token(token))

        if ttype == TokenType.RECORD_ACCESS:
            self._advance()
            return RecordAccess(token.value[1:], Range.from_token(token))

        if ttype in _LITERALS:
            self._advance()
            return Literal(token.value, ttype.name.lower(), Range.from_token(token))

        if ttype == TokenType.OPERATOR:
            self._advance()
            return Operator(token.value, Range.from_token(token))

        if ttype == TokenType.LPAREN:
            elements, rng = self._parse_group(TokenType.RPAREN)
            return Parenthesized(elements=elements, range=rng)

        if ttype == TokenType.LBRACKET:
            elements, rng = self._parse_group(TokenType.RBRACKET)
            return ListExpression(elements=elements, range=rng)

        if ttype == TokenType.LBRACE:
            return self._parse_record()

        if ttype == TokenType.BACKSLASH:
            return self._parse_lambda(stop)

        if token.is_keyword("let"):
            return self._parse_let(stop)

        if token.is_keyword("case"):
            return self._parse_case(stop)

        # if/then/else and stray punctuation carry no references
        self._advance()
        return None

    def _parse_group(self, close: TokenType) -> Tuple[List[Expression], Range]:
        opener = self._advance()
        inner_stop: StopFn = lambda t: t.type in (TokenType.COMMA, close)
        elements: List[Expression] = []

        while True:
            token = self._current()
            if token is None:
                raise ParseError(f"Unclosed {opener.value!r}", opener)
            if token.type == close:
                self._advance()
                break
            if token.type == TokenType.COMMA:
                self._advance()
                continue
            elements.append(self._parse_expression(inner_stop))

        return elements, self._range_from(opener)

    def _parse_record(self) -> RecordExpression:
        opener = self._advance()
        inner_stop: StopFn = lambda t: t.type in (TokenType.COMMA, TokenType.RBRACE)
        base = None
        fields: List[RecordField] = []

        token = self._current()
        nxt = self._peek()
        if token is not None and token.type == TokenType.LOWER_NAME and nxt is not None and nxt.is_operator("|"):
            base = FunctionOrValue((), token.value, Range.from_token(token))
            self._advance()
            self._advance()

        while True:
            token = self._current()
            if token is None:
                raise ParseError("Unclosed record", opener)
            if token.type == TokenType.RBRACE:
                self._advance()
                break
            if token.type == TokenType.COMMA:
                self._advance()
                continue

            nxt = self._peek()
            if token.type == TokenType.LOWER_NAME and nxt is not None and nxt.is_operator("="):
                self._advance()
                self._advance()
                value = self._parse_expression(inner_stop)
                fields.append(RecordField(token.value, value, self._range_from(token)))
            else:
                value = self._parse_expression(inner_stop)
                fields.append(RecordField("", value, value.range))

        return RecordExpression(base=base, fields=fields, range=self._range_from(opener))

    def _parse_lambda(self, stop: StopFn) -> Lambda:
        backslash = self._advance()
        self._skip_until(lambda t: t.is_operator("->"), stop)
        token = self._current()
        if token is not None and token.is_operator("->"):
            self._advance()
        body = self._parse_expression(stop)
        return Lambda(body=body, range=self._range_from(backslash))

    def _parse_let(self, stop: StopFn) -> LetExpression:
        let_token = self._advance()
        declarations: List[LetDeclaration] = []

        first = self._current()
        if first is not None and not first.is_keyword("in") and not stop(first):
            column = first.column
            decl_stop: StopFn = lambda t: (
                stop(t) or t.is_keyword("in") or (t.line_start and t.column <= column)
            )
            seen = False
            while True:
                token = self._current()
                if token is None or stop(token) or token.is_keyword("in"):
                    break
                if seen and not (token.line_start and token.column == column):
                    break
                seen = True
                start = token
                pattern_stop: StopFn = lambda t, start=start: t is not start and decl_stop(t)

                nxt = self._peek()
                if token.type == TokenType.LOWER_NAME and nxt is not None and nxt.is_operator(":"):
                    self._skip_until(_never, pattern_stop)
                    continue

                self._skip_until(lambda t: t.is_operator("="), pattern_stop)
                eq = self._current()
                if eq is not None and eq.is_operator("="):
                    self._advance()
                body = self._parse_expression(decl_stop)
                name = start.value if start.type == TokenType.LOWER_NAME else None
                declarations.append(LetDeclaration(name=name, body=body, range=self._range_from(start)))

        token = self._current()
        if token is not None and token.is_keyword("in"):
            self._advance()
        body = self._parse_expression(stop)
        return LetExpression(declarations=declarations, body=body, range=self._range_from(let_token))

    def _parse_case(self, stop: StopFn) -> CaseExpression:
        case_token = self._advance()
        subject = self._parse_expression(lambda t: stop(t) or t.is_keyword("of"))
        branches: List[CaseBranch] = []

        token = self._current()
        if token is None or not token.is_keyword("of"):
            return CaseExpression(subject=subject, branches=branches, range=self._range_from(case_token))
        self._advance()

        first = self._current()
        if first is None or stop(first):
            return CaseExpression(subject=subject, branches=branches, range=self._range_from(case_token))

        column = first.column
        branch_stop: StopFn = lambda t: stop(t) or (t.line_start and t.column <= column)

        while True:
            token = self._current()
            if token is None or stop(token):
                break
            if branches and not (token.line_start and token.column == column):
                break
            start = token
            self._skip_until(
                lambda t: t.is_operator("->"),
                lambda t, start=start: t is not start and branch_stop(t),
            )
            arrow = self._current()
            if arrow is not None and arrow.is_operator("->"):
                self._advance()
            body = self._parse_expression(branch_stop)
            branches.append(CaseBranch(body=body, range=self._range_from(start)))

        return CaseExpression(subject=subject, branches=branches, range=self._range_from(case_token))


def parse_source(source: str, filename: str = "<unknown>") -> ModuleNode:
    """Parse Elm source code into a ModuleNode."""
    lexer = Lexer(source, filename)
    tokens = lexer.tokenize_all()
    parser = Parser(tokens, filename)
    return parser.parse()


def parse_file(filepath: str) -> ModuleNode:
    """Parse a file into a ModuleNode. Handles encoding fallback."""
    # Try UTF-8 with BOM first, then UTF-8, then latin-1 (which always succeeds)
    for encoding in ['utf-8-sig', 'utf-8', 'latin-1']:
        try:
            with open(filepath, 'r', encoding=encoding) as f:
                source = f.read()
            break
        except UnicodeDecodeError:
            continue

    return parse_source(source, str(filepath))
