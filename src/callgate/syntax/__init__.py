"""
callgate.syntax - Elm Source Parser

Lexer and parser for the subset of Elm that name resolution needs:
module header, imports with aliases and exposing clauses, and the
expression trees of top-level declarations.
"""

from callgate.syntax.lexer import Lexer, Token, TokenType, LexerError
from callgate.syntax.parser import (
    Parser,
    ParseError,
    parse_file,
    parse_source,
    # Locations
    Location,
    Range,
    # Module nodes
    ModuleNode,
    ImportNode,
    Exposing,
    ExposedValue,
    Declaration,
    FunctionDeclaration,
    # Expression nodes
    Expression,
    FunctionOrValue,
    Literal,
    Operator,
    RecordAccess,
    Application,
    Parenthesized,
    ListExpression,
    RecordExpression,
    RecordField,
    Lambda,
    LetExpression,
    LetDeclaration,
    CaseExpression,
    CaseBranch,
    # Traversal
    ExpressionVisitor,
    walk,
)

__all__ = [
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    "LexerError",
    # Parser
    "Parser",
    "ParseError",
    "parse_file",
    "parse_source",
    "Location",
    "Range",
    # Module nodes
    "ModuleNode",
    "ImportNode",
    "Exposing",
    "ExposedValue",
    "Declaration",
    "FunctionDeclaration",
    # Expression nodes
    "Expression",
    "FunctionOrValue",
    "Literal",
    "Operator",
    "RecordAccess",
    "Application",
    "Parenthesized",
    "ListExpression",
    "RecordExpression",
    "RecordField",
    "Lambda",
    "LetExpression",
    "LetDeclaration",
    "CaseExpression",
    "CaseBranch",
    # Traversal
    "ExpressionVisitor",
    "walk",
]
