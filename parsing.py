"""
SLIM Programming Language Parser
Tokenizer, keyword table and recursive-descent parser with panic-mode recovery
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple
import math
import sys

# Import pyparsing with error handling
try:
    import pyparsing as pp
except ImportError:
    raise ImportError("pyparsing library not found. Install with: pip install pyparsing")

from ast_nodes import (
    Assign, Binary, Block, Call, Expr, ExprStmt, Fn, Grouping, Identifier, If,
    Let, NumberLiteral, Stmt, StringLiteral, Unary, While,
)
from error_handling import SlimParseError, SlimSyntaxError, SlimTokenizerError


@dataclass(frozen=True)
class SourceSpan:
    """Source location information for diagnostics"""
    filename: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    text: str = ""

    def __str__(self) -> str:
        if self.start_line == self.end_line:
            return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_col}"
        return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


# ============================================================================
# TOKEN / KEYWORD TABLE
# ============================================================================

class TokenType(Enum):
    # Literals
    IDENTIFIER = "identifier"
    NUMBER = "number"
    STRING = "string"

    # Keywords
    LET = "let"
    FUNC = "func"
    IF = "if"
    ELSE = "else"
    WHILE = "while"
    AND = "and"
    OR = "or"
    NOT = "not"

    # Operators
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    BANG = "!"
    EQUAL = "="
    EQUAL_EQUAL = "=="
    BANG_EQUAL = "!="
    LESS = "<"
    LESS_EQUAL = "<="
    GREATER = ">"
    GREATER_EQUAL = ">="
    PLUS_EQUAL = "+="
    MINUS_EQUAL = "-="
    STAR_EQUAL = "*="
    SLASH_EQUAL = "/="

    # Punctuation
    LEFT_PAREN = "("
    RIGHT_PAREN = ")"
    LEFT_BRACE = "{"
    RIGHT_BRACE = "}"
    COMMA = ","
    SEMICOLON = ";"

    EOF = "end of input"


KEYWORD_TYPES = (
    TokenType.LET, TokenType.FUNC, TokenType.IF, TokenType.ELSE,
    TokenType.WHILE, TokenType.AND, TokenType.OR, TokenType.NOT,
)

OPERATOR_TYPES = (
    TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH,
    TokenType.BANG, TokenType.EQUAL, TokenType.EQUAL_EQUAL, TokenType.BANG_EQUAL,
    TokenType.LESS, TokenType.LESS_EQUAL, TokenType.GREATER, TokenType.GREATER_EQUAL,
    TokenType.PLUS_EQUAL, TokenType.MINUS_EQUAL, TokenType.STAR_EQUAL, TokenType.SLASH_EQUAL,
)

PUNCTUATION_TYPES = (
    TokenType.LEFT_PAREN, TokenType.RIGHT_PAREN, TokenType.LEFT_BRACE,
    TokenType.RIGHT_BRACE, TokenType.COMMA, TokenType.SEMICOLON,
)

# Reserved words -> token kinds
KEYWORDS = {token_type.value: token_type for token_type in KEYWORD_TYPES}

# Operator and punctuation symbols -> token kinds
SYMBOLS = {token_type.value: token_type for token_type in OPERATOR_TYPES + PUNCTUATION_TYPES}

ASSIGNMENT_OPERATORS = (
    TokenType.EQUAL, TokenType.PLUS_EQUAL, TokenType.MINUS_EQUAL,
    TokenType.STAR_EQUAL, TokenType.SLASH_EQUAL,
)

# Tokens presumed to start a new statement during error recovery
STATEMENT_KEYWORDS = (TokenType.LET, TokenType.FUNC, TokenType.IF, TokenType.WHILE)


@dataclass(frozen=True)
class Token:
    """SLIM token with source information"""
    type: TokenType
    lexeme: str
    literal: Any
    span: SourceSpan

    @property
    def is_eof(self) -> bool:
        return self.type is TokenType.EOF

    @property
    def category(self) -> str:
        if self.type in KEYWORD_TYPES:
            return "keyword"
        if self.type in OPERATOR_TYPES:
            return "operator"
        if self.type in PUNCTUATION_TYPES:
            return "punctuation"
        if self.type is TokenType.EOF:
            return "eof"
        return self.type.value

    def __str__(self) -> str:
        return f"{self.type.name}({self.lexeme!r})"


# ============================================================================
# TOKENIZER
# ============================================================================

class SlimTokenizer:
    """SLIM tokenizer built from pyparsing token expressions"""

    def __init__(self, filename: str = "<input>", debug: bool = False):
        self.filename = filename
        self.debug = debug
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup all token patterns for SLIM, in priority order"""

        # Comments (// to end of line, /* block */); matched so they can be dropped
        comment = pp.cpp_style_comment.copy().set_parse_action(pp.replace_with("COMMENT"))
        bad_comment = pp.Regex(r'/\*').set_parse_action(pp.replace_with("BAD_COMMENT"))

        # String literals with escape sequences, single line
        string_literal = pp.QuotedString(
            '"', esc_char='\\', unquote_results=False
        ).set_parse_action(pp.replace_with("STRING"))
        bad_string = pp.Regex(r'"[^\n]*').set_parse_action(pp.replace_with("BAD_STRING"))

        # Numbers (integers and decimals), not glued to a following name
        number = pp.Regex(r'\d+(?:\.\d+)?(?![A-Za-z_0-9])').set_parse_action(pp.replace_with("NUMBER"))
        bad_number = pp.Regex(r'\d+(?:\.\d+)?[A-Za-z_]\w*').set_parse_action(pp.replace_with("BAD_NUMBER"))

        # Identifiers and keywords
        word = pp.Word(pp.alphas + "_", pp.alphanums + "_").set_parse_action(pp.replace_with("WORD"))

        # Operators and punctuation (one_of matches the longest symbol first)
        symbol = pp.one_of(list(SYMBOLS)).set_parse_action(pp.replace_with("SYMBOL"))

        self.token_expr = pp.MatchFirst([
            comment, bad_comment,
            string_literal, bad_string,
            number, bad_number,
            word,
            symbol,
        ]).parse_with_tabs()

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize SLIM source code; the result always ends with one EOF token"""
        tokens = []
        position = 0

        for result, start, end in self.token_expr.scan_string(text):
            self._check_gap(text, position, start)
            position = end

            tag = result[0]
            lexeme = text[start:end]
            span = self._make_span(text, start, end)

            if tag == "COMMENT":
                continue
            elif tag == "BAD_COMMENT":
                raise SlimTokenizerError("Unterminated block comment", span)
            elif tag == "BAD_STRING":
                raise SlimTokenizerError("Unterminated string literal", span)
            elif tag == "BAD_NUMBER":
                raise SlimTokenizerError(f"Malformed number literal '{lexeme}'", span)
            elif tag == "NUMBER":
                literal = self._number_literal(lexeme, span)
                tokens.append(Token(TokenType.NUMBER, lexeme, literal, span))
            elif tag == "STRING":
                literal = self._process_string_escapes(lexeme[1:-1])
                tokens.append(Token(TokenType.STRING, lexeme, literal, span))
            elif tag == "WORD":
                token_type = KEYWORDS.get(lexeme, TokenType.IDENTIFIER)
                tokens.append(Token(token_type, lexeme, None, span))
            else:
                tokens.append(Token(SYMBOLS[lexeme], lexeme, None, span))

        self._check_gap(text, position, len(text))
        tokens.append(Token(TokenType.EOF, "", None, self._make_span(text, len(text), len(text))))

        if self.debug:
            print(f"Tokenized {len(tokens)} tokens from {self.filename}", file=sys.stderr)
        return tokens

    def _number_literal(self, lexeme: str, span: SourceSpan):
        try:
            literal = float(lexeme) if '.' in lexeme else int(lexeme)
        except ValueError:
            raise SlimTokenizerError("Number literal too long", span) from None
        if literal == math.inf:
            raise SlimTokenizerError("Number literal too long", span)
        return literal

    def _check_gap(self, text: str, start: int, end: int) -> None:
        """Anything between two tokens must be whitespace"""
        gap = text[start:end]
        stripped = gap.lstrip(" \t\n\r")
        if stripped:
            loc = start + len(gap) - len(stripped)
            span = self._make_span(text, loc, loc + 1)
            raise SlimTokenizerError(f"Unexpected character '{text[loc]}'", span)

    def _make_span(self, text: str, start: int, end: int) -> SourceSpan:
        line = pp.lineno(start, text)
        column = pp.col(start, text)
        return SourceSpan(
            self.filename, line, column, line, column + (end - start), text[start:end]
        )

    def _process_string_escapes(self, s: str) -> str:
        """Process escape sequences in strings; unknown escapes are kept verbatim"""
        escape_map = {
            'n': '\n', 't': '\t', 'r': '\r', '\\': '\\', '"': '"', '0': '\0'
        }

        result = []
        i = 0
        while i < len(s):
            if s[i] == '\\' and i + 1 < len(s) and s[i + 1] in escape_map:
                result.append(escape_map[s[i + 1]])
                i += 2
            else:
                result.append(s[i])
                i += 1

        return ''.join(result)


# ============================================================================
# PARSER
# ============================================================================

class ProgramParser:
    """Recursive-descent parser over a token list

    Every declaration is a recovery boundary: a SlimParseError raised while
    parsing it is recorded in ``errors`` and the parser skips ahead to the
    next presumed statement start.
    """

    def __init__(self, tokens: List[Token], debug: bool = False):
        if not tokens or tokens[-1].type is not TokenType.EOF:
            raise RuntimeError("Parser invariant violated: token list must end with EOF")
        self.tokens = tokens
        self.current_index = 0
        self.errors: List[SlimParseError] = []
        self.debug = debug

    # =====================
    # Program
    # =====================

    def parse_program(self) -> List[Stmt]:
        statements = []
        while not self._is_at_end():
            statement = self._declaration()
            if statement is not None:
                statements.append(statement)

        if self.debug:
            print(f"Parsed {len(statements)} statements, {len(self.errors)} errors", file=sys.stderr)
        return statements

    # =====================
    # Declarations / Statements
    # =====================

    def _declaration(self) -> Optional[Stmt]:
        try:
            if self._match(TokenType.FUNC):
                return self._fn_declaration()
            if self._match(TokenType.LET):
                return self._let_declaration()
            return self._statement()
        except SlimParseError as error:
            self.errors.append(error)
            if self.debug:
                print(f"Recovering from: {error}", file=sys.stderr)
            self._synchronize()
            return None
        except RecursionError:
            self.errors.append(SlimParseError(self._current(), "Expression nested too deeply."))
            self._synchronize()
            return None

    def _statement(self) -> Stmt:
        if self._match(TokenType.IF):
            return self._if_statement()
        if self._match(TokenType.WHILE):
            return self._while_statement()
        if self._match(TokenType.LEFT_BRACE):
            span = self._previous().span
            return Block(tuple(self._block_statements()), span=span)
        return self._expression_or_assignment()

    def _let_declaration(self) -> Stmt:
        name = self._consume(TokenType.IDENTIFIER, "Expected identifier after 'let'.")
        initializer = None
        if self._match(TokenType.EQUAL):
            initializer = self._expression()
        self._consume(TokenType.SEMICOLON, "Expected ';' after let declaration.")
        return Let(name.lexeme, initializer, span=name.span)

    def _fn_declaration(self) -> Stmt:
        name = self._consume(TokenType.IDENTIFIER, "Expected function name after 'func'.")

        self._consume(TokenType.LEFT_PAREN, "Expected '(' after function name.")
        params = []
        if not self._check(TokenType.RIGHT_PAREN):
            params.append(self._consume(TokenType.IDENTIFIER, "Expected parameter name.").lexeme)
            while self._match(TokenType.COMMA):
                params.append(self._consume(TokenType.IDENTIFIER, "Expected parameter name.").lexeme)
        self._consume(TokenType.RIGHT_PAREN, "Expected ')' after parameters.")

        self._consume(TokenType.LEFT_BRACE, "Expected '{' before function body.")
        body = self._block_statements()
        return Fn(name.lexeme, tuple(params), tuple(body), span=name.span)

    def _if_statement(self) -> Stmt:
        span = self._previous().span
        self._consume(TokenType.LEFT_PAREN, "Expected '(' after 'if'.")
        condition = self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expected ')' after if condition.")

        then_branch = self._statement()
        else_branch = None
        if self._match(TokenType.ELSE):
            else_branch = self._statement()
        return If(condition, then_branch, else_branch, span=span)

    def _while_statement(self) -> Stmt:
        span = self._previous().span
        self._consume(TokenType.LEFT_PAREN, "Expected '(' after 'while'.")
        condition = self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expected ')' after while condition.")
        return While(condition, self._statement(), span=span)

    def _block_statements(self) -> List[Stmt]:
        """Statements up to the closing brace; the '{' is already consumed"""
        statements = []
        while not self._check(TokenType.RIGHT_BRACE) and not self._is_at_end():
            statement = self._declaration()
            if statement is not None:
                statements.append(statement)
        self._consume(TokenType.RIGHT_BRACE, "Expected '}' after block.")
        return statements

    def _expression_or_assignment(self) -> Stmt:
        # IDENT followed by an assignment operator is an assignment statement
        if self._check(TokenType.IDENTIFIER) and self._peek_next().type in ASSIGNMENT_OPERATORS:
            name = self._advance()
            op = self._advance()
            value = self._expression()
            self._consume(TokenType.SEMICOLON, "Expected ';' after assignment.")
            return Assign(name.lexeme, op.lexeme, value, span=name.span)

        expression = self._expression()
        self._consume(TokenType.SEMICOLON, "Expected ';' after expression.")
        return ExprStmt(expression, span=getattr(expression, 'span', None))

    # =====================
    # Expressions (precedence ladder, lowest binding first)
    # =====================

    def _expression(self) -> Expr:
        return self._logic_or()

    def _left_associative(self, operand: Callable[[], Expr], *operator_types: TokenType) -> Expr:
        expression = operand()
        while self._match(*operator_types):
            operator_token = self._previous()
            right = operand()
            expression = Binary(operator_token.lexeme, expression, right, span=operator_token.span)
        return expression

    def _logic_or(self) -> Expr:
        return self._left_associative(self._logic_and, TokenType.OR)

    def _logic_and(self) -> Expr:
        return self._left_associative(self._equality, TokenType.AND)

    def _equality(self) -> Expr:
        return self._left_associative(
            self._comparison, TokenType.EQUAL_EQUAL, TokenType.BANG_EQUAL)

    def _comparison(self) -> Expr:
        return self._left_associative(
            self._term, TokenType.LESS, TokenType.LESS_EQUAL,
            TokenType.GREATER, TokenType.GREATER_EQUAL)

    def _term(self) -> Expr:
        return self._left_associative(self._factor, TokenType.PLUS, TokenType.MINUS)

    def _factor(self) -> Expr:
        return self._left_associative(self._unary, TokenType.STAR, TokenType.SLASH)

    def _unary(self) -> Expr:
        if self._match(TokenType.NOT, TokenType.MINUS, TokenType.BANG):
            operator_token = self._previous()
            op = "-" if operator_token.type is TokenType.MINUS else "not"
            return Unary(op, self._unary(), span=operator_token.span)
        return self._call()

    def _call(self) -> Expr:
        expression = self._primary()
        while self._match(TokenType.LEFT_PAREN):
            paren = self._previous()
            arguments = []
            if not self._check(TokenType.RIGHT_PAREN):
                arguments.append(self._expression())
                while self._match(TokenType.COMMA):
                    arguments.append(self._expression())
            self._consume(TokenType.RIGHT_PAREN, "Expected ')' after arguments.")
            expression = Call(expression, tuple(arguments), span=paren.span)
        return expression

    def _primary(self) -> Expr:
        if self._match(TokenType.NUMBER):
            token = self._previous()
            return NumberLiteral(token.literal, span=token.span)
        if self._match(TokenType.STRING):
            token = self._previous()
            return StringLiteral(token.literal, span=token.span)
        if self._match(TokenType.IDENTIFIER):
            token = self._previous()
            return Identifier(token.lexeme, span=token.span)
        if self._match(TokenType.LEFT_PAREN):
            span = self._previous().span
            expression = self._expression()
            self._consume(TokenType.RIGHT_PAREN, "Expected ')' after expression.")
            return Grouping(expression, span=span)

        raise SlimParseError(self._current(), "Expected expression.")

    # =====================
    # Helpers / Error recovery
    # =====================

    def _match(self, *token_types: TokenType) -> bool:
        for token_type in token_types:
            if self._check(token_type):
                self._advance()
                return True
        return False

    def _consume(self, token_type: TokenType, message: str) -> Token:
        if self._check(token_type):
            return self._advance()
        raise SlimParseError(self._current(), message)

    def _check(self, token_type: TokenType) -> bool:
        # EOF never matches any expected kind
        if self._is_at_end():
            return False
        return self._current().type is token_type

    def _advance(self) -> Token:
        if not self._is_at_end():
            self.current_index += 1
        return self._previous()

    def _is_at_end(self) -> bool:
        return self._current().type is TokenType.EOF

    def _current(self) -> Token:
        if self.current_index >= len(self.tokens):
            raise RuntimeError("Parser invariant violated: read past the EOF token")
        return self.tokens[self.current_index]

    def _previous(self) -> Token:
        if self.current_index == 0:
            raise RuntimeError("Parser invariant violated: previous() before the first token")
        return self.tokens[self.current_index - 1]

    def _peek_next(self) -> Token:
        if self.current_index + 1 >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[self.current_index + 1]

    def _synchronize(self) -> None:
        """Discard tokens up to a presumed statement boundary"""
        self._advance()
        while not self._is_at_end():
            if self._previous().type is TokenType.SEMICOLON:
                return
            if self._current().type in STATEMENT_KEYWORDS:
                return
            self._advance()


# ============================================================================
# PARSER FACADE
# ============================================================================

class SlimParser:
    """Main SLIM parser interface"""

    def __init__(self, debug: bool = False):
        self.debug = debug

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        """Tokenize SLIM source code"""
        return SlimTokenizer(filename, self.debug).tokenize(text)

    def parse_tokens(self, tokens: List[Token]) -> Tuple[List[Stmt], List[SlimParseError]]:
        """Parse a token list, returning the program and every recorded error"""
        parser = ProgramParser(tokens, self.debug)
        statements = parser.parse_program()
        return statements, parser.errors

    def parse_string(self, text: str, filename: str = "<input>") -> List[Stmt]:
        """Parse SLIM source code; raises SlimSyntaxError if any error was recorded"""
        statements, errors = self.parse_tokens(self.tokenize(text, filename))
        if errors:
            raise SlimSyntaxError(errors, text)
        return statements

    def parse_file(self, filepath: str) -> List[Stmt]:
        """Parse a SLIM file"""
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_string(content, filepath)


def create_parser(debug: bool = False) -> SlimParser:
    """Create a SLIM parser instance"""
    return SlimParser(debug=debug)


def create_debug_parser() -> SlimParser:
    """Create a SLIM parser with debug output enabled"""
    return SlimParser(debug=True)


def tokens_to_source(tokens: List[Token]) -> str:
    """Lexemes joined by single spaces: a whitespace-normalized rendering of the source"""
    return " ".join(token.lexeme for token in tokens if not token.is_eof)
