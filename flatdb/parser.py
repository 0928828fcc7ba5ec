"""
SQL Parser - Tokenizer and recursive descent parser with detailed error messages

This module provides:
- Tokenizer: Lexical analysis (SQL text → tokens)
- Parser: Syntax analysis (tokens → command objects)
- Command objects: Structured representation of SQL commands
"""

from typing import List, Optional, Any, Tuple
from dataclasses import dataclass, field
from enum import Enum, auto

from .config import MAX_SQL_LENGTH
from .errors import LexError, ParseError


class TokenType(Enum):
    """Token types for SQL lexical analysis"""
    # Keywords
    SELECT = auto()
    FROM = auto()
    WHERE = auto()
    INSERT = auto()
    INTO = auto()
    VALUES = auto()
    UPDATE = auto()
    SET = auto()
    DELETE = auto()
    ORDER = auto()
    BY = auto()
    ASC = auto()
    DESC = auto()
    AND = auto()
    OR = auto()
    NOT = auto()
    NULL = auto()
    LIKE = auto()

    # Literals
    NUMBER = auto()
    STRING = auto()
    TRUE = auto()
    FALSE = auto()

    # Identifiers
    IDENTIFIER = auto()

    # Operators
    EQ = auto()          # =
    NEQ = auto()         # != or <>
    LT = auto()          # <
    GT = auto()          # >
    LTE = auto()         # <=
    GTE = auto()         # >=
    PLUS = auto()        # +
    MINUS = auto()       # -
    STAR = auto()        # *
    SLASH = auto()       # /
    CONCAT = auto()      # ||

    # Punctuation
    LPAREN = auto()      # (
    RPAREN = auto()      # )
    COMMA = auto()       # ,
    SEMICOLON = auto()   # ;

    # Special
    EOF = auto()


@dataclass(frozen=True)
class Token:
    """Represents a single token in SQL input"""
    type: TokenType
    value: Any
    position: int  # Character offset in input
    line: int      # Line number (for error messages)
    column: int    # Column number (for error messages)

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, pos={self.position})"

    def describe(self) -> str:
        """Human readable form used in error messages"""
        if self.type == TokenType.EOF:
            return 'end of input'
        return f"'{self.value}' ({self.type.name})"


class Tokenizer:
    """Lexical analyzer - converts SQL text to tokens"""

    # Keywords mapping (case-insensitive)
    KEYWORDS = {
        'SELECT': TokenType.SELECT,
        'FROM': TokenType.FROM,
        'WHERE': TokenType.WHERE,
        'INSERT': TokenType.INSERT,
        'INTO': TokenType.INTO,
        'VALUES': TokenType.VALUES,
        'UPDATE': TokenType.UPDATE,
        'SET': TokenType.SET,
        'DELETE': TokenType.DELETE,
        'ORDER': TokenType.ORDER,
        'BY': TokenType.BY,
        'ASC': TokenType.ASC,
        'DESC': TokenType.DESC,
        'AND': TokenType.AND,
        'OR': TokenType.OR,
        'NOT': TokenType.NOT,
        'NULL': TokenType.NULL,
        'LIKE': TokenType.LIKE,
        'TRUE': TokenType.TRUE,
        'FALSE': TokenType.FALSE,
    }

    # Checked before single-character operators
    TWO_CHAR_OPERATORS = {
        '<=': TokenType.LTE,
        '>=': TokenType.GTE,
        '<>': TokenType.NEQ,
        '!=': TokenType.NEQ,
        '||': TokenType.CONCAT,
    }

    SINGLE_CHAR_OPERATORS = {
        '=': TokenType.EQ,
        '<': TokenType.LT,
        '>': TokenType.GT,
        '+': TokenType.PLUS,
        '-': TokenType.MINUS,
        '*': TokenType.STAR,
        '/': TokenType.SLASH,
        '(': TokenType.LPAREN,
        ')': TokenType.RPAREN,
        ',': TokenType.COMMA,
        ';': TokenType.SEMICOLON,
    }

    def __init__(self, sql: str):
        self.sql = sql
        self.position = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """Convert SQL string to list of tokens"""
        while self.position < len(self.sql):
            # Skip whitespace
            if self._current_char().isspace():
                self._skip_whitespace()
                continue

            # Skip comments
            if self._current_char() == '-' and self._peek() == '-':
                self._skip_comment()
                continue

            # String literals
            if self._current_char() == "'":
                self._read_string()
                continue

            # Numbers
            if self._is_digit(self._current_char()):
                self._read_number()
                continue

            # Identifiers and keywords
            if self._current_char().isalpha() or self._current_char() == '_':
                self._read_identifier_or_keyword()
                continue

            # Operators and punctuation
            if self._try_operator():
                continue

            char = self._current_char()
            raise LexError(
                f"Unexpected character '{char}' at offset {self.position} "
                f"(line {self.line}, column {self.column})",
                char, self.position, self.line, self.column
            )

        # Add EOF token
        self.tokens.append(Token(TokenType.EOF, None, self.position, self.line, self.column))
        return self.tokens

    def _current_char(self) -> str:
        """Get current character"""
        if self.position >= len(self.sql):
            return '\0'
        return self.sql[self.position]

    def _peek(self, offset: int = 1) -> str:
        """Look ahead at next character"""
        pos = self.position + offset
        if pos >= len(self.sql):
            return '\0'
        return self.sql[pos]

    def _advance(self) -> str:
        """Move to next character"""
        char = self._current_char()
        self.position += 1
        if char == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return char

    def _at_end(self) -> bool:
        return self.position >= len(self.sql)

    @staticmethod
    def _is_digit(char: str) -> bool:
        # ASCII only; str.isdigit() also accepts characters like '²'
        return '0' <= char <= '9'

    def _skip_whitespace(self):
        while not self._at_end() and self._current_char().isspace():
            self._advance()

    def _skip_comment(self):
        """Skip single-line comment (-- ...)"""
        while not self._at_end() and self._current_char() != '\n':
            self._advance()

    def _read_string(self):
        """Read string literal enclosed in single quotes"""
        start_pos = self.position
        start_line = self.line
        start_col = self.column

        self._advance()  # Skip opening quote

        chars = []
        while not self._at_end():
            char = self._current_char()
            if char == "'" and self._peek() == "'":
                # Doubled quote
                self._advance()
                chars.append(self._advance())
            elif char == '\\' and self._peek() == "'":
                # Escaped quote
                self._advance()
                chars.append(self._advance())
            elif char == "'":
                break
            else:
                chars.append(self._advance())

        if self._at_end():
            raise LexError(
                f"Unterminated string literal at offset {start_pos} "
                f"(line {start_line}, column {start_col})",
                "'", start_pos, start_line, start_col
            )

        self._advance()  # Skip closing quote

        self.tokens.append(Token(TokenType.STRING, ''.join(chars), start_pos, start_line, start_col))

    def _read_number(self):
        """Read integer or decimal literal"""
        start_pos = self.position
        start_line = self.line
        start_col = self.column

        value = ''
        has_dot = False

        while self._is_digit(self._current_char()) or self._current_char() == '.':
            if self._current_char() == '.':
                if has_dot:
                    raise LexError(
                        f"Invalid number format at offset {self.position} "
                        f"(line {self.line}, column {self.column})",
                        '.', self.position, self.line, self.column
                    )
                has_dot = True
            value += self._advance()

        try:
            num_value = float(value) if has_dot else int(value)
        except ValueError as e:
            raise LexError(
                f"Invalid number at offset {start_pos} (line {start_line}, column {start_col}): {e}",
                value[0], start_pos, start_line, start_col
            ) from e
        self.tokens.append(Token(TokenType.NUMBER, num_value, start_pos, start_line, start_col))

    def _read_identifier_or_keyword(self):
        """Read identifier or keyword"""
        start_pos = self.position
        start_line = self.line
        start_col = self.column

        value = ''
        while self._current_char().isalnum() or self._current_char() == '_':
            value += self._advance()

        token_type = self.KEYWORDS.get(value.upper(), TokenType.IDENTIFIER)
        self.tokens.append(Token(token_type, value, start_pos, start_line, start_col))

    def _try_operator(self) -> bool:
        """Try to read operator or punctuation"""
        start_pos = self.position
        start_line = self.line
        start_col = self.column

        pair = self._current_char() + self._peek()
        if pair in self.TWO_CHAR_OPERATORS:
            self._advance()
            self._advance()
            self.tokens.append(Token(self.TWO_CHAR_OPERATORS[pair], pair, start_pos, start_line, start_col))
            return True

        char = self._current_char()
        if char in self.SINGLE_CHAR_OPERATORS:
            self._advance()
            self.tokens.append(Token(self.SINGLE_CHAR_OPERATORS[char], char, start_pos, start_line, start_col))
            return True

        return False


# ============================================================================
# Expression Tree
# ============================================================================

class Expression:
    """Base class for expression nodes"""
    pass


@dataclass
class BinaryOp(Expression):
    """Binary operation: left op right"""
    op: str  # '=', '<>', '<', '>', '<=', '>=', 'LIKE', 'AND', 'OR', '+', '-', '*', '/', '||'
    left: Expression
    right: Expression

    def __str__(self):
        return f"({self.left} {self.op} {self.right})"


@dataclass
class UnaryOp(Expression):
    """Unary operation: op operand"""
    op: str  # 'NOT', '-'
    operand: Expression

    def __str__(self):
        if self.op == 'NOT':
            return f"(NOT {self.operand})"
        return f"(-{self.operand})"


@dataclass
class Literal(Expression):
    """Literal value (number, string, boolean, NULL)"""
    value: Any
    datatype: str  # 'INTEGER', 'FLOAT', 'TEXT', 'BOOLEAN', 'NULL'

    def __str__(self):
        if self.datatype == 'NULL':
            return 'NULL'
        if self.datatype == 'BOOLEAN':
            return 'TRUE' if self.value else 'FALSE'
        if self.datatype == 'TEXT':
            escaped = self.value.replace("'", "''")
            return f"'{escaped}'"
        return str(self.value)


@dataclass
class ColumnRef(Expression):
    """Reference to a column; index is set by the resolver"""
    column_name: str
    index: Optional[int] = field(default=None, compare=False)

    def __str__(self):
        return self.column_name


# ============================================================================
# Command Objects (parsed SQL commands)
# ============================================================================

@dataclass
class InsertCommand:
    """INSERT INTO table_name (columns) VALUES (values)[, (values)]"""
    table_name: str
    columns: List[str]
    values: List[List[Literal]]  # One list per inserted row


@dataclass
class SelectCommand:
    """SELECT columns FROM table_name [WHERE expr] [ORDER BY ...]"""
    table_name: str
    columns: List[str]  # ['*'] or specific columns
    where: Optional[Expression]
    order_by: List[Tuple[str, str]] = field(default_factory=list)  # [(column, 'ASC'|'DESC'), ...]


@dataclass
class UpdateCommand:
    """UPDATE table_name SET col=expr, ... [WHERE expr]"""
    table_name: str
    assignments: List[Tuple[str, Expression]]  # [(column, value_expr), ...]
    where: Optional[Expression]


@dataclass
class DeleteCommand:
    """DELETE FROM table_name [WHERE expr]"""
    table_name: str
    where: Optional[Expression]


# ============================================================================
# Parser (Recursive Descent)
# ============================================================================

class Parser:
    """Syntax analyzer - converts tokens to command objects"""

    COMPARISON_OPS = {
        TokenType.EQ: '=',
        TokenType.NEQ: '<>',
        TokenType.LT: '<',
        TokenType.GT: '>',
        TokenType.LTE: '<=',
        TokenType.GTE: '>=',
        TokenType.LIKE: 'LIKE',
    }

    ADDITIVE_OPS = {
        TokenType.PLUS: '+',
        TokenType.MINUS: '-',
        TokenType.CONCAT: '||',
    }

    MULTIPLICATIVE_OPS = {
        TokenType.STAR: '*',
        TokenType.SLASH: '/',
    }

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.position = 0

    def parse(self):
        """Main entry point - parse one SQL command and require end of input"""
        if self._at_end():
            raise ParseError("Empty SQL statement", 'statement', None, self._current().position)

        token = self._current()

        # Dispatch based on first keyword
        if token.type == TokenType.SELECT:
            command = self._parse_select()
        elif token.type == TokenType.INSERT:
            command = self._parse_insert()
        elif token.type == TokenType.UPDATE:
            command = self._parse_update()
        elif token.type == TokenType.DELETE:
            command = self._parse_delete()
        else:
            self._error("SELECT, INSERT, UPDATE, or DELETE")

        self._consume_if(TokenType.SEMICOLON)
        if not self._at_end():
            self._error("end of statement")

        return command

    # ========================================================================
    # Helper methods for token navigation
    # ========================================================================

    def _current(self) -> Token:
        """Get current token"""
        if self.position >= len(self.tokens):
            return self.tokens[-1]  # Return EOF
        return self.tokens[self.position]

    def _advance(self) -> Token:
        """Move to next token and return current"""
        token = self._current()
        if not self._at_end():
            self.position += 1
        return token

    def _at_end(self) -> bool:
        """Check if at end of tokens"""
        return self._current().type == TokenType.EOF

    def _error(self, expected: str):
        token = self._current()
        raise ParseError(
            f"Expected {expected} at line {token.line}, column {token.column}. "
            f"Got {token.describe()}",
            expected,
            None if token.type == TokenType.EOF else str(token.value),
            token.position
        )

    def _expect(self, token_type: TokenType, expected: str = None) -> Token:
        """Consume token of expected type or raise error"""
        if self._current().type != token_type:
            self._error(expected or token_type.name)
        return self._advance()

    def _match(self, *token_types: TokenType) -> bool:
        """Check if current token matches any of the given types"""
        return self._current().type in token_types

    def _consume_if(self, token_type: TokenType) -> bool:
        """Consume token if it matches, return True if consumed"""
        if self._match(token_type):
            self._advance()
            return True
        return False

    def _parse_identifier_list(self, expected: str) -> List[str]:
        names = [self._expect(TokenType.IDENTIFIER, expected).value]
        while self._consume_if(TokenType.COMMA):
            names.append(self._expect(TokenType.IDENTIFIER, expected).value)
        return names

    def _parse_where(self) -> Optional[Expression]:
        if self._consume_if(TokenType.WHERE):
            return self.parse_expression()
        return None

    # ========================================================================
    # SELECT parsing
    # ========================================================================

    def _parse_select(self) -> SelectCommand:
        """Parse SELECT statement"""
        self._expect(TokenType.SELECT)

        if self._consume_if(TokenType.STAR):
            columns = ['*']
        else:
            columns = self._parse_identifier_list("column name or '*'")

        self._expect(TokenType.FROM, "FROM after column list")
        table_name = self._expect(TokenType.IDENTIFIER, "table name").value

        where_expr = self._parse_where()

        order_by = []
        if self._match(TokenType.ORDER):
            order_by = self._parse_order_by()

        return SelectCommand(table_name, columns, where_expr, order_by)

    def _parse_order_by(self) -> List[Tuple[str, str]]:
        """Parse ORDER BY clause"""
        self._expect(TokenType.ORDER)
        self._expect(TokenType.BY, "BY after ORDER")

        order_by = []
        while True:
            col = self._expect(TokenType.IDENTIFIER, "column name").value
            direction = 'ASC'
            if self._match(TokenType.ASC, TokenType.DESC):
                direction = self._advance().type.name
            order_by.append((col, direction))
            if not self._consume_if(TokenType.COMMA):
                break

        return order_by

    # ========================================================================
    # Expression parsing (with operator precedence)
    # ========================================================================

    def parse_expression(self) -> Expression:
        """Parse expression (entry point, lowest precedence)"""
        return self._parse_or()

    def _parse_or(self) -> Expression:
        """Parse OR expression (lowest precedence)"""
        left = self._parse_and()

        while self._consume_if(TokenType.OR):
            right = self._parse_and()
            left = BinaryOp('OR', left, right)

        return left

    def _parse_and(self) -> Expression:
        """Parse AND expression"""
        left = self._parse_comparison()

        while self._consume_if(TokenType.AND):
            right = self._parse_comparison()
            left = BinaryOp('AND', left, right)

        return left

    def _parse_comparison(self) -> Expression:
        """Parse comparison expression (non-associative)"""
        left = self._parse_additive()

        if self._match(*self.COMPARISON_OPS):
            op = self.COMPARISON_OPS[self._advance().type]
            right = self._parse_additive()
            return BinaryOp(op, left, right)

        return left

    def _parse_additive(self) -> Expression:
        """Parse +, - and || (left-associative)"""
        left = self._parse_multiplicative()

        while self._match(*self.ADDITIVE_OPS):
            op = self.ADDITIVE_OPS[self._advance().type]
            right = self._parse_multiplicative()
            left = BinaryOp(op, left, right)

        return left

    def _parse_multiplicative(self) -> Expression:
        """Parse * and / (left-associative)"""
        left = self._parse_unary()

        while self._match(*self.MULTIPLICATIVE_OPS):
            op = self.MULTIPLICATIVE_OPS[self._advance().type]
            right = self._parse_unary()
            left = BinaryOp(op, left, right)

        return left

    def _parse_unary(self) -> Expression:
        """Parse NOT and unary minus (right-associative, bind tightest)

        NOT applies to a single term: NOT a > 1 is (NOT a) > 1, so a negated
        comparison needs parentheses: NOT (a > 1).
        """
        if self._consume_if(TokenType.NOT):
            return UnaryOp('NOT', self._parse_unary())

        if self._consume_if(TokenType.MINUS):
            return UnaryOp('-', self._parse_unary())

        return self._parse_primary()

    def _parse_primary(self) -> Expression:
        """Parse primary expression (literals, column refs, parentheses)"""
        # Parenthesized expression
        if self._consume_if(TokenType.LPAREN):
            expr = self.parse_expression()
            self._expect(TokenType.RPAREN, "')' after expression")
            return expr

        # Column reference
        if self._match(TokenType.IDENTIFIER):
            return ColumnRef(self._advance().value)

        if self._match(TokenType.NULL, TokenType.TRUE, TokenType.FALSE,
                       TokenType.NUMBER, TokenType.STRING):
            return self._literal(self._advance())

        self._error("expression (literal, column name, or parenthesized expression)")

    def _literal(self, token: Token) -> Literal:
        if token.type == TokenType.NULL:
            return Literal(None, 'NULL')
        if token.type == TokenType.TRUE:
            return Literal(True, 'BOOLEAN')
        if token.type == TokenType.FALSE:
            return Literal(False, 'BOOLEAN')
        if token.type == TokenType.STRING:
            return Literal(token.value, 'TEXT')
        datatype = 'FLOAT' if isinstance(token.value, float) else 'INTEGER'
        return Literal(token.value, datatype)

    # ========================================================================
    # INSERT parsing
    # ========================================================================

    def _parse_insert(self) -> InsertCommand:
        """Parse INSERT statement"""
        self._expect(TokenType.INSERT)
        self._expect(TokenType.INTO, "INTO after INSERT")
        table_name = self._expect(TokenType.IDENTIFIER, "table name").value

        self._expect(TokenType.LPAREN, "'(' before column list")
        columns = self._parse_identifier_list("column name")
        self._expect(TokenType.RPAREN, "')' after column list")

        self._expect(TokenType.VALUES, "VALUES keyword")

        rows = [self._parse_value_list(len(columns))]
        while self._consume_if(TokenType.COMMA):
            rows.append(self._parse_value_list(len(columns)))

        return InsertCommand(table_name, columns, rows)

    def _parse_value_list(self, column_count: int) -> List[Literal]:
        """Parse one parenthesized VALUES list"""
        start = self._expect(TokenType.LPAREN, "'(' before values")

        values = [self._parse_value()]
        while self._consume_if(TokenType.COMMA):
            values.append(self._parse_value())

        self._expect(TokenType.RPAREN, "')' after values")

        if len(values) != column_count:
            raise ParseError(
                f"Value count ({len(values)}) does not match column count ({column_count}) "
                f"at line {start.line}, column {start.column}",
                f"{column_count} values", str(len(values)), start.position
            )
        return values

    def _parse_value(self) -> Literal:
        """Parse a value in VALUES clause"""
        if self._consume_if(TokenType.MINUS):
            token = self._expect(TokenType.NUMBER, "number after '-'")
            literal = self._literal(token)
            literal.value = -literal.value
            return literal

        if self._match(TokenType.NULL, TokenType.TRUE, TokenType.FALSE,
                       TokenType.NUMBER, TokenType.STRING):
            return self._literal(self._advance())

        self._error("literal value")

    # ========================================================================
    # UPDATE parsing
    # ========================================================================

    def _parse_update(self) -> UpdateCommand:
        """Parse UPDATE statement"""
        self._expect(TokenType.UPDATE)
        table_name = self._expect(TokenType.IDENTIFIER, "table name").value

        self._expect(TokenType.SET, "SET keyword")

        # Parse assignments: col = expr
        assignments = []
        while True:
            col = self._expect(TokenType.IDENTIFIER, "column name").value
            self._expect(TokenType.EQ, "'=' after column name")
            assignments.append((col, self.parse_expression()))
            if not self._consume_if(TokenType.COMMA):
                break

        where_expr = self._parse_where()

        return UpdateCommand(table_name, assignments, where_expr)

    # ========================================================================
    # DELETE parsing
    # ========================================================================

    def _parse_delete(self) -> DeleteCommand:
        """Parse DELETE statement"""
        self._expect(TokenType.DELETE)
        self._expect(TokenType.FROM, "FROM after DELETE")
        table_name = self._expect(TokenType.IDENTIFIER, "table name").value

        where_expr = self._parse_where()

        return DeleteCommand(table_name, where_expr)


# ============================================================================
# Convenience function
# ============================================================================

def parse_sql(sql: str):
    """Parse SQL string to command object"""
    if len(sql) > MAX_SQL_LENGTH:
        raise ParseError(
            f"SQL statement is {len(sql)} characters long, maximum is {MAX_SQL_LENGTH}",
            f"at most {MAX_SQL_LENGTH} characters", str(len(sql)), MAX_SQL_LENGTH
        )
    tokenizer = Tokenizer(sql)
    tokens = tokenizer.tokenize()
    parser = Parser(tokens)
    return parser.parse()
