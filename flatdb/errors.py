"""
Error hierarchy - every failure aborts the current statement

This module provides:
- DatabaseError: base class for all engine errors
- LexError / ParseError: problems in the SQL text
- ResolutionError: unknown table or column
- EvaluationError: type mismatch or division by zero while evaluating
- StorageError: problems reported by the table storage
"""

from typing import Optional


class DatabaseError(Exception):
    """Base class for all flatdb errors"""


class LexError(DatabaseError):
    """Invalid character or unterminated literal in the SQL text"""

    def __init__(self, message: str, char: str = '', position: int = 0,
                 line: int = 1, column: int = 1):
        super().__init__(message)
        self.char = char
        self.position = position
        self.line = line
        self.column = column


class ParseError(DatabaseError):
    """Grammar violation: a token other than the expected one was found"""

    def __init__(self, message: str, expected: str = '', found: Optional[str] = None,
                 position: int = 0):
        super().__init__(message)
        self.expected = expected
        self.found = found
        self.position = position


class ResolutionError(DatabaseError):
    """Unknown table or column"""

    def __init__(self, message: str, name: str = '', table: str = '', clause: str = ''):
        super().__init__(message)
        self.name = name
        self.table = table
        self.clause = clause


class EvaluationError(DatabaseError):
    """Semantic failure while evaluating an expression"""

    def __init__(self, message: str, expression: str = ''):
        super().__init__(message)
        self.expression = expression


class TypeMismatchError(EvaluationError):
    """Operand types are not valid for the operator"""


class DivisionByZeroError(EvaluationError):
    """Division by zero"""


class StorageError(DatabaseError):
    """Error surfaced by the table storage"""


class TableNotFoundError(StorageError, ResolutionError):
    """Table file does not exist in the table directory"""

    def __init__(self, table: str, data_dir: str = ''):
        message = f"Table '{table}' does not exist"
        if data_dir:
            message += f" in directory '{data_dir}'"
        StorageError.__init__(self, message)
        self.name = table
        self.table = table
        self.clause = 'FROM'


class MalformedRowError(StorageError):
    """A record does not have one field per column"""

    def __init__(self, table: str, line: int, found: int, expected: int):
        super().__init__(
            f"Row at line {line} of table '{table}' has {found} fields, expected {expected}"
        )
        self.table = table
        self.line = line


class StorageIOError(StorageError):
    """Reading or writing a table file failed"""
