"""
flatdb - SQL over a directory of CSV tables

Parses one SQL statement (SELECT, INSERT, UPDATE, DELETE) and runs it against
tables stored as delimited text files, one file per table.
"""

__version__ = '0.1.0'

from flatdb.errors import (
    DatabaseError, LexError, ParseError, ResolutionError,
    EvaluationError, TypeMismatchError, DivisionByZeroError,
    StorageError, TableNotFoundError, MalformedRowError, StorageIOError
)
from flatdb.schema import TableSchema
from flatdb.storage import TableStorage, CsvStorage
from flatdb.parser import (
    Tokenizer, Parser, parse_sql, Token, TokenType,
    SelectCommand, InsertCommand, UpdateCommand, DeleteCommand,
    Expression, BinaryOp, UnaryOp, Literal, ColumnRef
)
from flatdb.resolver import BoundStatement, resolve
from flatdb.evaluator import evaluate, evaluate_condition
from flatdb.executor import QueryExecutor, ResultSet

__all__ = [
    'DatabaseError', 'LexError', 'ParseError', 'ResolutionError',
    'EvaluationError', 'TypeMismatchError', 'DivisionByZeroError',
    'StorageError', 'TableNotFoundError', 'MalformedRowError', 'StorageIOError',
    'TableSchema', 'TableStorage', 'CsvStorage',
    'Tokenizer', 'Parser', 'parse_sql', 'Token', 'TokenType',
    'SelectCommand', 'InsertCommand', 'UpdateCommand', 'DeleteCommand',
    'Expression', 'BinaryOp', 'UnaryOp', 'Literal', 'ColumnRef',
    'BoundStatement', 'resolve', 'evaluate', 'evaluate_condition',
    'QueryExecutor', 'ResultSet'
]
