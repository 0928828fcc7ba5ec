"""
Schema Resolver - binds column names in a parsed command to table positions

The resolver asks the storage for the table's schema, checks every column the
command mentions, and returns a BoundStatement whose expressions carry column
positions so rows can be read by index.
"""

from typing import List, Optional, Tuple
from dataclasses import dataclass, field

from .errors import ResolutionError
from .schema import TableSchema
from .parser import (
    SelectCommand, InsertCommand, UpdateCommand, DeleteCommand,
    Expression, BinaryOp, UnaryOp, Literal, ColumnRef
)


@dataclass
class BoundStatement:
    """A command resolved against its table schema"""
    command: object
    schema: TableSchema
    where: Optional[Expression] = None
    projection: List[int] = field(default_factory=list)               # SELECT
    order_by: List[Tuple[int, str]] = field(default_factory=list)     # SELECT
    assignments: List[Tuple[int, Expression]] = field(default_factory=list)  # UPDATE
    insert_positions: List[int] = field(default_factory=list)         # INSERT

    @property
    def projected_columns(self) -> List[str]:
        return [self.schema.columns[i] for i in self.projection]


def resolve(command, storage) -> BoundStatement:
    """Resolve a parsed command against the schema held by storage"""
    schema = storage.get_schema(command.table_name)

    if isinstance(command, SelectCommand):
        return _resolve_select(command, schema)
    elif isinstance(command, InsertCommand):
        return _resolve_insert(command, schema)
    elif isinstance(command, UpdateCommand):
        return _resolve_update(command, schema)
    elif isinstance(command, DeleteCommand):
        return BoundStatement(command, schema, where=_resolve_where(command.where, schema))
    else:
        raise ValueError(f"Unknown command type: {type(command)}")


def resolve_expression(expr: Expression, schema: TableSchema, clause: str) -> Expression:
    """Return a copy of expr whose column references carry their positions"""
    if isinstance(expr, ColumnRef):
        return ColumnRef(expr.column_name, schema.get_column_index(expr.column_name, clause))
    elif isinstance(expr, BinaryOp):
        return BinaryOp(
            expr.op,
            resolve_expression(expr.left, schema, clause),
            resolve_expression(expr.right, schema, clause)
        )
    elif isinstance(expr, UnaryOp):
        return UnaryOp(expr.op, resolve_expression(expr.operand, schema, clause))
    elif isinstance(expr, Literal):
        return Literal(expr.value, expr.datatype)
    raise ValueError(f"Unknown expression node: {type(expr)}")


def _resolve_where(where: Optional[Expression], schema: TableSchema) -> Optional[Expression]:
    if where is None:
        return None
    return resolve_expression(where, schema, 'WHERE')


def _resolve_select(cmd: SelectCommand, schema: TableSchema) -> BoundStatement:
    if cmd.columns == ['*']:
        projection = list(range(len(schema)))
    else:
        projection = [schema.get_column_index(col, 'SELECT') for col in cmd.columns]

    order_by = [
        (schema.get_column_index(col, 'ORDER BY'), direction)
        for col, direction in cmd.order_by
    ]

    return BoundStatement(
        cmd, schema,
        where=_resolve_where(cmd.where, schema),
        projection=projection,
        order_by=order_by
    )


def _check_unique(names: List[str], schema: TableSchema, clause: str):
    seen = set()
    for name in names:
        if name in seen:
            raise ResolutionError(
                f"Column '{name}' is specified more than once (in {clause})",
                name, schema.table_name, clause
            )
        seen.add(name)


def _resolve_insert(cmd: InsertCommand, schema: TableSchema) -> BoundStatement:
    positions = [schema.get_column_index(col, 'INSERT') for col in cmd.columns]
    _check_unique(cmd.columns, schema, 'INSERT')
    return BoundStatement(cmd, schema, insert_positions=positions)


def _resolve_update(cmd: UpdateCommand, schema: TableSchema) -> BoundStatement:
    targets = [col for col, _ in cmd.assignments]
    assignments = [
        (schema.get_column_index(col, 'SET'), resolve_expression(expr, schema, 'SET'))
        for col, expr in cmd.assignments
    ]
    _check_unique(targets, schema, 'SET')
    return BoundStatement(
        cmd, schema,
        where=_resolve_where(cmd.where, schema),
        assignments=assignments
    )
