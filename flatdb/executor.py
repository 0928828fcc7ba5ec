"""
Query Executor - Executes parsed SQL commands against table storage

This module provides:
- QueryExecutor: resolves commands and runs them over storage rows
- ResultSet: projected rows and column names returned by SELECT
- WHERE filtering, ORDER BY sorting, and row mutation
"""

from typing import Any, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field

from .evaluator import evaluate, evaluate_condition, parse_field, format_value, is_numeric
from .logger import get_logger
from .parser import SelectCommand, InsertCommand, UpdateCommand, DeleteCommand, Expression
from .resolver import BoundStatement, resolve

logger = get_logger(__name__)

Row = Tuple[str, ...]


@dataclass
class ResultSet:
    """Rows produced by SELECT, with the projected column names"""
    columns: List[str]
    rows: List[Row] = field(default_factory=list)

    def __len__(self):
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)


def sort_key(value: Any) -> tuple:
    """Total order for ORDER BY: NULL < numbers < booleans < text"""
    if value is None:
        return (0, 0)
    if is_numeric(value):
        return (1, value)
    if isinstance(value, bool):
        return (2, value)
    return (3, value)


class QueryExecutor:
    """Executes SQL commands against a TableStorage"""

    def __init__(self, storage):
        self.storage = storage

    def execute(self, command):
        """Main entry point - dispatch to specific executors"""
        if isinstance(command, SelectCommand):
            return self.execute_select(command)
        elif isinstance(command, InsertCommand):
            return self.execute_insert(command)
        elif isinstance(command, UpdateCommand):
            return self.execute_update(command)
        elif isinstance(command, DeleteCommand):
            return self.execute_delete(command)
        else:
            raise ValueError(f"Unknown command type: {type(command)}")

    # ========================================================================
    # SELECT
    # ========================================================================

    def execute_select(self, cmd: SelectCommand) -> ResultSet:
        """Execute SELECT command"""
        bound = resolve(cmd, self.storage)
        logger.debug("SELECT from %s", cmd.table_name)

        # Filter with WHERE clause
        filtered = [
            row for row in self.storage.scan_rows(cmd.table_name)
            if self._matches(bound.where, row)
        ]

        # Apply ORDER BY
        if bound.order_by:
            filtered = self._apply_order_by(filtered, bound.order_by)

        # Project columns
        results = ResultSet(bound.projected_columns)
        for row in filtered:
            results.rows.append(tuple(row[i] for i in bound.projection))

        logger.debug("SELECT from %s returned %d rows", cmd.table_name, len(results))
        return results

    def _apply_order_by(self, rows: List[Row], order_by: List[Tuple[int, str]]) -> List[Row]:
        """Stable sort, least significant key first"""
        for col_idx, direction in reversed(order_by):
            rows = sorted(
                rows,
                key=lambda row: sort_key(parse_field(row[col_idx])),
                reverse=(direction == 'DESC')
            )
        return rows

    # ========================================================================
    # INSERT
    # ========================================================================

    def execute_insert(self, cmd: InsertCommand) -> str:
        """Execute INSERT command"""
        bound = resolve(cmd, self.storage)

        # Build every row before writing any of them
        new_rows = []
        for values in cmd.values:
            fields = [format_value(None)] * len(bound.schema)
            for position, literal in zip(bound.insert_positions, values):
                fields[position] = format_value(literal.value)
            new_rows.append(fields)

        self.storage.append_rows(cmd.table_name, new_rows)

        logger.info("Inserted %d rows into %s", len(new_rows), cmd.table_name)
        return f"Inserted {len(new_rows)} row{'s' if len(new_rows) != 1 else ''}"

    # ========================================================================
    # UPDATE
    # ========================================================================

    def execute_update(self, cmd: UpdateCommand) -> str:
        """Execute UPDATE command"""
        bound = resolve(cmd, self.storage)

        updated_count = 0
        rows = []
        for row in self.storage.scan_rows(cmd.table_name):
            if self._matches(bound.where, row):
                rows.append(self._apply_assignments(bound, row))
                updated_count += 1
            else:
                rows.append(row)

        if updated_count:
            self.storage.replace_all_rows(cmd.table_name, rows)

        logger.info("Updated %d rows in %s", updated_count, cmd.table_name)
        return f"Updated {updated_count} row{'s' if updated_count != 1 else ''}"

    @staticmethod
    def _apply_assignments(bound: BoundStatement, row: Row) -> Row:
        """Evaluate all assignments against the original row"""
        new_values = list(row)
        for col_idx, value_expr in bound.assignments:
            new_values[col_idx] = format_value(evaluate(value_expr, row))
        return tuple(new_values)

    # ========================================================================
    # DELETE
    # ========================================================================

    def execute_delete(self, cmd: DeleteCommand) -> str:
        """Execute DELETE command"""
        bound = resolve(cmd, self.storage)

        # Rows whose condition is False or NULL survive
        survivors = []
        deleted_count = 0
        for row in self.storage.scan_rows(cmd.table_name):
            if self._matches(bound.where, row):
                deleted_count += 1
            else:
                survivors.append(row)

        if deleted_count:
            self.storage.replace_all_rows(cmd.table_name, survivors)

        logger.info("Deleted %d rows from %s", deleted_count, cmd.table_name)
        return f"Deleted {deleted_count} row{'s' if deleted_count != 1 else ''}"

    # ========================================================================
    # Helper methods
    # ========================================================================

    @staticmethod
    def _matches(where: Optional[Expression], row: Sequence[str]) -> bool:
        """True only when the WHERE clause is absent or evaluates to TRUE"""
        if where is None:
            return True
        return evaluate_condition(where, row) is True
