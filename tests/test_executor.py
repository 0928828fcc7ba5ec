"""
Tests for executor.py
End-to-end SQL execution against CSV tables
"""

import os
import shutil
import tempfile
import unittest

from flatdb.errors import (
    ResolutionError, EvaluationError, TypeMismatchError, DivisionByZeroError,
    StorageError, TableNotFoundError
)
from flatdb.executor import QueryExecutor, ResultSet, sort_key
from flatdb.parser import parse_sql
from flatdb.storage import CsvStorage

USERS = "id,name,age\n1,gabriel,30\n2,ana,25\n"


class RecordingStorage(CsvStorage):
    """CsvStorage that remembers the size of every append batch"""

    def __init__(self, data_dir):
        super().__init__(data_dir)
        self.appended = []

    def append_rows(self, table_name, rows):
        rows = list(rows)
        self.appended.append(len(rows))
        super().append_rows(table_name, rows)


class ExecutorTestCase(unittest.TestCase):
    """Fresh table directory with a users table for every test"""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp(prefix='flatdb_executor_')
        self.write_table('users', USERS)
        self.executor = QueryExecutor(CsvStorage(self.test_dir))

    def tearDown(self):
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    def table_path(self, name):
        return os.path.join(self.test_dir, name + '.csv')

    def write_table(self, name, content):
        with open(self.table_path(name), 'w', newline='') as f:
            f.write(content)

    def read_table(self, name):
        with open(self.table_path(name), newline='') as f:
            return f.read()

    def run_sql(self, sql):
        return self.executor.execute(parse_sql(sql))

    def select_ids(self, sql):
        return [row[0] for row in self.run_sql(sql)]


class TestUsersScenario(ExecutorTestCase):
    """The users table walked through select, update, delete and insert"""

    def test_scenario(self):
        result = self.run_sql("SELECT name FROM users WHERE age > 26")
        self.assertEqual(result.columns, ['name'])
        self.assertEqual(result.rows, [('gabriel',)])

        self.assertEqual(self.run_sql("UPDATE users SET age = 31 WHERE id = 1"), "Updated 1 row")
        self.assertEqual(self.read_table('users'), "id,name,age\n1,gabriel,31\n2,ana,25\n")

        self.assertEqual(self.run_sql("DELETE FROM users WHERE age < 26"), "Deleted 1 row")
        self.assertEqual(self.read_table('users'), "id,name,age\n1,gabriel,31\n")

        self.assertEqual(
            self.run_sql("INSERT INTO users (id, name) VALUES (3, 'lee')"), "Inserted 1 row"
        )
        self.assertEqual(
            self.run_sql("SELECT * FROM users").rows,
            [('1', 'gabriel', '31'), ('3', 'lee', '')]
        )


class TestSelect(ExecutorTestCase):

    def test_without_where_returns_every_row(self):
        result = self.run_sql("SELECT * FROM users")
        self.assertIsInstance(result, ResultSet)
        self.assertEqual(len(result), 2)
        self.assertEqual(result.columns, ['id', 'name', 'age'])

    def test_projection_order(self):
        result = self.run_sql("SELECT age, id FROM users")
        self.assertEqual(result.columns, ['age', 'id'])
        self.assertEqual(result.rows, [('30', '1'), ('25', '2')])

    def test_like(self):
        self.assertEqual(self.select_ids("SELECT id FROM users WHERE name LIKE '%a%'"), ['1', '2'])
        self.assertEqual(self.select_ids("SELECT id FROM users WHERE name LIKE 'g%'"), ['1'])

    def test_not(self):
        self.assertEqual(self.select_ids("SELECT id FROM users WHERE NOT (age > 26)"), ['2'])

    def test_null_rows_match_neither_condition_nor_negation(self):
        self.write_table('users', USERS + "3,lee,\n")
        self.assertEqual(self.select_ids("SELECT id FROM users WHERE age > 26"), ['1'])
        self.assertEqual(self.select_ids("SELECT id FROM users WHERE NOT (age > 26)"), ['2'])

    def test_arithmetic_in_where(self):
        self.assertEqual(self.select_ids("SELECT id FROM users WHERE age / 2 = 12"), ['2'])

    def test_where_type_mismatch(self):
        with self.assertRaises(TypeMismatchError):
            self.run_sql("SELECT * FROM users WHERE name > 5")

    def test_where_must_be_boolean(self):
        with self.assertRaises(TypeMismatchError):
            self.run_sql("SELECT * FROM users WHERE age")

    def test_unknown_table(self):
        with self.assertRaises(TableNotFoundError):
            self.run_sql("SELECT * FROM orders")

    def test_unknown_column(self):
        with self.assertRaises(ResolutionError):
            self.run_sql("SELECT email FROM users")

    def test_undecodable_table(self):
        with open(self.table_path('b'), 'wb') as f:
            f.write(b"id,v\n1,\xff\xfe\n")
        with self.assertRaises(StorageError):
            self.run_sql("SELECT * FROM b")


class TestOrderBy(ExecutorTestCase):

    def setUp(self):
        super().setUp()
        self.write_table('groups', "id,grp\n1,b\n2,a\n3,b\n4,a\n")

    def test_ascending(self):
        self.assertEqual(self.select_ids("SELECT * FROM users ORDER BY age"), ['2', '1'])

    def test_descending(self):
        self.assertEqual(self.select_ids("SELECT * FROM users ORDER BY age DESC"), ['1', '2'])

    def test_numbers_sort_by_value(self):
        self.write_table('nums', "id,n\n1,10\n2,9\n3,100\n")
        self.assertEqual(self.select_ids("SELECT * FROM nums ORDER BY n"), ['2', '1', '3'])

    def test_stable_for_equal_keys(self):
        self.assertEqual(self.select_ids("SELECT * FROM groups ORDER BY grp"), ['2', '4', '1', '3'])
        self.assertEqual(
            self.select_ids("SELECT * FROM groups ORDER BY grp DESC"), ['1', '3', '2', '4']
        )

    def test_several_keys(self):
        self.assertEqual(
            self.select_ids("SELECT * FROM groups ORDER BY grp, id DESC"), ['4', '2', '3', '1']
        )

    def test_mixed_types_total_order(self):
        self.write_table('mixed', "id,v\n1,b\n2,10\n3,\n4,9\n5,a\n6,2.5\n")
        self.assertEqual(
            self.select_ids("SELECT * FROM mixed ORDER BY v"), ['3', '6', '4', '2', '5', '1']
        )

    def test_order_with_where(self):
        self.assertEqual(
            self.select_ids("SELECT id FROM groups WHERE grp = 'a' ORDER BY id DESC"), ['4', '2']
        )

    def test_sort_key(self):
        values = ['b', 3, None, True, 1.5, 'a']
        self.assertEqual(sorted(values, key=sort_key), [None, 1.5, 3, True, 'a', 'b'])


class TestInsert(ExecutorTestCase):

    def test_round_trip(self):
        self.run_sql("INSERT INTO users (id, name, age) VALUES (5, 'zoe', 41)")
        result = self.run_sql("SELECT * FROM users WHERE id = 5")
        self.assertEqual(result.rows, [('5', 'zoe', '41')])

    def test_several_rows(self):
        self.assertEqual(
            self.run_sql("INSERT INTO users (id, name) VALUES (3, 'a'), (4, 'b')"),
            "Inserted 2 rows"
        )
        self.assertEqual(self.select_ids("SELECT id FROM users"), ['1', '2', '3', '4'])

    def test_value_rendering(self):
        self.write_table('vals', "a,b,c,d\n")
        self.run_sql("INSERT INTO vals (a, b, c, d) VALUES (-3, 2.5, TRUE, NULL)")
        self.assertEqual(self.read_table('vals'), "a,b,c,d\n-3,2.5,true,\n")

    def test_columns_in_any_order(self):
        self.run_sql("INSERT INTO users (age, id) VALUES (50, 9)")
        self.assertTrue(self.read_table('users').endswith("9,,50\n"))

    def test_unknown_column_writes_nothing(self):
        with self.assertRaises(ResolutionError):
            self.run_sql("INSERT INTO users (id, email) VALUES (3, 'x')")
        self.assertEqual(self.read_table('users'), USERS)

    def test_small_and_large_floats_stay_numeric(self):
        self.write_table('t', "id,v\n")
        self.run_sql("INSERT INTO t (id, v) VALUES (5, 0.00001), (6, 10000000000000000.0)")
        self.assertEqual(self.read_table('t'), "id,v\n5,0.00001\n6,10000000000000000.0\n")
        result = self.run_sql("SELECT v FROM t WHERE id = 5 AND v < 1")
        self.assertEqual(result.rows, [('0.00001',)])
        self.assertEqual(self.select_ids("SELECT id FROM t WHERE v > 1"), ['6'])

    def test_several_rows_are_appended_in_one_write(self):
        storage = RecordingStorage(self.test_dir)
        executor = QueryExecutor(storage)
        executor.execute(parse_sql("INSERT INTO users (id) VALUES (3), (4), (5)"))
        self.assertEqual(storage.appended, [3])
        self.assertTrue(self.read_table('users').endswith("3,,\n4,,\n5,,\n"))


class TestUpdate(ExecutorTestCase):

    def test_expression_uses_current_value(self):
        self.assertEqual(self.run_sql("UPDATE users SET age = age + 1"), "Updated 2 rows")
        self.assertEqual(self.read_table('users'), "id,name,age\n1,gabriel,31\n2,ana,26\n")

    def test_assignments_read_the_original_row(self):
        self.run_sql("UPDATE users SET age = id, id = age WHERE id = 1")
        self.assertEqual(self.read_table('users'), "id,name,age\n30,gabriel,1\n2,ana,25\n")

    def test_concatenation(self):
        self.run_sql("UPDATE users SET name = name || '!' WHERE id = 2")
        self.assertEqual(self.select_ids("SELECT name FROM users WHERE id = 2"), ['ana!'])

    def test_set_null(self):
        self.run_sql("UPDATE users SET age = NULL WHERE id = 2")
        self.assertEqual(self.read_table('users'), "id,name,age\n1,gabriel,30\n2,ana,\n")

    def test_no_match_leaves_file_untouched(self):
        before = os.stat(self.table_path('users'))
        self.assertEqual(self.run_sql("UPDATE users SET age = 1 WHERE id = 99"), "Updated 0 rows")
        after = os.stat(self.table_path('users'))
        self.assertEqual(before.st_ino, after.st_ino)
        self.assertEqual(self.read_table('users'), USERS)

    def test_division_by_zero_writes_nothing(self):
        # First row evaluates fine, second divides by zero
        with self.assertRaises(DivisionByZeroError):
            self.run_sql("UPDATE users SET age = 100 / (age - 25)")
        self.assertEqual(self.read_table('users'), USERS)

    def test_type_mismatch_writes_nothing(self):
        with self.assertRaises(TypeMismatchError):
            self.run_sql("UPDATE users SET age = name + 1")
        self.assertEqual(self.read_table('users'), USERS)

    def test_large_float_result_reads_back_as_number(self):
        self.write_table('t', "id,v\n1,2\n")
        self.run_sql("UPDATE t SET v = v * 10000000000000000.0")
        self.assertEqual(self.read_table('t'), "id,v\n1,20000000000000000.0\n")
        self.assertEqual(self.select_ids("SELECT id FROM t WHERE v > 1"), ['1'])

    def test_overflow_writes_nothing(self):
        self.write_table('t', "id,v\n1," + '9' * 400 + "\n")
        before = self.read_table('t')
        with self.assertRaises(EvaluationError):
            self.run_sql("UPDATE t SET v = v * 1.5")
        self.assertEqual(self.read_table('t'), before)


class TestDelete(ExecutorTestCase):

    def test_delete_matching_rows(self):
        self.assertEqual(self.run_sql("DELETE FROM users WHERE name = 'ana'"), "Deleted 1 row")
        self.assertEqual(self.select_ids("SELECT id FROM users"), ['1'])

    def test_delete_without_where_keeps_header(self):
        self.assertEqual(self.run_sql("DELETE FROM users"), "Deleted 2 rows")
        self.assertEqual(self.read_table('users'), "id,name,age\n")

    def test_delete_nothing_is_a_no_op(self):
        before = os.stat(self.table_path('users'))
        self.assertEqual(self.run_sql("DELETE FROM users WHERE age > 100"), "Deleted 0 rows")
        self.assertEqual(self.run_sql("DELETE FROM users WHERE age > 100"), "Deleted 0 rows")
        after = os.stat(self.table_path('users'))
        self.assertEqual(before.st_ino, after.st_ino)
        self.assertEqual(self.read_table('users'), USERS)

    def test_null_condition_keeps_row(self):
        self.write_table('users', USERS + "3,lee,\n")
        self.run_sql("DELETE FROM users WHERE age > 0")
        self.assertEqual(self.read_table('users'), "id,name,age\n3,lee,\n")

    def test_division_by_zero_writes_nothing(self):
        with self.assertRaises(DivisionByZeroError):
            self.run_sql("DELETE FROM users WHERE age / 0 = 1")
        self.assertEqual(self.read_table('users'), USERS)


if __name__ == '__main__':
    unittest.main()
