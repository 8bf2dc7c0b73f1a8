"""DatabaseHelper - versioned create-or-migrate."""

import sqlite3

import pytest

from lightdao.exceptions import ConfigurationError
from lightdao.helper import DatabaseHelper, read_user_version
from sample_entities import TABLES, Person, StudentWithTeacher


class TestDatabaseHelper:

    def test_new_file_gets_every_table(self, db_path):
        with DatabaseHelper(TABLES + [StudentWithTeacher], version=1).open(db_path) as db:
            assert read_user_version(db.conn) == 1
            assert db.validate_schema(TABLES) == {}

    def test_reopen_same_version(self, db_path):
        helper = DatabaseHelper([Person], version=1)
        with helper.open(db_path) as db:
            db.save(Person(name="Alice", age=30))

        with helper.open(db_path) as db:
            assert db.with_table(Person).count() == 1

    def test_upgrade_migrates(self, db_path):
        conn = sqlite3.connect(db_path)
        conn.execute("CREATE TABLE person (_id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT)")
        conn.execute("INSERT INTO person (name) VALUES ('Alice')")
        conn.execute("PRAGMA user_version = 1")
        conn.commit()
        conn.close()

        with DatabaseHelper([Person], version=2).open(db_path) as db:
            assert read_user_version(db.conn) == 2
            alice = db.with_table(Person).search_first()
            assert alice.name == "Alice"
            assert alice.age is None

    def test_downgrade_refused(self, db_path):
        conn = sqlite3.connect(db_path)
        conn.execute("PRAGMA user_version = 3")
        conn.commit()
        conn.close()

        with pytest.raises(ConfigurationError):
            DatabaseHelper([Person], version=2).open(db_path)

    def test_invalid_version(self):
        with pytest.raises(ValueError):
            DatabaseHelper([Person], version=0)

    def test_uses_given_registry(self, db_path, registry):
        with DatabaseHelper([Person], version=1, registry=registry).open(db_path) as db:
            assert db.registry is registry
            assert Person in registry
