"""DDL generation, additive migration and schema validation."""

import pytest

from lightdao.ddl import (
    build_add_column_statement,
    build_create_statement,
    create_tables,
    existing_columns,
    migrate,
    table_exists,
    validate_schema,
)
from lightdao.exceptions import MissingTableMetadata
from sample_entities import TABLES, Document, Person, Student, StudentWithTeacher


class TestCreateStatement:
    """CREATE TABLE rendering."""

    def test_student_statement(self, registry):
        stmt = build_create_statement(registry.describe(Student))
        assert stmt.sql == (
            "CREATE TABLE IF NOT EXISTS student ("
            "_id INTEGER PRIMARY KEY AUTOINCREMENT, "
            "teacher_id INTEGER NOT NULL REFERENCES teacher(_id), "
            "name TEXT NOT NULL, "
            "age INTEGER DEFAULT '18', "
            "nick TEXT UNIQUE)"
        )
        assert not stmt.has_args

    def test_one_clause_per_column(self, registry):
        for record_type in TABLES:
            entity = registry.describe(record_type)
            sql = build_create_statement(entity).sql
            body = sql[sql.index("(") + 1:sql.rindex(")")]
            clauses = [clause.strip() for clause in body.split(", ")]

            assert len(clauses) == len(entity.columns)
            assert [clause.split()[0] for clause in clauses] == entity.column_names()
            assert sql.count("PRIMARY KEY AUTOINCREMENT") == 1

    def test_boolean_stored_as_integer(self, registry):
        sql = build_create_statement(registry.describe(Document)).sql
        assert "published INTEGER DEFAULT '0'" in sql

    def test_query_type_has_no_table(self, registry):
        with pytest.raises(MissingTableMetadata):
            build_create_statement(registry.describe(StudentWithTeacher))

    def test_add_column(self, registry):
        entity = registry.describe(Person)
        stmt = build_add_column_statement(entity, entity.get_column("age"))
        assert stmt.sql == "ALTER TABLE person ADD age INTEGER"


class TestMigrate:
    """Create-or-alter migration."""

    def test_creates_missing_tables(self, temp_db, registry):
        report = migrate(temp_db, registry.register(*TABLES))

        assert report.created == ["teacher", "student", "person", "document"]
        assert report.altered == []
        for name in report.created:
            assert table_exists(temp_db, name)

    def test_idempotent(self, temp_db, registry):
        entities = registry.register(*TABLES)
        migrate(temp_db, entities)

        second = migrate(temp_db, entities)
        assert not second.changed
        assert second.statements == []

    def test_adds_missing_columns_and_keeps_rows(self, temp_db, registry):
        temp_db.execute("CREATE TABLE person (_id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT)")
        temp_db.execute("INSERT INTO person (name) VALUES ('Alice')")

        report = migrate(temp_db, [registry.describe(Person)])

        assert report.created == []
        assert [stmt.sql for stmt in report.altered] == ["ALTER TABLE person ADD age INTEGER"]
        assert existing_columns(temp_db, "person") == {"_id", "name", "age"}
        assert temp_db.execute("SELECT name FROM person").fetchall()[0][0] == "Alice"

    def test_skips_query_types(self, temp_db, registry):
        report = migrate(temp_db, registry.register(Person, StudentWithTeacher))
        assert report.created == ["person"]

    def test_extra_database_columns_are_kept(self, temp_db, registry):
        temp_db.execute(
            "CREATE TABLE person (_id INTEGER PRIMARY KEY AUTOINCREMENT, "
            "name TEXT, age INTEGER, legacy TEXT)"
        )
        report = migrate(temp_db, [registry.describe(Person)])

        assert not report.changed
        assert "legacy" in existing_columns(temp_db, "person")


class TestCreateTables:

    def test_create_tables(self, temp_db, registry):
        executed = create_tables(temp_db, registry.register(*TABLES))
        assert len(executed) == 4
        assert all(stmt.sql.startswith("CREATE TABLE IF NOT EXISTS") for stmt in executed)


class TestValidateSchema:
    """Drift detection against the live database."""

    def test_clean_schema(self, temp_db, registry):
        entities = registry.register(*TABLES)
        create_tables(temp_db, entities)
        assert validate_schema(temp_db, entities) == {}

    def test_missing_table(self, temp_db, registry):
        drift = validate_schema(temp_db, [registry.describe(Person)])
        assert drift == {"person": ["Table person does not exist"]}

    def test_missing_column_and_type_mismatch(self, temp_db, registry):
        temp_db.execute("CREATE TABLE person (_id INTEGER PRIMARY KEY AUTOINCREMENT, name INTEGER)")

        errors = validate_schema(temp_db, [registry.describe(Person)])["person"]

        assert "Column person.age missing in database" in errors
        assert any("person.name type mismatch" in error for error in errors)
