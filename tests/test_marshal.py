"""Record <-> row conversion."""

import pytest

from lightdao.exceptions import FieldCoercionError, NullableViolation
from lightdao.marshal import from_row, to_row
from sample_entities import Document, Person, Student, StudentWithTeacher


class TestToRow:
    """Instance to (column, value) pairs."""

    def test_unsaved_key_omitted(self, registry):
        row = to_row(registry.describe(Person), Person(name="Alice", age=30))
        assert row == [("name", "Alice"), ("age", 30)]

    def test_saved_key_included(self, registry):
        row = to_row(registry.describe(Person), Person(id=7, name="Alice", age=30))
        assert row[0] == ("_id", 7)

    def test_lenient_zero_values(self, registry):
        row = to_row(registry.describe(Document), Document())
        assert row == [("title", ""), ("body", b""), ("published", 0), ("score", 0.0)]

    def test_bool_stored_as_int(self, registry):
        row = dict(to_row(registry.describe(Document), Document(title="t", published=True)))
        assert row["published"] == 1

    def test_strict_keeps_null_for_nullable(self, registry):
        row = dict(to_row(registry.describe(Person), Person(name="Bob"), strict=True))
        assert row == {"name": "Bob", "age": None}

    def test_strict_leaves_defaults_to_engine(self, registry):
        student = Student(teacher_id=1, name="Sam")
        row = dict(to_row(registry.describe(Student), student, strict=True))
        assert "age" not in row
        assert row["nick"] is None

    def test_strict_not_null_violation(self, registry):
        with pytest.raises(NullableViolation) as exc_info:
            to_row(registry.describe(Student), Student(name="Sam"), strict=True)
        assert exc_info.value.details["column"] == "teacher_id"


class TestFromRow:
    """Row to new instance."""

    def test_all_columns(self, registry):
        person = from_row(registry.describe(Person), {"_id": 1, "name": "Bob", "age": 3})
        assert person == Person(id=1, name="Bob", age=3)
        assert person.is_saved

    def test_selected_columns_only(self, registry):
        person = from_row(registry.describe(Person), {"name": "Bob"}, ["name"])
        assert person.name == "Bob"
        assert person.age is None
        assert not person.is_saved

    def test_null_becomes_none(self, registry):
        person = from_row(registry.describe(Person), {"_id": 1, "name": None, "age": None})
        assert person.name is None

    def test_kind_conversion(self, registry):
        doc = from_row(
            registry.describe(Document),
            {"_id": 2, "title": "t", "body": b"\x00", "published": 1, "score": 3},
        )
        assert doc.published is True
        assert doc.score == 3.0
        assert isinstance(doc.score, float)
        assert doc.body == b"\x00"

    def test_missing_column(self, registry):
        with pytest.raises(FieldCoercionError):
            from_row(registry.describe(Person), {"_id": 1, "name": "Bob"})

    def test_wrong_kind(self, registry):
        with pytest.raises(FieldCoercionError) as exc_info:
            from_row(registry.describe(Person), {"_id": 1, "name": "Bob", "age": "old"})
        assert exc_info.value.details["field"] == "age"

    def test_query_type(self, registry):
        row = {"student_name": "Sam", "teacher_name": "Ada", "age": 12}
        result = from_row(registry.describe(StudentWithTeacher), row)
        assert result == StudentWithTeacher(student_name="Sam", teacher_name="Ada", age=12)

    def test_from_sqlite_row(self, db):
        db.save(Person(name="Alice", age=30))
        row = db.conn.execute("SELECT * FROM person").fetchone()
        person = from_row(db.registry.describe(Person), row)
        assert person == Person(id=1, name="Alice", age=30)
