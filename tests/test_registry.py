"""Registry tests - type introspection, caching and declaration errors."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import ClassVar

import pytest

from lightdao.exceptions import (
    ConfigurationError,
    InvalidPrimaryKey,
    MissingTableMetadata,
    NoJoinSpecification,
    UnsupportedColumnType,
    UnsupportedDefaultForBlob,
)
from lightdao.schema import (
    ColumnKind,
    Entity,
    ForeignKeyRef,
    JoinItem,
    JoinKind,
    Query,
    Registry,
    column,
    cross_join,
    inner_join,
    resolve_kind,
    table,
)
from sample_entities import (
    Document,
    Person,
    Student,
    StudentWithTeacher,
    Teacher,
    TeacherPersonPair,
)


class TestDescribe:
    """Column facts derived from declarations."""

    def test_columns_in_definition_order(self, registry):
        entity = registry.describe(Student)
        assert entity.table == "student"
        assert entity.column_names() == ["_id", "teacher_id", "name", "age", "nick"]

    def test_primary_key_from_entity_base(self, registry):
        pk = registry.describe(Person).primary_key
        assert pk.name == "_id"
        assert pk.field_name == "id"
        assert pk.kind is ColumnKind.INTEGER

    def test_constraints(self, registry):
        entity = registry.describe(Student)
        assert entity.get_column("name").nullable is False
        assert entity.get_column("age").default == "18"
        assert entity.get_column("age").nullable is True
        assert entity.get_column("nick").unique is True

    def test_kinds_from_annotations(self, registry):
        entity = registry.describe(Document)
        kinds = {col.name: col.kind for col in entity.columns}
        assert kinds == {
            "_id": ColumnKind.INTEGER,
            "title": ColumnKind.TEXT,
            "body": ColumnKind.BLOB,
            "published": ColumnKind.BOOLEAN,
            "score": ColumnKind.REAL,
        }

    def test_foreign_key_to_entity(self, registry):
        fk = registry.describe(Student).get_column("teacher_id").foreign_key
        assert fk == ForeignKeyRef("teacher", "_id")

    def test_default_order_by(self, registry):
        assert registry.default_order_by(Student) == "age DESC"
        assert registry.default_order_by(Teacher) is None

    def test_table_name(self, registry):
        assert registry.table_name(Person) == "person"

    def test_table_name_of_query_type(self, registry):
        with pytest.raises(MissingTableMetadata):
            registry.table_name(StudentWithTeacher)

    def test_query_type(self, registry):
        entity = registry.describe(StudentWithTeacher)
        assert entity.is_query
        assert entity.primary_key is None
        assert entity.join.kind is JoinKind.INNER
        assert entity.projections() == [
            "student.name AS student_name",
            "teacher.name AS teacher_name",
            "age",
        ]

    def test_unmarked_and_class_fields_ignored(self, registry):
        @table("note")
        @dataclass
        class Note(Entity):
            LIMIT: ClassVar[int] = 10
            text: str | None = column()
            draft: str = ""

        assert registry.describe(Note).column_names() == ["_id", "text"]

    def test_explicit_kind_overrides_annotation(self, registry):
        @table("flag")
        @dataclass
        class Flag(Entity):
            raw: int | None = column(kind=ColumnKind.TEXT)

        assert registry.describe(Flag).get_column("raw").kind is ColumnKind.TEXT

    def test_reference_by_table_and_column(self, registry):
        @table("link")
        @dataclass
        class Link(Entity):
            target: int | None = column(references=("page", "_id"))

        fk = registry.describe(Link).get_column("target").foreign_key
        assert fk.to_sql() == "REFERENCES page(_id)"

    def test_cross_join_tables(self, registry):
        join = registry.describe(TeacherPersonPair).join
        assert join.kind is JoinKind.CROSS
        assert join.tables() == ["teacher", "person"]


class TestResolveKind:
    """Annotation to kind mapping."""

    def test_optional_unwraps(self):
        assert resolve_kind(int | None) is ColumnKind.INTEGER

    def test_bool_is_not_integer(self):
        assert resolve_kind(bool) is ColumnKind.BOOLEAN

    def test_unsupported(self):
        assert resolve_kind(list) is None
        assert resolve_kind(int | str) is None


class TestCache:
    """Each type is described once per registry."""

    def test_same_object_returned(self, registry):
        assert registry.describe(Person) is registry.describe(Person)

    def test_registries_are_independent(self, registry):
        other = Registry()
        assert other.describe(Person) is not registry.describe(Person)
        assert Person in other

    def test_registered_order(self, registry):
        registry.register(Person, Teacher)
        assert registry.registered() == [Person, Teacher]

    def test_referenced_type_described_first(self, registry):
        registry.describe(Student)
        assert registry.registered() == [Teacher, Student]

    def test_concurrent_first_access(self):
        registry = Registry()
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: registry.describe(Document), range(32)))
        assert all(result is results[0] for result in results)


class TestDeclarationErrors:
    """Malformed declarations fail when the type is described."""

    def test_subclass_without_own_table(self, registry):
        @dataclass
        class Employee(Person):
            salary: int | None = column()

        with pytest.raises(MissingTableMetadata):
            registry.describe(Employee)

    def test_unsupported_annotation(self, registry):
        @table("bag")
        @dataclass
        class Bag(Entity):
            items: list = column()

        with pytest.raises(UnsupportedColumnType):
            registry.describe(Bag)

    def test_blob_default(self, registry):
        @table("image")
        @dataclass
        class Image(Entity):
            data: bytes = column(default="x")

        with pytest.raises(UnsupportedDefaultForBlob):
            registry.describe(Image)

    def test_query_type_without_join(self, registry):
        @dataclass
        class Loose(Query):
            name: str | None = column()

        with pytest.raises(NoJoinSpecification):
            registry.describe(Loose)

    def test_query_type_with_two_joins(self, registry):
        @inner_join(JoinItem("student", "teacher_id", "teacher", "_id"))
        @cross_join("teacher", "person")
        @dataclass
        class Ambiguous(Query):
            name: str | None = column()

        with pytest.raises(NoJoinSpecification):
            registry.describe(Ambiguous)

    def test_inner_join_needs_columns(self, registry):
        @inner_join(JoinItem("student", second_table="teacher"))
        @dataclass
        class Partial(Query):
            name: str | None = column()

        with pytest.raises(NoJoinSpecification):
            registry.describe(Partial)

    def test_table_on_query_type(self, registry):
        @table("view")
        @dataclass
        class NotAnEntity(Query):
            name: str | None = column()

        with pytest.raises(ConfigurationError):
            registry.describe(NotAnEntity)

    def test_second_primary_key(self, registry):
        @table("twokeys")
        @dataclass
        class TwoKeys(Entity):
            other: int = column(primary_key=True)

        with pytest.raises(InvalidPrimaryKey):
            registry.describe(TwoKeys)

    def test_not_a_dataclass(self, registry):
        class Plain:
            pass

        with pytest.raises(ConfigurationError):
            registry.describe(Plain)

    def test_failed_describe_is_not_cached(self, registry):
        @table("bag")
        @dataclass
        class Bag(Entity):
            items: list = column()

        with pytest.raises(UnsupportedColumnType):
            registry.describe(Bag)
        assert Bag not in registry
