"""Join condition builder: FROM rendering and reads over query types."""

from dataclasses import dataclass

import pytest

from lightdao import JoinItem, Query, column, inner_join, natural_join
from lightdao.query import render_join, result_name
from sample_entities import (
    Person,
    Student,
    StudentWithTeacher,
    Teacher,
    TeacherPersonPair,
    TeacherRoster,
)


@pytest.fixture
def school(db, teachers):
    """Ada teaches Amy and Bea, Grace teaches Cid, Linus teaches nobody."""
    ada, grace = teachers
    db.save(Teacher(name="Linus", subject="os"))
    db.save(Student(teacher_id=ada.id, name="Amy", age=11, nick="amy"))
    db.save(Student(teacher_id=ada.id, name="Bea", age=12, nick="bea"))
    db.save(Student(teacher_id=grace.id, name="Cid", age=13, nick="cid"))
    return db


class TestRenderJoin:

    def test_inner_join(self, registry):
        assert render_join(registry.describe(StudentWithTeacher)) == (
            "student INNER JOIN teacher ON student.teacher_id=teacher._id"
        )

    def test_left_join(self, registry):
        assert render_join(registry.describe(TeacherRoster)) == (
            "teacher LEFT JOIN student ON teacher._id=student.teacher_id"
        )

    def test_cross_join(self, registry):
        assert render_join(registry.describe(TeacherPersonPair)) == "teacher CROSS JOIN person"

    def test_chained_inner_join(self, registry):
        @inner_join(
            JoinItem("student", "teacher_id", "teacher", "_id"),
            JoinItem("teacher", "name", "person", "name"),
        )
        @dataclass
        class Chain(Query):
            name: str | None = column(alias="person.name AS name")

        assert render_join(registry.describe(Chain)) == (
            "student INNER JOIN teacher ON student.teacher_id=teacher._id "
            "INNER JOIN person ON teacher.name=person.name"
        )

    def test_natural_join(self, registry):
        @natural_join("teacher", "student", "person")
        @dataclass
        class Natural(Query):
            name: str | None = column()

        assert render_join(registry.describe(Natural)) == (
            "teacher NATURAL JOIN student NATURAL JOIN person"
        )

    def test_result_name(self):
        assert result_name("student.name AS student_name") == "student_name"
        assert result_name("teacher.name") == "name"
        assert result_name("age") == "age"
        assert result_name("count(*) as n") == "n"


class TestJoinQueries:

    def test_statement(self, db):
        stmt = db.with_query(StudentWithTeacher).with_where("teacher.name = ?", "Ada").to_statement()
        assert stmt.sql == (
            "SELECT student.name AS student_name, teacher.name AS teacher_name, age "
            "FROM student INNER JOIN teacher ON student.teacher_id=teacher._id "
            "WHERE teacher.name = ? ORDER BY student.name"
        )
        assert stmt.raw_args() == ("Ada",)

    def test_inner_join_rows(self, school):
        rows = school.with_query(StudentWithTeacher).search_as_list()
        assert rows == [
            StudentWithTeacher(student_name="Amy", teacher_name="Ada", age=11),
            StudentWithTeacher(student_name="Bea", teacher_name="Ada", age=12),
            StudentWithTeacher(student_name="Cid", teacher_name="Grace", age=13),
        ]

    def test_count_with_where(self, school):
        assert school.with_query(StudentWithTeacher).with_where("teacher.name = ?", "Ada").count() == 2

    def test_left_join_keeps_unmatched(self, school):
        rows = school.with_query(TeacherRoster).search_as_list()
        assert len(rows) == 4
        linus = [row for row in rows if row.teacher_name == "Linus"]
        assert linus == [TeacherRoster(teacher_name="Linus", student_name=None)]

    def test_cross_join_count(self, school):
        school.save(Person(name="p", age=1))
        school.save(Person(name="q", age=2))
        assert school.with_query(TeacherPersonPair).count() == 3 * 2

    def test_selected_columns(self, school):
        first = (
            school.with_query(StudentWithTeacher)
            .with_columns("student.name AS student_name")
            .search_first()
        )
        assert first.student_name == "Amy"
        assert first.teacher_name is None

    def test_pagination(self, school):
        page = school.with_query(StudentWithTeacher).with_limit(1, 5).search_as_list()
        assert [row.student_name for row in page] == ["Bea", "Cid"]
