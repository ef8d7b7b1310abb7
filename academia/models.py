from datetime import datetime, date
from typing import Optional
from enum import Enum
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class Timestamped(SQLModel):
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


# Enums del dominio académico
class TermEnum(str, Enum):
    first = "1"
    second = "2"
    annual = "annual"


class AcademicStatusEnum(str, Enum):
    enrolled = "enrolled"  # cursando
    regular = "regular"  # cursada aprobada, examen pendiente
    credited = "credited"  # acreditada
    withdrawn = "withdrawn"  # libre


class EnrollmentTypeEnum(str, Enum):
    coursework = "coursework"
    exam = "exam"


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    full_name: str
    hashed_password: str
    role: str = Field(index=True)  # valores permitidos: admin, coordinator, teacher, student
    is_active: bool = Field(default=True)
    must_change_password: bool = Field(default=False, nullable=False)


class CareerBase(SQLModel):
    name: str = Field(index=True, unique=True, min_length=1)
    description: Optional[str] = None
    duration_years: int = Field(default=3, ge=1, description="Duración de la carrera en años")


class Career(CareerBase, Timestamped, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


class CourseBase(SQLModel):
    code: str = Field(index=True, unique=True, min_length=1)
    name: str = Field(min_length=1)
    year: int = Field(default=1, ge=1, description="Año del plan de estudios")
    term: TermEnum = Field(default=TermEnum.first)
    weekly_hours: int = Field(default=0, ge=0, description="Carga horaria semanal")
    career_id: int = Field(foreign_key="career.id", index=True)


class Course(CourseBase, Timestamped, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


class Prerequisite(Timestamped, table=True):
    """Directed edge: ``course_id`` requires ``required_course_id`` credited."""

    __table_args__ = (
        UniqueConstraint("course_id", "required_course_id", name="uq_prerequisite_edge"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="course.id", index=True)
    required_course_id: int = Field(foreign_key="course.id", index=True)


class StudentBase(SQLModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    national_id: str = Field(index=True, unique=True, min_length=1)
    email: str
    enrollment_date: date = Field(default_factory=date.today)
    career_id: Optional[int] = Field(default=None, foreign_key="career.id", index=True)


class Student(StudentBase, Timestamped, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


class AcademicStatusBase(SQLModel):
    student_id: int = Field(foreign_key="student.id", index=True)
    course_id: int = Field(foreign_key="course.id", index=True)
    status: AcademicStatusEnum = Field(default=AcademicStatusEnum.enrolled, index=True)
    regularization_date: Optional[date] = Field(default=None, sa_column_kwargs={"nullable": True})
    credit_date: Optional[date] = Field(default=None, sa_column_kwargs={"nullable": True})
    grade: Optional[float] = Field(default=None, ge=0, le=10, sa_column_kwargs={"nullable": True})


class AcademicStatus(AcademicStatusBase, Timestamped, table=True):
    # No hay restricción de unicidad por (estudiante, materia): pueden convivir varias filas.
    id: Optional[int] = Field(default=None, primary_key=True)


class EnrollmentBase(SQLModel):
    student_id: int = Field(foreign_key="student.id", index=True)
    course_id: int = Field(foreign_key="course.id", index=True)
    type: EnrollmentTypeEnum = Field(default=EnrollmentTypeEnum.coursework, index=True)
    period: str = Field(index=True, min_length=1)
    enrolled_on: date = Field(default_factory=date.today)


class Enrollment(EnrollmentBase, Timestamped, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    overridden: bool = Field(default=False, description="Inscripción confirmada sin correlativas completas")
