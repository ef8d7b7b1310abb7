from datetime import date
from fastapi import APIRouter, Depends
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlmodel import col

from ..models import AcademicStatus, AcademicStatusEnum, Career, Course, Enrollment, Student, StudentBase
from ..services.prerequisites import course_sort_key
from ..services.store import RecordStore, store_for
from ..utils.course_rules import require_career, require_student


router = APIRouter(prefix="/students", tags=["students"])


class StudentUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    national_id: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    enrollment_date: Optional[date] = None
    career_id: Optional[int] = None


class RecordEntry(BaseModel):
    status_id: int
    course_id: int
    course_code: str
    course_name: str
    year: int
    grade: Optional[float] = None
    regularization_date: Optional[date] = None
    credit_date: Optional[date] = None


class StudentRecord(BaseModel):
    student: Student
    career: Optional[Career] = None
    statuses: Dict[AcademicStatusEnum, List[RecordEntry]]
    average_grade: Optional[float] = None
    credited_courses: int = 0
    career_courses: int = 0
    progress: float = 0.0


@router.get("/", response_model=List[Student])
def list_students(
    q: Optional[str] = None,
    career_id: Optional[int] = None,
    store: RecordStore = Depends(store_for("admin", "coordinator", "teacher")),
):
    where = []
    if career_id is not None:
        where.append(Student.career_id == career_id)
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        where.append(
            or_(
                col(Student.first_name).ilike(pattern),
                col(Student.last_name).ilike(pattern),
                col(Student.national_id).ilike(pattern),
            )
        )
    return store.list(Student, where=where, order_by=[Student.last_name, Student.first_name])


@router.post("/", response_model=Student)
def create_student(payload: StudentBase, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    if payload.career_id is not None:
        require_career(store, payload.career_id)
    return store.insert(Student(**payload.model_dump()))


@router.get("/{student_id}", response_model=Student)
def get_student(student_id: int, store: RecordStore = Depends(store_for("admin", "coordinator", "teacher"))):
    return require_student(store, student_id)


@router.put("/{student_id}", response_model=Student)
def update_student(student_id: int, payload: StudentUpdate, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    obj = require_student(store, student_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("career_id") is not None:
        require_career(store, data["career_id"])
    return store.update(obj, data)


@router.delete("/{student_id}")
def delete_student(student_id: int, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    obj = require_student(store, student_id)
    store.delete(
        obj,
        dependents=[
            (AcademicStatus, AcademicStatus.student_id, "No se puede eliminar: el estudiante tiene estados académicos"),
            (Enrollment, Enrollment.student_id, "No se puede eliminar: el estudiante tiene inscripciones"),
        ],
    )
    return {"ok": True}


@router.get("/{student_id}/record", response_model=StudentRecord)
def get_student_record(student_id: int, store: RecordStore = Depends(store_for("admin", "coordinator", "teacher"))):
    student = require_student(store, student_id)
    career = store.get(Career, student.career_id) if student.career_id is not None else None
    statuses = store.list(AcademicStatus, student_id=student_id)
    course_ids = {row.course_id for row in statuses}
    courses = {course.id: course for course in store.list(Course, where=[col(Course.id).in_(course_ids)])} if course_ids else {}

    grouped: Dict[AcademicStatusEnum, List[RecordEntry]] = {status: [] for status in AcademicStatusEnum}
    for row in statuses:
        course = courses.get(row.course_id)
        if course is None:
            continue
        grouped[AcademicStatusEnum(row.status)].append(
            RecordEntry(
                status_id=row.id,
                course_id=course.id,
                course_code=course.code,
                course_name=course.name,
                year=course.year,
                grade=row.grade,
                regularization_date=row.regularization_date,
                credit_date=row.credit_date,
            )
        )
    for entries in grouped.values():
        entries.sort(key=lambda entry: course_sort_key(courses[entry.course_id]))

    credited = grouped[AcademicStatusEnum.credited]
    grades = [entry.grade for entry in credited if entry.grade is not None]
    credited_ids = {entry.course_id for entry in credited}
    career_courses = store.count(Course, career_id=student.career_id) if student.career_id is not None else 0
    if career_courses:
        in_career = sum(1 for cid in credited_ids if courses[cid].career_id == student.career_id)
        progress = round(in_career / career_courses, 4)
    else:
        progress = 0.0
    return StudentRecord(
        student=student,
        career=career,
        statuses=grouped,
        average_grade=round(sum(grades) / len(grades), 2) if grades else None,
        credited_courses=len(credited_ids),
        career_courses=career_courses,
        progress=progress,
    )
