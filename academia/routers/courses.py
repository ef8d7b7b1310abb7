from fastapi import APIRouter, Depends
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import or_
from sqlmodel import col

from ..models import AcademicStatus, Course, CourseBase, Enrollment, Prerequisite, TermEnum
from ..services.store import RecordStore, store_for
from ..utils.course_rules import (
    load_prerequisite_map,
    replace_prerequisites,
    require_career,
    require_course,
    validate_prerequisite_ids,
)


router = APIRouter(prefix="/courses", tags=["courses"])


class CourseInput(CourseBase, table=False):
    prerequisite_course_ids: List[int] = Field(default_factory=list)


class CourseUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = Field(default=None, min_length=1)
    year: Optional[int] = Field(default=None, ge=1)
    term: Optional[TermEnum] = None
    weekly_hours: Optional[int] = Field(default=None, ge=0)
    career_id: Optional[int] = None
    prerequisite_course_ids: Optional[List[int]] = None


class CourseOutput(CourseBase, table=False):
    id: int
    prerequisite_course_ids: List[int] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


@router.get("/", response_model=List[CourseOutput])
def list_courses(
    career_id: Optional[int] = None,
    q: Optional[str] = None,
    store: RecordStore = Depends(store_for("admin", "coordinator", "teacher", "student")),
):
    where = []
    if career_id is not None:
        where.append(Course.career_id == career_id)
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        where.append(or_(col(Course.code).ilike(pattern), col(Course.name).ilike(pattern)))
    courses = store.list(Course, where=where, order_by=[Course.year, Course.term, Course.name])
    return _build_course_collection(store, courses)


@router.post("/", response_model=CourseOutput)
def create_course(payload: CourseInput, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    data = payload.model_dump()
    prereq_ids = data.pop("prerequisite_course_ids", [])
    require_career(store, data["career_id"])
    validated = validate_prerequisite_ids(store, None, prereq_ids)
    course = store.insert(Course(**data))
    if validated:
        replace_prerequisites(store, course.id, validated)
    return _build_course_response(store, course)


@router.get("/{course_id}", response_model=CourseOutput)
def get_course(course_id: int, store: RecordStore = Depends(store_for("admin", "coordinator", "teacher", "student"))):
    return _build_course_response(store, require_course(store, course_id))


@router.put("/{course_id}", response_model=CourseOutput)
def update_course(course_id: int, payload: CourseUpdate, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    obj = require_course(store, course_id)
    update_data = payload.model_dump(exclude_unset=True)
    prereq_ids = update_data.pop("prerequisite_course_ids", None)
    if update_data.get("career_id") is not None:
        require_career(store, update_data["career_id"])
    validated = validate_prerequisite_ids(store, course_id, prereq_ids) if prereq_ids is not None else None
    if update_data:
        obj = store.update(obj, update_data)
    if validated is not None:
        replace_prerequisites(store, course_id, validated)
    return _build_course_response(store, obj)


@router.delete("/{course_id}")
def delete_course(course_id: int, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    obj = require_course(store, course_id)
    links = store.list(Prerequisite, course_id=course_id) + store.list(Prerequisite, required_course_id=course_id)
    store.delete(
        obj,
        dependents=[
            (AcademicStatus, AcademicStatus.course_id, "No se puede eliminar: existen estados académicos de la materia"),
            (Enrollment, Enrollment.course_id, "No se puede eliminar: existen inscripciones a la materia"),
        ],
        cascade=links,
    )
    return {"ok": True}


def _build_course_collection(store: RecordStore, courses: List[Course]) -> List[CourseOutput]:
    if not courses:
        return []
    prereq_map = load_prerequisite_map(store, [course.id for course in courses])
    return [
        CourseOutput.model_validate(course, update={"prerequisite_course_ids": prereq_map.get(course.id, [])})
        for course in courses
    ]


def _build_course_response(store: RecordStore, course: Course) -> CourseOutput:
    prereq_map = load_prerequisite_map(store, [course.id])
    return CourseOutput.model_validate(course, update={"prerequisite_course_ids": prereq_map.get(course.id, [])})
