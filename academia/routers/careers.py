from fastapi import APIRouter, Depends
from typing import List, Optional
from pydantic import BaseModel, Field
from sqlmodel import SQLModel, col

from ..models import Career, CareerBase, Course, Prerequisite, Student, TermEnum
from ..services.prerequisites import course_sort_key, prerequisite_plan
from ..services.store import RecordStore, store_for
from ..utils.course_rules import require_career


router = APIRouter(prefix="/careers", tags=["careers"])


class CareerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    duration_years: Optional[int] = Field(default=None, ge=1)


class CourseSummary(SQLModel):
    id: int
    code: str
    name: str
    year: int
    term: TermEnum
    weekly_hours: int


class CareerYear(BaseModel):
    year: int
    courses: List[CourseSummary]


class PlanCourse(BaseModel):
    course: CourseSummary
    required: List[CourseSummary]


class PlanBlockOut(BaseModel):
    year: int
    term: TermEnum
    courses: List[PlanCourse]


@router.get("/", response_model=List[Career])
def list_careers(q: Optional[str] = None, store: RecordStore = Depends(store_for("admin", "coordinator", "teacher"))):
    where = [col(Career.name).ilike(f"%{q.strip()}%")] if q and q.strip() else []
    return store.list(Career, where=where, order_by=[Career.name])


@router.post("/", response_model=Career)
def create_career(payload: CareerBase, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    return store.insert(Career(**payload.model_dump()))


@router.get("/{career_id}", response_model=Career)
def get_career(career_id: int, store: RecordStore = Depends(store_for("admin", "coordinator", "teacher"))):
    return require_career(store, career_id)


@router.put("/{career_id}", response_model=Career)
def update_career(career_id: int, payload: CareerUpdate, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    obj = require_career(store, career_id)
    return store.update(obj, payload.model_dump(exclude_unset=True))


@router.patch("/{career_id}", response_model=Career)
def patch_career(career_id: int, payload: CareerUpdate, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    return update_career(career_id, payload, store=store)


@router.delete("/{career_id}")
def delete_career(career_id: int, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    obj = require_career(store, career_id)
    store.delete(
        obj,
        dependents=[
            (Course, Course.career_id, "No se puede eliminar: existen materias dependientes"),
            (Student, Student.career_id, "No se puede eliminar: existen estudiantes dependientes"),
        ],
    )
    return {"ok": True}


@router.get("/{career_id}/courses", response_model=List[CareerYear])
def list_career_courses(career_id: int, store: RecordStore = Depends(store_for("admin", "coordinator", "teacher"))):
    require_career(store, career_id)
    courses = sorted(store.list(Course, career_id=career_id), key=course_sort_key)
    years: List[CareerYear] = []
    for course in courses:
        if not years or years[-1].year != course.year:
            years.append(CareerYear(year=course.year, courses=[]))
        years[-1].courses.append(CourseSummary.model_validate(course, from_attributes=True))
    return years


@router.get("/{career_id}/prerequisite-plan", response_model=List[PlanBlockOut])
def get_prerequisite_plan(career_id: int, store: RecordStore = Depends(store_for("admin", "coordinator", "teacher", "student"))):
    require_career(store, career_id)
    courses = store.list(Course, career_id=career_id)
    course_ids = [course.id for course in courses]
    if not course_ids:
        return []
    edges = store.list(Prerequisite, where=[col(Prerequisite.course_id).in_(course_ids)])
    external_ids = {edge.required_course_id for edge in edges} - set(course_ids)
    catalog = {}
    if external_ids:
        catalog = {course.id: course for course in store.list(Course, where=[col(Course.id).in_(external_ids)])}
    blocks = prerequisite_plan(courses, edges, catalog)
    return [
        PlanBlockOut(
            year=block.year,
            term=block.term,
            courses=[
                PlanCourse(
                    course=CourseSummary.model_validate(entry.course, from_attributes=True),
                    required=[CourseSummary.model_validate(item, from_attributes=True) for item in entry.required],
                )
                for entry in block.entries
            ],
        )
        for block in blocks
    ]
