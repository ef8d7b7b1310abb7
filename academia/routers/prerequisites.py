from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional
from pydantic import BaseModel
from sqlmodel import col

from ..models import Course, Prerequisite
from ..services.store import RecordStore, store_for
from ..utils.course_rules import require_course, validate_prerequisite_ids


router = APIRouter(prefix="/prerequisites", tags=["prerequisites"])


class PrerequisiteCreate(BaseModel):
    course_id: int
    required_course_id: int


class CourseRef(BaseModel):
    id: int
    code: str
    name: str


class PrerequisiteOut(BaseModel):
    id: int
    course_id: int
    required_course_id: int
    course: Optional[CourseRef] = None
    required_course: Optional[CourseRef] = None


@router.get("/", response_model=List[PrerequisiteOut])
def list_prerequisites(
    career_id: Optional[int] = None,
    course_id: Optional[int] = None,
    store: RecordStore = Depends(store_for("admin", "coordinator", "teacher", "student")),
):
    where = []
    if course_id is not None:
        where.append(Prerequisite.course_id == course_id)
    if career_id is not None:
        career_course_ids = [course.id for course in store.list(Course, career_id=career_id)]
        if not career_course_ids:
            return []
        where.append(col(Prerequisite.course_id).in_(career_course_ids))
    edges = store.list(Prerequisite, where=where, order_by=[Prerequisite.course_id, Prerequisite.id])
    return _with_course_refs(store, edges)


@router.post("/", response_model=PrerequisiteOut)
def create_prerequisite(payload: PrerequisiteCreate, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    require_course(store, payload.course_id)
    existing = store.first(Prerequisite, course_id=payload.course_id, required_course_id=payload.required_course_id)
    if existing:
        raise HTTPException(status_code=409, detail="La correlatividad ya existe")
    current = [edge.required_course_id for edge in store.list(Prerequisite, course_id=payload.course_id)]
    validate_prerequisite_ids(store, payload.course_id, current + [payload.required_course_id])
    edge = store.insert(Prerequisite(course_id=payload.course_id, required_course_id=payload.required_course_id))
    return _with_course_refs(store, [edge])[0]


@router.delete("/{prerequisite_id}")
def delete_prerequisite(prerequisite_id: int, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    edge = store.get(Prerequisite, prerequisite_id)
    if not edge:
        raise HTTPException(status_code=404, detail="Correlatividad no encontrada")
    store.delete(edge)
    return {"ok": True}


def _with_course_refs(store: RecordStore, edges: List[Prerequisite]) -> List[PrerequisiteOut]:
    ids = {edge.course_id for edge in edges} | {edge.required_course_id for edge in edges}
    courses = {course.id: course for course in store.list(Course, where=[col(Course.id).in_(ids)])} if ids else {}

    def _ref(course_id: int) -> Optional[CourseRef]:
        course = courses.get(course_id)
        return CourseRef(id=course.id, code=course.code, name=course.name) if course else None

    return [
        PrerequisiteOut(
            id=edge.id,
            course_id=edge.course_id,
            required_course_id=edge.required_course_id,
            course=_ref(edge.course_id),
            required_course=_ref(edge.required_course_id),
        )
        for edge in edges
    ]
