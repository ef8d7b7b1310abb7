from datetime import date
from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional
from pydantic import BaseModel, model_validator
from sqlmodel import col

from ..models import AcademicStatus, AcademicStatusBase, AcademicStatusEnum, Course
from ..services.prerequisites import course_sort_key
from ..services.store import RecordStore, store_for
from ..utils.course_rules import require_course, require_student


router = APIRouter(prefix="/academic-statuses", tags=["academic_statuses"])


def tagged_fields_error(status: AcademicStatusEnum, grade: Optional[float], credit_date: Optional[date]) -> Optional[str]:
    """Grade and credit date only belong to credited courses."""
    if AcademicStatusEnum(status) == AcademicStatusEnum.credited:
        return None
    if grade is not None or credit_date is not None:
        return "La nota y la fecha de acreditación solo aplican a materias acreditadas"
    return None


class AcademicStatusInput(AcademicStatusBase, table=False):
    @model_validator(mode="after")
    def _check_credited_fields(self):
        error = tagged_fields_error(self.status, self.grade, self.credit_date)
        if error:
            raise ValueError(error)
        return self


class AcademicStatusUpdate(BaseModel):
    status: Optional[AcademicStatusEnum] = None
    regularization_date: Optional[date] = None
    credit_date: Optional[date] = None
    grade: Optional[float] = None


class CourseOption(BaseModel):
    id: int
    code: str
    name: str
    year: int


@router.get("/", response_model=List[AcademicStatus])
def list_academic_statuses(
    student_id: int,
    status: Optional[AcademicStatusEnum] = None,
    store: RecordStore = Depends(store_for("admin", "coordinator", "teacher")),
):
    require_student(store, student_id)
    filters = {"student_id": student_id}
    if status is not None:
        filters["status"] = status
    return store.list(AcademicStatus, order_by=[AcademicStatus.id], **filters)


@router.get("/available-courses", response_model=List[CourseOption])
def list_courses_without_status(student_id: int, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    """Courses the student has no academic status for yet."""
    student = require_student(store, student_id)
    taken = {row.course_id for row in store.list(AcademicStatus, student_id=student_id)}
    where = [col(Course.id).notin_(taken)] if taken else []
    if student.career_id is not None:
        where.append(Course.career_id == student.career_id)
    courses = sorted(store.list(Course, where=where), key=course_sort_key)
    return [CourseOption(id=c.id, code=c.code, name=c.name, year=c.year) for c in courses]


@router.post("/", response_model=AcademicStatus)
def create_academic_status(payload: AcademicStatusInput, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    require_student(store, payload.student_id)
    require_course(store, payload.course_id)
    return store.insert(AcademicStatus(**payload.model_dump()))


@router.put("/{status_id}", response_model=AcademicStatus)
def update_academic_status(status_id: int, payload: AcademicStatusUpdate, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    obj = _require_status(store, status_id)
    data = payload.model_dump(exclude_unset=True)
    if "status" in data and data["status"] is None:
        del data["status"]
    if data.get("grade") is not None and not 0 <= data["grade"] <= 10:
        raise HTTPException(status_code=422, detail="La nota debe estar entre 0 y 10")
    merged_status = data.get("status") or obj.status
    # al dejar de estar acreditada se descartan nota y fecha salvo que se envíen de nuevo
    if AcademicStatusEnum(merged_status) != AcademicStatusEnum.credited and "status" in data:
        data.setdefault("grade", None)
        data.setdefault("credit_date", None)
    error = tagged_fields_error(
        merged_status,
        data.get("grade", obj.grade),
        data.get("credit_date", obj.credit_date),
    )
    if error:
        raise HTTPException(status_code=422, detail=error)
    return store.update(obj, data)


@router.delete("/{status_id}")
def delete_academic_status(status_id: int, store: RecordStore = Depends(store_for("admin", "coordinator"))):
    store.delete(_require_status(store, status_id))
    return {"ok": True}


def _require_status(store: RecordStore, status_id: int) -> AcademicStatus:
    obj = store.get(AcademicStatus, status_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Estado académico no encontrado")
    return obj
