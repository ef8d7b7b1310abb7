from datetime import date
from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional
from pydantic import BaseModel, Field

from ..config import settings
from ..models import AcademicStatus, Course, Enrollment, EnrollmentTypeEnum, Prerequisite
from ..security import SUPERVISOR_ROLES
from ..services.admission import (
    AdmissionError,
    AdmissionFlow,
    AdmissionSnapshot,
    AdmissionState,
    DuplicateEnrollment,
    available_courses,
)
from ..services.store import RecordStore, store_for
from ..utils.course_rules import require_student


router = APIRouter(prefix="/enrollments", tags=["enrollments"])


class CourseRef(BaseModel):
    id: int
    code: str
    name: str
    year: int


class EvaluationRequest(BaseModel):
    student_id: int
    course_id: int
    type: EnrollmentTypeEnum = EnrollmentTypeEnum.coursework
    period: str = Field(default_factory=lambda: settings.default_enrollment_period, min_length=1)


class EnrollmentRequest(EvaluationRequest):
    enrolled_on: Optional[date] = None
    confirm_override: bool = False


class EvaluationOut(BaseModel):
    student_id: int
    course_id: int
    state: AdmissionState
    missing: List[CourseRef]


class EnrollmentOut(BaseModel):
    id: int
    student_id: int
    course_id: int
    type: EnrollmentTypeEnum
    period: str
    enrolled_on: date
    overridden: bool
    course: Optional[CourseRef] = None


class AdmissionOut(BaseModel):
    state: AdmissionState
    enrollment: EnrollmentOut
    missing: List[CourseRef]


@router.get("/", response_model=List[EnrollmentOut])
def list_enrollments(
    student_id: Optional[int] = None,
    period: Optional[str] = None,
    type: Optional[EnrollmentTypeEnum] = None,
    store: RecordStore = Depends(store_for("admin", "coordinator", "teacher")),
):
    filters = {}
    if student_id is not None:
        filters["student_id"] = student_id
    if period:
        filters["period"] = period
    if type is not None:
        filters["type"] = type
    rows = store.list(Enrollment, order_by=[Enrollment.enrolled_on.desc(), Enrollment.id.desc()], **filters)
    catalog = {course.id: course for course in store.list(Course)}
    return [_enrollment_out(row, catalog) for row in rows]


@router.get("/available-courses", response_model=List[CourseRef])
def list_available_courses(
    student_id: int,
    period: Optional[str] = None,
    type: EnrollmentTypeEnum = EnrollmentTypeEnum.coursework,
    store: RecordStore = Depends(store_for(*SUPERVISOR_ROLES)),
):
    """Courses not yet taken by the student for the same period and type."""
    require_student(store, student_id)
    courses = available_courses(
        store.list(Course),
        store.list(Enrollment, student_id=student_id),
        period or settings.default_enrollment_period,
        type,
    )
    return [_course_ref(course) for course in courses]


@router.post("/evaluate", response_model=EvaluationOut)
def evaluate_enrollment(payload: EvaluationRequest, store: RecordStore = Depends(store_for(*SUPERVISOR_ROLES))):
    flow = _start_flow(store, payload)
    return EvaluationOut(
        student_id=payload.student_id,
        course_id=payload.course_id,
        state=flow.state,
        missing=[_course_ref(course) for course in flow.missing_courses],
    )


@router.post("/", response_model=AdmissionOut)
def create_enrollment(payload: EnrollmentRequest, store: RecordStore = Depends(store_for(*SUPERVISOR_ROLES))):
    flow = _start_flow(store, payload)
    missing = [_course_ref(course) for course in flow.missing_courses]
    if flow.state == AdmissionState.blocked:
        if not payload.confirm_override:
            raise HTTPException(
                status_code=409,
                detail={
                    "message": "No cumple con todas las correlatividades. Confirme para continuar de todas formas.",
                    "missing": [item.model_dump() for item in missing],
                },
            )
        flow.confirm_override()
    enrollment = flow.submit(payload.enrolled_on)
    return AdmissionOut(
        state=flow.state,
        enrollment=_enrollment_out(enrollment, flow.snapshot.courses),
        missing=missing,
    )


@router.get("/{enrollment_id}", response_model=EnrollmentOut)
def get_enrollment(enrollment_id: int, store: RecordStore = Depends(store_for("admin", "coordinator", "teacher"))):
    obj = _require_enrollment(store, enrollment_id)
    course = store.get(Course, obj.course_id)
    return _enrollment_out(obj, {course.id: course} if course else {})


@router.delete("/{enrollment_id}")
def delete_enrollment(enrollment_id: int, store: RecordStore = Depends(store_for("admin"))):
    store.delete(_require_enrollment(store, enrollment_id))
    return {"ok": True}


def load_snapshot(store: RecordStore, student_id: int) -> AdmissionSnapshot:
    return AdmissionSnapshot(
        student_id=student_id,
        courses={course.id: course for course in store.list(Course)},
        prerequisites=store.list(Prerequisite),
        statuses=store.list(AcademicStatus, student_id=student_id),
        enrollments=store.list(Enrollment, student_id=student_id),
    )


def _start_flow(store: RecordStore, payload: EvaluationRequest) -> AdmissionFlow:
    require_student(store, payload.student_id)
    flow = AdmissionFlow(
        load_snapshot(store, payload.student_id),
        store,
        period=payload.period,
        enrollment_type=payload.type,
    )
    try:
        flow.select_course(payload.course_id)
    except DuplicateEnrollment as exc:
        raise HTTPException(status_code=409, detail=exc.detail)
    except AdmissionError as exc:
        raise HTTPException(status_code=404, detail=exc.detail)
    return flow


def _require_enrollment(store: RecordStore, enrollment_id: int) -> Enrollment:
    obj = store.get(Enrollment, enrollment_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Inscripción no encontrada")
    return obj


def _course_ref(course: Course) -> CourseRef:
    return CourseRef(id=course.id, code=course.code, name=course.name, year=course.year)


def _enrollment_out(row: Enrollment, catalog: dict) -> EnrollmentOut:
    course = catalog.get(row.course_id)
    return EnrollmentOut(
        id=row.id,
        student_id=row.student_id,
        course_id=row.course_id,
        type=row.type,
        period=row.period,
        enrolled_on=row.enrolled_on,
        overridden=row.overridden,
        course=_course_ref(course) if course else None,
    )
