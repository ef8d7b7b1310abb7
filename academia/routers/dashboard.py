from collections import Counter
from fastapi import APIRouter, Depends
from typing import Dict, List, Optional
from pydantic import BaseModel

from ..models import AcademicStatus, AcademicStatusEnum, Career, Course, Enrollment, Student
from ..services.store import RecordStore, store_for


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


class CareerCount(BaseModel):
    career_id: int
    name: str
    students: int


class CourseApproval(BaseModel):
    course_id: int
    code: str
    name: str
    approval_rate: float


class DashboardSummary(BaseModel):
    students: int
    careers: int
    courses: int
    enrollments: int
    approval_rate: Optional[float] = None
    status_breakdown: Dict[AcademicStatusEnum, float]
    students_per_career: List[CareerCount]
    top_courses: List[CourseApproval]


def approval_rate(statuses: List[AcademicStatus]) -> Optional[float]:
    """Share of status rows that are credited; ``None`` without rows."""
    if not statuses:
        return None
    credited = sum(1 for row in statuses if AcademicStatusEnum(row.status) == AcademicStatusEnum.credited)
    return round(credited / len(statuses), 4)


@router.get("/summary", response_model=DashboardSummary)
def get_summary(top: int = 5, store: RecordStore = Depends(store_for("admin", "coordinator", "teacher"))):
    statuses = store.list(AcademicStatus)
    counts = Counter(AcademicStatusEnum(row.status) for row in statuses)
    total = len(statuses)
    breakdown = {status: round(counts[status] / total, 4) if total else 0.0 for status in AcademicStatusEnum}

    per_career = store.count_by(Student, Student.career_id)
    careers = store.list(Career, order_by=[Career.name])
    students_per_career = sorted(
        (CareerCount(career_id=c.id, name=c.name, students=per_career.get(c.id, 0)) for c in careers),
        key=lambda item: (-item.students, item.name),
    )

    by_course: Dict[int, List[AcademicStatus]] = {}
    for row in statuses:
        by_course.setdefault(row.course_id, []).append(row)
    catalog = {course.id: course for course in store.list(Course)}
    ranking = [
        CourseApproval(course_id=cid, code=catalog[cid].code, name=catalog[cid].name, approval_rate=approval_rate(rows))
        for cid, rows in by_course.items()
        if cid in catalog
    ]
    ranking.sort(key=lambda item: (-item.approval_rate, item.code))

    return DashboardSummary(
        students=store.count(Student),
        careers=len(careers),
        courses=len(catalog),
        enrollments=store.count(Enrollment),
        approval_rate=approval_rate(statuses),
        status_breakdown=breakdown,
        students_per_career=students_per_career,
        top_courses=ranking[: max(top, 0)],
    )
