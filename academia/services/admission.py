"""Enrollment admission: prerequisite gate plus supervised override.

``AdmissionFlow`` is a small explicit state machine. Each attempt gets its own
instance built from an ``AdmissionSnapshot`` (rows already loaded for the
student) and a writer able to insert the resulting ``Enrollment``; the
``RecordStore`` is the writer used by the API.

    idle -> evaluating -> blocked --confirm_override--> ready
                       `-> ready -> submitting -> completed | failed

A blocked attempt only becomes ready through ``confirm_override``; ``submit``
on a blocked attempt raises ``OverrideRequired`` and changes nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple

from ..models import AcademicStatus, Course, Enrollment, EnrollmentTypeEnum, Prerequisite
from .prerequisites import course_sort_key, missing_prerequisites
from .store import StoreError


logger = logging.getLogger(__name__)


class AdmissionState(str, Enum):
    idle = "idle"
    evaluating = "evaluating"
    blocked = "blocked"
    ready = "ready"
    submitting = "submitting"
    completed = "completed"
    failed = "failed"


class AdmissionError(Exception):
    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class DuplicateEnrollment(AdmissionError):
    pass


class InvalidTransition(AdmissionError):
    pass


class OverrideRequired(InvalidTransition):
    def __init__(self, missing: Iterable[int]):
        super().__init__("No cumple con todas las correlatividades; se requiere confirmación")
        self.missing = sorted(missing)


class EnrollmentWriter(Protocol):
    def insert(self, row: Enrollment) -> Enrollment: ...


@dataclass
class AdmissionSnapshot:
    """Rows loaded for one student before the attempt starts."""

    student_id: int
    courses: Dict[int, Course]
    prerequisites: List[Prerequisite] = field(default_factory=list)
    statuses: List[AcademicStatus] = field(default_factory=list)
    enrollments: List[Enrollment] = field(default_factory=list)


def enrolled_course_ids(enrollments: Iterable[Enrollment], period: str, enrollment_type: EnrollmentTypeEnum) -> Set[int]:
    kind = EnrollmentTypeEnum(enrollment_type)
    return {
        row.course_id
        for row in enrollments
        if row.period == period and EnrollmentTypeEnum(row.type) == kind
    }


def available_courses(
    courses: Iterable[Course],
    enrollments: Iterable[Enrollment],
    period: str,
    enrollment_type: EnrollmentTypeEnum,
) -> List[Course]:
    """Courses the student may still pick for ``(period, enrollment_type)``."""

    taken = enrolled_course_ids(enrollments, period, enrollment_type)
    return sorted((course for course in courses if course.id not in taken), key=course_sort_key)


class AdmissionFlow:
    def __init__(
        self,
        snapshot: AdmissionSnapshot,
        writer: EnrollmentWriter,
        *,
        period: str,
        enrollment_type: EnrollmentTypeEnum = EnrollmentTypeEnum.coursework,
    ):
        self.snapshot = snapshot
        self.writer = writer
        self.period = period
        self.enrollment_type = EnrollmentTypeEnum(enrollment_type)
        self.state = AdmissionState.idle
        self.course_id: Optional[int] = None
        self.missing: Set[int] = set()
        self.overridden = False
        self.error: Optional[str] = None
        self.enrollment: Optional[Enrollment] = None
        self.trace: List[Tuple[str, AdmissionState]] = []

    @property
    def selectable_courses(self) -> List[Course]:
        return available_courses(
            self.snapshot.courses.values(), self.snapshot.enrollments, self.period, self.enrollment_type
        )

    @property
    def missing_courses(self) -> List[Course]:
        found = [self.snapshot.courses[cid] for cid in self.missing if cid in self.snapshot.courses]
        return sorted(found, key=course_sort_key)

    def select_course(self, course_id: int) -> AdmissionState:
        self._expect("select_course", AdmissionState.idle, AdmissionState.blocked, AdmissionState.ready)
        if course_id not in self.snapshot.courses:
            raise AdmissionError("Materia no encontrada")
        if course_id in enrolled_course_ids(self.snapshot.enrollments, self.period, self.enrollment_type):
            raise DuplicateEnrollment("El estudiante ya está inscripto en esta materia para el período y tipo indicados")

        self.course_id = course_id
        self.overridden = False
        self._move("select_course", AdmissionState.evaluating)
        self.missing = missing_prerequisites(course_id, self.snapshot.prerequisites, self.snapshot.statuses)
        if self.missing:
            logger.info(
                "Inscripción bloqueada: estudiante=%s materia=%s faltan=%s",
                self.snapshot.student_id,
                course_id,
                sorted(self.missing),
            )
            self._move("evaluated", AdmissionState.blocked)
        else:
            self._move("evaluated", AdmissionState.ready)
        return self.state

    def confirm_override(self) -> AdmissionState:
        self._expect("confirm_override", AdmissionState.blocked)
        self.overridden = True
        logger.warning(
            "Correlatividades omitidas por confirmación: estudiante=%s materia=%s faltan=%s",
            self.snapshot.student_id,
            self.course_id,
            sorted(self.missing),
        )
        self._move("confirm_override", AdmissionState.ready)
        return self.state

    def submit(self, enrolled_on: Optional[date] = None) -> Enrollment:
        if self.state == AdmissionState.blocked:
            raise OverrideRequired(self.missing)
        self._expect("submit", AdmissionState.ready)
        self._move("submit", AdmissionState.submitting)
        row = Enrollment(
            student_id=self.snapshot.student_id,
            course_id=self.course_id,
            type=self.enrollment_type,
            period=self.period,
            enrolled_on=enrolled_on or date.today(),
            overridden=self.overridden,
        )
        try:
            self.enrollment = self.writer.insert(row)
        except StoreError as exc:
            self.error = exc.detail
            logger.error("Inscripción fallida: estudiante=%s materia=%s: %s", self.snapshot.student_id, self.course_id, exc.detail)
            self._move("store_error", AdmissionState.failed)
            raise
        logger.info("Inscripción registrada id=%s overridden=%s", self.enrollment.id, self.overridden)
        self._move("stored", AdmissionState.completed)
        return self.enrollment

    def _expect(self, event: str, *states: AdmissionState) -> None:
        if self.state not in states:
            raise InvalidTransition(f"Evento '{event}' no permitido en estado '{self.state.value}'")

    def _move(self, event: str, state: AdmissionState) -> None:
        self.state = state
        self.trace.append((event, state))
