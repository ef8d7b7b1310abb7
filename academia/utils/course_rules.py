from typing import Iterable, List

from fastapi import HTTPException, status
from sqlmodel import col

from ..models import Career, Course, Prerequisite, Student
from ..services.prerequisites import creates_cycle
from ..services.store import RecordStore


def require_course(store: RecordStore, course_id: int) -> Course:
    course = store.get(Course, course_id)
    if not course:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Materia no encontrada")
    return course


def require_student(store: RecordStore, student_id: int) -> Student:
    student = store.get(Student, student_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Estudiante no encontrado")
    return student


def validate_prerequisite_ids(store: RecordStore, course_id: int, required_ids: Iterable[int]) -> List[int]:
    """Deduplicate ``required_ids`` and check they can all be required by ``course_id``.

    The course's current requirements are ignored while checking for cycles
    because the result replaces them.
    """

    unique_ids: List[int] = []
    for required_id in required_ids:
        if required_id == course_id:
            raise HTTPException(status_code=400, detail="Una materia no puede ser correlativa de sí misma")
        if required_id not in unique_ids:
            unique_ids.append(required_id)
    if not unique_ids:
        return []

    found = {course.id for course in store.list(Course, where=[col(Course.id).in_(unique_ids)])}
    missing = [rid for rid in unique_ids if rid not in found]
    if missing:
        raise HTTPException(status_code=404, detail=f"Correlativas no encontradas: {missing}")

    edges = [edge for edge in store.list(Prerequisite) if edge.course_id != course_id]
    for required_id in unique_ids:
        if creates_cycle(edges, course_id, required_id):
            raise HTTPException(status_code=400, detail="La correlatividad generaría un ciclo")
        edges.append(Prerequisite(course_id=course_id, required_course_id=required_id))
    return unique_ids


def replace_prerequisites(store: RecordStore, course_id: int, required_ids: List[int]) -> None:
    existing = store.list(Prerequisite, course_id=course_id)
    store.replace(existing, [Prerequisite(course_id=course_id, required_course_id=rid) for rid in required_ids])


def load_prerequisite_map(store: RecordStore, course_ids: List[int]) -> dict:
    if not course_ids:
        return {}
    mapping: dict = {}
    for edge in store.list(Prerequisite, where=[col(Prerequisite.course_id).in_(course_ids)]):
        mapping.setdefault(edge.course_id, []).append(edge.required_course_id)
    return mapping


def require_career(store: RecordStore, career_id: int) -> Career:
    career = store.get(Career, career_id)
    if not career:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Carrera no encontrada")
    return career
