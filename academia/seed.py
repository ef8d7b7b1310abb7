from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from .db import engine
from .models import (
    AcademicStatus,
    AcademicStatusEnum,
    Career,
    Course,
    Prerequisite,
    Student,
    TermEnum,
    User,
)
from .security import get_password_hash, verify_password


logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAIL = "admin@academia.dev"
DEFAULT_ADMIN_PASSWORD = "admin123"
DEFAULT_ADMIN_NAME = "Administrador Demo"

DEFAULT_COORDINATOR_EMAIL = "coordinador@academia.dev"
DEFAULT_COORDINATOR_PASSWORD = "coordinador123"
DEFAULT_COORDINATOR_NAME = "Coordinación Académica"


def ensure_default_admin(session: Optional[Session] = None, force_password_reset: bool = False) -> User:
    """Create a default admin user for local development if none exists."""
    owns_session = session is None
    session = session or Session(engine)
    try:
        return _ensure_account(
            session,
            email=DEFAULT_ADMIN_EMAIL,
            full_name=DEFAULT_ADMIN_NAME,
            password=DEFAULT_ADMIN_PASSWORD,
            role="admin",
            must_change_password=force_password_reset,
        )
    finally:
        if owns_session:
            session.close()


def ensure_default_coordinator(session: Optional[Session] = None) -> User:
    """Create the academic coordinator account that may confirm overrides."""
    owns_session = session is None
    session = session or Session(engine)
    try:
        return _ensure_account(
            session,
            email=DEFAULT_COORDINATOR_EMAIL,
            full_name=DEFAULT_COORDINATOR_NAME,
            password=DEFAULT_COORDINATOR_PASSWORD,
            role="coordinator",
        )
    finally:
        if owns_session:
            session.close()


def ensure_demo_data() -> None:
    """Populate the catalog with deterministic demo data for the console."""
    with Session(engine) as session:
        ensure_default_admin(session)
        ensure_default_coordinator(session)

        career_map = _ensure_careers(session)
        course_map = _ensure_courses(session, career_map)
        _ensure_prerequisites(session, course_map)
        student_map = _ensure_students(session, career_map)
        _ensure_academic_statuses(session, student_map, course_map)
    logger.info(
        "Datos de demostración listos: %s carreras, %s materias, %s estudiantes",
        len(career_map),
        len(course_map),
        len(student_map),
    )


def _ensure_account(
    session: Session,
    *,
    email: str,
    full_name: str,
    password: str,
    role: str,
    must_change_password: bool = False,
) -> User:
    existing = session.exec(select(User).where(User.email == email)).first()
    if existing:
        updated = False
        if not verify_password(password, existing.hashed_password):
            existing.hashed_password = get_password_hash(password)
            updated = True
        if existing.role != role:
            existing.role = role
            updated = True
        if not existing.is_active:
            existing.is_active = True
            updated = True
        if must_change_password and not existing.must_change_password:
            existing.must_change_password = True
            updated = True
        if updated:
            session.add(existing)
            session.commit()
            session.refresh(existing)
        return existing
    user = User(
        email=email,
        full_name=full_name,
        hashed_password=get_password_hash(password),
        role=role,
        is_active=True,
        must_change_password=must_change_password,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Usuario por defecto creado: %s", email)
    return user


def _ensure_careers(session: Session) -> Dict[str, Career]:
    data = [
        {
            "name": "Técnico Superior en Análisis de Sistemas",
            "description": "Análisis, diseño y desarrollo de sistemas de información.",
            "duration_years": 3,
        },
        {
            "name": "Técnico Superior en Administración",
            "description": "Gestión administrativa, contable y de recursos humanos.",
            "duration_years": 3,
        },
        {
            "name": "Técnico Superior en Enfermería",
            "description": "Cuidados de enfermería en instituciones de salud.",
            "duration_years": 3,
        },
    ]
    mapping: Dict[str, Career] = {}
    for item in data:
        career = session.exec(select(Career).where(Career.name == item["name"])).first()
        if not career:
            career = Career(**item)
            session.add(career)
            session.commit()
            session.refresh(career)
        mapping[item["name"]] = career
    return mapping


def _ensure_courses(session: Session, career_map: Dict[str, Career]) -> Dict[str, Course]:
    systems = "Técnico Superior en Análisis de Sistemas"
    management = "Técnico Superior en Administración"
    nursing = "Técnico Superior en Enfermería"
    data: List[Dict[str, Any]] = [
        # Análisis de Sistemas
        {"code": "MAT101", "name": "Matemática I", "year": 1, "term": TermEnum.first, "weekly_hours": 6, "career": systems},
        {"code": "PROG101", "name": "Programación I", "year": 1, "term": TermEnum.first, "weekly_hours": 6, "career": systems},
        {"code": "ING101", "name": "Inglés Técnico I", "year": 1, "term": TermEnum.annual, "weekly_hours": 3, "career": systems},
        {"code": "SO101", "name": "Sistemas Operativos", "year": 1, "term": TermEnum.second, "weekly_hours": 4, "career": systems},
        {"code": "MAT201", "name": "Matemática II", "year": 2, "term": TermEnum.first, "weekly_hours": 6, "career": systems},
        {"code": "PROG201", "name": "Programación II", "year": 2, "term": TermEnum.first, "weekly_hours": 6, "career": systems},
        {"code": "EST201", "name": "Estadística", "year": 2, "term": TermEnum.second, "weekly_hours": 4, "career": systems},
        {"code": "BD101", "name": "Bases de Datos", "year": 2, "term": TermEnum.second, "weekly_hours": 5, "career": systems},
        {"code": "ING201", "name": "Inglés Técnico II", "year": 2, "term": TermEnum.annual, "weekly_hours": 3, "career": systems},
        {"code": "PROG301", "name": "Programación III", "year": 3, "term": TermEnum.first, "weekly_hours": 6, "career": systems},
        {"code": "ANS301", "name": "Análisis y Diseño de Sistemas", "year": 3, "term": TermEnum.annual, "weekly_hours": 5, "career": systems},
        {"code": "PRA301", "name": "Práctica Profesional", "year": 3, "term": TermEnum.second, "weekly_hours": 8, "career": systems},
        # Administración
        {"code": "ADM101", "name": "Administración General", "year": 1, "term": TermEnum.first, "weekly_hours": 4, "career": management},
        {"code": "CON101", "name": "Contabilidad I", "year": 1, "term": TermEnum.annual, "weekly_hours": 5, "career": management},
        {"code": "ECO101", "name": "Economía", "year": 1, "term": TermEnum.second, "weekly_hours": 4, "career": management},
        {"code": "CON201", "name": "Contabilidad II", "year": 2, "term": TermEnum.annual, "weekly_hours": 5, "career": management},
        {"code": "RHU201", "name": "Recursos Humanos", "year": 2, "term": TermEnum.first, "weekly_hours": 4, "career": management},
        {"code": "FIN301", "name": "Finanzas", "year": 3, "term": TermEnum.first, "weekly_hours": 4, "career": management},
        # Enfermería
        {"code": "ANA101", "name": "Anatomía y Fisiología", "year": 1, "term": TermEnum.annual, "weekly_hours": 6, "career": nursing},
        {"code": "ENF101", "name": "Fundamentos de Enfermería", "year": 1, "term": TermEnum.annual, "weekly_hours": 6, "career": nursing},
        {"code": "FAR201", "name": "Farmacología", "year": 2, "term": TermEnum.first, "weekly_hours": 4, "career": nursing},
        {"code": "ENF201", "name": "Enfermería del Adulto", "year": 2, "term": TermEnum.annual, "weekly_hours": 8, "career": nursing},
    ]
    mapping: Dict[str, Course] = {}
    for item in data:
        payload = dict(item)
        career = career_map[payload.pop("career")]
        course = session.exec(select(Course).where(Course.code == payload["code"])).first()
        if not course:
            course = Course(career_id=career.id, **payload)
            session.add(course)
            session.commit()
            session.refresh(course)
        mapping[payload["code"]] = course
    return mapping


def _ensure_prerequisites(session: Session, course_map: Dict[str, Course]) -> None:
    matrix: Dict[str, List[str]] = {
        # Análisis de Sistemas
        "MAT201": ["MAT101"],
        "PROG201": ["PROG101"],
        "EST201": ["MAT101"],
        "BD101": ["PROG101"],
        "ING201": ["ING101"],
        "PROG301": ["PROG201", "BD101"],
        "ANS301": ["PROG201"],
        "PRA301": ["PROG301", "ANS301"],
        # Administración
        "CON201": ["CON101"],
        "RHU201": ["ADM101"],
        "FIN301": ["CON201", "ECO101"],
        # Enfermería
        "FAR201": ["ANA101"],
        "ENF201": ["ENF101", "ANA101"],
    }
    existing = {
        (edge.course_id, edge.required_course_id) for edge in session.exec(select(Prerequisite)).all()
    }
    created = 0
    for code, required_codes in matrix.items():
        course = course_map[code]
        for required_code in required_codes:
            key = (course.id, course_map[required_code].id)
            if key in existing:
                continue
            session.add(Prerequisite(course_id=key[0], required_course_id=key[1]))
            existing.add(key)
            created += 1
    if created:
        session.commit()


def _ensure_students(session: Session, career_map: Dict[str, Career]) -> Dict[str, Student]:
    systems = career_map["Técnico Superior en Análisis de Sistemas"]
    management = career_map["Técnico Superior en Administración"]
    nursing = career_map["Técnico Superior en Enfermería"]
    data = [
        {"first_name": "Lucía", "last_name": "Fernández", "national_id": "40111222", "email": "lucia.fernandez@example.com", "career_id": systems.id, "enrollment_date": date(2023, 3, 6)},
        {"first_name": "Martín", "last_name": "Gómez", "national_id": "41222333", "email": "martin.gomez@example.com", "career_id": systems.id, "enrollment_date": date(2024, 3, 4)},
        {"first_name": "Sofía", "last_name": "Pérez", "national_id": "42333444", "email": "sofia.perez@example.com", "career_id": systems.id, "enrollment_date": date(2025, 3, 3)},
        {"first_name": "Julián", "last_name": "Rodríguez", "national_id": "39444555", "email": "julian.rodriguez@example.com", "career_id": management.id, "enrollment_date": date(2023, 3, 6)},
        {"first_name": "Valentina", "last_name": "López", "national_id": "43555666", "email": "valentina.lopez@example.com", "career_id": nursing.id, "enrollment_date": date(2024, 3, 4)},
    ]
    mapping: Dict[str, Student] = {}
    for item in data:
        student = session.exec(select(Student).where(Student.national_id == item["national_id"])).first()
        if not student:
            student = Student(**item)
            session.add(student)
            session.commit()
            session.refresh(student)
        mapping[item["national_id"]] = student
    return mapping


def _ensure_academic_statuses(
    session: Session,
    student_map: Dict[str, Student],
    course_map: Dict[str, Course],
) -> None:
    credited = AcademicStatusEnum.credited
    regular = AcademicStatusEnum.regular
    enrolled = AcademicStatusEnum.enrolled
    # (dni, código, estado, nota, fecha de acreditación)
    data = [
        ("40111222", "MAT101", credited, 8.0, date(2023, 7, 14)),
        ("40111222", "PROG101", credited, 9.0, date(2023, 7, 20)),
        ("40111222", "ING101", credited, 7.0, date(2023, 12, 12)),
        ("40111222", "SO101", credited, 6.0, date(2023, 12, 5)),
        ("40111222", "MAT201", credited, 7.0, date(2024, 7, 18)),
        ("40111222", "PROG201", regular, None, None),
        ("40111222", "BD101", enrolled, None, None),
        ("41222333", "MAT101", credited, 6.0, date(2024, 7, 15)),
        ("41222333", "PROG101", regular, None, None),
        ("41222333", "ING101", enrolled, None, None),
        ("39444555", "ADM101", credited, 9.0, date(2023, 7, 10)),
        ("39444555", "CON101", credited, 8.0, date(2023, 12, 15)),
        ("39444555", "ECO101", regular, None, None),
        ("43555666", "ANA101", credited, 7.0, date(2024, 12, 10)),
        ("43555666", "ENF101", enrolled, None, None),
    ]
    existing = {(row.student_id, row.course_id) for row in session.exec(select(AcademicStatus)).all()}
    created = 0
    for national_id, code, status, grade, credit_date in data:
        student = student_map[national_id]
        course = course_map[code]
        if (student.id, course.id) in existing:
            continue
        session.add(
            AcademicStatus(
                student_id=student.id,
                course_id=course.id,
                status=status,
                grade=grade,
                credit_date=credit_date,
                regularization_date=credit_date if status != enrolled else None,
            )
        )
        created += 1
    if created:
        session.commit()
