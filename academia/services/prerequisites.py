"""Prerequisite ("correlatividad") evaluation.

Everything in this module is a pure function over rows that were already
fetched from the database: no session, no I/O. Callers pass the prerequisite
edges and the student's academic statuses they loaded and get plain Python
values back, which keeps the admission rules easy to test in isolation.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..models import AcademicStatus, AcademicStatusEnum, Course, Prerequisite, TermEnum


def credited_course_ids(statuses: Iterable[AcademicStatus]) -> Set[int]:
    """Return the courses with at least one ``credited`` status row.

    Duplicate rows for the same course are tolerated: a single credited row
    is enough, whatever other rows say.
    """

    return {row.course_id for row in statuses if row.status == AcademicStatusEnum.credited}


def missing_prerequisites(
    course_id: int,
    prerequisites: Iterable[Prerequisite],
    statuses: Iterable[AcademicStatus],
) -> Set[int]:
    """Required courses of ``course_id`` that the student has not credited.

    Only edges whose source is ``course_id`` are considered. There is no
    transitive check: a credited requirement is trusted as-is.
    """

    required = {edge.required_course_id for edge in prerequisites if edge.course_id == course_id}
    if not required:
        return set()
    return required - credited_course_ids(statuses)


def build_requirement_map(prerequisites: Iterable[Prerequisite]) -> Dict[int, List[int]]:
    mapping: Dict[int, List[int]] = defaultdict(list)
    for edge in prerequisites:
        if edge.required_course_id not in mapping[edge.course_id]:
            mapping[edge.course_id].append(edge.required_course_id)
    return dict(mapping)


def creates_cycle(prerequisites: Iterable[Prerequisite], course_id: int, required_course_id: int) -> bool:
    """Whether adding ``course_id -> required_course_id`` closes a cycle.

    The new edge closes a cycle when ``course_id`` is already reachable from
    ``required_course_id`` by following existing requirements. Self edges
    count as cycles.
    """

    if course_id == required_course_id:
        return True
    graph = build_requirement_map(prerequisites)
    pending = [required_course_id]
    visited: Set[int] = set()
    while pending:
        current = pending.pop()
        if current == course_id:
            return True
        if current in visited:
            continue
        visited.add(current)
        pending.extend(graph.get(current, []))
    return False


_TERM_ORDER = {TermEnum.first: 1, TermEnum.second: 2, TermEnum.annual: 3}


def course_sort_key(course: Course) -> Tuple[int, int, str]:
    return (course.year, _TERM_ORDER.get(TermEnum(course.term), 9), course.name.lower())


@dataclass
class PlanEntry:
    course: Course
    required: List[Course] = field(default_factory=list)


@dataclass
class PlanBlock:
    year: int
    term: TermEnum
    entries: List[PlanEntry] = field(default_factory=list)


def prerequisite_plan(
    courses: Iterable[Course],
    prerequisites: Iterable[Prerequisite],
    catalog: Optional[Dict[int, Course]] = None,
) -> List[PlanBlock]:
    """Group a career's courses by (year, term) with the courses each requires.

    ``catalog`` resolves required courses that live outside ``courses``
    (e.g. a requirement shared with another career); unknown ids are skipped.
    """

    ordered = sorted(courses, key=course_sort_key)
    lookup: Dict[int, Course] = dict(catalog or {})
    lookup.update({course.id: course for course in ordered if course.id is not None})
    requirements = build_requirement_map(prerequisites)

    blocks: List[PlanBlock] = []
    index: Dict[Tuple[int, TermEnum], PlanBlock] = {}
    for course in ordered:
        key = (course.year, TermEnum(course.term))
        block = index.get(key)
        if block is None:
            block = PlanBlock(year=key[0], term=key[1])
            index[key] = block
            blocks.append(block)
        required = [lookup[rid] for rid in requirements.get(course.id, []) if rid in lookup]
        block.entries.append(PlanEntry(course=course, required=sorted(required, key=course_sort_key)))
    return blocks
