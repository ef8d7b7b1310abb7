from academia.models import AcademicStatus, AcademicStatusEnum, Course, Prerequisite, TermEnum
from academia.services.prerequisites import (
    build_requirement_map,
    creates_cycle,
    credited_course_ids,
    missing_prerequisites,
    prerequisite_plan,
)


def _course(course_id: int, code: str, year: int = 1, term: TermEnum = TermEnum.first) -> Course:
    return Course(id=course_id, code=code, name=f"Materia {code}", year=year, term=term, career_id=1)


def _edge(course_id: int, required_id: int) -> Prerequisite:
    return Prerequisite(course_id=course_id, required_course_id=required_id)


def _status(course_id: int, status: AcademicStatusEnum, student_id: int = 1) -> AcademicStatus:
    return AcademicStatus(student_id=student_id, course_id=course_id, status=status)


def test_course_without_requirements_is_never_blocked():
    statuses = [_status(9, AcademicStatusEnum.withdrawn)]
    assert missing_prerequisites(1, [_edge(2, 1)], statuses) == set()


def test_only_credited_status_satisfies_a_requirement():
    edges = [_edge(2, 1)]
    for status in (AcademicStatusEnum.enrolled, AcademicStatusEnum.regular, AcademicStatusEnum.withdrawn):
        assert missing_prerequisites(2, edges, [_status(1, status)]) == {1}
    assert missing_prerequisites(2, edges, [_status(1, AcademicStatusEnum.credited)]) == set()


def test_missing_set_lists_every_unmet_requirement():
    edges = [_edge(5, 1), _edge(5, 2), _edge(5, 3), _edge(4, 3)]
    statuses = [_status(2, AcademicStatusEnum.credited)]
    assert missing_prerequisites(5, edges, statuses) == {1, 3}


def test_requirements_are_not_transitive():
    # 3 requiere 2, 2 requiere 1; con 2 acreditada alcanza aunque 1 no lo esté
    edges = [_edge(3, 2), _edge(2, 1)]
    statuses = [_status(2, AcademicStatusEnum.credited)]
    assert missing_prerequisites(3, edges, statuses) == set()


def test_any_credited_row_wins_over_duplicates():
    statuses = [
        _status(1, AcademicStatusEnum.withdrawn),
        _status(1, AcademicStatusEnum.credited),
        _status(1, AcademicStatusEnum.regular),
    ]
    assert credited_course_ids(statuses) == {1}
    assert missing_prerequisites(2, [_edge(2, 1)], statuses) == set()


def test_evaluation_does_not_mutate_inputs():
    edges = [_edge(2, 1)]
    statuses = [_status(1, AcademicStatusEnum.regular)]
    first = missing_prerequisites(2, edges, statuses)
    second = missing_prerequisites(2, edges, statuses)
    assert first == second == {1}
    assert len(edges) == 1 and len(statuses) == 1


def test_build_requirement_map_skips_repeated_edges():
    mapping = build_requirement_map([_edge(2, 1), _edge(2, 1), _edge(3, 2)])
    assert mapping == {2: [1], 3: [2]}


def test_creates_cycle_detects_self_and_longer_cycles():
    edges = [_edge(2, 1), _edge(3, 2)]
    assert creates_cycle(edges, 4, 4) is True
    assert creates_cycle(edges, 1, 2) is True
    assert creates_cycle(edges, 1, 3) is True
    assert creates_cycle(edges, 4, 3) is False
    assert creates_cycle(edges, 3, 1) is False


def test_prerequisite_plan_groups_by_year_and_term():
    courses = [
        _course(3, "C3", year=2, term=TermEnum.first),
        _course(1, "C1", year=1, term=TermEnum.first),
        _course(2, "C2", year=1, term=TermEnum.second),
        _course(4, "C4", year=2, term=TermEnum.first),
    ]
    external = _course(99, "EXT", year=1)
    edges = [_edge(3, 1), _edge(4, 1), _edge(4, 2), _edge(4, 99), _edge(4, 12345)]

    blocks = prerequisite_plan(courses, edges, {99: external})

    assert [(block.year, block.term) for block in blocks] == [
        (1, TermEnum.first),
        (1, TermEnum.second),
        (2, TermEnum.first),
    ]
    last = {entry.course.code: [c.code for c in entry.required] for entry in blocks[-1].entries}
    assert last == {"C3": ["C1"], "C4": ["C1", "EXT", "C2"]}
