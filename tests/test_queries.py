import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.main import app
from app.services.query_service import MAX_DB_INT, AggregationEngine


@pytest.fixture
def engine(db_session):
    return AggregationEngine(db_session)


# ---------- top-ranking students ----------

def test_top_students_rank_by_average(engine, make_institute, make_student, make_course, make_result):
    institute = make_institute("Rhodes College")
    course = make_course()
    a = make_student(institute, "Student A")
    b = make_student(institute, "Student B")
    make_result(a, course, 90)
    make_result(a, course, 80)
    make_result(b, course, 95)

    ranking = engine.top_ranking_students(limit=10)

    assert [(s.name, s.average_score, s.rank_position) for s in ranking] == [
        ("Student B", 95.0, 1),
        ("Student A", 85.0, 2),
    ]
    assert ranking[1].total_courses == 2
    assert ranking[1].total_score == 170.0
    assert ranking[1].highest_score == 90.0
    assert ranking[1].lowest_score == 80.0
    assert ranking[0].institute_name == "Rhodes College"


def test_top_students_ties_share_rank(engine, make_institute, make_student, make_course, make_result):
    institute = make_institute()
    course = make_course()
    students = [make_student(institute) for _ in range(3)]
    make_result(students[0], course, 88)
    make_result(students[1], course, 88)
    make_result(students[2], course, 70)

    ranking = engine.top_ranking_students(limit=10)

    assert [s.rank_position for s in ranking] == [1, 1, 3]
    # 동점이면 id 오름차순
    assert [s.id for s in ranking[:2]] == sorted([students[0].id, students[1].id])


def test_top_students_year_filter_changes_population(engine, make_institute, make_student, make_course, make_result):
    institute = make_institute()
    course = make_course()
    only_2023 = make_student(institute)
    both = make_student(institute)
    make_result(only_2023, course, 100, year=2023)
    make_result(both, course, 50, year=2023)
    make_result(both, course, 70, year=2024)

    ranking = engine.top_ranking_students(limit=10, year=2024)

    assert [s.id for s in ranking] == [both.id]
    assert ranking[0].average_score == 70.0
    assert ranking[0].total_courses == 1
    assert ranking[0].rank_position == 1


def test_top_students_limit(engine, make_institute, make_student, make_course, make_result):
    institute = make_institute()
    course = make_course()
    for score in (60, 70, 80, 90):
        make_result(make_student(institute), course, score)

    ranking = engine.top_ranking_students(limit=2)

    assert [s.average_score for s in ranking] == [90.0, 80.0]


# ---------- top courses ----------

def test_top_courses_by_year(engine, make_institute, make_student, make_course, make_result):
    institute = make_institute()
    student = make_student(institute)
    popular = make_course(year=2024, name="Mathematics 1")
    quiet = make_course(year=2024, name="Physics 2")
    other_year = make_course(year=2023, name="History 3")
    for score in (70, 80, 90):
        make_result(student, popular, score)
    make_result(student, quiet, 65)
    for _ in range(5):
        make_result(student, other_year, 50, year=2023)

    courses = engine.top_courses_by_year(2024, 10)

    assert [c.name for c in courses] == ["Mathematics 1", "Physics 2"]
    assert courses[0].enrollment_count == 3
    assert courses[0].average_score == 80.0
    assert courses[0].max_score == 90.0
    assert courses[0].min_score == 70.0


def test_top_courses_tie_breaks_by_id(engine, make_institute, make_student, make_course, make_result):
    student = make_student(make_institute())
    first = make_course(year=2024)
    second = make_course(year=2024)
    make_result(student, second, 80)
    make_result(student, first, 60)

    courses = engine.top_courses_by_year(2024, 1)

    assert [c.id for c in courses] == [first.id]


# ---------- institute performance ----------

def test_institute_performance_includes_empty_institutes(engine, make_institute, make_student, make_course, make_result):
    busy = make_institute("Busy Institute")
    make_institute("Empty Institute")
    course = make_course()
    other_course = make_course()
    s1 = make_student(busy)
    s2 = make_student(busy)
    make_result(s1, course, 60)
    make_result(s1, other_course, 70)
    make_result(s2, course, 80)
    make_result(s2, other_course, 90)

    stats = engine.institute_performance()

    assert [i.name for i in stats] == ["Busy Institute", "Empty Institute"]
    busy_stats, empty_stats = stats
    assert busy_stats.total_students == 2
    assert busy_stats.total_courses_offered == 2
    assert busy_stats.total_results == 4
    assert busy_stats.average_score == 75.0
    assert busy_stats.highest_score == 90.0
    assert busy_stats.lowest_score == 60.0
    assert busy_stats.median_score == 75.0

    assert empty_stats.total_students == 0
    assert empty_stats.total_results == 0
    assert empty_stats.average_score is None
    assert empty_stats.median_score is None


def test_institute_performance_year_filter_keeps_institutes(engine, make_institute, make_student, make_course, make_result):
    institute = make_institute()
    student = make_student(institute)
    course = make_course()
    make_result(student, course, 40, year=2023)
    make_result(student, course, 60, year=2024)
    make_result(student, course, 100, year=2024)

    stats_2024 = engine.institute_performance(year=2024)
    assert stats_2024[0].total_results == 2
    assert stats_2024[0].average_score == 80.0
    assert stats_2024[0].median_score == 80.0

    stats_2020 = engine.institute_performance(year=2020)
    assert len(stats_2020) == 1
    assert stats_2020[0].total_students == 1
    assert stats_2020[0].average_score is None


def test_institute_performance_median_odd_count(engine, make_institute, make_student, make_course, make_result):
    institute = make_institute()
    course = make_course()
    for score in (95, 60, 70):
        make_result(make_student(institute), course, score)

    stats = engine.institute_performance()

    assert stats[0].median_score == 70.0
    assert stats[0].average_score == 75.0


# ---------- grade distribution ----------

def test_grade_distribution_percentages(engine, make_institute, make_student, make_course, make_result):
    student = make_student(make_institute())
    course = make_course()
    make_result(student, course, 95)
    make_result(student, course, 91)
    make_result(student, course, 85)

    distribution = engine.course_grade_distribution(course.id)

    assert distribution.total_students == 3
    assert [(e.grade, e.count, e.percentage, e.average_score) for e in distribution.entries] == [
        ("A", 2, 66.67, 93.0),
        ("B", 1, 33.33, 85.0),
    ]
    assert sum(e.percentage for e in distribution.entries) == pytest.approx(100, abs=0.05)


def test_grade_distribution_empty_course(engine, make_course):
    course = make_course()

    distribution = engine.course_grade_distribution(course.id)

    assert distribution.entries == []
    assert distribution.total_students == 0


# ---------- institute results ----------

def test_institute_results_pagination(engine, make_institute, make_student, make_course, make_result):
    institute = make_institute()
    other = make_institute()
    course = make_course()
    student = make_student(institute)
    for score in range(25):
        make_result(student, course, score + 50)
    make_result(make_student(other), course, 99)

    page = engine.institute_results(institute.id, page=2, limit=10)

    assert len(page.rows) == 10
    assert page.pagination.total == 25
    assert page.pagination.total_pages == 3
    assert [r.score for r in page.rows] == [float(s) for s in range(64, 54, -1)]
    assert page.rows[0].student.id == student.id
    assert page.rows[0].course.id == course.id
    assert page.rows[0].institute.id == institute.id

    last = engine.institute_results(institute.id, page=3, limit=10)
    assert len(last.rows) == 5


def test_institute_results_year_filter(engine, make_institute, make_student, make_course, make_result):
    institute = make_institute()
    student = make_student(institute)
    course = make_course()
    make_result(student, course, 70, year=2023)
    make_result(student, course, 80, year=2024)

    page = engine.institute_results(institute.id, year=2023)

    assert [r.year for r in page.rows] == [2023]
    assert page.pagination.total == 1
    assert page.pagination.limit == 10


@pytest.mark.parametrize("page, limit", [(0, 10), (1, 0), (-1, 10), (1, -5)])
def test_institute_results_rejects_non_positive_paging(engine, page, limit):
    with pytest.raises(ValidationError):
        engine.institute_results(1, page=page, limit=limit)


def test_limit_is_clamped(engine, make_institute):
    institute = make_institute()
    page = engine.institute_results(institute.id, page=1, limit=100000)
    assert page.pagination.limit == 100
    assert page.pagination.total_pages == 0


# ---------- HTTP ----------

def test_query_endpoints_envelope(client, make_institute, make_student, make_course, make_result):
    institute = make_institute()
    course = make_course(year=2024)
    a = make_student(institute)
    b = make_student(institute)
    make_result(a, course, 90)
    make_result(a, course, 80)
    make_result(b, course, 95)

    resp = client.get("/api/queries/top-students", params={"limit": 10})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert "year" not in body
    assert body["data"][0]["rankPosition"] == 1
    assert body["data"][0]["averageScore"] == 95.0

    resp = client.get("/api/queries/top-courses", params={"year": 2024})
    assert resp.json()["year"] == 2024
    assert resp.json()["data"][0]["enrollmentCount"] == 3

    resp = client.get(f"/api/queries/course-grades/{course.id}")
    assert resp.json()["totalStudents"] == 3

    resp = client.get("/api/queries/institute-performance", params={"year": 2024})
    assert resp.json()["year"] == 2024
    assert resp.json()["data"][0]["totalStudents"] == 2


def test_institute_results_endpoint(client, make_institute, make_student, make_course, make_result):
    institute = make_institute()
    student = make_student(institute)
    course = make_course()
    for score in range(25):
        make_result(student, course, score)

    resp = client.get(
        f"/api/queries/institute-results/{institute.id}",
        params={"page": 2, "limit": 10},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert len(body["data"]) == 10
    assert body["pagination"] == {"page": 2, "limit": 10, "total": 25, "totalPages": 3}
    assert body["data"][0]["student"]["id"] == student.id


def test_query_endpoints_reject_bad_input(client):
    assert client.get("/api/queries/institute-results/1", params={"page": 0}).status_code == 400
    assert client.get("/api/queries/top-students", params={"limit": -1}).status_code == 400
    assert client.get("/api/queries/top-courses", params={"limit": "abc"}).status_code == 400
    assert client.get("/api/queries/course-grades/not-a-number").status_code == 400


def test_course_grades_for_unknown_course_is_empty(client):
    resp = client.get("/api/queries/course-grades/9999")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "data": [], "totalStudents": 0}


def test_oversized_paging_is_rejected(engine, make_institute):
    institute = make_institute()
    with pytest.raises(ValidationError):
        engine.institute_results(institute.id, page=MAX_DB_INT, limit=10)
    # 범위 안의 큰 페이지는 빈 결과
    page = engine.institute_results(institute.id, page=1000, limit=10)
    assert page.rows == []
    assert page.pagination.total == 0


@pytest.mark.parametrize("year", [0, 1899, 3000, 10 ** 20])
def test_out_of_range_year_is_rejected(engine, year):
    with pytest.raises(ValidationError):
        engine.top_courses_by_year(year, 10)
    with pytest.raises(ValidationError):
        engine.top_ranking_students(10, year)
    with pytest.raises(ValidationError):
        engine.institute_performance(year)
    with pytest.raises(ValidationError):
        engine.institute_results(1, year=year)


def test_oversized_integers_over_http_are_400(client):
    huge = "99999999999999999999"
    responses = [
        client.get("/api/queries/institute-results/1", params={"page": huge, "limit": 10}),
        client.get("/api/queries/top-courses", params={"year": huge}),
        client.get("/api/queries/top-students", params={"year": huge}),
        client.get("/api/queries/institute-performance", params={"year": huge}),
        client.get(f"/api/queries/course-grades/{huge}"),
        client.get(f"/api/queries/institute-results/{huge}"),
    ]
    for resp in responses:
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert "stack" not in resp.json()


def _failing_top_students(self, limit=None, year=None):
    raise RuntimeError("connection to db-primary:5432 refused")


def test_unhandled_error_hides_details_in_production(client, monkeypatch):
    monkeypatch.setattr(AggregationEngine, "top_ranking_students", _failing_top_students)
    monkeypatch.setattr(settings, "APP_ENV", "production")

    resp = TestClient(app, raise_server_exceptions=False).get("/api/queries/top-students")

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Internal server error"}


def test_unhandled_error_includes_stack_in_development(client, monkeypatch):
    monkeypatch.setattr(AggregationEngine, "top_ranking_students", _failing_top_students)
    monkeypatch.setattr(settings, "APP_ENV", "development")

    resp = TestClient(app, raise_server_exceptions=False).get("/api/queries/top-students")

    assert resp.status_code == 500
    body = resp.json()
    assert body["message"] == "connection to db-primary:5432 refused"
    assert "RuntimeError" in body["stack"]
    assert "_failing_top_students" in body["stack"]
