from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from app.dependencies.services import get_aggregation_engine
from app.schemas.query import (
    GradeDistributionResponse,
    InstitutePerformanceResponse,
    InstituteResultsResponse,
    TopCoursesResponse,
    TopStudentsResponse,
)
from app.services.query_service import MAX_DB_INT, AggregationEngine

router = APIRouter()


@router.get(
    "/top-courses",
    response_model=TopCoursesResponse,
    response_model_exclude_none=True,
    summary="연도별 수강생 수 상위 강좌",
)
def get_top_courses(
        year: Optional[int] = Query(None, description="강좌 연도 (기본값: 올해)"),
        limit: Optional[int] = Query(None),
        engine: AggregationEngine = Depends(get_aggregation_engine),
):
    year = year if year is not None else date.today().year
    return TopCoursesResponse(data=engine.top_courses_by_year(year, limit), year=year)


@router.get(
    "/top-students",
    response_model=TopStudentsResponse,
    response_model_exclude_none=True,
    summary="평균 점수 상위 학생 순위",
)
def get_top_students(
        year: Optional[int] = Query(None),
        limit: Optional[int] = Query(None),
        engine: AggregationEngine = Depends(get_aggregation_engine),
):
    return TopStudentsResponse(data=engine.top_ranking_students(limit, year), year=year)


@router.get(
    "/institute-performance",
    response_model=InstitutePerformanceResponse,
    response_model_exclude_none=True,
    summary="기관별 성적 요약",
)
def get_institute_performance(
        year: Optional[int] = Query(None),
        engine: AggregationEngine = Depends(get_aggregation_engine),
):
    return InstitutePerformanceResponse(data=engine.institute_performance(year), year=year)


@router.get(
    "/course-grades/{course_id}",
    response_model=GradeDistributionResponse,
    summary="강좌별 등급 분포",
)
def get_course_grades(
        course_id: int = Path(..., le=MAX_DB_INT),
        engine: AggregationEngine = Depends(get_aggregation_engine),
):
    distribution = engine.course_grade_distribution(course_id)
    return GradeDistributionResponse(
        data=distribution.entries,
        total_students=distribution.total_students,
    )


@router.get(
    "/institute-results/{institute_id}",
    response_model=InstituteResultsResponse,
    summary="기관별 학생 성적 목록 (페이지네이션)",
)
def get_institute_results(
        institute_id: int = Path(..., le=MAX_DB_INT),
        page: Optional[int] = Query(None),
        limit: Optional[int] = Query(None),
        year: Optional[int] = Query(None),
        engine: AggregationEngine = Depends(get_aggregation_engine),
):
    result_page = engine.institute_results(institute_id, page, limit, year)
    return InstituteResultsResponse(data=result_page.rows, pagination=result_page.pagination)
