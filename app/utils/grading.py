GRADE_THRESHOLDS = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)
FAILING_GRADE = "F"


def grade_for_score(score: float) -> str:
    """점수 -> 등급 (A/B/C/D/F). 성적 데이터 시딩과 테스트 fixture 가 이 기준으로 grade 를 채운다."""
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return FAILING_GRADE
