"""Resume import stub.

Uploaded documents are not parsed; any existing file yields the same demo
applicant so the import flow can be exercised end to end.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .errors import NotFoundError
from .schemas import CandidateInfo

_DEMO_NAME = "홍길동"
_DEMO_INFO = {
    "dob": "2002-05-14",
    "available_12_months": "가능",
    "phone": "010-1234-5678",
    "email": "hong@kah.ac.kr",
    "student_id": "20220001",
    "address": "서울특별시 강남구 역삼동",
    "major": "컴퓨터공학과",
    "grade": "3학년 1학기",
    "career": "교내 개발 동아리 2년, 외부 해커톤 입상 경험",
    "schedule": "2월 17일 14:00",
}


class ParsedResume(BaseModel):
    """Applicant fields extracted from an uploaded document."""

    name: str
    info: CandidateInfo = Field(default_factory=CandidateInfo)
    source: str | None = None

    model_config = ConfigDict(extra="forbid")


def parse_resume(path: str | Path) -> ParsedResume:
    """Return applicant fields for the document at ``path``.

    Parameters
    ----------
    path:
        Path to the uploaded document. It must exist (``NotFoundError`` otherwise); its
        content is ignored.
    """

    path = Path(path)
    if not path.exists():
        raise NotFoundError("resume", str(path))
    return ParsedResume(
        name=_DEMO_NAME,
        info=CandidateInfo(**_DEMO_INFO),
        source=path.name,
    )


__all__ = ["ParsedResume", "parse_resume"]
