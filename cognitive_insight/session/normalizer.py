"""Map raw Korean transcripts to typed profile values.

Every normalizer returns :data:`UNPARSABLE` instead of guessing.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Final, Union

from cognitive_insight.domain.models import AgeGroup, Gender


class _Unparsable(Enum):
    UNPARSABLE = "unparsable"

    def __repr__(self) -> str:
        return "UNPARSABLE"


UNPARSABLE: Final = _Unparsable.UNPARSABLE

_WHITESPACE = re.compile(r"\s+")
_POLITE_SUFFIX = re.compile(r"(입니다|이에요|예요|이요|요)$")
_AGE_SUFFIX = re.compile(r"[대살세요]")
_DIGITS = re.compile(r"\d+")

_GENDER_KEYWORDS: tuple[tuple[str, Gender], ...] = (
    ("남성", Gender.MALE),
    ("남자", Gender.MALE),
    ("여성", Gender.FEMALE),
    ("여자", Gender.FEMALE),
    ("기타", Gender.OTHER),
)

# Decade words, sino-Korean and native. Matching prefers the longest keyword
# so that "칠십" is not read as "십".
_AGE_KEYWORDS: tuple[tuple[str, AgeGroup], ...] = (
    ("십", AgeGroup.TEENS),
    ("열", AgeGroup.TEENS),
    ("이십", AgeGroup.TWENTIES),
    ("스물", AgeGroup.TWENTIES),
    ("스무", AgeGroup.TWENTIES),
    ("삼십", AgeGroup.THIRTIES),
    ("서른", AgeGroup.THIRTIES),
    ("사십", AgeGroup.FORTIES),
    ("마흔", AgeGroup.FORTIES),
    ("오십", AgeGroup.FIFTIES),
    ("쉰", AgeGroup.FIFTIES),
    ("육십", AgeGroup.SIXTIES),
    ("예순", AgeGroup.SIXTIES),
    ("칠십", AgeGroup.SEVENTIES_PLUS),
    ("일흔", AgeGroup.SEVENTIES_PLUS),
    ("팔십", AgeGroup.SEVENTIES_PLUS),
    ("여든", AgeGroup.SEVENTIES_PLUS),
    ("구십", AgeGroup.SEVENTIES_PLUS),
    ("아흔", AgeGroup.SEVENTIES_PLUS),
)

_DECADE_TO_GROUP = {
    1: AgeGroup.TEENS,
    2: AgeGroup.TWENTIES,
    3: AgeGroup.THIRTIES,
    4: AgeGroup.FORTIES,
    5: AgeGroup.FIFTIES,
    6: AgeGroup.SIXTIES,
}

# Canonical spoken form of each value; what the prompts suggest and what the
# normalizers must map back to the same value.
_CANONICAL_PHRASES: dict[Enum, str] = {
    Gender.MALE: "남성",
    Gender.FEMALE: "여성",
    Gender.OTHER: "기타",
    AgeGroup.TEENS: "10대",
    AgeGroup.TWENTIES: "20대",
    AgeGroup.THIRTIES: "30대",
    AgeGroup.FORTIES: "40대",
    AgeGroup.FIFTIES: "50대",
    AgeGroup.SIXTIES: "60대",
    AgeGroup.SEVENTIES_PLUS: "70대 이상",
}

GENDER_GRAMMAR: tuple[str, ...] = (
    "남성",
    "여성",
    "남자",
    "여자",
    "기타",
    "남자입니다",
    "여자입니다",
)

AGE_GROUP_GRAMMAR: tuple[str, ...] = (
    "10대", "20대", "30대", "40대", "50대", "60대", "70대", "80대", "90대",
    "십대", "이십대", "삼십대", "사십대", "오십대", "육십대", "칠십대",
    "열살", "스무살", "서른살", "마흔살", "쉰살", "예순살", "일흔살",
    "열", "스물", "서른", "마흔", "쉰", "예순", "일흔",
    "십", "이십", "삼십", "사십", "오십", "육십", "칠십",
    "팔십", "구십", "여든", "아흔", "70대 이상",
)


def normalize_name(raw: str) -> Union[str, _Unparsable]:
    name = (raw or "").strip()
    return name if name else UNPARSABLE


def normalize_gender(raw: str) -> Union[Gender, _Unparsable]:
    cleaned = _POLITE_SUFFIX.sub("", _WHITESPACE.sub("", raw or ""))
    for keyword, gender in _GENDER_KEYWORDS:
        if keyword in cleaned:
            return gender
    return UNPARSABLE


def normalize_age_group(raw: str) -> Union[AgeGroup, _Unparsable]:
    """Resolve an age or decade ("30대", "서른살", "72세", "칠십대") to its bracket.

    Ages of 100 and above, and anything under ten, are unparsable.
    """

    text = _WHITESPACE.sub("", raw or "")
    cleaned = _AGE_SUFFIX.sub("", text)
    if not cleaned:
        return UNPARSABLE

    digits = _DIGITS.search(cleaned)
    if digits:
        return _group_for_age(int(digits.group()))

    if "백" in cleaned:
        return UNPARSABLE

    best: tuple[int, AgeGroup] | None = None
    for keyword, group in _AGE_KEYWORDS:
        if keyword in cleaned and (best is None or len(keyword) > best[0]):
            best = (len(keyword), group)
    return best[1] if best else UNPARSABLE


def _group_for_age(age: int) -> Union[AgeGroup, _Unparsable]:
    if age < 10 or age >= 100:
        return UNPARSABLE
    decade = age // 10
    return _DECADE_TO_GROUP.get(decade, AgeGroup.SEVENTIES_PLUS)


def canonical_phrase(value: Union[Gender, AgeGroup]) -> str:
    return _CANONICAL_PHRASES[value]


def is_repeat_request(transcript: str, keyword: str) -> bool:
    return bool(keyword) and keyword in (transcript or "").strip()


__all__ = [
    "AGE_GROUP_GRAMMAR",
    "GENDER_GRAMMAR",
    "UNPARSABLE",
    "canonical_phrase",
    "is_repeat_request",
    "normalize_age_group",
    "normalize_gender",
    "normalize_name",
]
