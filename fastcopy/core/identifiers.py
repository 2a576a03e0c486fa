"""
SQL 식별자 검증/인용

카탈로그나 설정에서 온 이름이 SQL 문에 들어가기 전에 반드시 거치는 단일 관문입니다.
- is_safe_identifier: 영문/숫자/언더스코어/달러만 허용
- quote_identifier: 백틱 인용 (내부 백틱은 두 번)
"""
import re
from typing import Iterable, List, Tuple

from fastcopy.core.constants import IDENTIFIER_PATTERN

_IDENTIFIER_RE = re.compile(IDENTIFIER_PATTERN)

# 제외 목록 항목에서 제거할 인용 문자
QUOTE_CHARS = '`"\''


def is_safe_identifier(name: str) -> bool:
    """식별자 허용 패턴 검사"""
    return bool(name) and _IDENTIFIER_RE.match(name) is not None


def quote_identifier(name: str) -> str:
    """MySQL 식별자를 백틱으로 인용

    예: order`s → `order``s`
    """
    return '`' + name.replace('`', '``') + '`'


def strip_quotes(name: str) -> str:
    """앞뒤 공백과 인용 문자 제거"""
    return name.strip().strip(QUOTE_CHARS).strip()


def filter_safe(names: Iterable[str]) -> Tuple[List[str], List[str]]:
    """허용 패턴 통과/거부 이름 분리

    Returns:
        (통과 목록, 거부 목록) - 입력 순서 유지
    """
    accepted, rejected = [], []
    for name in names:
        if is_safe_identifier(name):
            accepted.append(name)
        else:
            rejected.append(name)
    return accepted, rejected
