"""
덤프/로드 계획 수립

(데이터 제외 여부, 스키마 이름 변경 여부) 두 값만으로 계획 형태가 결정되는 순수 함수입니다.

| 제외 | 이름 변경 | 계획 |
|------|-----------|------|
| X    | X         | 1단계: dumpSchemas (전체 스키마) |
| X    | O         | 1단계: dumpTables(all) + 로드 시 schema 지정 |
| O    | X         | 2단계: DDL 전체 → 포함 테이블 데이터 |
| O    | O         | 2단계 + 로드 시 schema 지정 |
"""
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from fastcopy.core.constants import DDL_SUFFIX, DATA_SUFFIX


class PlanKind(Enum):
    SINGLE_PHASE = "single_phase"
    TWO_PHASE = "two_phase"


@dataclass(frozen=True)
class DumpPlan:
    """계획 공통 속성 (rename_to: 로드 시 사용할 스키마명, 이름 변경이 없으면 None)"""
    rename_to: Optional[str]

    kind = None

    @property
    def is_rename(self) -> bool:
        return self.rename_to is not None

    @property
    def directories(self) -> Tuple[str, ...]:
        raise NotImplementedError


@dataclass(frozen=True)
class SinglePhasePlan(DumpPlan):
    dump_dir: str = ''

    kind = PlanKind.SINGLE_PHASE

    @property
    def directories(self) -> Tuple[str, ...]:
        return (self.dump_dir,)


@dataclass(frozen=True)
class TwoPhasePlan(DumpPlan):
    ddl_dir: str = ''
    data_dir: str = ''
    included_tables: Tuple[str, ...] = ()

    kind = PlanKind.TWO_PHASE

    @property
    def has_data_phase(self) -> bool:
        """포함 테이블이 없으면 데이터 덤프/로드 생략"""
        return bool(self.included_tables)

    @property
    def directories(self) -> Tuple[str, ...]:
        if self.has_data_phase:
            return (self.ddl_dir, self.data_dir)
        return (self.ddl_dir,)


def artifact_dir(dump_base: str, source: str, timestamp: str, suffix: str = '') -> str:
    """덤프 디렉토리 경로: {base}/{source}_{timestamp}[suffix]"""
    base = dump_base.rstrip('/\\') or '/'
    return os.path.join(base, f"{source}_{timestamp}{suffix}")


def plan_migration(has_exclusions: bool, rename: bool, *,
                   dump_base: str, source: str, timestamp: str,
                   target_schema: str,
                   included_tables: Sequence[str] = ()) -> DumpPlan:
    """덤프/로드 계획 생성 (부작용 없음, 같은 입력 → 같은 계획)

    Args:
        has_exclusions: 데이터 제외 테이블 존재 여부
        rename: 소스 스키마명 != 타겟 스키마명
        dump_base: 덤프 루트 디렉토리
        source: 소스 스키마명
        timestamp: 실행 타임스탬프 (YYYYmmdd_HHMMSS)
        target_schema: 실제 타겟 스키마명
        included_tables: 데이터를 덤프할 테이블 (2단계에서만 사용)
    """
    rename_to = target_schema if rename else None

    if not has_exclusions:
        return SinglePhasePlan(
            rename_to=rename_to,
            dump_dir=artifact_dir(dump_base, source, timestamp),
        )

    return TwoPhasePlan(
        rename_to=rename_to,
        ddl_dir=artifact_dir(dump_base, source, timestamp, DDL_SUFFIX),
        data_dir=artifact_dir(dump_base, source, timestamp, DATA_SUFFIX),
        included_tables=tuple(included_tables),
    )
