"""
테이블 집합 계산 (데이터 제외 대상 분리)

EXCLUDE_TABLES_DATA 항목을 정규화하고, 소스 카탈로그의 BASE TABLE 목록과 비교하여
데이터를 덤프할 테이블(included)과 구조만 복사할 테이블(excluded)로 나눕니다.

- 항목 형식: "table" 또는 "schema.table" (인용 문자 `"' 허용)
- 다른 스키마를 가리키는 항목은 경고 후 무시
- 모든 이름(제외 목록 + 카탈로그 결과)은 식별자 허용 패턴을 통과해야 사용됨
"""
from dataclasses import dataclass, field
from typing import List, Tuple

from fastcopy.core.db_connector import MySQLConnector
from fastcopy.core.identifiers import filter_safe, strip_quotes
from fastcopy.core.logger import get_logger

logger = get_logger('table_resolver')


@dataclass(frozen=True)
class ExclusionSpec:
    """정규화된 제외 목록"""
    tables: Tuple[str, ...] = ()
    foreign_entries: Tuple[str, ...] = ()  # 다른 스키마 지정으로 무시된 항목
    rejected: Tuple[str, ...] = ()         # 식별자 패턴 불일치로 거부된 이름


@dataclass(frozen=True)
class TableSet:
    """소스 테이블 분할 결과"""
    all_tables: Tuple[str, ...]
    excluded_tables: Tuple[str, ...] = ()
    included_tables: Tuple[str, ...] = field(default=())

    @property
    def has_exclusions(self) -> bool:
        return bool(self.excluded_tables)

    @property
    def all_excluded(self) -> bool:
        """모든 테이블이 제외됨 → 데이터 단계 생략"""
        return self.has_exclusions and not self.included_tables


def parse_exclusions(raw: str, source_schema: str) -> ExclusionSpec:
    """쉼표 구분 제외 목록 정규화

    Args:
        raw: 예) "shop.audit_log, `orders`, other.t1"
        source_schema: 소스 스키마명 (schema.table 항목 매칭용)

    Returns:
        ExclusionSpec (중복 제거, 입력 순서 유지)
    """
    names: List[str] = []
    foreign: List[str] = []

    for raw_entry in (raw or '').split(','):
        entry = raw_entry.strip()
        if not entry:
            continue

        if '.' in entry:
            schema_part, table_part = entry.split('.', 1)
            schema_name = strip_quotes(schema_part)
            table_name = strip_quotes(table_part)
            if schema_name != source_schema:
                foreign.append(entry)
                continue
        else:
            table_name = strip_quotes(entry)

        if table_name and table_name not in names:
            names.append(table_name)

    accepted, rejected = filter_safe(names)
    return ExclusionSpec(tables=tuple(accepted), foreign_entries=tuple(foreign),
                         rejected=tuple(rejected))


def partition_tables(catalog_tables: List[str], exclusions: ExclusionSpec) -> TableSet:
    """카탈로그 목록을 included/excluded로 분할 (순수 함수)"""
    safe_tables, unsafe_tables = filter_safe(catalog_tables)
    if unsafe_tables:
        logger.warning(
            f"⚠️ 식별자 패턴에 맞지 않아 제외된 카탈로그 테이블: {', '.join(unsafe_tables)}"
        )

    all_tables = tuple(sorted(set(safe_tables)))
    excluded_set = set(exclusions.tables) & set(all_tables)

    excluded = tuple(t for t in all_tables if t in excluded_set)
    included = tuple(t for t in all_tables if t not in excluded_set)
    return TableSet(all_tables=all_tables, excluded_tables=excluded, included_tables=included)


class TableSetResolver:
    """소스 카탈로그 조회 + 제외 목록 적용 (터널 경유 커넥터 필요)"""

    def __init__(self, connector: MySQLConnector):
        self.connector = connector

    def resolve(self, source_schema: str, exclusion_spec: str) -> TableSet:
        """
        Args:
            source_schema: 소스 스키마명
            exclusion_spec: EXCLUDE_TABLES_DATA 원문

        Returns:
            TableSet
        """
        exclusions = parse_exclusions(exclusion_spec, source_schema)

        if exclusions.foreign_entries:
            logger.warning(
                f"⚠️ 다른 스키마를 지정한 제외 항목은 무시됩니다 (소스: {source_schema}): "
                f"{', '.join(exclusions.foreign_entries)}"
            )
        if exclusions.rejected:
            logger.warning(
                f"⚠️ 식별자 패턴에 맞지 않는 제외 항목 무시: {', '.join(exclusions.rejected)}"
            )

        catalog = self.connector.get_base_tables(source_schema)
        table_set = partition_tables(catalog, exclusions)

        missing = [t for t in exclusions.tables if t not in table_set.all_tables]
        if missing:
            logger.warning(f"⚠️ 소스에 없는 제외 테이블: {', '.join(missing)}")

        logger.info(
            f"테이블 {len(table_set.all_tables)}개 중 데이터 제외 {len(table_set.excluded_tables)}개"
            + (f": {', '.join(table_set.excluded_tables)}" if table_set.excluded_tables else "")
        )
        if table_set.all_excluded:
            logger.info("모든 테이블이 데이터 제외 대상 - 구조만 복사합니다")

        return table_set
