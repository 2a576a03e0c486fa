"""
덤프/로드 실행기

계획(DumpPlan)의 각 단계를 순서대로 mysqlsh에 위임합니다.
- 단계 실패 시 즉시 예외 → 남은 단계 중단 (재시도/자동 계속 없음)
- 2단계 계획: DDL 로드 성공 + 타겟에 테이블 생성 확인 후에만 데이터 로드
- 포함 테이블이 없으면 데이터 덤프/로드 자체를 생략
"""
import os
from enum import Enum
from typing import Callable, Optional, Sequence

from fastcopy.core.config import TransferOptions
from fastcopy.core.errors import DumpExportError, DumpImportError
from fastcopy.core.logger import get_logger
from fastcopy.core.migration_planner import DumpPlan, SinglePhasePlan, TwoPhasePlan
from fastcopy.exporters.mysqlsh_exporter import MySQLShellExporter, MySQLShellImporter

logger = get_logger('dump_load_executor')


class DumpPhase(Enum):
    """덤프/로드 단계"""
    FULL = "full"
    DDL = "ddl"
    DATA = "data"


class DumpLoadExecutor:
    """mysqlsh Export/Import를 계획 순서대로 실행"""

    def __init__(self, exporter: Optional[MySQLShellExporter],
                 importer: Optional[MySQLShellImporter],
                 options: TransferOptions):
        """
        Args:
            exporter: 소스(터널 경유) Export 실행기
            importer: 타겟 Import 실행기
            options: 스레드/압축/인덱스 지연 등 전송 옵션
        """
        self.exporter = exporter
        self.importer = importer
        self.options = options

    @staticmethod
    def _progress_logger(label: str) -> Callable[[int], None]:
        """10% 단위로 진행률 로그"""
        state = {'last': -10}

        def callback(percent: int):
            if percent >= state['last'] + 10 or percent == 100:
                state['last'] = percent
                logger.info(f"  └─ {label}: {percent}%")

        return callback

    # ------------------------------------------------------------------
    # 단일 단계
    # ------------------------------------------------------------------
    def dump(self, phase: DumpPhase, schema: str, tables: Sequence[str],
             output_dir: str, rename: bool = False):
        """덤프 단계 하나 실행

        Args:
            phase: FULL / DDL / DATA
            schema: 소스 스키마
            tables: DATA 단계의 대상 테이블 (FULL/DDL에서는 무시)
            output_dir: 출력 디렉토리
            rename: 로드 시 이름 변경 예정 여부 (True면 dumpTables 형식으로 덤프)

        Raises:
            DumpExportError
        """
        opts = self.options
        label = f"덤프[{phase.value}] {schema}"
        progress = self._progress_logger(label)

        if phase == DumpPhase.DATA:
            if not tables:
                raise DumpExportError("데이터 덤프 대상 테이블이 없습니다")
            logger.info(f"📦 데이터 덤프 시작: {len(tables)}개 테이블 -> {output_dir}")
            success, msg = self.exporter.export_tables(
                schema, list(tables), output_dir,
                threads=opts.dump_threads,
                compression=opts.compression,
                data_only=True,
                progress_callback=progress,
            )
        elif rename:
            # schema 옵션으로 로드하려면 dumpTables 형식이어야 함
            logger.info(f"📦 {phase.value} 덤프 시작 (전체 테이블, 이름 변경용): '{schema}' -> {output_dir}")
            success, msg = self.exporter.export_tables(
                schema, [], output_dir,
                threads=opts.dump_threads,
                compression=opts.compression,
                consistent=True,
                ddl_only=phase == DumpPhase.DDL,
                progress_callback=progress,
            )
        else:
            logger.info(f"📦 {phase.value} 덤프 시작 (스키마 '{schema}') -> {output_dir}")
            success, msg = self.exporter.export_schema(
                schema, output_dir,
                threads=opts.dump_threads,
                compression=opts.compression,
                consistent=True,
                ddl_only=phase == DumpPhase.DDL,
                progress_callback=progress,
            )

        if not success:
            raise DumpExportError(f"{label} 실패: {msg}")
        if not os.path.isdir(output_dir):
            raise DumpExportError(f"덤프는 끝났지만 디렉토리를 찾을 수 없습니다: {output_dir}")
        logger.info(f"✅ {phase.value} 덤프 완료: {output_dir}")

    def load(self, phase: DumpPhase, input_dir: str, rename_to: Optional[str] = None):
        """로드 단계 하나 실행

        Raises:
            DumpImportError
        """
        opts = self.options
        target_desc = f" (이름 변경: '{rename_to}')" if rename_to else ""
        label = f"로드[{phase.value}]"
        logger.info(f"📥 {phase.value} 로드 시작{target_desc}: {input_dir}")

        success, msg = self.importer.import_dump(
            input_dir,
            threads=opts.load_threads,
            defer_indexes=opts.defer_indexes,
            ignore_existing=opts.ignore_existing,
            target_schema=rename_to,
            progress_callback=self._progress_logger(label),
        )
        if not success:
            raise DumpImportError(f"{label} 실패 ({input_dir}): {msg}")
        logger.info(f"✅ {phase.value} 로드 완료")

    # ------------------------------------------------------------------
    # 계획 단위
    # ------------------------------------------------------------------
    def run_dumps(self, plan: DumpPlan, schema: str):
        """계획의 덤프 단계를 순서대로 실행"""
        if isinstance(plan, SinglePhasePlan):
            self.dump(DumpPhase.FULL, schema, (), plan.dump_dir, rename=plan.is_rename)
            return

        if isinstance(plan, TwoPhasePlan):
            self.dump(DumpPhase.DDL, schema, (), plan.ddl_dir, rename=plan.is_rename)
            if plan.has_data_phase:
                self.dump(DumpPhase.DATA, schema, plan.included_tables, plan.data_dir)
            else:
                logger.info("데이터 덤프 생략 (모든 테이블이 제외 대상)")
            return

        raise TypeError(f"알 수 없는 계획 형식: {plan!r}")

    def run_loads(self, plan: DumpPlan, table_counter: Callable[[], int]):
        """계획의 로드 단계를 순서대로 실행

        Args:
            plan: 덤프 계획
            table_counter: 타겟 스키마의 BASE TABLE 수 조회 함수 (DDL 로드 검증용)
        """
        if isinstance(plan, SinglePhasePlan):
            self.load(DumpPhase.FULL, plan.dump_dir, plan.rename_to)
            return

        if isinstance(plan, TwoPhasePlan):
            self.load(DumpPhase.DDL, plan.ddl_dir, plan.rename_to)

            created = table_counter()
            if created <= 0:
                raise DumpImportError(
                    "DDL 로드 후 타겟 스키마에 테이블이 없습니다 - 데이터 로드를 중단합니다"
                )
            logger.info(f"DDL 로드 확인: 타겟 테이블 {created}개")

            if plan.has_data_phase:
                self.load(DumpPhase.DATA, plan.data_dir, plan.rename_to)
            else:
                logger.info("데이터 로드 생략 (구조만 복사)")
            return

        raise TypeError(f"알 수 없는 계획 형식: {plan!r}")
