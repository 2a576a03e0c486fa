"""
마이그레이션 오케스트레이터

한 번의 실행을 처음부터 끝까지 순차 진행합니다.

    사전 검사(mysqlsh, 타겟 엔드포인트) → 포트 할당 → SSH 터널
    → 테이블 분할 → 계획 → 덤프 → (터널 종료)
    → 타겟 준비 → 로드 → local_infile 복원 → 덤프 정리

- 터널은 소스 접근 구간을 감싸는 with 블록으로 모든 종료 경로에서 닫힘
- 치명적 오류는 즉시 중단, 롤백 없음. 남은 덤프/부분 로드 상태는 로그로 보고
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Tuple

import pymysql

from fastcopy.core.cleanup_guard import CleanupGuard, PurgeReport
from fastcopy.core.config import MigrationConfig
from fastcopy.core.constants import TIMESTAMP_FORMAT
from fastcopy.core.db_connector import MySQLConnector
from fastcopy.core.dump_load_executor import DumpLoadExecutor
from fastcopy.core.errors import (
    ConfigError, ConnectivityError, DumpExportError, DumpImportError, FastCopyError,
)
from fastcopy.core.logger import get_logger
from fastcopy.core.migration_planner import DumpPlan, PlanKind, plan_migration
from fastcopy.core.port_allocator import find_free_port
from fastcopy.core.table_resolver import TableSet, TableSetResolver
from fastcopy.core.target_endpoint import TargetEndpointResolver
from fastcopy.core.target_preparer import TargetPreparer
from fastcopy.core.tunnel_engine import TunnelHandle, TunnelManager
from fastcopy.exporters.mysqlsh_exporter import (
    MySQLShellChecker, MySQLShellConfig, MySQLShellExporter, MySQLShellImporter,
)

logger = get_logger('orchestrator')


class RunStage:
    """실행 단계 (실패 시 부분 상태 보고용)"""
    PREFLIGHT = "preflight"
    TUNNEL = "tunnel"
    DUMP = "dump"
    PREPARE = "prepare"
    LOAD = "load"
    CLEANUP = "cleanup"
    DONE = "done"


@dataclass
class RunResult:
    """실행 결과 요약"""
    source: str
    target: str
    timestamp: str
    plan_kind: PlanKind
    directories: Tuple[str, ...]
    table_set: TableSet
    purge: PurgeReport
    warnings: List[str] = field(default_factory=list)


class MigrationOrchestrator:
    """원격 소스 → 로컬 타겟 복제 실행"""

    def __init__(self, config: MigrationConfig, *,
                 tunnel_manager: Optional[TunnelManager] = None,
                 endpoint_resolver: Optional[TargetEndpointResolver] = None,
                 connector_factory: Callable[..., MySQLConnector] = MySQLConnector,
                 exporter_factory: Callable[[MySQLShellConfig], MySQLShellExporter] = MySQLShellExporter,
                 importer_factory: Callable[[MySQLShellConfig], MySQLShellImporter] = MySQLShellImporter,
                 port_finder: Callable[[], int] = find_free_port,
                 shell_checker: Callable = MySQLShellChecker.check_installation,
                 clock: Callable[[], datetime] = datetime.now):
        self.config = config
        self.tunnel_manager = tunnel_manager or TunnelManager()
        self.endpoint_resolver = endpoint_resolver or TargetEndpointResolver()
        self.connector_factory = connector_factory
        self.exporter_factory = exporter_factory
        self.importer_factory = importer_factory
        self.port_finder = port_finder
        self.shell_checker = shell_checker
        self.clock = clock

        self.stage = RunStage.PREFLIGHT
        self.plan: Optional[DumpPlan] = None
        self.warnings: List[str] = []

    # ------------------------------------------------------------------
    # 사전 검사
    # ------------------------------------------------------------------
    def _preflight(self) -> Tuple[str, int]:
        installed, msg, _ = self.shell_checker()
        if not installed:
            raise ConfigError(message=f"{msg}\n{MySQLShellChecker.get_install_guide()}")
        logger.debug(f"mysqlsh: {msg}")

        host, port = self.endpoint_resolver.resolve(self.config.target)
        self.endpoint_resolver.check_reachable(host, port)
        return host, port

    def _open_connector(self, host: str, port: int, user: str, password: str) -> MySQLConnector:
        connector = self.connector_factory(host, port, user, password)
        success, msg = connector.connect()
        if not success:
            raise ConnectivityError(f"MySQL 접속 실패 ({host}:{port}): {msg}")
        return connector

    # ------------------------------------------------------------------
    # 소스 구간 (터널 필요)
    # ------------------------------------------------------------------
    def _source_phase(self, handle: TunnelHandle, timestamp: str, target_schema: str,
                      rename: bool) -> TableSet:
        source = self.config.source
        options = self.config.options

        connector = self._open_connector(handle.local_host, handle.local_port,
                                         source.db_user, source.db_password)
        try:
            table_set = TableSetResolver(connector).resolve(source.schema, options.exclude_tables_data)
        except pymysql.Error as e:
            raise ConnectivityError(f"소스 테이블 목록 조회 실패 ('{source.schema}'): {e}") from e
        finally:
            connector.disconnect()

        self.plan = plan_migration(
            table_set.has_exclusions, rename,
            dump_base=options.dump_base,
            source=source.schema,
            timestamp=timestamp,
            target_schema=target_schema,
            included_tables=table_set.included_tables,
        )
        logger.info(f"계획: {self.plan.kind.value} ({', '.join(self.plan.directories)})")

        self.stage = RunStage.DUMP
        shell_config = MySQLShellConfig(handle.local_host, handle.local_port,
                                        source.db_user, source.db_password)
        executor = DumpLoadExecutor(self.exporter_factory(shell_config), None, options)
        try:
            executor.run_dumps(self.plan, source.schema)
        except DumpExportError as e:
            if handle.lost:
                raise ConnectivityError(f"덤프 중 SSH 터널이 끊어졌습니다 ({handle.ssh_endpoint}): {e}") from e
            raise
        return table_set

    # ------------------------------------------------------------------
    # 타겟 구간
    # ------------------------------------------------------------------
    def _target_phase(self, host: str, port: int, target_schema: str, rename: bool):
        target = self.config.target
        options = self.config.options

        self.stage = RunStage.PREPARE
        connector = self._open_connector(host, port, target.db_user, target.db_password)
        try:
            preparer = TargetPreparer(connector, target, options, warnings=self.warnings)
            original = preparer.prepare(target_schema, rename)
            try:
                self.stage = RunStage.LOAD
                shell_config = MySQLShellConfig(host, port, target.db_user, target.db_password)
                executor = DumpLoadExecutor(None, self.importer_factory(shell_config), options)
                executor.run_loads(self.plan, lambda: self._count_loaded_tables(preparer, target_schema))
            finally:
                preparer.restore(original)
        finally:
            connector.disconnect()

    @staticmethod
    def _count_loaded_tables(preparer: TargetPreparer, target_schema: str) -> int:
        """DDL 로드 확인용 테이블 수 (조회 실패는 로드 실패로 처리)"""
        try:
            return preparer.count_tables(target_schema)
        except pymysql.Error as e:
            raise DumpImportError(f"DDL 로드 확인 조회 실패 ('{target_schema}'): {e}") from e

    def _report_partial_state(self, error: BaseException, target_schema: str):
        """실패 시 남은 상태 보고 (롤백 없음)"""
        logger.error(f"❌ 실행 실패 (단계: {self.stage}): {error}")
        if self.plan is not None and self.stage in (RunStage.DUMP, RunStage.PREPARE, RunStage.LOAD):
            logger.error(f"  └─ 덤프 디렉토리는 확인용으로 남겨둡니다: {', '.join(self.plan.directories)}")
        if self.stage == RunStage.LOAD:
            logger.error(
                f"  └─ 타겟 스키마 '{target_schema}'가 부분적으로 로드되었을 수 있습니다 (자동 롤백 없음)"
            )

    # ------------------------------------------------------------------
    # 실행
    # ------------------------------------------------------------------
    def run(self) -> RunResult:
        """
        Returns:
            RunResult

        Raises:
            FastCopyError: 치명적 오류 (ConfigError, ConnectivityError, DumpExportError 등)
        """
        config = self.config
        timestamp = self.clock().strftime(TIMESTAMP_FORMAT)
        source_schema = config.source.schema
        target_schema = config.target.effective_schema(source_schema, timestamp)
        rename = source_schema != target_schema

        logger.info(
            f"FastCopy 시작: '{source_schema}' ({config.source.describe()}) -> '{target_schema}'"
        )

        try:
            host, port = self._preflight()

            self.stage = RunStage.TUNNEL
            local_port = self.port_finder()
            with self.tunnel_manager.tunnel(config.source, local_port) as handle:
                table_set = self._source_phase(handle, timestamp, target_schema, rename)

            self._target_phase(host, port, target_schema, rename)

            self.stage = RunStage.CLEANUP
            guard = CleanupGuard(source_schema, config.options.dump_base, keep=config.options.keep_dump)
            purge = guard.purge(self.plan.directories)
            self.warnings.extend(purge.warnings)
        except (FastCopyError, KeyboardInterrupt) as e:
            self._report_partial_state(e, target_schema)
            raise

        self.stage = RunStage.DONE
        logger.info(f"✅ 완료. 소스 '{source_schema}' -> 타겟 '{target_schema}'")
        if self.warnings:
            logger.warning(f"경고 {len(self.warnings)}건: {' / '.join(self.warnings)}")

        return RunResult(
            source=source_schema,
            target=target_schema,
            timestamp=timestamp,
            plan_kind=self.plan.kind,
            directories=self.plan.directories,
            table_set=table_set,
            purge=purge,
            warnings=list(self.warnings),
        )
