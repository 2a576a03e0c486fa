"""
타겟 서버 준비/복원
- util.loadDump는 LOAD DATA LOCAL INFILE을 사용하므로 local_infile=ON 필요
- DROP_TARGET_DATABASE_BEFORE_LOAD: 타겟 스키마 삭제 (이름 변경 시에만 charset/collation으로 재생성)
- 권한 부족으로 local_infile을 바꾸지 못하면 경고만 남기고 계속 진행
"""
from typing import List, Optional

import pymysql

from fastcopy.core.config import TargetConfig, TransferOptions
from fastcopy.core.db_connector import MySQLConnector
from fastcopy.core.errors import TargetPreparationError
from fastcopy.core.identifiers import quote_identifier
from fastcopy.core.logger import get_logger

logger = get_logger('target_preparer')


def build_create_database(schema: str, charset: str = '', collation: str = '') -> str:
    """CREATE DATABASE 문 생성 (charset/collation은 설정 검증을 통과한 값)"""
    ddl = f"CREATE DATABASE {quote_identifier(schema)}"
    if charset:
        ddl += f" CHARACTER SET {charset}"
    if collation:
        ddl += f" COLLATE {collation}"
    return ddl


class TargetPreparer:
    """타겟 스키마/서버 설정 준비"""

    def __init__(self, connector: MySQLConnector, target: TargetConfig,
                 options: TransferOptions, warnings: Optional[List[str]] = None):
        self.connector = connector
        self.target = target
        self.options = options
        self.warnings = warnings if warnings is not None else []
        self._enabled_by_us = False

    def _warn(self, message: str):
        logger.warning(f"⚠️ {message}")
        self.warnings.append(message)

    def read_local_infile(self) -> int:
        """@@GLOBAL.local_infile 조회 (조회 실패 시 0으로 간주)"""
        try:
            value = self.connector.fetch_value("SELECT @@GLOBAL.local_infile AS local_infile")
        except pymysql.Error as e:
            logger.debug(f"local_infile 조회 실패: {e}")
            return 0
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    def prepare(self, schema: str, rename: bool) -> int:
        """로드 전 준비

        Args:
            schema: 실제 타겟 스키마명
            rename: 소스와 타겟 스키마명이 다른지 여부

        Returns:
            원래 local_infile 값 (restore에 전달)

        Raises:
            TargetPreparationError: DROP/CREATE 실패
        """
        original = self.read_local_infile()
        if original != 1:
            logger.info(f"local_infile=ON 설정 (기존값 {original})")
            try:
                self.connector.execute("SET GLOBAL local_infile = ON")
                self._enabled_by_us = True
            except pymysql.Error as e:
                self._warn(f"SET GLOBAL local_infile=ON 실패 (권한 확인 필요): {e}")

        if self.options.drop_before_load:
            self._reset_schema(schema, rename)

        return original

    def _reset_schema(self, schema: str, rename: bool):
        quoted = quote_identifier(schema)
        try:
            if rename:
                logger.info(f"🗑️ 타겟 스키마 {quoted} 삭제 후 재생성")
                self.connector.execute(f"DROP DATABASE IF EXISTS {quoted}")
                self.connector.execute(
                    build_create_database(schema, self.target.charset, self.target.collation)
                )
            else:
                # 스키마 덤프에 CREATE DATABASE가 포함되어 있으므로 삭제만
                logger.info(f"🗑️ 타겟 스키마 {quoted} 삭제")
                self.connector.execute(f"DROP DATABASE IF EXISTS {quoted}")
        except pymysql.Error as e:
            raise TargetPreparationError(f"타겟 스키마 {quoted} 초기화 실패: {e}") from e

    def restore(self, original: int):
        """local_infile 원복 (실패는 경고만, 로드는 이미 완료된 상태)"""
        if original == 1 or not self._enabled_by_us:
            return

        logger.info("local_infile=OFF 복원")
        if not self.connector.is_connected():
            # 장시간 로드 중 wait_timeout으로 끊긴 경우
            self.connector.connect()
        try:
            self.connector.execute("SET GLOBAL local_infile = OFF")
            self._enabled_by_us = False
        except pymysql.Error as e:
            self._warn(f"SET GLOBAL local_infile=OFF 복원 실패: {e}")

    def count_tables(self, schema: str) -> int:
        """타겟 스키마의 BASE TABLE 수"""
        return len(self.connector.get_base_tables(schema))
