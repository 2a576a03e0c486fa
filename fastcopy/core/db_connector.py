"""
MySQL 데이터베이스 연결 클래스
- 소스(터널 경유) / 타겟 양쪽에 동일하게 사용
- 조회 실패는 빈 결과로 숨기지 않고 pymysql.Error 그대로 전파
"""
import pymysql
from typing import List, Dict, Any, Optional, Tuple

from fastcopy.core.logger import get_logger

logger = get_logger('db_connector')


class MySQLConnector:
    """MySQL 데이터베이스 연결 및 쿼리 실행 클래스"""

    def __init__(self, host: str, port: int, user: str, password: str,
                 database: str = None, connect_timeout: int = 10):
        """
        Args:
            host: MySQL 호스트
            port: MySQL 포트
            user: MySQL 사용자
            password: MySQL 비밀번호
            database: 기본 데이터베이스
            connect_timeout: 연결 제한 시간 (초)
        """
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.connect_timeout = connect_timeout
        self.connection: Optional[pymysql.Connection] = None

    def connect(self) -> Tuple[bool, str]:
        """데이터베이스 연결"""
        try:
            self.connection = pymysql.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                database=self.database,
                charset='utf8mb4',
                cursorclass=pymysql.cursors.DictCursor,
                connect_timeout=self.connect_timeout,
                autocommit=True,
            )
            return True, "연결 성공"
        except pymysql.Error as e:
            error_code = e.args[0] if e.args else 0
            error_msg = e.args[1] if len(e.args) > 1 else str(e)
            return False, f"MySQL 오류 ({error_code}): {error_msg}"
        except OSError as e:
            return False, f"연결 오류: {str(e)}"

    def disconnect(self):
        """연결 종료"""
        if self.connection:
            try:
                self.connection.close()
            except pymysql.Error:
                pass
            finally:
                self.connection = None

    def is_connected(self) -> bool:
        """연결 상태 확인"""
        if self.connection:
            try:
                self.connection.ping(reconnect=False)
                return True
            except pymysql.Error:
                return False
        return False

    def _require_connection(self) -> pymysql.Connection:
        if not self.connection:
            raise pymysql.err.InterfaceError(0, f"연결되지 않음: {self.host}:{self.port}")
        return self.connection

    def execute(self, query: str, params: tuple = None) -> List[Dict[str, Any]]:
        """쿼리 실행 및 결과 반환 (오류는 호출자에게 전파)"""
        connection = self._require_connection()
        try:
            with connection.cursor() as cursor:
                cursor.execute(query, params)
                return list(cursor.fetchall())
        except pymysql.Error as e:
            logger.debug(f"쿼리 실행 오류: {e} | {query.strip()[:200]}")
            raise

    def fetch_value(self, query: str, params: tuple = None) -> Any:
        """첫 행 첫 컬럼 값 반환 (결과 없으면 None)"""
        rows = self.execute(query, params)
        if not rows:
            return None
        return list(rows[0].values())[0]

    def get_base_tables(self, schema: str) -> List[str]:
        """스키마의 BASE TABLE 목록 (뷰 제외, 이름순)"""
        query = """
        SELECT TABLE_NAME
        FROM INFORMATION_SCHEMA.TABLES
        WHERE TABLE_SCHEMA = %s
          AND TABLE_TYPE = 'BASE TABLE'
        ORDER BY TABLE_NAME
        """
        rows = self.execute(query, (schema,))
        return [row['TABLE_NAME'] for row in rows]
