"""
MySQL Shell 기반 병렬 Export/Import
- util.dumpSchemas / util.dumpTables / util.loadDump (--js 단일 인터페이스)
- 멀티스레드 병렬 처리, 압축, 일관성 스냅샷
- DDL 전용 / 데이터 전용 / 일부 테이블 지원
- 실시간 stdout 파싱 (진행률)
"""
import json
import os
import re
import subprocess
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

from fastcopy.core.logger import get_logger

logger = get_logger('mysqlsh_exporter')

MYSQLSH = "mysqlsh"

# 작업 시간 제한 (대용량 스키마 고려 12시간)
MYSQLSH_TIMEOUT = 12 * 3600

# mysqlsh 로케일 경고 억제
_MYSQLSH_ENV = {'LC_ALL': 'C', 'LANG': 'C', 'LANGUAGE': 'C'}

# 예: "4 thds dumping - 27% (2.24M rows / ~8.23M rows), ..." / "1 thds loading | 92% (88.95 MB / 96.69 MB), ..."
_PERCENT_RE = re.compile(r'(?:dumping|loading)\D*?(\d{1,3})%')


@dataclass
class MySQLShellConfig:
    """MySQL Shell 연결 설정"""
    host: str
    port: int
    user: str
    password: str

    def get_uri(self) -> str:
        """mysqlsh URI 형식 반환 (사용자/비밀번호 percent-encoding)"""
        return f"{quote(self.user, safe='')}:{quote(self.password, safe='')}@{self.host}:{self.port}"

    def get_masked_uri(self) -> str:
        """비밀번호 마스킹된 URI"""
        return f"{self.user}:****@{self.host}:{self.port}"


class MySQLShellChecker:
    """MySQL Shell 설치 확인"""

    @staticmethod
    def check_installation() -> Tuple[bool, str, Optional[str]]:
        """
        mysqlsh 설치 확인

        Returns:
            (설치여부, 메시지, 버전)
        """
        try:
            result = subprocess.run(
                [MYSQLSH, "--version"],
                capture_output=True,
                text=True,
                timeout=10
            )

            if result.returncode == 0:
                version = result.stdout.strip()
                return True, version, version
            else:
                return False, "mysqlsh 실행 실패", None

        except FileNotFoundError:
            return False, "mysqlsh가 설치되어 있지 않습니다.", None
        except subprocess.TimeoutExpired:
            return False, "mysqlsh 버전 확인 시간 초과", None
        except OSError as e:
            return False, f"오류: {str(e)}", None

    @staticmethod
    def get_install_guide() -> str:
        """설치 가이드 반환"""
        return """
MySQL Shell 설치 방법:

[macOS]
brew install mysql-shell

[Linux (Ubuntu/Debian)]
sudo apt-get install mysql-shell

[Linux (RHEL/CentOS)]
sudo yum install mysql-shell

[기타]
https://dev.mysql.com/downloads/shell/
"""


def build_js_call(function: str, *args) -> str:
    """util.* 호출 JS 코드 생성 (인자는 JSON 리터럴로 직렬화)"""
    rendered = ", ".join(json.dumps(arg, ensure_ascii=False) for arg in args)
    return f"{function}({rendered});"


class _MySQLShellRunner:
    """mysqlsh --js -e 실행 공통부"""

    def __init__(self, config: MySQLShellConfig, timeout: int = MYSQLSH_TIMEOUT):
        self.config = config
        self.timeout = timeout

    def _build_command(self, js_code: str) -> List[str]:
        return [
            MYSQLSH,
            "--uri", self.config.get_uri(),
            "--js",
            "--quiet-start=2",
            "-e", js_code
        ]

    def _run_mysqlsh(
        self,
        js_code: str,
        progress_callback: Optional[Callable[[int], None]] = None
    ) -> Tuple[bool, str]:
        """
        mysqlsh 명령 실행 (실시간 stdout 파싱)

        Args:
            js_code: 실행할 JavaScript 코드
            progress_callback: 진행률 콜백 (percent)

        Returns:
            (성공여부, 메시지) - 실패 시 마지막 출력 몇 줄을 메시지로 반환
        """
        cmd = self._build_command(js_code)
        logger.debug(f"mysqlsh 실행: {self.config.get_masked_uri()} | {js_code}")

        env = dict(os.environ)
        env.update(_MYSQLSH_ENV)

        tail = deque(maxlen=20)
        last_percent = -1

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding='utf-8',
                errors='replace',
                bufsize=1,
                env=env
            )
        except FileNotFoundError:
            return False, "mysqlsh가 설치되어 있지 않습니다."
        except OSError as e:
            return False, str(e)

        # stdout 루프가 막혀 있어도 제한 시간이 지나면 프로세스를 종료
        timed_out = threading.Event()

        def _kill_on_timeout():
            timed_out.set()
            logger.error(f"❌ mysqlsh 제한 시간 초과 ({self.timeout}초) - 프로세스 종료")
            process.kill()

        watchdog = threading.Timer(self.timeout, _kill_on_timeout)
        watchdog.daemon = True
        watchdog.start()

        try:
            for line in process.stdout:
                stripped_line = line.strip()
                if not stripped_line:
                    continue

                tail.append(stripped_line)
                logger.debug(f"[mysqlsh] {stripped_line}")

                percent_match = _PERCENT_RE.search(stripped_line)
                if percent_match and progress_callback:
                    percent = int(percent_match.group(1))
                    # 진행률이 증가한 경우에만 콜백 호출 (중복 방지)
                    if percent > last_percent:
                        progress_callback(percent)
                        last_percent = percent

            rc = process.wait()
        except OSError as e:
            process.kill()
            return False, str(e)
        finally:
            watchdog.cancel()

        if timed_out.is_set():
            return False, f"작업 시간 초과 ({self.timeout}초)"

        if rc == 0:
            return True, "성공"

        error_msg = "\n".join(tail) or f"mysqlsh 종료 코드 {rc}"
        return False, error_msg


class MySQLShellExporter(_MySQLShellRunner):
    """MySQL Shell 기반 Export"""

    @staticmethod
    def _dump_options(threads: int, compression: str, consistent: Optional[bool],
                      ddl_only: bool, data_only: bool, all_tables: bool = False) -> Dict:
        options = {
            'threads': threads,
            'compression': compression,
            'showProgress': True,
        }
        if consistent is not None:
            options['consistent'] = consistent
        if ddl_only:
            options['ddlOnly'] = True
        if data_only:
            options['dataOnly'] = True
        if all_tables:
            options['all'] = True
        return options

    @staticmethod
    def _prepare_output_dir(output_dir: str) -> Optional[str]:
        """mysqlsh가 직접 디렉토리를 생성하도록 부모 디렉토리만 확인"""
        if os.path.exists(output_dir):
            return f"출력 디렉토리가 이미 존재합니다: {output_dir}"
        parent_dir = os.path.dirname(output_dir)
        if parent_dir and not os.path.exists(parent_dir):
            os.makedirs(parent_dir, exist_ok=True)
        return None

    def export_schema(
        self,
        schema: str,
        output_dir: str,
        threads: int = 4,
        compression: str = "zstd",
        consistent: bool = True,
        ddl_only: bool = False,
        progress_callback: Optional[Callable[[int], None]] = None
    ) -> Tuple[bool, str]:
        """
        전체 스키마 Export (util.dumpSchemas, CREATE SCHEMA 포함)

        Args:
            schema: 스키마명
            output_dir: 출력 디렉토리 (존재하지 않아야 함)
            threads: 병렬 스레드 수
            compression: 압축 방식 (zstd, gzip, none)
            consistent: 일관성 스냅샷 사용 여부
            ddl_only: 객체 정의만 Export
            progress_callback: 진행률 콜백 (percent)

        Returns:
            (성공여부, 메시지)
        """
        error = self._prepare_output_dir(output_dir)
        if error:
            return False, error

        options = self._dump_options(threads, compression, consistent, ddl_only, False)
        js_code = build_js_call("util.dumpSchemas", [schema], output_dir, options)
        return self._run_mysqlsh(js_code, progress_callback)

    def export_tables(
        self,
        schema: str,
        tables: Sequence[str],
        output_dir: str,
        threads: int = 4,
        compression: str = "zstd",
        consistent: Optional[bool] = None,
        ddl_only: bool = False,
        data_only: bool = False,
        progress_callback: Optional[Callable[[int], None]] = None
    ) -> Tuple[bool, str]:
        """
        테이블 단위 Export (util.dumpTables)

        tables가 비어 있으면 스키마의 모든 테이블/뷰를 대상으로 합니다 (all: true).
        dumpTables 결과는 로드 시 schema 옵션으로 다른 이름의 스키마에 넣을 수 있습니다.

        Args:
            schema: 스키마명
            tables: 내보낼 테이블 목록 (빈 목록 → 전체)
            output_dir: 출력 디렉토리 (존재하지 않아야 함)
            threads: 병렬 스레드 수
            compression: 압축 방식
            consistent: 일관성 스냅샷 (None이면 mysqlsh 기본값)
            ddl_only: 객체 정의만 Export
            data_only: 데이터만 Export
            progress_callback: 진행률 콜백 (percent)

        Returns:
            (성공여부, 메시지)
        """
        error = self._prepare_output_dir(output_dir)
        if error:
            return False, error

        options = self._dump_options(threads, compression, consistent, ddl_only, data_only,
                                     all_tables=not tables)
        js_code = build_js_call("util.dumpTables", schema, list(tables), output_dir, options)
        return self._run_mysqlsh(js_code, progress_callback)


class MySQLShellImporter(_MySQLShellRunner):
    """MySQL Shell 기반 Import"""

    def import_dump(
        self,
        input_dir: str,
        threads: int = 4,
        defer_indexes: str = "all",
        ignore_existing: bool = True,
        target_schema: Optional[str] = None,
        progress_callback: Optional[Callable[[int], None]] = None
    ) -> Tuple[bool, str]:
        """
        Dump Import (util.loadDump)

        Args:
            input_dir: Dump 디렉토리 경로
            threads: 병렬 스레드 수
            defer_indexes: 인덱스 생성 지연 (none, fulltext, secondary, all)
            ignore_existing: 기존 객체 존재 시 건너뛰기 (False면 오류)
            target_schema: 대상 스키마 (dumpTables 결과에만 사용, None이면 원본 스키마)
            progress_callback: 진행률 콜백 (percent)

        Returns:
            (성공여부, 메시지)
        """
        if not os.path.isdir(input_dir):
            return False, f"Dump 디렉토리를 찾을 수 없습니다: {input_dir}"

        options = {
            'threads': threads,
            'deferTableIndexes': defer_indexes,
            'ignoreExistingObjects': ignore_existing,
            'showProgress': True,
        }
        if target_schema:
            options['schema'] = target_schema

        js_code = build_js_call("util.loadDump", input_dir, options)
        return self._run_mysqlsh(js_code, progress_callback)
