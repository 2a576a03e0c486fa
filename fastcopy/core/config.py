"""
마이그레이션 설정

KEY=VALUE 형식 설정 파일(server.cfg)을 읽어 불변 MigrationConfig 하나로 만듭니다.
- 필수 항목 누락/잘못된 값은 한 번에 모아 ConfigError로 보고
- 생성 후에는 변경 불가 (frozen dataclass), 각 컴포넌트에 명시적으로 전달
"""
import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from dotenv import dotenv_values

from fastcopy.core.constants import (
    DEFAULT_MYSQL_PORT, DEFAULT_SSH_PORT, DEFAULT_LOCAL_HOST, DEFAULT_DUMP_BASE,
    DEFAULT_ALIVE_INTERVAL, DEFAULT_ALIVE_COUNT_MAX,
    COMPRESSION_CODECS, DEFER_INDEX_POLICIES, HOST_KEY_POLICIES,
)
from fastcopy.core.errors import ConfigError
from fastcopy.core.identifiers import is_safe_identifier
from fastcopy.core.logger import get_logger

logger = get_logger('config')

_TRUE_VALUES = ('true', 'yes', '1', 'on')
_FALSE_VALUES = ('false', 'no', '0', 'off')


@dataclass(frozen=True)
class SourceConfig:
    """원격(소스) 접속 정보"""
    ssh_host: str
    ssh_user: str
    db_user: str
    db_password: str
    schema: str
    ssh_port: int = DEFAULT_SSH_PORT
    ssh_identity_file: str = ''
    host_key_policy: str = 'yes'
    alive_interval: int = DEFAULT_ALIVE_INTERVAL
    alive_count_max: int = DEFAULT_ALIVE_COUNT_MAX
    db_host: str = DEFAULT_LOCAL_HOST
    db_port: int = DEFAULT_MYSQL_PORT

    def describe(self) -> str:
        return f"{self.ssh_user}@{self.ssh_host}:{self.ssh_port} -> {self.db_host}:{self.db_port}"


@dataclass(frozen=True)
class TargetConfig:
    """로컬(타겟) 접속 정보"""
    db_user: str
    db_password: str
    schema: str = ''
    schema_from_timestamp: bool = False
    container: str = ''
    db_host: str = DEFAULT_LOCAL_HOST
    db_port: Optional[int] = None
    charset: str = ''
    collation: str = ''

    def effective_schema(self, source_schema: str, timestamp: str) -> str:
        """실제 로드에 사용할 스키마명 ("{source}_{timestamp}" 파생 포함)"""
        if self.schema_from_timestamp:
            return f"{source_schema}_{timestamp}"
        return self.schema


@dataclass(frozen=True)
class TransferOptions:
    """덤프/로드 성능 및 동작 옵션"""
    dump_threads: int
    load_threads: int
    compression: str = 'zstd'
    defer_indexes: str = 'all'
    ignore_existing: bool = True
    keep_dump: bool = False
    drop_before_load: bool = True
    dump_base: str = DEFAULT_DUMP_BASE
    exclude_tables_data: str = ''


@dataclass(frozen=True)
class MigrationConfig:
    """한 번의 실행에 필요한 전체 설정 (불변)"""
    source: SourceConfig
    target: TargetConfig
    options: TransferOptions

    @classmethod
    def from_mapping(cls, values: Mapping[str, Optional[str]],
                     cpu_count: Optional[int] = None) -> 'MigrationConfig':
        """KEY=VALUE 매핑에서 설정 생성 (누락/오류 일괄 검증)"""
        reader = _ValueReader(values)
        threads_default = cpu_count or os.cpu_count() or 4

        # 필수 항목
        ssh_host = reader.required('REMOTE_HOST')
        ssh_user = reader.required('REMOTE_SSH_USER')
        remote_db_user = reader.required('REMOTE_DB_USER')
        remote_db_password = reader.required('REMOTE_DB_PASSWORD', allow_empty=True)
        source_schema = reader.required('SOURCE_DB_NAME')
        target_db_user = reader.required('TARGET_DB_USER')
        target_db_password = reader.required('TARGET_DB_PASSWORD', allow_empty=True)

        schema_from_timestamp = reader.boolean('TARGET_DB_NAME_TIMESTAMP', False)
        if schema_from_timestamp:
            target_schema = reader.optional('TARGET_DB_NAME')
        else:
            target_schema = reader.required('TARGET_DB_NAME')

        target_db_port = reader.integer('TARGET_DB_PORT', None)
        if target_db_port is None:
            container = reader.required('TARGET_DOCKER_CONTAINER')
        else:
            container = reader.optional('TARGET_DOCKER_CONTAINER')

        # 선택 항목
        source = SourceConfig(
            ssh_host=ssh_host,
            ssh_user=ssh_user,
            db_user=remote_db_user,
            db_password=remote_db_password,
            schema=source_schema,
            ssh_port=reader.integer('SSH_PORT', DEFAULT_SSH_PORT),
            ssh_identity_file=reader.optional('SSH_IDENTITY_FILE'),
            host_key_policy=reader.choice('SSH_STRICT_HOST_KEY_CHECKING', 'yes', HOST_KEY_POLICIES),
            alive_interval=reader.integer('SSH_SERVER_ALIVE_INTERVAL', DEFAULT_ALIVE_INTERVAL),
            alive_count_max=reader.integer('SSH_SERVER_ALIVE_COUNT_MAX', DEFAULT_ALIVE_COUNT_MAX),
            db_host=reader.optional('REMOTE_DB_HOST', DEFAULT_LOCAL_HOST),
            db_port=reader.integer('REMOTE_DB_PORT', DEFAULT_MYSQL_PORT),
        )
        target = TargetConfig(
            db_user=target_db_user,
            db_password=target_db_password,
            schema=target_schema,
            schema_from_timestamp=schema_from_timestamp,
            container=container,
            db_host=reader.optional('TARGET_DB_HOST', DEFAULT_LOCAL_HOST),
            db_port=target_db_port,
            charset=reader.optional('TARGET_DB_CHARSET'),
            collation=reader.optional('TARGET_DB_COLLATION'),
        )
        options = TransferOptions(
            dump_threads=reader.integer('DUMP_THREADS', threads_default),
            load_threads=reader.integer('LOAD_THREADS', threads_default),
            compression=reader.choice('DUMP_COMPRESSION', 'zstd', COMPRESSION_CODECS),
            defer_indexes=reader.choice('DEFER_INDEXES', 'all', DEFER_INDEX_POLICIES),
            ignore_existing=reader.boolean('IGNORE_EXISTING', True),
            keep_dump=reader.boolean('KEEP_DUMP', False),
            drop_before_load=reader.boolean('DROP_TARGET_DATABASE_BEFORE_LOAD', True),
            dump_base=reader.optional('LOCAL_DUMP_BASE', DEFAULT_DUMP_BASE),
            exclude_tables_data=reader.optional('EXCLUDE_TABLES_DATA'),
        )

        # 식별자 검증 (SQL/mysqlsh 문장에 들어가는 이름)
        reader.identifier('SOURCE_DB_NAME', source.schema)
        if target.schema:
            reader.identifier('TARGET_DB_NAME', target.schema)
        if target.charset:
            reader.identifier('TARGET_DB_CHARSET', target.charset)
        if target.collation:
            reader.identifier('TARGET_DB_COLLATION', target.collation)
        for key in ('SSH_PORT', 'REMOTE_DB_PORT', 'DUMP_THREADS', 'LOAD_THREADS',
                    'SSH_SERVER_ALIVE_INTERVAL', 'SSH_SERVER_ALIVE_COUNT_MAX', 'TARGET_DB_PORT'):
            reader.positive(key)

        reader.raise_if_errors()
        return cls(source=source, target=target, options=options)


def load_config(path: str, cpu_count: Optional[int] = None) -> MigrationConfig:
    """설정 파일 로드

    Args:
        path: KEY=VALUE 형식 설정 파일 경로
        cpu_count: 스레드 기본값 계산용 CPU 수 (None이면 자동 감지)
    """
    if not path or not os.path.isfile(path):
        raise ConfigError(message=f"설정 파일을 찾을 수 없습니다: {path}")

    values = dotenv_values(path)
    logger.debug(f"설정 파일 로드: {path} ({len(values)}개 항목)")
    return MigrationConfig.from_mapping(values, cpu_count=cpu_count)


class _ValueReader:
    """매핑 조회 + 오류 수집기"""

    def __init__(self, values: Mapping[str, Optional[str]]):
        self._values: Dict[str, str] = {
            k: (v or '').strip() for k, v in values.items()
        }
        self.missing: List[str] = []
        self.invalid: List[str] = []
        self._parsed: Dict[str, object] = {}

    def _raw(self, key: str) -> str:
        return self._values.get(key, '')

    def required(self, key: str, allow_empty: bool = False) -> str:
        if key not in self._values or (not allow_empty and not self._values[key]):
            self.missing.append(key)
            return ''
        return self._values[key]

    def optional(self, key: str, default: str = '') -> str:
        return self._raw(key) or default

    def integer(self, key: str, default: Optional[int]) -> Optional[int]:
        raw = self._raw(key)
        if not raw:
            return default
        try:
            value = int(raw)
        except ValueError:
            self.invalid.append(f"{key}={raw!r} (정수 필요)")
            return default
        self._parsed[key] = value
        return value

    def positive(self, key: str):
        value = self._parsed.get(key)
        if isinstance(value, int) and value <= 0:
            self.invalid.append(f"{key}={value} (양수 필요)")

    def boolean(self, key: str, default: bool) -> bool:
        raw = self._raw(key).lower()
        if not raw:
            return default
        if raw in _TRUE_VALUES:
            return True
        if raw in _FALSE_VALUES:
            return False
        self.invalid.append(f"{key}={raw!r} (true/false 필요)")
        return default

    def choice(self, key: str, default: str, choices) -> str:
        raw = self._raw(key).lower()
        if not raw:
            return default
        if raw not in choices:
            self.invalid.append(f"{key}={raw!r} ({'|'.join(choices)} 중 하나)")
            return default
        return raw

    def identifier(self, key: str, value: str):
        if value and not is_safe_identifier(value):
            self.invalid.append(f"{key}={value!r} (영문/숫자/_/$ 만 허용)")

    def raise_if_errors(self):
        if self.missing or self.invalid:
            raise ConfigError(missing=self.missing, invalid=self.invalid)
