"""
SSH 터널 관리
- sshtunnel.SSHTunnelForwarder 로 로컬 포트 → 원격 DB 포워딩
- 포워더 객체는 생성 시점에 핸들에 직접 보관 (프로세스 검색 없음)
- 포워드 확인(check_tunnels) 실패 시 즉시 정리 후 실패 처리
- keepalive + 연속 실패 임계치 기반 생존 감시
- close는 멱등 (이미 종료된 포워더에는 stop을 다시 보내지 않음)
"""
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

import paramiko
from paramiko.hostkeys import InvalidHostKey
from sshtunnel import BaseSSHTunnelForwarderError, SSHTunnelForwarder

from fastcopy.core.config import SourceConfig
from fastcopy.core.constants import DEFAULT_LOCAL_HOST, DEFAULT_SSH_PORT
from fastcopy.core.errors import ConfigError, ConnectivityError
from fastcopy.core.logger import get_logger

logger = get_logger('tunnel_engine')

KNOWN_HOSTS_FILE = '~/.ssh/known_hosts'


class TunnelState(Enum):
    """터널 상태"""
    OPENING = "opening"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class TunnelHandle:
    """실행 하나가 단독 소유하는 터널 핸들"""
    local_port: int
    remote_host: str
    remote_port: int
    ssh_endpoint: str
    local_host: str = DEFAULT_LOCAL_HOST
    state: TunnelState = TunnelState.OPENING
    forwarder: Optional[SSHTunnelForwarder] = field(default=None, repr=False)
    lost: bool = False
    stopped: bool = field(default=False, repr=False)
    stop_event: threading.Event = field(default_factory=threading.Event, repr=False, compare=False)
    monitor_thread: Optional[threading.Thread] = field(default=None, repr=False, compare=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def is_active(self) -> bool:
        return (self.state == TunnelState.ACTIVE and not self.stopped
                and self.forwarder is not None and bool(self.forwarder.is_active))


class TunnelManager:
    """SSH 터널 생성/종료"""

    def __init__(self, forwarder_factory=SSHTunnelForwarder, known_hosts_file: str = KNOWN_HOSTS_FILE):
        self._forwarder_factory = forwarder_factory
        self._known_hosts_file = known_hosts_file

    def _load_private_key(self, key_path: str) -> paramiko.PKey:
        """
        SSH 키를 명시적으로 로드합니다.
        순서: RSA -> Ed25519 -> ECDSA -> (DSS는 지원하는 paramiko 버전에서만)
        """
        key_path = os.path.expanduser(key_path)

        if not os.path.exists(key_path):
            raise ConfigError(message=f"SSH 키 파일을 찾을 수 없습니다: {key_path}")

        key_classes = [
            paramiko.RSAKey,
            paramiko.Ed25519Key,
            paramiko.ECDSAKey,
        ]
        if hasattr(paramiko, 'DSSKey'):
            key_classes.append(paramiko.DSSKey)

        last_exception = None
        for k_cls in key_classes:
            try:
                return k_cls.from_private_key_file(key_path)
            except paramiko.PasswordRequiredException:
                raise ConfigError(
                    message=f"SSH 키 파일에 비밀번호(Passphrase)가 걸려있습니다. ssh-agent를 사용하세요: {key_path}"
                )
            except (paramiko.SSHException, ValueError) as e:
                last_exception = e
                continue

        raise ConfigError(message=f"SSH 키 파일을 인식할 수 없습니다: {key_path} (마지막 에러: {last_exception})")

    def _known_host_key(self, host: str, port: int) -> Optional[paramiko.PKey]:
        """known_hosts에 등록된 호스트 키 조회 (없으면 None)"""
        path = os.path.expanduser(self._known_hosts_file)
        if not os.path.exists(path):
            return None

        try:
            host_keys = paramiko.HostKeys(path)
        except (OSError, paramiko.SSHException, InvalidHostKey) as e:
            logger.warning(f"⚠️ known_hosts 읽기 실패 ({path}): {e}")
            return None

        name = host if port == DEFAULT_SSH_PORT else f"[{host}]:{port}"
        entry = host_keys.lookup(name)
        if not entry:
            return None
        return next(iter(entry.values()))

    def _expected_host_key(self, source: SourceConfig) -> Optional[paramiko.PKey]:
        """StrictHostKeyChecking 값에 따른 검증용 호스트 키

        - yes: known_hosts에 키가 있어야 함 (없으면 실패)
        - accept-new: 등록된 키가 있으면 검증, 없으면 허용
        - no: 검증하지 않음
        """
        if source.host_key_policy == 'no':
            logger.warning(f"⚠️ 호스트 키 검증 생략 (SSH_STRICT_HOST_KEY_CHECKING=no): {source.ssh_host}")
            return None

        known = self._known_host_key(source.ssh_host, source.ssh_port)
        if known is not None:
            return known

        if source.host_key_policy == 'yes':
            raise ConnectivityError(
                f"known_hosts에 호스트 키가 없습니다: {source.ssh_host}:{source.ssh_port} "
                f"(SSH_STRICT_HOST_KEY_CHECKING=yes)"
            )
        logger.warning(f"⚠️ 등록되지 않은 호스트 키를 허용합니다 (accept-new): {source.ssh_host}")
        return None

    def _create_forwarder(self, source: SourceConfig, handle: TunnelHandle) -> SSHTunnelForwarder:
        pkey = self._load_private_key(source.ssh_identity_file) if source.ssh_identity_file else None
        host_key = self._expected_host_key(source)

        try:
            forwarder = self._forwarder_factory(
                (source.ssh_host, source.ssh_port),
                ssh_username=source.ssh_user,
                ssh_pkey=pkey,
                ssh_host_key=host_key,
                allow_agent=True,
                remote_bind_address=(source.db_host, source.db_port),
                local_bind_address=(handle.local_host, handle.local_port),
                set_keepalive=float(source.alive_interval),
                logger=get_logger('sshtunnel'),
            )
        except (BaseSSHTunnelForwarderError, ValueError) as e:
            raise ConnectivityError(f"SSH 터널 설정 오류 ({handle.ssh_endpoint}): {e}") from e

        # 시작 시 원격 DB까지 실제 포워드 확인 (ExitOnForwardFailure 대응)
        forwarder.skip_tunnel_checkup = False
        return forwarder

    def open(self, source: SourceConfig, local_port: int) -> TunnelHandle:
        """터널 열기

        포워드가 원격 DB까지 확인되지 않으면 생성한 자원을 모두 정리하고
        ConnectivityError를 발생시킵니다 (부분 터널 없음).
        """
        handle = TunnelHandle(
            local_port=local_port,
            remote_host=source.db_host,
            remote_port=source.db_port,
            ssh_endpoint=f"{source.ssh_user}@{source.ssh_host}:{source.ssh_port}",
        )
        logger.info(
            f"🚀 SSH 터널 시작: localhost:{local_port} -> {source.db_host}:{source.db_port} "
            f"via {handle.ssh_endpoint}"
        )

        handle.forwarder = self._create_forwarder(source, handle)

        try:
            handle.forwarder.start()
            self._confirm_forward(handle)
        except (BaseSSHTunnelForwarderError, paramiko.SSHException, OSError, ConnectivityError) as e:
            self._stop_forwarder(handle)
            handle.state = TunnelState.CLOSED
            if isinstance(e, ConnectivityError):
                raise
            raise ConnectivityError(f"SSH 터널 연결 실패 ({handle.ssh_endpoint}): {e}") from e

        handle.monitor_thread = threading.Thread(
            target=self._monitor,
            args=(handle, source.alive_interval, source.alive_count_max),
            name=f"fastcopy-monitor-{local_port}",
            daemon=True,
        )
        handle.monitor_thread.start()

        handle.state = TunnelState.ACTIVE
        logger.info(f"✅ 터널 연결 성공 (Local {local_port} -> Remote {source.db_host}:{source.db_port})")
        return handle

    @staticmethod
    def _confirm_forward(handle: TunnelHandle):
        """SSH 세션 + 원격 DB 포워드 확인"""
        forwarder = handle.forwarder
        if not forwarder.is_active:
            raise ConnectivityError(f"SSH 세션이 활성화되지 않았습니다: {handle.ssh_endpoint}")

        forwarder.check_tunnels()
        if not forwarder.tunnel_is_up.get(forwarder.local_bind_address):
            raise ConnectivityError(
                f"포워드 확인 실패 ({handle.remote_host}:{handle.remote_port} via {handle.ssh_endpoint})"
            )

    def _monitor(self, handle: TunnelHandle, interval: int, count_max: int):
        """생존 감시 - 연속 count_max회 실패 시 터널을 끊고 lost 표시"""
        misses = 0
        while not handle.stop_event.wait(interval):
            if handle.forwarder.is_active:
                misses = 0
                continue

            misses += 1
            logger.warning(f"터널 생존 확인 실패 ({misses}/{count_max}): localhost:{handle.local_port}")
            if misses >= count_max:
                logger.error(f"❌ SSH 터널 응답 없음 - 연결 해제: localhost:{handle.local_port}")
                handle.lost = True
                self._stop_forwarder(handle)
                return

    @staticmethod
    def _stop_forwarder(handle: TunnelHandle) -> bool:
        """포워더 종료 (최초 1회만 실제 stop, 이후 호출은 False)"""
        with handle._lock:
            if handle.stopped or handle.forwarder is None:
                return False
            handle.stopped = True

        handle.stop_event.set()
        try:
            handle.forwarder.stop()
        except (BaseSSHTunnelForwarderError, paramiko.SSHException, OSError) as e:
            logger.warning(f"⚠️ 터널 종료 중 오류: {e}")
        return True

    def close(self, handle: TunnelHandle):
        """터널 종료 (멱등)"""
        if handle.state == TunnelState.CLOSED:
            return

        try:
            if self._stop_forwarder(handle):
                logger.info(f"🛑 SSH 터널 종료됨: localhost:{handle.local_port}")
            else:
                logger.debug(f"터널이 이미 종료됨: localhost:{handle.local_port}")
        finally:
            handle.state = TunnelState.CLOSED

    @contextmanager
    def tunnel(self, source: SourceConfig, local_port: int) -> Iterator[TunnelHandle]:
        """with 블록 종료 시(정상/예외/중단 모두) 터널을 닫는 컨텍스트 매니저"""
        handle = self.open(source, local_port)
        try:
            yield handle
        finally:
            self.close(handle)
