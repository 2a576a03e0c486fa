"""
타겟 엔드포인트 확인
- TARGET_DB_PORT가 지정되면 그대로 사용
- 아니면 Docker 컨테이너의 3306/tcp 게시(publish) 포트 조회
- 덤프 시작 전에 TCP 접속 가능 여부까지 확인 (데이터 이동 전 실패)
"""
import socket
from typing import Optional, Tuple

import docker
from docker.errors import DockerException, NotFound

from fastcopy.core.config import TargetConfig
from fastcopy.core.constants import CONTAINER_MYSQL_PORT
from fastcopy.core.errors import ConnectivityError
from fastcopy.core.logger import get_logger

logger = get_logger('target_endpoint')


class TargetEndpointResolver:
    """타겟 참조(컨테이너 또는 host/port) → 접속 가능한 host:port"""

    def __init__(self, docker_client_factory=docker.from_env):
        self._docker_client_factory = docker_client_factory

    def _published_port(self, container_name: str) -> Optional[int]:
        """컨테이너의 3306/tcp 게시 포트 조회 (없으면 None)"""
        try:
            client = self._docker_client_factory()
        except DockerException as e:
            raise ConnectivityError(f"Docker에 연결할 수 없습니다: {e}") from e

        try:
            container = client.containers.get(container_name)
        except NotFound as e:
            raise ConnectivityError(f"타겟 컨테이너를 찾을 수 없습니다: {container_name}") from e
        except DockerException as e:
            raise ConnectivityError(f"타겟 컨테이너 조회 실패 ({container_name}): {e}") from e

        bindings = (container.ports or {}).get(CONTAINER_MYSQL_PORT) or []
        for binding in bindings:
            host_port = binding.get('HostPort')
            if host_port:
                return int(host_port)
        return None

    def resolve(self, target: TargetConfig) -> Tuple[str, int]:
        """
        Returns:
            (host, port)

        Raises:
            ConnectivityError: 컨테이너 없음 / 포트 미게시 / Docker 오류
        """
        if target.db_port:
            return target.db_host, target.db_port

        port = self._published_port(target.container)
        if port is None:
            raise ConnectivityError(
                f"타겟 컨테이너 '{target.container}'의 3306 포트가 게시되지 않았습니다. "
                f"-p HOSTPORT:3306 으로 컨테이너를 시작하세요."
            )
        logger.info(f"타겟 MySQL: {target.db_host}:{port} (컨테이너 {target.container})")
        return target.db_host, port

    @staticmethod
    def check_reachable(host: str, port: int, timeout: float = 5.0):
        """TCP 접속 확인"""
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        s.settimeout(timeout)
        try:
            s.connect((host, port))
        except OSError as e:
            raise ConnectivityError(f"타겟 MySQL에 접속할 수 없습니다 ({host}:{port}): {e}") from e
        finally:
            s.close()
