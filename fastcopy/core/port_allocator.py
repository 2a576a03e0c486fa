"""
터널용 로컬 포트 할당

SSH 포워드는 연결 전에 로컬 포트를 알아야 하므로 OS 임시 포트 자동 할당(bind 0)을
쓸 수 없습니다. 고정 범위 안에서 임의 후보를 골라 사용 중인지 확인합니다.
"""
import random
import socket

from fastcopy.core.constants import (
    DEFAULT_LOCAL_HOST, PORT_RANGE_START, PORT_RANGE_SPAN, PORT_MAX_ATTEMPTS,
)
from fastcopy.core.errors import NoFreePortError
from fastcopy.core.logger import get_logger

logger = get_logger('port_allocator')


def is_port_available(port: int, host: str = DEFAULT_LOCAL_HOST) -> bool:
    """포트가 비어 있는지 확인 (bind 시도)"""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        s.bind((host, port))
        return True
    except OSError:
        return False
    finally:
        s.close()


def find_free_port(attempts: int = PORT_MAX_ATTEMPTS,
                   low: int = PORT_RANGE_START,
                   span: int = PORT_RANGE_SPAN,
                   rng: random.Random = None) -> int:
    """빈 로컬 포트 탐색

    Args:
        attempts: 최대 시도 횟수
        low: 탐색 범위 시작
        span: 탐색 범위 크기
        rng: 난수 생성기 (테스트용 주입)

    Returns:
        사용 가능한 포트 번호

    Raises:
        NoFreePortError: attempts 내에 빈 포트를 찾지 못한 경우
    """
    rng = rng or random.Random()
    for attempt in range(1, attempts + 1):
        port = low + rng.randrange(span)
        if is_port_available(port):
            logger.debug(f"빈 포트 발견: {port} ({attempt}회 시도)")
            return port

    raise NoFreePortError(
        f"SSH 터널용 빈 로컬 포트를 찾지 못했습니다 ({low}-{low + span - 1}, {attempts}회 시도)"
    )
