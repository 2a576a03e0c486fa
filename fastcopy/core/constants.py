"""중앙 상수 모듈

MySQL/SSH 관련 기본값과 덤프 경로 규칙을 한 곳에서 관리합니다.
"""

# MySQL 기본 포트
DEFAULT_MYSQL_PORT = 3306

# SSH 기본 포트
DEFAULT_SSH_PORT = 22

# SSH 터널의 로컬 바인드 호스트 (localhost)
DEFAULT_LOCAL_HOST = '127.0.0.1'

# 터널 로컬 포트 탐색 범위 [PORT_RANGE_START, PORT_RANGE_START + PORT_RANGE_SPAN)
PORT_RANGE_START = 24000
PORT_RANGE_SPAN = 6000
PORT_MAX_ATTEMPTS = 300

# SSH keepalive (ServerAliveInterval / ServerAliveCountMax 대응)
DEFAULT_ALIVE_INTERVAL = 30
DEFAULT_ALIVE_COUNT_MAX = 60

# 덤프 디렉토리 기본 위치 및 타임스탬프 형식
DEFAULT_DUMP_BASE = '/tmp'
TIMESTAMP_FORMAT = '%Y%m%d_%H%M%S'

# 2단계 덤프 디렉토리 접미사
DDL_SUFFIX = '_ddl'
DATA_SUFFIX = '_data'

# mysqlsh 옵션 허용값
COMPRESSION_CODECS = ('zstd', 'gzip', 'none')
DEFER_INDEX_POLICIES = ('none', 'fulltext', 'secondary', 'all')
HOST_KEY_POLICIES = ('yes', 'accept-new', 'no')

# Docker 컨테이너 내부 MySQL 포트
CONTAINER_MYSQL_PORT = '3306/tcp'

# 식별자 허용 패턴 (영문/숫자/언더스코어/달러)
IDENTIFIER_PATTERN = r'^[A-Za-z0-9_$]+$'
