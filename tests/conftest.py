"""
pytest 공용 fixtures
"""
import pytest
from unittest.mock import MagicMock, patch


@pytest.fixture
def sample_config_values():
    """샘플 server.cfg 값 (필수 항목 + 타겟 컨테이너)"""
    return {
        'REMOTE_HOST': '10.0.0.5',
        'REMOTE_SSH_USER': 'deploy',
        'REMOTE_DB_USER': 'reader',
        'REMOTE_DB_PASSWORD': 's3cret',
        'SOURCE_DB_NAME': 'shop',
        'TARGET_DOCKER_CONTAINER': 'mysql-local',
        'TARGET_DB_USER': 'root',
        'TARGET_DB_PASSWORD': 'root',
        'TARGET_DB_NAME': 'shop',
    }


@pytest.fixture
def config_file(tmp_path, sample_config_values):
    """KEY=VALUE 설정 파일 생성"""
    path = tmp_path / 'server.cfg'
    lines = [f'{k}="{v}"' for k, v in sample_config_values.items()]
    path.write_text('\n'.join(lines) + '\n', encoding='utf-8')
    return path


@pytest.fixture
def mock_subprocess_mysqlsh():
    """mysqlsh --version subprocess Mock"""
    with patch('subprocess.run') as mock:
        mock.return_value = MagicMock(
            returncode=0,
            stdout='mysqlsh   Ver 8.0.35 for Linux on x86_64 - for MySQL 8.0.35',
            stderr=''
        )
        yield mock


@pytest.fixture
def mock_popen_factory():
    """mysqlsh Popen Mock 생성기 (출력 라인, 종료 코드 지정)"""
    def factory(lines, returncode=0):
        process = MagicMock()
        process.stdout = iter(lines)
        process.wait.return_value = returncode
        return process
    return factory


class FakeMySQLConnector:
    """MySQLConnector 대체 (쿼리 기록 + 지정 응답)"""

    def __init__(self, host='127.0.0.1', port=3306, user='root', password='', database=None,
                 tables=None, local_infile=0, connect_ok=True):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.tables = dict(tables or {})
        self.local_infile = local_infile
        self.connect_ok = connect_ok
        self.connected = False
        self.queries = []
        self.fail_on = {}

    def connect(self):
        if not self.connect_ok:
            return False, "MySQL 오류 (2003): Can't connect"
        self.connected = True
        return True, "연결 성공"

    def disconnect(self):
        self.connected = False

    def is_connected(self):
        return self.connected

    def execute(self, query, params=None):
        self.queries.append(query)
        for fragment, error in self.fail_on.items():
            if fragment in query:
                raise error
        if 'local_infile = ON' in query:
            self.local_infile = 1
        elif 'local_infile = OFF' in query:
            self.local_infile = 0
        return []

    def fetch_value(self, query, params=None):
        self.queries.append(query)
        if 'local_infile' in query:
            return self.local_infile
        return None

    def get_base_tables(self, schema):
        return sorted(self.tables.get(schema, []))
