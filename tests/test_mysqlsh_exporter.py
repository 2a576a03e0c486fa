"""
MySQLShellExporter / MySQLShellImporter 테스트
"""
import json
import subprocess

import pytest
from unittest.mock import patch, MagicMock


def _options_from_js(js_code: str) -> dict:
    """JS 호출 코드의 마지막 인자(옵션 객체) 추출"""
    payload = js_code[js_code.index('(') + 1:js_code.rindex(')')]
    return json.loads(f"[{payload}]")[-1]


def _args_from_js(js_code: str) -> list:
    payload = js_code[js_code.index('(') + 1:js_code.rindex(')')]
    return json.loads(f"[{payload}]")


class TestMySQLShellChecker:
    """MySQLShellChecker 클래스 테스트"""

    def test_check_installation_success(self, mock_subprocess_mysqlsh):
        """mysqlsh 설치 확인 성공 테스트"""
        from fastcopy.exporters.mysqlsh_exporter import MySQLShellChecker

        installed, msg, version = MySQLShellChecker.check_installation()

        assert installed is True
        assert 'Ver' in msg
        assert version is not None

    def test_check_installation_not_found(self):
        """mysqlsh 미설치 테스트"""
        from fastcopy.exporters.mysqlsh_exporter import MySQLShellChecker

        with patch('subprocess.run') as mock:
            mock.side_effect = FileNotFoundError()

            installed, msg, version = MySQLShellChecker.check_installation()

            assert installed is False
            assert '설치' in msg
            assert version is None

    def test_check_installation_timeout(self):
        """mysqlsh 타임아웃 테스트"""
        from fastcopy.exporters.mysqlsh_exporter import MySQLShellChecker

        with patch('subprocess.run') as mock:
            mock.side_effect = subprocess.TimeoutExpired('mysqlsh', 10)

            installed, msg, version = MySQLShellChecker.check_installation()

            assert installed is False
            assert '시간 초과' in msg

    def test_get_install_guide(self):
        from fastcopy.exporters.mysqlsh_exporter import MySQLShellChecker

        guide = MySQLShellChecker.get_install_guide()

        assert 'macOS' in guide
        assert 'Linux' in guide


class TestMySQLShellConfig:
    """MySQLShellConfig 클래스 테스트"""

    def test_get_uri(self):
        from fastcopy.exporters.mysqlsh_exporter import MySQLShellConfig

        config = MySQLShellConfig('127.0.0.1', 24001, 'reader', 'pw')

        assert config.get_uri() == 'reader:pw@127.0.0.1:24001'

    def test_get_uri_escapes_special_chars(self):
        """비밀번호 특수문자 percent-encoding"""
        from fastcopy.exporters.mysqlsh_exporter import MySQLShellConfig

        config = MySQLShellConfig('127.0.0.1', 3306, 'root', 'p@ss:w/rd')

        assert config.get_uri() == 'root:p%40ss%3Aw%2Frd@127.0.0.1:3306'

    def test_get_masked_uri(self):
        from fastcopy.exporters.mysqlsh_exporter import MySQLShellConfig

        config = MySQLShellConfig('127.0.0.1', 3306, 'root', 'secret')

        masked = config.get_masked_uri()
        assert 'secret' not in masked
        assert '****' in masked


class TestBuildJsCall:

    def test_arguments_are_json_literals(self):
        from fastcopy.exporters.mysqlsh_exporter import build_js_call

        js = build_js_call('util.dumpSchemas', ['shop'], '/tmp/x', {'threads': 4})

        assert js == 'util.dumpSchemas(["shop"], "/tmp/x", {"threads": 4});'

    def test_quotes_in_path_are_escaped(self):
        from fastcopy.exporters.mysqlsh_exporter import build_js_call

        js = build_js_call('util.loadDump', '/tmp/a"b', {})

        assert _args_from_js(js)[0] == '/tmp/a"b'


class TestMySQLShellExporter:
    """Export 옵션 페이로드"""

    @pytest.fixture(autouse=True)
    def setup(self):
        from fastcopy.exporters.mysqlsh_exporter import MySQLShellConfig, MySQLShellExporter
        self.exporter = MySQLShellExporter(MySQLShellConfig('127.0.0.1', 24001, 'reader', 'pw'))

    def test_export_schema_full(self, tmp_path):
        output_dir = str(tmp_path / 'shop_20240102_030405')

        with patch.object(self.exporter, '_run_mysqlsh', return_value=(True, '성공')) as mock_run:
            success, _ = self.exporter.export_schema('shop', output_dir, threads=8, compression='gzip')

        assert success is True
        js = mock_run.call_args[0][0]
        assert js.startswith('util.dumpSchemas(')
        args = _args_from_js(js)
        assert args[0] == ['shop']
        assert args[1] == output_dir
        assert args[2] == {'threads': 8, 'compression': 'gzip', 'showProgress': True, 'consistent': True}

    def test_export_schema_ddl_only(self, tmp_path):
        output_dir = str(tmp_path / 'shop_20240102_030405_ddl')

        with patch.object(self.exporter, '_run_mysqlsh', return_value=(True, '성공')) as mock_run:
            self.exporter.export_schema('shop', output_dir, ddl_only=True)

        options = _options_from_js(mock_run.call_args[0][0])
        assert options['ddlOnly'] is True
        assert 'dataOnly' not in options

    def test_export_tables_data_only(self, tmp_path):
        """포함 테이블만 dataOnly, consistent 미지정"""
        output_dir = str(tmp_path / 'shop_20240102_030405_data')

        with patch.object(self.exporter, '_run_mysqlsh', return_value=(True, '성공')) as mock_run:
            self.exporter.export_tables('shop', ['orders', 'users'], output_dir, data_only=True)

        js = mock_run.call_args[0][0]
        assert js.startswith('util.dumpTables(')
        args = _args_from_js(js)
        assert args[0] == 'shop'
        assert args[1] == ['orders', 'users']
        assert args[3]['dataOnly'] is True
        assert 'consistent' not in args[3]
        assert 'all' not in args[3]

    def test_export_tables_empty_list_means_all(self, tmp_path):
        output_dir = str(tmp_path / 'shop_20240102_030405')

        with patch.object(self.exporter, '_run_mysqlsh', return_value=(True, '성공')) as mock_run:
            self.exporter.export_tables('shop', [], output_dir, consistent=True)

        options = _options_from_js(mock_run.call_args[0][0])
        assert options['all'] is True
        assert options['consistent'] is True

    def test_existing_output_dir_rejected(self, tmp_path):
        """이미 존재하는 출력 디렉토리 → 실패 (mysqlsh 미실행)"""
        existing = tmp_path / 'shop_20240102_030405'
        existing.mkdir()

        with patch.object(self.exporter, '_run_mysqlsh') as mock_run:
            success, msg = self.exporter.export_schema('shop', str(existing))

        assert success is False
        assert '이미 존재' in msg
        mock_run.assert_not_called()


class TestMySQLShellImporter:

    @pytest.fixture(autouse=True)
    def setup(self):
        from fastcopy.exporters.mysqlsh_exporter import MySQLShellConfig, MySQLShellImporter
        self.importer = MySQLShellImporter(MySQLShellConfig('127.0.0.1', 3307, 'root', 'root'))

    def test_import_options(self, tmp_path):
        with patch.object(self.importer, '_run_mysqlsh', return_value=(True, '성공')) as mock_run:
            success, _ = self.importer.import_dump(str(tmp_path), threads=6,
                                                   defer_indexes='secondary', ignore_existing=False)

        assert success is True
        args = _args_from_js(mock_run.call_args[0][0])
        assert args[0] == str(tmp_path)
        assert args[1] == {
            'threads': 6,
            'deferTableIndexes': 'secondary',
            'ignoreExistingObjects': False,
            'showProgress': True,
        }

    def test_import_with_rename(self, tmp_path):
        with patch.object(self.importer, '_run_mysqlsh', return_value=(True, '성공')) as mock_run:
            self.importer.import_dump(str(tmp_path), target_schema='shop_copy')

        assert _options_from_js(mock_run.call_args[0][0])['schema'] == 'shop_copy'

    def test_missing_input_dir(self, tmp_path):
        success, msg = self.importer.import_dump(str(tmp_path / 'nope'))

        assert success is False
        assert '찾을 수 없습니다' in msg


class TestRunMysqlsh:
    """mysqlsh 프로세스 실행/출력 파싱"""

    @pytest.fixture(autouse=True)
    def setup(self):
        from fastcopy.exporters.mysqlsh_exporter import MySQLShellConfig, MySQLShellImporter
        self.runner = MySQLShellImporter(MySQLShellConfig('127.0.0.1', 3307, 'root', 'pw'))

    def test_command_line(self):
        cmd = self.runner._build_command('util.loadDump("/tmp/x", {});')

        assert cmd[0] == 'mysqlsh'
        assert cmd[cmd.index('--uri') + 1] == 'root:pw@127.0.0.1:3307'
        assert '--js' in cmd
        assert cmd[-2:] == ['-e', 'util.loadDump("/tmp/x", {});']

    def test_progress_parsed(self, mock_popen_factory):
        lines = [
            "Loading DDL and Data from '/tmp/x' using 4 threads.\n",
            "1 thds loading \\ 10% (1.00 MB / 10.00 MB), 1.00 MB/s\n",
            "1 thds loading | 10% (1.00 MB / 10.00 MB), 1.00 MB/s\n",
            "2 thds loading / 55% (5.50 MB / 10.00 MB), 2.00 MB/s\n",
            "\n",
            "1 thds loading - 100% (10.00 MB / 10.00 MB), 2.00 MB/s\n",
        ]
        progress = []

        with patch('subprocess.Popen', return_value=mock_popen_factory(lines, 0)):
            success, msg = self.runner._run_mysqlsh('x', progress_callback=progress.append)

        assert success is True
        assert progress == [10, 55, 100]

    def test_failure_returns_output_tail(self, mock_popen_factory):
        lines = ["ERROR: [Worker001] Access denied for user 'root'\n"]

        with patch('subprocess.Popen', return_value=mock_popen_factory(lines, 1)):
            success, msg = self.runner._run_mysqlsh('x')

        assert success is False
        assert 'Access denied' in msg

    def test_not_installed(self):
        with patch('subprocess.Popen', side_effect=FileNotFoundError()):
            success, msg = self.runner._run_mysqlsh('x')

        assert success is False
        assert '설치' in msg

    def test_locale_forced(self, mock_popen_factory):
        with patch('subprocess.Popen', return_value=mock_popen_factory([], 0)) as mock_popen:
            self.runner._run_mysqlsh('x')

        env = mock_popen.call_args[1]['env']
        assert env['LC_ALL'] == 'C'

    def test_timeout_kills_stalled_process(self):
        """출력 없이 멈춘 mysqlsh → 제한 시간 후 종료 + 실패 반환"""
        import threading

        killed = threading.Event()

        def stalled_output():
            yield "1 thds dumping - 5% (100 rows / ~2.00K rows), 50.00 rows/s\n"
            killed.wait(5)

        process = MagicMock()
        process.stdout = stalled_output()
        process.kill.side_effect = killed.set
        process.wait.return_value = -9
        self.runner.timeout = 0.05

        with patch('subprocess.Popen', return_value=process):
            success, msg = self.runner._run_mysqlsh('x')

        assert success is False
        assert '시간 초과' in msg
        process.kill.assert_called_once()

    def test_timer_cancelled_after_normal_exit(self, mock_popen_factory):
        """정상 종료 후에는 프로세스를 죽이지 않음"""
        import time

        process = mock_popen_factory(["done\n"], 0)
        self.runner.timeout = 0.2

        with patch('subprocess.Popen', return_value=process):
            success, _ = self.runner._run_mysqlsh('x')

        time.sleep(0.3)
        assert success is True
        process.kill.assert_not_called()
