"""
DumpLoadExecutor 테스트
"""
import os

import pytest
from unittest.mock import MagicMock


TS = '20240102_030405'


@pytest.fixture
def options(tmp_path):
    from fastcopy.core.config import TransferOptions
    return TransferOptions(dump_threads=4, load_threads=2, dump_base=str(tmp_path))


def _make_exporter():
    """호출 시 출력 디렉토리를 실제로 만드는 Exporter Mock"""
    exporter = MagicMock()

    def export_schema(schema, output_dir, **kwargs):
        os.makedirs(output_dir)
        return True, '성공'

    def export_tables(schema, tables, output_dir, **kwargs):
        os.makedirs(output_dir)
        return True, '성공'

    exporter.export_schema.side_effect = export_schema
    exporter.export_tables.side_effect = export_tables
    return exporter


def _plan(tmp_path, has_exclusions, rename, included=('orders', 'users')):
    from fastcopy.core.migration_planner import plan_migration
    return plan_migration(has_exclusions, rename, dump_base=str(tmp_path), source='shop',
                          timestamp=TS, target_schema='shop_copy' if rename else 'shop',
                          included_tables=included)


class TestDumps:

    def test_single_phase_uses_dump_schemas(self, tmp_path, options):
        from fastcopy.core.dump_load_executor import DumpLoadExecutor

        exporter = _make_exporter()
        plan = _plan(tmp_path, False, False)

        DumpLoadExecutor(exporter, None, options).run_dumps(plan, 'shop')

        exporter.export_schema.assert_called_once()
        kwargs = exporter.export_schema.call_args[1]
        assert kwargs['consistent'] is True
        assert kwargs['ddl_only'] is False
        assert kwargs['threads'] == 4
        exporter.export_tables.assert_not_called()

    def test_single_phase_rename_uses_dump_tables(self, tmp_path, options):
        """이름 변경 → dumpTables(all) 형식"""
        from fastcopy.core.dump_load_executor import DumpLoadExecutor

        exporter = _make_exporter()
        plan = _plan(tmp_path, False, True)

        DumpLoadExecutor(exporter, None, options).run_dumps(plan, 'shop')

        args = exporter.export_tables.call_args[0]
        assert args[:3] == ('shop', [], plan.dump_dir)
        assert exporter.export_tables.call_args[1]['consistent'] is True
        exporter.export_schema.assert_not_called()

    def test_two_phase_order(self, tmp_path, options):
        """DDL 전체 → 포함 테이블 데이터"""
        from fastcopy.core.dump_load_executor import DumpLoadExecutor

        exporter = _make_exporter()
        plan = _plan(tmp_path, True, False)

        DumpLoadExecutor(exporter, None, options).run_dumps(plan, 'shop')

        assert exporter.export_schema.call_args[0][1] == plan.ddl_dir
        assert exporter.export_schema.call_args[1]['ddl_only'] is True
        data_args = exporter.export_tables.call_args
        assert data_args[0][:3] == ('shop', ['orders', 'users'], plan.data_dir)
        assert data_args[1]['data_only'] is True
        assert 'consistent' not in data_args[1]

    def test_two_phase_all_excluded_skips_data(self, tmp_path, options):
        from fastcopy.core.dump_load_executor import DumpLoadExecutor

        exporter = _make_exporter()
        plan = _plan(tmp_path, True, False, included=())

        DumpLoadExecutor(exporter, None, options).run_dumps(plan, 'shop')

        exporter.export_schema.assert_called_once()
        exporter.export_tables.assert_not_called()

    def test_ddl_failure_stops_data_dump(self, tmp_path, options):
        from fastcopy.core.dump_load_executor import DumpLoadExecutor
        from fastcopy.core.errors import DumpExportError

        exporter = _make_exporter()
        exporter.export_schema.side_effect = None
        exporter.export_schema.return_value = (False, 'Access denied')
        plan = _plan(tmp_path, True, False)

        with pytest.raises(DumpExportError) as exc_info:
            DumpLoadExecutor(exporter, None, options).run_dumps(plan, 'shop')

        assert 'Access denied' in str(exc_info.value)
        exporter.export_tables.assert_not_called()

    def test_missing_output_dir_after_success(self, tmp_path, options):
        """mysqlsh 성공인데 디렉토리 없음 → 실패"""
        from fastcopy.core.dump_load_executor import DumpLoadExecutor
        from fastcopy.core.errors import DumpExportError

        exporter = MagicMock()
        exporter.export_schema.return_value = (True, '성공')
        plan = _plan(tmp_path, False, False)

        with pytest.raises(DumpExportError):
            DumpLoadExecutor(exporter, None, options).run_dumps(plan, 'shop')


class TestLoads:

    def test_single_phase_load(self, tmp_path, options):
        from fastcopy.core.dump_load_executor import DumpLoadExecutor

        importer = MagicMock()
        importer.import_dump.return_value = (True, '성공')
        plan = _plan(tmp_path, False, True)

        DumpLoadExecutor(None, importer, options).run_loads(plan, lambda: 0)

        args, kwargs = importer.import_dump.call_args
        assert args[0] == plan.dump_dir
        assert kwargs['target_schema'] == 'shop_copy'
        assert kwargs['threads'] == 2
        assert kwargs['defer_indexes'] == 'all'
        assert kwargs['ignore_existing'] is True

    def test_two_phase_load_order(self, tmp_path, options):
        from fastcopy.core.dump_load_executor import DumpLoadExecutor

        importer = MagicMock()
        importer.import_dump.return_value = (True, '성공')
        plan = _plan(tmp_path, True, False)

        DumpLoadExecutor(None, importer, options).run_loads(plan, lambda: 3)

        loaded = [c[0][0] for c in importer.import_dump.call_args_list]
        assert loaded == [plan.ddl_dir, plan.data_dir]

    def test_empty_target_after_ddl_aborts(self, tmp_path, options):
        """DDL 로드 후 테이블 0개 → 데이터 로드 안 함"""
        from fastcopy.core.dump_load_executor import DumpLoadExecutor
        from fastcopy.core.errors import DumpImportError

        importer = MagicMock()
        importer.import_dump.return_value = (True, '성공')
        plan = _plan(tmp_path, True, False)

        with pytest.raises(DumpImportError):
            DumpLoadExecutor(None, importer, options).run_loads(plan, lambda: 0)

        assert importer.import_dump.call_count == 1

    def test_ddl_load_failure_aborts(self, tmp_path, options):
        from fastcopy.core.dump_load_executor import DumpLoadExecutor
        from fastcopy.core.errors import DumpImportError

        importer = MagicMock()
        importer.import_dump.return_value = (False, 'Duplicate table')
        counter = MagicMock(return_value=5)
        plan = _plan(tmp_path, True, False)

        with pytest.raises(DumpImportError):
            DumpLoadExecutor(None, importer, options).run_loads(plan, counter)

        counter.assert_not_called()
        assert importer.import_dump.call_count == 1

    def test_all_excluded_loads_ddl_only(self, tmp_path, options):
        from fastcopy.core.dump_load_executor import DumpLoadExecutor

        importer = MagicMock()
        importer.import_dump.return_value = (True, '성공')
        plan = _plan(tmp_path, True, False, included=())

        DumpLoadExecutor(None, importer, options).run_loads(plan, lambda: 2)

        importer.import_dump.assert_called_once()
        assert importer.import_dump.call_args[0][0] == plan.ddl_dir
        assert importer.import_dump.call_args[1]['target_schema'] is None


class TestProgressLogger:

    def test_logs_every_ten_percent(self):
        from fastcopy.core.dump_load_executor import DumpLoadExecutor
        from unittest.mock import patch

        callback = DumpLoadExecutor._progress_logger('덤프')
        with patch('fastcopy.core.dump_load_executor.logger') as mock_logger:
            for percent in (1, 5, 12, 15, 25, 99, 100):
                callback(percent)

        logged = [c[0][0] for c in mock_logger.info.call_args_list]
        # 1, 12, 25, 99, 100
        assert len(logged) == 5
        assert logged[-1].endswith('100%')
