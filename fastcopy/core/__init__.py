from .config import MigrationConfig, SourceConfig, TargetConfig, TransferOptions, load_config
from .errors import (
    FastCopyError, ConfigError, ResourceExhaustionError, NoFreePortError,
    ConnectivityError, DumpExportError, DumpImportError, TargetPreparationError,
)
from .tunnel_engine import TunnelManager, TunnelHandle, TunnelState
from .db_connector import MySQLConnector
from .port_allocator import find_free_port
from .table_resolver import TableSet, TableSetResolver
from .migration_planner import PlanKind, plan_migration
from .cleanup_guard import CleanupGuard, PurgeReport

__all__ = [
    'MigrationConfig', 'SourceConfig', 'TargetConfig', 'TransferOptions', 'load_config',
    'FastCopyError', 'ConfigError', 'ResourceExhaustionError', 'NoFreePortError',
    'ConnectivityError', 'DumpExportError', 'DumpImportError', 'TargetPreparationError',
    'TunnelManager', 'TunnelHandle', 'TunnelState',
    'MySQLConnector',
    'find_free_port',
    'TableSet', 'TableSetResolver',
    'PlanKind', 'plan_migration',
    'CleanupGuard', 'PurgeReport',
]
