from .mysqlsh_exporter import (
    MySQLShellChecker, MySQLShellConfig, MySQLShellExporter,
    MySQLShellImporter, build_js_call
)

__all__ = [
    'MySQLShellChecker', 'MySQLShellConfig', 'MySQLShellExporter',
    'MySQLShellImporter', 'build_js_call'
]
