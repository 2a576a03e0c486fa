"""
FastCopy 로그 설정

실행 기록은 두 곳으로 나갑니다.
- 파일: ~/.config/fastcopy/logs/fastcopy.log (Windows는 %LOCALAPPDATA%/FastCopy/logs), 항상 DEBUG까지
- stderr: 기본 INFO, --verbose 시 DEBUG (stdout은 mysqlsh 출력용으로 비워둠)

파일은 5MB마다 교체하고 백업은 3개까지 보관합니다.
모든 로거는 'fastcopy.' 아래에 매달리므로 핸들러는 'fastcopy' 로거 한 곳에만 붙습니다.
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

if os.name == 'nt':
    LOG_DIR = os.path.join(os.environ.get('LOCALAPPDATA', ''), 'FastCopy', 'logs')
else:
    LOG_DIR = os.path.join(os.path.expanduser('~'), '.config', 'fastcopy', 'logs')

LOG_FILE = os.path.join(LOG_DIR, 'fastcopy.log')
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3

LOG_FORMAT = '[%(asctime)s] %(levelname)s [%(name)s] %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

ROOT_LOGGER_NAME = 'fastcopy'
CONSOLE_HANDLER_NAME = 'fastcopy-console'
FILE_HANDLER_NAME = 'fastcopy-file'


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)


def _find_handler(root: logging.Logger, name: str):
    for handler in root.handlers:
        if handler.get_name() == name:
            return handler
    return None


def _attach_handlers(root: logging.Logger):
    """'fastcopy' 로거에 파일/콘솔 핸들러 부착 (이미 있으면 그대로 둠)"""
    root.setLevel(logging.DEBUG)

    if _find_handler(root, FILE_HANDLER_NAME) is None:
        try:
            os.makedirs(LOG_DIR, exist_ok=True)
            file_handler = RotatingFileHandler(
                LOG_FILE, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding='utf-8'
            )
        except OSError as e:
            # 로그 파일을 못 열어도 실행은 계속 (콘솔만 사용)
            print(f"[FastCopy] 로그 파일을 열 수 없습니다 ({LOG_FILE}): {e}", file=sys.stderr)
        else:
            file_handler.set_name(FILE_HANDLER_NAME)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(_formatter())
            root.addHandler(file_handler)

    if _find_handler(root, CONSOLE_HANDLER_NAME) is None and sys.stderr is not None:
        console = logging.StreamHandler(sys.stderr)
        console.set_name(CONSOLE_HANDLER_NAME)
        console.setLevel(logging.INFO)
        console.setFormatter(_formatter())
        root.addHandler(console)


def get_logger(name: str) -> logging.Logger:
    """'fastcopy.<name>' 로거 반환

    'fastcopy.' 접두사가 이미 붙은 이름도 받습니다. 첫 호출 때 핸들러가 붙습니다.

        logger = get_logger('tunnel_engine')
        logger.info("🚀 SSH 터널 시작")
    """
    prefix = f'{ROOT_LOGGER_NAME}.'
    if name.startswith(prefix):
        name = name[len(prefix):]

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        _attach_handlers(root)

    return logging.getLogger(prefix + name)


def set_console_level(verbose: bool):
    """--verbose 여부에 따라 stderr 출력 레벨 변경 (파일은 항상 DEBUG)"""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        _attach_handlers(root)

    console = _find_handler(root, CONSOLE_HANDLER_NAME)
    if console is not None:
        console.setLevel(logging.DEBUG if verbose else logging.INFO)


def get_log_file_path() -> str:
    return LOG_FILE
