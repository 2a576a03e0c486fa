# -*- coding: utf-8 -*-
"""
FastCopy 명령줄 진입점

    fastcopy server.cfg [-v]

종료 코드: 0 성공 / 1 실행 실패 / 2 잘못된 인자 / 130 사용자 중단
"""
import argparse
import io
import sys
from typing import List, Optional

from fastcopy.version import __app_name__, __version__

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

# Windows 콘솔 UTF-8 출력 지원 (이모지 출력을 위해)
if sys.platform == 'win32':
    if sys.stderr is not None and hasattr(sys.stderr, 'buffer'):
        sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace', line_buffering=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='fastcopy',
        description='SSH 터널 + MySQL Shell 기반 원격 MySQL 스키마 고속 복제',
    )
    parser.add_argument('config', help='KEY=VALUE 형식 설정 파일 경로 (예: server.cfg)')
    parser.add_argument('-v', '--verbose', action='store_true', help='DEBUG 로그를 콘솔에도 출력')
    parser.add_argument('--version', action='version', version=f'{__app_name__} {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    from fastcopy.core.config import load_config
    from fastcopy.core.errors import FastCopyError
    from fastcopy.core.logger import get_log_file_path, get_logger, set_console_level
    from fastcopy.core.orchestrator import MigrationOrchestrator

    logger = get_logger('main')
    set_console_level(args.verbose)
    logger.debug(f"{__app_name__} {__version__} / 로그 파일: {get_log_file_path()}")

    try:
        config = load_config(args.config)
        MigrationOrchestrator(config).run()
    except FastCopyError as e:
        logger.error(f"❌ {type(e).__name__}: {e}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.warning("⚠️ 사용자에 의해 중단되었습니다")
        return EXIT_INTERRUPTED
    except Exception:
        # 예상하지 못한 오류 - 상세 내용은 로그 파일 참고
        logger.exception("❌ 예기치 않은 오류")
        return EXIT_FAILURE

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
