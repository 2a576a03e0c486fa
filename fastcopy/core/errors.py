"""
FastCopy 예외 계층

치명적 오류는 모두 FastCopyError를 상속하며, 발생 즉시 실행을 중단합니다.
권한 부족(local_infile 변경 실패)이나 정리 단계 경고는 예외가 아니라
WARNING 로그 + RunResult.warnings 로 보고됩니다.
"""
from typing import List, Optional, Sequence


class FastCopyError(Exception):
    """FastCopy 치명적 오류의 공통 부모"""


class ConfigError(FastCopyError):
    """설정 누락/오류 (사전 검사 단계)

    누락 필드와 잘못된 값을 한 번에 모아서 보고합니다.
    """

    def __init__(self, missing: Optional[Sequence[str]] = None,
                 invalid: Optional[Sequence[str]] = None, message: str = ''):
        self.missing: List[str] = list(missing or [])
        self.invalid: List[str] = list(invalid or [])
        if not message:
            parts = []
            if self.missing:
                parts.append(f"필수 설정 누락: {', '.join(self.missing)}")
            if self.invalid:
                parts.append(f"잘못된 설정값: {'; '.join(self.invalid)}")
            message = ' / '.join(parts) or '설정 오류'
        super().__init__(message)


class ResourceExhaustionError(FastCopyError):
    """로컬 자원 고갈"""


class NoFreePortError(ResourceExhaustionError):
    """터널용 빈 로컬 포트를 찾지 못함"""


class ConnectivityError(FastCopyError):
    """SSH 터널 실패 또는 타겟 엔드포인트 접근 불가 (데이터 이동 전)"""


class DumpExportError(FastCopyError):
    """덤프(Export) 단계 실패 - 남은 단계 중단, 생성된 덤프는 보존"""


class DumpImportError(FastCopyError):
    """로드(Import) 단계 실패 - 남은 단계 중단, 부분 로드 상태는 롤백하지 않음"""


class TargetPreparationError(FastCopyError):
    """타겟 스키마 DROP/CREATE 실패"""
