"""
덤프 디렉토리 정리

{base}/{source}_YYYYmmdd_HHMMSS[_ddl|_data] 형식과 정확히 일치하는 경로만 삭제합니다.
형식이 다른 경로는 건드리지 않고 경고로 보고합니다.
"""
import os
import re
import shutil
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from fastcopy.core.constants import DDL_SUFFIX, DATA_SUFFIX
from fastcopy.core.logger import get_logger

logger = get_logger('cleanup_guard')


@dataclass
class PurgeReport:
    removed: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)      # KEEP_DUMP 요청으로 보존
    refused: List[str] = field(default_factory=list)   # 안전 검사 실패
    failed: List[str] = field(default_factory=list)    # 삭제 시도 중 오류
    missing: List[str] = field(default_factory=list)   # 이미 없음

    @property
    def warnings(self) -> List[str]:
        messages = [f"예상치 못한 덤프 경로 삭제 거부: {p}" for p in self.refused]
        messages += [f"덤프 디렉토리 삭제 실패: {p}" for p in self.failed]
        return messages


class CleanupGuard:
    """덤프 아티팩트 삭제 가드"""

    def __init__(self, source: str, base: str, keep: bool = False):
        self.source = source
        self.base = os.path.normpath(os.path.abspath(base))
        self.keep = keep
        self._name_re = re.compile(
            rf"^{re.escape(source)}_\d{{8}}_\d{{6}}(?:{re.escape(DDL_SUFFIX)}|{re.escape(DATA_SUFFIX)})?$"
        )

    def is_safe_path(self, path: str) -> bool:
        """경로가 {base}/{source}_<timestamp>[suffix] 형식인지"""
        if not path or not self.source:
            return False
        normalized = os.path.normpath(os.path.abspath(path))
        parent, name = os.path.split(normalized)
        return parent == self.base and self._name_re.match(name) is not None

    def purge(self, paths: Iterable[str], report: Optional[PurgeReport] = None) -> PurgeReport:
        """덤프 디렉토리 삭제

        Args:
            paths: 삭제 대상 경로들

        Returns:
            PurgeReport (경고 대상은 refused/failed에 기록)
        """
        report = report or PurgeReport()

        for path in paths:
            if not self.is_safe_path(path):
                logger.warning(f"⚠️ 예상치 못한 덤프 경로 삭제 거부: {path}")
                report.refused.append(path)
                continue

            if self.keep:
                logger.info(f"덤프 보존 (KEEP_DUMP=true): {path}")
                report.kept.append(path)
                continue

            if not os.path.exists(path):
                report.missing.append(path)
                continue

            logger.info(f"🗑️ 덤프 디렉토리 삭제: {path}")
            try:
                shutil.rmtree(path)
                report.removed.append(path)
            except OSError as e:
                logger.warning(f"⚠️ 덤프 디렉토리 삭제 실패: {path} ({e})")
                report.failed.append(path)

        return report
