"""버전 정보 - Single Source of Truth

이 파일은 애플리케이션의 버전 정보를 중앙에서 관리합니다.
모든 버전 참조는 이 파일을 사용해야 합니다.
"""

__version__ = "1.0.0"
__app_name__ = "FastCopy"
