"""FastCopy - SSH 터널 + MySQL Shell 기반 원격 DB 고속 복제 도구"""
from .version import __version__, __app_name__

__all__ = ['__version__', '__app_name__']
