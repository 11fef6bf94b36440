from .import_engine import ImportEngine
from .launch_service import LaunchService, build_preview, create_launch_service
from .member_source import MemberSourceFetcher

__all__ = ['ImportEngine', 'LaunchService', 'MemberSourceFetcher', 'build_preview', 'create_launch_service']
