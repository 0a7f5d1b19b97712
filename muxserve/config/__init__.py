from .app_config import AppConfig as AppConfig
from .app_config import ConfigBase as ConfigBase
from .app_config import IAppConfig as IAppConfig
from .app_config import ILogConfig as ILogConfig
from .app_config import IServerConfig as IServerConfig
from .app_config import LogConfig as LogConfig
from .app_config import ServerConfig as ServerConfig
from .parser import build_parser as build_parser
from .parser import config_from_cli as config_from_cli
from .parser import config_from_file as config_from_file
from .parser import deep_update as deep_update
from .parser import format_nested_dict as format_nested_dict
from .parser import parse_field_type as parse_field_type

DEFAULT_CONFIG = AppConfig()
