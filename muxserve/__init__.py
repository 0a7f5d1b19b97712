from .config import AppConfig as AppConfig
from .config import ServerConfig as ServerConfig
from .handler import ServeOption as ServeOption
from .handler import make_handler as make_handler
from .multiaddr import Multiaddr as Multiaddr
from .multiaddr import normalize_address as normalize_address
from .mux import ServeMux as ServeMux
from .node import Node as Node
from .node import Repo as Repo
from .options import func_option as func_option
from .options import mount_option as mount_option
from .options import route_option as route_option
from .server import Listener as Listener
from .server import bind as bind
from .server import listen_and_serve as listen_and_serve
from .server import serve as serve
from .vendors import Request as Request
from .vendors import Response as Response

VERSION = "0.1.0"
__version__ = VERSION
