from starlette.requests import Request as Request
from starlette.responses import JSONResponse as JSONResponse
from starlette.responses import PlainTextResponse as PlainTextResponse
from starlette.responses import Response as Response

try:
    from starlette.testclient import TestClient as TestClient
except (ImportError, RuntimeError):
    pass
