import pytest

from muxserve import ServeMux
from muxserve.errors import DuplicatedPatternError, InvalidPatternError
from muxserve.vendors import JSONResponse, PlainTextResponse, Request


def text(body: str):
    async def handler(request: Request) -> PlainTextResponse:
        return PlainTextResponse(body)

    return handler


def test_exact_pattern_does_not_match_subpaths(test_client):
    mux = ServeMux()
    mux.handle_func("/users", text("users"))
    client = test_client(mux)

    assert client.get("/users").text == "users"
    assert client.get("/users/1").status_code == 404


def test_longest_subtree_wins():
    mux = ServeMux()
    mux.handle_func("/", text("root"))
    mux.handle_func("/api/", text("api"))
    mux.handle_func("/api/v1/", text("v1"))

    assert mux.match("/api/v1/users")[0] == "/api/v1/"
    assert mux.match("/api/v2")[0] == "/api/"
    assert mux.match("/favicon.ico")[0] == "/"


def test_exact_pattern_beats_subtree():
    mux = ServeMux()
    mux.handle_func("/api/", text("api"))
    mux.handle_func("/api/health", text("health"))

    assert mux.match("/api/health")[0] == "/api/health"


def test_no_match(test_client):
    mux = ServeMux()
    mux.handle_func("/a", text("a"))

    assert mux.match("/b") is None
    resp = test_client(mux).get("/b")
    assert resp.status_code == 404
    assert resp.text == "Not Found"


def test_duplicated_pattern():
    mux = ServeMux()
    mux.handle_func("/a", text("a"))
    with pytest.raises(DuplicatedPatternError):
        mux.handle_func("/a", text("again"))


def test_invalid_pattern():
    with pytest.raises(InvalidPatternError):
        ServeMux().handle_func("api", text("api"))


def test_redirects_to_subtree(test_client):
    mux = ServeMux()
    mux.handle_func("/docs/", text("docs"))
    client = test_client(mux, follow_redirects=False)

    resp = client.get("/docs?page=2")
    assert resp.status_code == 301
    assert resp.headers["location"] == "/docs/?page=2"


def test_exact_pattern_is_not_redirected(test_client):
    mux = ServeMux()
    mux.handle_func("/docs", text("exact"))
    mux.handle_func("/docs/", text("tree"))
    client = test_client(mux, follow_redirects=False)

    assert client.get("/docs").text == "exact"


def test_mount_keeps_full_path(test_client):
    async def where(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "url": str(request.url),
                "path": request.scope["path"],
                "root_path": request.scope["root_path"],
            }
        )

    child = ServeMux("child")
    child.handle_func("/", where)
    mux = ServeMux()
    mux.mount("/api", child)
    client = test_client(mux, follow_redirects=False)

    assert "/api/" in mux
    assert client.get("/api/users").json() == {
        "url": "http://testserver/api/users",
        "path": "/api/users",
        "root_path": "/api",
    }
    assert client.get("/api/").json()["path"] == "/api/"
    assert client.get("/api").headers["location"] == "/api/"


def test_nested_mounts_match_relative_paths(test_client):
    inner = ServeMux("v1")
    inner.handle_func("/ping", text("pong"))
    inner.handle_func("/docs/", text("docs"))
    outer = ServeMux("api")
    outer.mount("/v1", inner)
    mux = ServeMux()
    mux.mount("/api", outer)
    client = test_client(mux, follow_redirects=False)

    assert client.get("/api/v1/ping").text == "pong"
    assert client.get("/api/v1/pong").status_code == 404
    assert client.get("/api/v1/docs").headers["location"] == "/api/v1/docs/"


def test_methods_are_enforced(test_client):
    mux = ServeMux()
    mux.handle_func("/items", text("items"), methods=["get", "post"])
    client = test_client(mux)

    assert client.get("/items").status_code == 200
    assert client.head("/items").status_code == 200
    resp = client.delete("/items")
    assert resp.status_code == 405
    assert resp.headers["allow"] == "GET, HEAD, POST"


def test_sync_handler(test_client):
    def sync(request: Request) -> PlainTextResponse:
        return PlainTextResponse(request.method)

    mux = ServeMux()
    mux.handle_func("/sync", sync)

    assert test_client(mux).get("/sync").text == "GET"


def test_handler_error_becomes_500(test_client):
    async def boom(request: Request) -> PlainTextResponse:
        raise RuntimeError("boom")

    mux = ServeMux()
    mux.handle_func("/boom", boom)

    resp = test_client(mux, raise_server_exceptions=False).get("/boom")
    assert resp.status_code == 500
    assert resp.text == "Internal Server Error"

    with pytest.raises(RuntimeError):
        test_client(mux).get("/boom")


def test_lifespan_is_acknowledged(test_client):
    mux = ServeMux()
    mux.handle_func("/", text("root"))

    with test_client(mux) as client:
        assert client.get("/").text == "root"


def test_repr():
    mux = ServeMux("top")
    mux.handle_func("/a", text("a"))
    assert repr(mux) == "ServeMux('top', patterns=['/a'])"
