from http import HTTPStatus

from starlette.responses import PlainTextResponse, RedirectResponse

from muxserve.interface import IReceive, IScope, ISend

NOT_FOUND_RESP = PlainTextResponse("Not Found", status_code=HTTPStatus.NOT_FOUND)


def method_not_allowed_resp(allowed: frozenset[str]) -> PlainTextResponse:
    return PlainTextResponse(
        "Method Not Allowed",
        status_code=HTTPStatus.METHOD_NOT_ALLOWED,
        headers={"allow": ", ".join(sorted(allowed))},
    )


def moved_permanently_resp(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=HTTPStatus.MOVED_PERMANENTLY)


INTERNAL_ERROR_HEADER = {
    "type": "http.response.start",
    "status": 500,
    "headers": [
        (b"content-type", b"text/plain; charset=utf-8"),
        (b"content-length", b"21"),
        (b"connection", b"close"),
    ],
}
INTERNAL_ERROR_BODY = {
    "type": "http.response.body",
    "body": b"Internal Server Error",
    "more_body": False,
}


async def InternalErrorResp(_: IScope, __: IReceive, send: ISend) -> None:
    await send(INTERNAL_ERROR_HEADER)
    await send(INTERNAL_ERROR_BODY)
