"""Cookie access for the assignment engine.

The engine only talks to a `CookieStore`. On the server the store wraps the
incoming `Cookie` header and collects `Set-Cookie` values for the response;
on a client it reads and writes a live cookie jar directly.
"""

import time
from dataclasses import dataclass, field
from http.cookiejar import CookieJar
from http.cookies import SimpleCookie
from typing import Any, Callable, Protocol

from requests.cookies import create_cookie
from starlette.requests import cookie_parser


class CookieStore(Protocol):
    def read(self, name: str) -> str | None: ...

    def write(self, name: str, value: str, *, max_age: int, domain: str = "") -> None: ...


class HeaderCookieStore:
    """Server-side store backed by request/response headers."""

    def __init__(self, cookie_header: str | None = None):
        self._cookies = cookie_parser(cookie_header or "")
        # Serialized Set-Cookie values, in write order
        self.set_cookie_headers: list[str] = []

    def read(self, name: str) -> str | None:
        return self._cookies.get(name)

    def write(self, name: str, value: str, *, max_age: int, domain: str = "") -> None:
        cookie: SimpleCookie = SimpleCookie()
        cookie[name] = value
        cookie[name]["path"] = "/"
        cookie[name]["max-age"] = max_age
        if domain:
            cookie[name]["domain"] = domain
        self.set_cookie_headers.append(cookie.output(header="").strip())
        self._cookies[name] = value


class JarCookieStore:
    """Client-side store that reads and writes a live cookie jar."""

    def __init__(self, jar: CookieJar):
        self.jar = jar

    def read(self, name: str) -> str | None:
        for cookie in self.jar:
            if cookie.name == name:
                return cookie.value
        return None

    def write(self, name: str, value: str, *, max_age: int, domain: str = "") -> None:
        self.jar.set_cookie(create_cookie(
            name, value,
            path="/",
            domain=domain,
            expires=int(time.time()) + max_age,
        ))


@dataclass
class RequestContext:
    """Everything the engine needs to know about the current request."""

    cookies: CookieStore
    is_server: bool = True
    # Framework request object, handed to eligibility predicates
    request: Any = None
    # Client-side analytics hook, called as analytics(key, value)
    analytics: Callable[[str, str], None] | None = field(default=None, repr=False)
