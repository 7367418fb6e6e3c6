"""
Form transport: submits forms marked ``submit: ajax`` with httpx and swaps the
response into a target element.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Callable, Coroutine, Literal, Optional

import httpx

from ribbon.errors import Diagnostics
from ribbon.sink import Sink

logger = logging.getLogger(__name__)

SwapStrategy = Literal["outerHTML", "append", "prepend", "innerHTML"]
SWAP_ALIASES: dict[str, SwapStrategy] = {
    "replace-outer": "outerHTML",
    "replace-inner": "innerHTML",
}
REQUESTED_WITH = {"X-Requested-With": "fetch"}

_HOOK_NAMES = {
    "before_send": ("beforeSend", "before_send"),
    "on_success": ("onSuccess", "on_success"),
    "on_error": ("onError", "on_error"),
}


def normalize_swap(swap: Optional[str]) -> SwapStrategy:
    name = (swap or "").strip()
    name = SWAP_ALIASES.get(name, name)
    if name in ("outerHTML", "append", "prepend", "innerHTML"):
        return name  # type: ignore[return-value]
    return "innerHTML"


def apply_swap(sink: Sink, target: Any, content: Any, swap: Optional[str] = None) -> None:
    html = content if isinstance(content, str) else str(content)
    match normalize_swap(swap):
        case "outerHTML":
            sink.replace_outer(target, html)
        case "append":
            sink.insert_html(target, "beforeend", html)
        case "prepend":
            sink.insert_html(target, "afterbegin", html)
        case _:
            sink.set_html(target, html)


class FormHooks:
    """Caller supplied callbacks for a submission.

    Explicit callbacks win. Otherwise they are looked up by name on the
    mapping returned by ``source`` when the form is submitted, so a controller
    created after the form was enhanced is still honoured.
    """

    def __init__(
        self,
        before_send: Optional[Callable[[Any], Any]] = None,
        on_success: Optional[Callable[[Any], Any]] = None,
        on_error: Optional[Callable[[Any, int], Any]] = None,
        source: Optional[Callable[[], Mapping[str, Any]]] = None,
    ):
        self._explicit = {
            "before_send": before_send,
            "on_success": on_success,
            "on_error": on_error,
        }
        self.source = source

    def _resolve(self, hook: str) -> Optional[Callable[..., Any]]:
        fn = self._explicit.get(hook)
        if callable(fn):
            return fn
        if self.source is None:
            return None
        controller = self.source() or {}
        for name in _HOOK_NAMES[hook]:
            fn = controller.get(name)
            if callable(fn):
                return fn
        return None

    @property
    def before_send(self):
        return self._resolve("before_send")

    @property
    def on_success(self):
        return self._resolve("on_success")

    @property
    def on_error(self):
        return self._resolve("on_error")


def _form_data(fields: list[tuple[str, str]]) -> dict[str, str | list[str]]:
    data: dict[str, str | list[str]] = {}
    for name, value in fields:
        if name not in data:
            data[name] = value
            continue
        current = data[name]
        if isinstance(current, list):
            current.append(value)
        else:
            data[name] = [current, value]
    return data


class FormTransport:
    """Sends form submissions and swaps the response into a target element."""

    _client: httpx.AsyncClient | None

    def __init__(
        self,
        sink: Sink,
        base_url: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        diagnostics: Optional[Diagnostics] = None,
        timeout: float = 30.0,
    ):
        self.sink = sink
        self.base_url = base_url
        self.transport = transport
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.timeout = timeout
        self.pending: set[asyncio.Task[Any]] = set()
        self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                transport=self.transport,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def enhance(
        self,
        form: Any,
        target: Any = None,
        swap: Optional[str] = "innerHTML",
        hooks: Optional[FormHooks] = None,
    ) -> Callable[[], None]:
        """Take over submission of ``form``; returns a function removing the listener."""
        sink = self.sink

        def on_submit(event):
            sink.prevent_default(event)
            self.schedule(self.submit(form, target, swap, hooks))

        return sink.listen(form, "submit", on_submit)

    def schedule(self, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop in this thread, finish the request before returning
            asyncio.run(self._run_detached(coro))
            return
        task = loop.create_task(coro)
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)

    async def _run_detached(self, coro: Coroutine[Any, Any, Any]) -> None:
        # A client bound to a finished loop cannot be reused
        try:
            await coro
        finally:
            await self.close()

    async def drain(self) -> None:
        """Wait for every scheduled submission to finish."""
        while self.pending:
            await asyncio.gather(*list(self.pending))

    async def submit(
        self,
        form: Any,
        target: Any = None,
        swap: Optional[str] = "innerHTML",
        hooks: Optional[FormHooks] = None,
    ) -> Any:
        sink = self.sink
        hooks = hooks or FormHooks()
        target = form if target is None else target

        before_send = hooks.before_send
        if before_send is not None:
            before_send(form)

        method = (sink.get_attr(form, "method") or "POST").upper()
        action = sink.get_attr(form, "action") or ""
        data = _form_data(sink.form_fields(form))

        try:
            if method == "GET":
                response = await self.client.request(
                    method, action, params=data, headers=REQUESTED_WITH
                )
            else:
                response = await self.client.request(
                    method, action, data=data, headers=REQUESTED_WITH
                )
        except httpx.RequestError as e:
            message = str(e) or type(e).__name__
            self.diagnostics.report(
                "transport", f"Form request to '{action}' failed: {message}", element=form
            )
            on_error = hooks.on_error
            if on_error is not None:
                on_error(message, 0)
            else:
                apply_swap(sink, target, f"<strong>Network Error:</strong> {message}", swap)
            return message

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            result = response.json()
        else:
            result = response.text

        if response.is_success:
            on_success = hooks.on_success
            if on_success is not None:
                on_success(result)
            else:
                apply_swap(sink, target, result, swap)
        else:
            logger.warning(
                "Form request to '%s' returned %s", action, response.status_code
            )
            on_error = hooks.on_error
            if on_error is not None:
                on_error(result, response.status_code)
            else:
                apply_swap(
                    sink, target, f"<strong>Error:</strong> {response.status_code}", swap
                )
        return result

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
