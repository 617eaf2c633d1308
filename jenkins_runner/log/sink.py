from typing import Any, Protocol


class LogSink(Protocol):
    """
    Leveled message sink supplied by the host.

    loguru's ``logger`` satisfies this protocol and is used whenever the host
    does not provide its own sink.
    """

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None: ...

    def info(self, message: str, *args: Any, **kwargs: Any) -> None: ...

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None: ...

    def error(self, message: str, *args: Any, **kwargs: Any) -> None: ...
