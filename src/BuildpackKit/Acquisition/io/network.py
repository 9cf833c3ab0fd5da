# === NAVMAP v1 ===
# {
#   "module": "BuildpackKit.Acquisition.io.network",
#   "purpose": "Retrieve artifacts with curl or httpx, to disk or straight into an extraction tool",
#   "sections": [
#     {"id": "protocol", "name": "Fetcher Protocol", "anchor": "PRO", "kind": "api"},
#     {"id": "curl", "name": "CurlFetcher", "anchor": "CRL", "kind": "api"},
#     {"id": "httpx", "name": "HttpxFetcher", "anchor": "HTX", "kind": "api"},
#     {"id": "factory", "name": "Fetcher Factory", "anchor": "FAC", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Network retrieval for build-time dependencies.

Two interchangeable fetchers implement :class:`Fetcher`:

``CurlFetcher``
    Delegates to ``curl`` through :class:`~.runner.CommandRunner`.  Retries and
    timeouts belong to curl (``--retry``), and failures surface curl's exit
    code and stderr.  Streaming pipes curl's stdout into the extraction tool.

``HttpxFetcher``
    Streams the response body with ``httpx`` in bounded chunks, retrying
    transport errors and retryable statuses with ``tenacity``.  Failures are
    reported with curl-compatible exit codes so callers see the same
    semantics regardless of backend.

Neither fetcher leaves partial bytes at the destination when it fails.
"""

from __future__ import annotations

import contextlib
import logging
import os
import signal
import time
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Protocol, Sequence, Union

import httpx
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..errors import Attribution, CommandError, ExtractionError, FetchError
from .filesystem import mask_url, remove_quietly, staging_path
from .runner import CommandRunner

__all__ = [
    "Fetcher",
    "CurlFetcher",
    "HttpxFetcher",
    "is_retryable_error",
    "build_fetcher",
]

PathLike = Union[str, Path]

_LOGGER = logging.getLogger("BuildpackKit.Acquisition")
_CHUNK_SIZE = 1 << 20

# curl exit codes reused by the httpx backend.
_CURL_COULDNT_CONNECT = 7
_CURL_HTTP_ERROR = 22
_CURL_WRITE_ERROR = 23
_CURL_TIMEOUT = 28

# Producer statuses caused by the consumer closing the pipe early.
_BROKEN_PIPE_STATUSES = (_CURL_WRITE_ERROR, -signal.SIGPIPE)


class Fetcher(Protocol):
    """Retrieve ``url`` either to a file or into the stdin of a command."""

    def fetch(self, description: str, url: str, destination: PathLike) -> None:
        ...

    def fetch_into(
        self,
        description: str,
        url: str,
        command: Sequence[str],
        *,
        attribution: Attribution = Attribution.USER,
    ) -> None:
        ...


def _failure_message(description: str, detail: str, stderr: str) -> str:
    message = f"fetching {description}: {detail}"
    stderr = stderr.strip()
    if stderr:
        message = f"{message}\n{stderr}"
    return message


class CurlFetcher:
    """Fetch artifacts by running ``curl``."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        retries: int = 3,
        binary: str = "curl",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.runner = runner
        self.retries = retries
        self.binary = binary
        self.logger = logger or _LOGGER

    def download_command(self, url: str, destination: PathLike) -> List[str]:
        return [
            self.binary,
            "--silent",
            "--fail",
            "--show-error",
            "--location",
            "--retry",
            str(self.retries),
            "--output",
            str(destination),
            url,
        ]

    def stream_command(self, url: str) -> List[str]:
        return [
            self.binary,
            "--fail",
            "--show-error",
            "--silent",
            "--location",
            "--retry",
            str(self.retries),
            url,
        ]

    def fetch(self, description: str, url: str, destination: PathLike) -> None:
        self.logger.info(
            "fetching %s",
            description,
            extra={"stage": "download", "url": mask_url(url), "destination": str(destination)},
        )
        try:
            self.runner.run(self.download_command(url, destination), attribution=Attribution.USER)
        except CommandError as exc:
            remove_quietly(destination)
            raise FetchError(
                _failure_message(description, str(exc), exc.stderr),
                exit_code=exc.exit_code,
                stderr=exc.stderr,
            ) from exc

    def fetch_into(
        self,
        description: str,
        url: str,
        command: Sequence[str],
        *,
        attribution: Attribution = Attribution.USER,
    ) -> None:
        self.logger.info(
            "streaming %s",
            description,
            extra={"stage": "download", "url": mask_url(url), "consumer": list(command)},
        )
        fetched, extracted = self.runner.pipe(
            self.stream_command(url), command, attribution=attribution
        )
        consumer_closed_pipe = not extracted.ok and fetched.exit_code in _BROKEN_PIPE_STATUSES
        if not fetched.ok and not consumer_closed_pipe:
            stderr = "\n".join(part for part in (fetched.stderr, extracted.stderr) if part.strip())
            raise FetchError(
                _failure_message(description, f"exit status {fetched.exit_code}", stderr),
                exit_code=fetched.exit_code,
                stderr=stderr,
            )
        if not extracted.ok:
            raise ExtractionError(
                f"extracting {description}: exit status {extracted.exit_code}\n{extracted.stderr}".rstrip(),
                exit_code=extracted.exit_code,
                stderr=extracted.stderr,
            )


def is_retryable_error(exc: BaseException) -> bool:
    """Return ``True`` for transport failures and 429/5xx responses."""

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, httpx.TransportError)


def _exit_code_for(exc: httpx.HTTPError) -> int:
    if isinstance(exc, httpx.HTTPStatusError):
        return _CURL_HTTP_ERROR
    if isinstance(exc, httpx.TimeoutException):
        return _CURL_TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        return _CURL_COULDNT_CONNECT
    return 1


def _http_detail(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"The requested URL returned error: {exc.response.status_code}"
    return f"{type(exc).__name__}: {exc}"


class HttpxFetcher:
    """Fetch artifacts with a streaming ``httpx`` client."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        retries: int = 3,
        timeout: float = 300.0,
        backoff_factor: float = 0.5,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.runner = runner
        self.retries = retries
        self.timeout = timeout
        self.backoff_factor = backoff_factor
        self.client = client
        self.sleep = sleep
        self.logger = logger or _LOGGER

    @contextlib.contextmanager
    def _session(self) -> Iterator[httpx.Client]:
        if self.client is not None:
            yield self.client
            return
        with httpx.Client(follow_redirects=True, timeout=self.timeout) as client:
            yield client

    def _log_retry(self, retry_state) -> None:
        outcome = retry_state.outcome
        exc = outcome.exception() if outcome is not None else None
        self.logger.warning(
            "retrying download",
            extra={
                "stage": "download",
                "attempt": retry_state.attempt_number,
                "error": str(exc),
            },
        )

    def _open(self, client: httpx.Client, url: str) -> httpx.Response:
        def _attempt() -> httpx.Response:
            response = client.send(client.build_request("GET", url), stream=True)
            if response.is_error:
                response.close()
                response.raise_for_status()
            return response

        retrying = Retrying(
            retry=retry_if_exception(is_retryable_error),
            stop=stop_after_attempt(self.retries + 1),
            wait=wait_exponential(multiplier=self.backoff_factor),
            sleep=self.sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        return retrying(_attempt)

    def fetch(self, description: str, url: str, destination: PathLike) -> None:
        destination = Path(destination)
        part = staging_path(destination)
        self.logger.info(
            "fetching %s",
            description,
            extra={"stage": "download", "url": mask_url(url), "destination": str(destination)},
        )
        try:
            with self._session() as client:
                response = self._open(client, url)
                try:
                    with part.open("wb") as stream:
                        for chunk in response.iter_bytes(_CHUNK_SIZE):
                            stream.write(chunk)
                finally:
                    response.close()
            os.replace(part, destination)
        except httpx.HTTPError as exc:
            remove_quietly(part)
            remove_quietly(destination)
            detail = _http_detail(exc)
            raise FetchError(
                _failure_message(description, detail, ""),
                exit_code=_exit_code_for(exc),
                stderr=detail,
            ) from exc
        except OSError as exc:
            remove_quietly(part)
            remove_quietly(destination)
            raise FetchError(
                _failure_message(description, f"writing {destination}: {exc}", ""),
                exit_code=_CURL_WRITE_ERROR,
                stderr=str(exc),
            ) from exc

    def fetch_into(
        self,
        description: str,
        url: str,
        command: Sequence[str],
        *,
        attribution: Attribution = Attribution.USER,
    ) -> None:
        self.logger.info(
            "streaming %s",
            description,
            extra={"stage": "download", "url": mask_url(url), "consumer": list(command)},
        )
        try:
            with self._session() as client:
                response = self._open(client, url)
                try:
                    self.runner.feed(
                        command, response.iter_bytes(_CHUNK_SIZE), attribution=attribution
                    )
                finally:
                    response.close()
        except httpx.HTTPError as exc:
            detail = _http_detail(exc)
            raise FetchError(
                _failure_message(description, detail, ""),
                exit_code=_exit_code_for(exc),
                stderr=detail,
            ) from exc
        except CommandError as exc:
            raise ExtractionError(
                f"extracting {description}: {exc}\n{exc.stderr}".rstrip(),
                exit_code=exc.exit_code,
                stderr=exc.stderr,
            ) from exc


def build_fetcher(
    backend: str,
    runner: CommandRunner,
    *,
    retries: int = 3,
    timeout: float = 300.0,
    curl_binary: str = "curl",
    logger: Optional[logging.Logger] = None,
) -> Fetcher:
    """Return the fetcher implementing ``backend`` (``curl`` or ``httpx``)."""

    if backend == "curl":
        return CurlFetcher(runner, retries=retries, binary=curl_binary, logger=logger)
    if backend == "httpx":
        return HttpxFetcher(runner, retries=retries, timeout=timeout, logger=logger)
    raise ValueError(f"unknown fetch backend {backend!r}")
