# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# THE HASHER - INSTALLER DIGESTS
# -----------------------------------------------------------------------------
# Responsibility: Download an installer and compute the uppercase SHA256 that
# winget uses to verify it (InstallerSha256).
#
# Limits:
# - At most 10 redirects; an 11th is a TransferError
# - Non-2xx responses are a TransferError carrying the status code
# - One overall deadline (10 minutes) for the whole download, enforced by a
#   watchdog thread that shuts the socket down; a slow trickle of bytes does
#   not extend it
# - No caching, no retries
# -----------------------------------------------------------------------------

import hashlib
import socket
import threading

import requests
from pydantic import BaseModel
from rich.console import Console

from winget_publisher import __version__
from winget_publisher.domain.context import RunContext
from winget_publisher.domain.errors import TransferError

console = Console()

DOWNLOAD_TIMEOUT_SECONDS = 600  # Large installers may take time
MAX_REDIRECTS = 10
CHUNK_SIZE = 64 * 1024
USER_AGENT = f"winget-publisher/{__version__}"


class DownloadSettings(BaseModel):
    """Limits applied to every installer download."""

    timeout_seconds: float = DOWNLOAD_TIMEOUT_SECONDS
    max_redirects: int = MAX_REDIRECTS
    chunk_size: int = CHUNK_SIZE
    user_agent: str = USER_AGENT

    class Config:
        frozen = True


def _shutdown(response: requests.Response) -> None:
    """Shut down the socket under a streaming response so a blocked read returns."""
    connection = getattr(response.raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        # Already closed by the peer or the reader
        pass


class _Watchdog:
    """
    Aborts a streaming download from another thread.

    Fires when the time budget runs out (expired is set) or when fire() is
    called on cancellation. Either way the response socket is shut down.
    """

    def __init__(self, seconds: float) -> None:
        self.expired = threading.Event()
        self._fired = threading.Event()
        self._lock = threading.Lock()
        self._response: requests.Response | None = None
        self._timer = threading.Timer(seconds, self._expire)
        self._timer.daemon = True

    def __enter__(self) -> "_Watchdog":
        self._timer.start()
        return self

    def __exit__(self, *exc) -> bool:
        self._timer.cancel()
        return False

    def attach(self, response: requests.Response) -> None:
        with self._lock:
            self._response = response
        if self._fired.is_set():
            _shutdown(response)

    def fire(self) -> None:
        self._fired.set()
        with self._lock:
            response = self._response
        if response is not None:
            _shutdown(response)

    def _expire(self) -> None:
        self.expired.set()
        self.fire()


def hash_bytes(data: bytes) -> str:
    """Uppercase hex SHA256 of an in-memory buffer."""
    return hashlib.sha256(data).hexdigest().upper()


def calculate_installer_hash(
    url: str,
    ctx: RunContext | None = None,
    settings: DownloadSettings | None = None,
    session: requests.Session | None = None,
) -> str:
    """
    Download an installer and return its uppercase hex SHA256.

    The body is streamed into the digest; the file is never held in memory
    or written to disk.

    Args:
        url: Installer URL (version placeholder already substituted)
        ctx: Cancellation / deadline of the enclosing publish run
        settings: Download limits (timeout, redirect cap, chunk size)
        session: HTTP session to use (a fresh one by default). Its
            max_redirects is restored on return.

    Returns:
        64 uppercase hex characters

    Raises:
        TransferError: On non-2xx status, too many redirects, timeout or I/O failure
        PublishCancelled: If the run is cancelled mid-download
    """
    settings = settings or DownloadSettings()
    ctx = ctx or RunContext()
    ctx.check()

    http = session or requests.Session()
    previous_redirects = http.max_redirects
    http.max_redirects = settings.max_redirects

    budget = ctx.timeout(settings.timeout_seconds)
    exceeded = f"download exceeded {budget:g}s timeout"
    watchdog = _Watchdog(budget)

    console.print(f"[cyan][HASHER] Downloading: {url}[/cyan]")

    try:
        with watchdog, ctx.interrupt(watchdog.fire):
            response = http.get(
                url,
                headers={"User-Agent": settings.user_agent},
                stream=True,
                timeout=budget,
            )
            watchdog.attach(response)
            with response:
                if not 200 <= response.status_code < 300:
                    raise TransferError(
                        f"download failed with status {response.status_code}",
                        url=url,
                        status_code=response.status_code,
                    )

                digest = hashlib.sha256()
                size = 0
                for chunk in response.iter_content(chunk_size=settings.chunk_size):
                    ctx.check()
                    if watchdog.expired.is_set():
                        break
                    digest.update(chunk)
                    size += len(chunk)

        # A shut-down socket can look like a clean end of body
        ctx.check()
        if watchdog.expired.is_set():
            raise TransferError(exceeded, url=url)

    except requests.TooManyRedirects as e:
        raise TransferError(
            f"too many redirects (limit {settings.max_redirects})", url=url
        ) from e
    except requests.Timeout as e:
        ctx.check()
        if watchdog.expired.is_set():
            raise TransferError(exceeded, url=url) from e
        raise TransferError(f"download timed out: {e}", url=url) from e
    except requests.RequestException as e:
        ctx.check()
        if watchdog.expired.is_set():
            raise TransferError(exceeded, url=url) from e
        raise TransferError(f"failed to download installer: {e}", url=url) from e
    finally:
        if session is None:
            http.close()
        else:
            http.max_redirects = previous_redirects

    sha256 = digest.hexdigest().upper()
    console.print(f"[green][HASHER] {size} bytes, SHA256 {sha256}[/green]")
    return sha256
