"""Object transfer between two buckets.

The byte-level work is delegated to rclone. Each pair gets its own
temporary rclone config holding the two remotes; it is removed when the
pair finishes, whatever the outcome.

Transfers use ``rclone copy --update``: missing or source-newer objects
are copied, newer destination objects are kept and nothing is deleted.
"""

import configparser
import logging
import os
import subprocess
import tempfile
import threading
from abc import ABC, abstractmethod
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Optional

from s3bucketsync.models import ProviderConfig, SyncPair, TransferOptions

logger = logging.getLogger(__name__)

SOURCE_REMOTE = "source"
DEST_REMOTE = "dest"

# Endpoint fragments mapped to rclone's S3 provider names
RCLONE_PROVIDER_TYPES = {
    "scw.cloud": "Scaleway",
    "amazonaws.com": "AWS",
    "r2.cloudflarestorage.com": "Cloudflare",
}

# Lines of rclone output kept for the failure message
ERROR_TAIL_LINES = 5


@dataclass
class TransferResult:
    """Outcome of syncing one bucket."""

    ok: bool
    returncode: Optional[int] = None
    message: Optional[str] = None
    # Last lines of rclone output
    output: str = ""


class TransferEngine(ABC):
    """Synchronizes the objects of one bucket between two locations."""

    source_remote = SOURCE_REMOTE
    destination_remote = DEST_REMOTE

    def locations(self, bucket: str) -> tuple[str, str]:
        """Source and destination location identifiers for ``bucket``."""
        return f"{self.source_remote}:{bucket}", f"{self.destination_remote}:{bucket}"

    @abstractmethod
    def sync(
        self,
        source_location: str,
        destination_location: str,
        options: TransferOptions,
    ) -> TransferResult:
        """Copy missing or changed objects; never delete."""


def detect_provider_type(endpoint_url: str) -> str:
    """Map an endpoint URL to an rclone S3 provider name."""
    for fragment, provider_type in RCLONE_PROVIDER_TYPES.items():
        if fragment in endpoint_url:
            return provider_type
    return "Other"


def remote_section(provider: ProviderConfig) -> dict[str, str]:
    """rclone remote settings for a provider."""
    return {
        "type": "s3",
        "provider": detect_provider_type(provider.endpoint_url),
        "access_key_id": provider.aws_access_key_id,
        "secret_access_key": provider.aws_secret_access_key,
        "endpoint": provider.endpoint_url,
        "region": provider.region_name,
        "force_path_style": "true" if provider.addressing_style == "path" else "false",
    }


@contextmanager
def rclone_config(
    source: ProviderConfig,
    destination: ProviderConfig,
) -> Generator[str, None, None]:
    """Write a temporary rclone config with source and dest remotes.

    Yields:
        Path to the config file. The file is deleted on exit.
    """
    parser = configparser.ConfigParser(interpolation=None)
    parser[SOURCE_REMOTE] = remote_section(source)
    parser[DEST_REMOTE] = remote_section(destination)

    fd, path = tempfile.mkstemp(prefix="rclone-config-", suffix=".conf")
    try:
        with os.fdopen(fd, "w") as f:
            parser.write(f)
        yield path
    finally:
        if os.path.exists(path):
            os.remove(path)


def build_rclone_command(
    binary: str,
    config_path: str,
    source_location: str,
    destination_location: str,
    options: TransferOptions,
) -> list[str]:
    """Build the rclone argument list for one bucket."""
    cmd = [
        binary,
        "copy",
        source_location,
        destination_location,
        "--config",
        config_path,
    ]

    if options.verbose:
        cmd += ["-vv", "--stats", "5s"]
    else:
        cmd += ["-v", "--stats", "10s"]

    if options.dry_run:
        cmd.append("--dry-run")

    if options.update_only:
        cmd.append("--update")

    cmd += [
        "--transfers", str(options.transfers),
        "--checkers", str(options.checkers),
    ]
    return cmd


class RcloneTransferEngine(TransferEngine):
    """TransferEngine that shells out to rclone."""

    def __init__(self, config_path: str, binary: str = "rclone"):
        self.config_path = config_path
        self.binary = binary

    def sync(
        self,
        source_location: str,
        destination_location: str,
        options: TransferOptions,
    ) -> TransferResult:
        cmd = build_rclone_command(
            self.binary,
            self.config_path,
            source_location,
            destination_location,
            options,
        )
        logger.debug("Running: %s", " ".join(cmd))

        try:
            # rclone logs to stderr; merge it so lines stay in order
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except FileNotFoundError:
            return TransferResult(ok=False, message=f"{self.binary} not found on PATH")

        timed_out = threading.Event()
        timer = None
        if options.timeout is not None:
            def kill() -> None:
                timed_out.set()
                proc.kill()

            timer = threading.Timer(options.timeout, kill)
            timer.daemon = True
            timer.start()

        # Only the tail is kept; every line goes to the log as it arrives
        tail: deque = deque(maxlen=ERROR_TAIL_LINES)
        try:
            for line in proc.stdout:
                line = line.rstrip()
                if line:
                    tail.append(line)
                    logger.info("%s: %s", source_location, line)
            returncode = proc.wait()
        finally:
            if timer is not None:
                timer.cancel()
            proc.stdout.close()

        output = "\n".join(tail)
        if timed_out.is_set():
            return TransferResult(
                ok=False,
                returncode=returncode,
                message=f"Transfer timed out after {options.timeout:.0f}s",
                output=output,
            )
        if returncode != 0:
            return TransferResult(
                ok=False,
                returncode=returncode,
                message=output or f"rclone exited with status {returncode}",
                output=output,
            )
        return TransferResult(ok=True, returncode=0, output=output)


@contextmanager
def rclone_engine(pair: SyncPair) -> Generator[TransferEngine, None, None]:
    """Pair-scoped RcloneTransferEngine with its own config file."""
    with rclone_config(pair.source, pair.destination) as config_path:
        yield RcloneTransferEngine(config_path)
