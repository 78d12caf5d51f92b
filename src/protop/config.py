"""Command line and environment configuration for protop."""

import argparse
import os
from dataclasses import dataclass

DEFAULT_INTERVAL = 3.0
DEFAULT_TIMEOUT = 5.0

URL_ENV = "PROTOP_URL"
AUTH_KEY_ENV = "PROTOP_AUTH_KEY"


@dataclass
class Config:
    """Runtime configuration."""

    url: str | None = None  # None monitors the local machine
    interval: float = DEFAULT_INTERVAL
    auth_key: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    log_file: str | None = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Fix invalid values."""
        if self.interval <= 0:
            self.interval = DEFAULT_INTERVAL
        if self.timeout <= 0:
            self.timeout = DEFAULT_TIMEOUT
        if not self.url:
            self.url = None
        if not self.auth_key:
            self.auth_key = None
        self.log_level = self.log_level.upper()

    @property
    def is_local(self) -> bool:
        return self.url is None


def parse_args(argv: list[str] | None = None) -> Config:
    """Build a Config from command line arguments and the environment."""
    parser = argparse.ArgumentParser(
        prog="protop",
        description="Live terminal view of a remote (or the local) host's metrics",
    )
    parser.add_argument(
        "--url",
        default=os.environ.get(URL_ENV),
        help=f"Base URL of the monitor service (env {URL_ENV}); omit to monitor this machine",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=float,
        default=DEFAULT_INTERVAL,
        help="Seconds between refreshes",
    )
    parser.add_argument(
        "-a",
        "--auth-key",
        default=os.environ.get(AUTH_KEY_ENV),
        help=f"Auth key sent in the Authorization header (env {AUTH_KEY_ENV})",
    )
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Request timeout in seconds")
    parser.add_argument("--log-file", default=None, help="Write logs to this file")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
    )
    args = parser.parse_args(argv)

    return Config(
        url=args.url,
        interval=args.interval,
        auth_key=args.auth_key,
        timeout=args.timeout,
        log_file=args.log_file,
        log_level=args.log_level,
    )
