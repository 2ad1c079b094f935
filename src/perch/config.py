"""Application configuration.

One frozen dataclass holds every knob the app reads at runtime. Build a new
one with ``dataclasses.replace`` to change a setting.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, port=3000, worker_threads=8)
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Logging (applied by ``perch run``; the library never configures handlers)
    log_level: str = "info"

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB

    # Max handler tasks running at once on worker threads
    worker_threads: int = 40
