"""Environment-driven settings."""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .runtime import InProcessRuntime, PythonRuntime, WorkerRuntime


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass
class SandboxSettings:
    """Settings for the manager, server and CLI.

    Every field can be set with a ``CODEHARVEST_<FIELD>`` environment variable.
    """

    runtime: str = "worker"
    worker_ready_timeout: float = 15.0
    preload_modules: tuple[str, ...] = field(default_factory=tuple)
    session_ttl_hours: float = 24.0
    project_name: str = "project"
    export_dir: str = "./exports"
    host: str = "0.0.0.0"  # nosec B104 - intentional for container deployment
    port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "SandboxSettings":
        """Load settings from the environment (and a ``.env`` file if present)."""
        if dotenv:
            load_dotenv()
        return cls(
            runtime=os.getenv("CODEHARVEST_RUNTIME", "worker").lower(),
            worker_ready_timeout=float(os.getenv("CODEHARVEST_WORKER_READY_TIMEOUT", "15")),
            preload_modules=_env_list("CODEHARVEST_PRELOAD_MODULES"),
            session_ttl_hours=float(os.getenv("CODEHARVEST_SESSION_TTL_HOURS", "24")),
            project_name=os.getenv("CODEHARVEST_PROJECT_NAME", "project"),
            export_dir=os.getenv("CODEHARVEST_EXPORT_DIR", "./exports"),
            host=os.getenv("CODEHARVEST_HOST", "0.0.0.0"),  # nosec B104
            port=int(os.getenv("CODEHARVEST_PORT", "8080")),
            log_level=os.getenv("CODEHARVEST_LOG_LEVEL", "INFO").upper(),
        )

    def create_runtime(self) -> PythonRuntime:
        if self.runtime == "inprocess":
            return InProcessRuntime(preload_modules=self.preload_modules)
        if self.runtime == "worker":
            return WorkerRuntime(
                ready_timeout=self.worker_ready_timeout,
                preload_modules=self.preload_modules,
            )
        raise ValueError(f"Unknown runtime: {self.runtime}. Valid runtimes: ['inprocess', 'worker']")
