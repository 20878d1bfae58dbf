"""Data models for raw module tokens and analysis configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

# Identifiers emitted by the build tool that are not real modules.
TOOLCHAIN_SENTINELS = ("go",)
TOOLCHAIN_PREFIX = "toolchain"


@dataclass(frozen=True)
class Module:
    """One ``name@version`` token from the raw module graph."""
    name: str
    version: str = ""

    def __str__(self) -> str:
        if self.version:
            return f"{self.name}@{self.version}"
        return self.name

    @property
    def is_toolchain(self) -> bool:
        return self.name in TOOLCHAIN_SENTINELS or self.name.startswith(TOOLCHAIN_PREFIX)


def parse_module(token: str) -> Module:
    """Split ``name@version`` on the first ``@``; the version is optional."""
    if "@" in token:
        name, version = token.split("@", 1)
        return Module(name=name, version=version)
    return Module(name=token)


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass
class AnalysisConfig:
    """Explicit inputs for one analysis run."""
    main_modules: list[str] = field(default_factory=list)
    exclude_modules: list[str] = field(default_factory=list)
    directory: Path | None = None
    graph_file: str | None = None  # path, or "-" for stdin
    max_cycle_length: int = 0  # 0 = unbounded
    max_paths: int = 1000  # 0 = unbounded
    top_n: int = 10

    def __post_init__(self):
        if not self.main_modules:
            self.main_modules = _env_list("DEPSTAT_MAIN_MODULES")
        if self.directory is None and os.getenv("DEPSTAT_DIR"):
            self.directory = Path(os.environ["DEPSTAT_DIR"])
        if self.directory is not None:
            self.directory = Path(self.directory)

        for name in ("max_cycle_length", "max_paths", "top_n"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
