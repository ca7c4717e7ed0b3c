from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml


DEFAULT_CONFIG_PATH = Path("configs/engine.yaml")

READINESS_MARKER = "OCR init completed."
SUCCESS_CODE = 100
MAX_STARTUP_LINES = 50
CONFIG_PATH_FLAG = "--config_path"


@dataclass(frozen=True)
class EngineConfig:
    """Launch settings and protocol constants for one engine session.

    The readiness marker and the success code are defined by the engine
    build, so they live here rather than in the codec.
    """

    exe_path: Path
    config_path: Optional[Path] = None
    extra_args: Tuple[str, ...] = field(default_factory=tuple)
    working_dir: Optional[Path] = None
    readiness_marker: str = READINESS_MARKER
    max_startup_lines: int = MAX_STARTUP_LINES
    startup_timeout: Optional[float] = None
    request_timeout: Optional[float] = None
    success_code: int = SUCCESS_CODE
    inherit_stderr: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "exe_path", Path(self.exe_path))
        if self.config_path is not None:
            object.__setattr__(self, "config_path", Path(self.config_path))
        if self.working_dir is not None:
            object.__setattr__(self, "working_dir", Path(self.working_dir))
        object.__setattr__(self, "extra_args", tuple(str(arg) for arg in self.extra_args))
        if self.max_startup_lines < 1:
            raise ValueError("max_startup_lines must be at least 1")

    def build_args(self) -> List[str]:
        """Command-line arguments passed to the engine after the executable."""
        args = list(self.extra_args)
        if self.config_path is not None:
            args.append(f"{CONFIG_PATH_FLAG}={self.config_path}")
        return args

    def resolved_working_dir(self) -> Optional[Path]:
        # the engine resolves its model files relative to its own folder
        if self.working_dir is not None:
            return self.working_dir
        parent = self.exe_path.expanduser().parent
        return parent if str(parent) not in ("", ".") else None

    def with_overrides(self, **changes: Any) -> "EngineConfig":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exe_path": str(self.exe_path),
            "config_path": str(self.config_path) if self.config_path else None,
            "extra_args": list(self.extra_args),
            "working_dir": str(self.working_dir) if self.working_dir else None,
            "readiness_marker": self.readiness_marker,
            "max_startup_lines": self.max_startup_lines,
            "startup_timeout": self.startup_timeout,
            "request_timeout": self.request_timeout,
            "success_code": self.success_code,
            "inherit_stderr": self.inherit_stderr,
        }


def load_yaml_config(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_config(path: Optional[Path] = None, exe_path: Optional[Path] = None) -> EngineConfig:
    """
    Load engine configuration from the ``engine`` section of a YAML file.

    Missing keys fall back to the dataclass defaults. ``exe_path`` overrides
    the executable named in the file.
    """

    config_path = path or DEFAULT_CONFIG_PATH
    if config_path.exists():
        data = load_yaml_config(config_path)
    else:
        data = {}

    engine_data: Dict[str, Any] = data.get("engine", {}) or {}
    executable = exe_path or engine_data.get("exe_path")
    if not executable:
        raise ValueError(f"No engine executable configured (checked {config_path})")

    model_config = engine_data.get("config_path")
    working_dir = engine_data.get("working_dir")
    return EngineConfig(
        exe_path=Path(executable).expanduser(),
        config_path=Path(model_config).expanduser() if model_config else None,
        extra_args=tuple(engine_data.get("extra_args") or ()),
        working_dir=Path(working_dir).expanduser() if working_dir else None,
        readiness_marker=engine_data.get("readiness_marker", READINESS_MARKER),
        max_startup_lines=int(engine_data.get("max_startup_lines", MAX_STARTUP_LINES)),
        startup_timeout=engine_data.get("startup_timeout"),
        request_timeout=engine_data.get("request_timeout"),
        success_code=int(engine_data.get("success_code", SUCCESS_CODE)),
        inherit_stderr=bool(engine_data.get("inherit_stderr", False)),
    )


def dump_config(config: EngineConfig, path: Optional[Path] = None) -> None:
    """Persist the configuration to YAML."""
    config_path = path or DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump({"engine": config.to_dict()}, handle, sort_keys=False)
