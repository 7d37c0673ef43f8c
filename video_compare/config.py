from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = Path("configs/default.yaml")
ENV_PREFIX = "VIDEO_COMPARE_"


class ComparisonSettings(BaseModel):
    lead_in_seconds: float = 2.0
    margin_seconds: float = 4.0
    temp_dir: Path | None = None


class TranscodeSettings(BaseModel):
    video_codec: str = "libx264"
    crf: int = 16
    preset: str = "veryfast"


class ToolSettings(BaseModel):
    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    timeout_seconds: int = 600


class LoggingSettings(BaseModel):
    level: str = "WARNING"
    file: Path | None = None


class Settings(BaseModel):
    comparison: ComparisonSettings = Field(default_factory=ComparisonSettings)
    transcode: TranscodeSettings = Field(default_factory=TranscodeSettings)
    tools: ToolSettings = Field(default_factory=ToolSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load typed settings from optional YAML with environment-variable overrides.

    An explicitly requested config file must exist. Without one, the default path
    is used only when present; otherwise the built-in defaults apply.
    """

    explicit_path = config_path or os.getenv(f"{ENV_PREFIX}CONFIG")
    if explicit_path:
        resolved_path: Path | None = Path(explicit_path)
        if not resolved_path.exists():
            raise FileNotFoundError(f"Config file not found: {resolved_path}")
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH
    else:
        resolved_path = None

    raw_config: dict[str, Any] = {}
    if resolved_path is not None:
        raw_config = yaml.safe_load(resolved_path.read_text(encoding="utf-8")) or {}
    data = Settings.model_validate(raw_config).model_dump(mode="python")

    for key, raw_value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        suffix = key[len(ENV_PREFIX) :]
        if suffix == "CONFIG":
            continue

        path = [part.lower() for part in suffix.split("__")]
        _apply_override(data, path, raw_value)

    return Settings.model_validate(data)


def _apply_override(data: dict[str, Any], path: list[str], raw_value: str) -> None:
    current: Any = data
    for segment in path[:-1]:
        if not isinstance(current, dict) or segment not in current:
            return
        current = current[segment]

    if not isinstance(current, dict):
        return

    final_key = path[-1]
    if final_key not in current:
        return

    current[final_key] = _coerce_value(raw_value, current[final_key])


def _coerce_value(raw_value: str, existing_value: Any) -> Any:
    if isinstance(existing_value, bool):
        return raw_value.lower() in {"1", "true", "yes", "on"}
    if isinstance(existing_value, int) and not isinstance(existing_value, bool):
        return int(raw_value)
    if isinstance(existing_value, float):
        return float(raw_value)
    if isinstance(existing_value, list | dict):
        return json.loads(raw_value)
    if isinstance(existing_value, Path):
        return Path(raw_value)
    return raw_value
