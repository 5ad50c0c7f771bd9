"""Configuration for the assessment runner.

Settings are assembled from four layers, highest priority first: environment
variables, one-value text files under `config/` (named by dotted key, e.g.
`config/codec.rating_max`), the `assessment_config.json` document, and
built-in defaults. The merged result is validated by Pydantic models.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator, model_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("assessment_config.json")
logger = logging.getLogger(__name__)


def _override_file(dotted_key: str) -> Optional[str]:
    target = CONFIG_DIR / dotted_key
    if not target.is_file():
        return None
    try:
        return target.read_text(encoding="utf-8").strip() or None
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("config_override_unreadable path=%s error=%s", target, e)
        return None


def _setting(env_key: str, dotted_key: str, base: Optional[str] = None) -> Optional[str]:
    return os.environ.get(env_key) or _override_file(dotted_key) or base


class CodecConfig(BaseModel):
    """Defaults applied by the answer codec when question data omits them."""

    short_answer_max_length: int = Field(default=200, gt=0)
    rating_min: float = 1
    rating_max: float = 5
    rating_step: float = Field(default=1, gt=0)

    @model_validator(mode="after")
    def rating_bounds_ordered(self) -> "CodecConfig":
        if self.rating_min > self.rating_max:
            raise ValueError("codec.rating_min must not exceed codec.rating_max")
        return self


class DataConfig(BaseModel):
    seed_path: Optional[str] = None

    @field_validator("seed_path")
    @classmethod
    def seed_path_non_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class CorsConfig(BaseModel):
    origins: List[str] = Field(default_factory=lambda: ["*"])


class AppConfig(BaseModel):
    codec: CodecConfig = Field(default_factory=CodecConfig)
    data: DataConfig = Field(default_factory=DataConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)


def _load_document(path: Path) -> dict:
    if not path.is_file():
        return {}
    try:
        doc = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("config_document_unreadable path=%s error=%s", path, e)
        return {}
    return doc if isinstance(doc, dict) else {}


def _lookup(doc: dict, dotted_key: str, default: Optional[str] = None) -> Optional[str]:
    node: object = doc
    for part in dotted_key.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return default if node is None else str(node)


def _origins(doc: dict) -> List[str]:
    text = _setting("CORS_ORIGINS", "cors.origins")
    if text:
        return [o.strip() for o in text.split(",") if o.strip()]
    listed = doc.get("cors", {}).get("origins") if isinstance(doc.get("cors"), dict) else None
    if isinstance(listed, list) and listed:
        return [str(o) for o in listed]
    return ["*"]


def load_config(path: Path | None = None) -> AppConfig:
    """Assemble and validate the application configuration.

    `path` replaces the default `assessment_config.json` document. Raises
    ValueError (including Pydantic's ValidationError) for values that do not
    parse or fall outside their constraints.
    """
    doc = _load_document(path or ROOT_CONFIG)

    def _codec(env_key: str, name: str, default: str) -> str:
        key = f"codec.{name}"
        return str(_setting(env_key, key, _lookup(doc, key, default))).strip()

    try:
        return AppConfig(
            codec=CodecConfig(
                short_answer_max_length=int(_codec("SHORT_ANSWER_MAX_LENGTH", "short_answer_max_length", "200")),
                rating_min=float(_codec("RATING_MIN", "rating_min", "1")),
                rating_max=float(_codec("RATING_MAX", "rating_max", "5")),
                rating_step=float(_codec("RATING_STEP", "rating_step", "1")),
            ),
            data=DataConfig(seed_path=_setting("ASSESSMENT_SEED_PATH", "data.seed_path", _lookup(doc, "data.seed_path"))),
            cors=CorsConfig(origins=_origins(doc)),
        )
    except (PydanticValidationError, ValueError) as e:
        logger.error("config_invalid error=%s", e)
        raise


__all__ = [
    "AppConfig",
    "CodecConfig",
    "CorsConfig",
    "DataConfig",
    "load_config",
]
