"""Configuration loader for the knowledge store."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

CONFIG_ENV_VAR = "RECALL_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config.yaml"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class OllamaConfig:
    base_url: str = "http://127.0.0.1:11434"
    timeout: float = 60.0


@dataclass(frozen=True)
class ModelConfig:
    summary: str = "gemma3"
    tags: str = "gemma3"
    auto_pull: bool = False


@dataclass(frozen=True)
class StoreConfig:
    db_path: Path = Path("data/recall.sqlite3")


@dataclass(frozen=True)
class SearchConfig:
    threshold: float = 0.4
    min_match_chars: int = 2
    weights: Mapping[str, float] = field(
        default_factory=lambda: {"title": 0.4, "summary": 0.3, "tags": 0.2, "url": 0.1}
    )


@dataclass(frozen=True)
class IngestConfig:
    min_text_chars: int = 100
    full_text_chars: int = 5000
    tag_input_chars: int = 2000
    summary_fallback_chars: int = 200
    ai_timeout: float = 30.0
    related_preview: int = 3


@dataclass(frozen=True)
class RecallConfig:
    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    models: ModelConfig = field(default_factory=ModelConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)

    @staticmethod
    def _resolve_path(path_value: str | Path, base_dir: Path) -> Path:
        path = Path(path_value).expanduser()
        if not path.is_absolute():
            path = base_dir / path
        return path

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, base_dir: Path) -> "RecallConfig":
        ollama = _section(data, "ollama")
        models = _section(data, "models")
        store = _section(data, "store")
        search = _section(data, "search")
        ingest = _section(data, "ingest")

        env_ollama = os.getenv("OLLAMA_URL") or os.getenv("OLLAMA_HOST")
        base_url_value = env_ollama or ollama.get("base_url") or OllamaConfig.base_url
        ollama_cfg = OllamaConfig(
            base_url=str(base_url_value).rstrip("/"),
            timeout=float(ollama.get("timeout", OllamaConfig.timeout)),
        )

        summary_model = os.getenv("RECALL_SUMMARY_MODEL") or models.get("summary")
        tag_model = os.getenv("RECALL_TAG_MODEL") or models.get("tags")
        auto_pull_env = os.getenv("RECALL_AUTO_PULL")
        if auto_pull_env is not None and auto_pull_env.strip():
            auto_pull = auto_pull_env.strip().lower() in _TRUE_VALUES
        else:
            auto_pull = bool(models.get("auto_pull", False))
        model_cfg = ModelConfig(
            summary=str(summary_model or ModelConfig.summary).strip() or ModelConfig.summary,
            tags=str(tag_model or ModelConfig.tags).strip() or ModelConfig.tags,
            auto_pull=auto_pull,
        )

        db_path_env = os.getenv("RECALL_DB_PATH")
        if db_path_env is not None and not db_path_env.strip():
            db_path_env = None
        db_path_value = db_path_env or store.get("db_path") or StoreConfig.db_path
        store_cfg = StoreConfig(db_path=cls._resolve_path(db_path_value, base_dir))

        defaults = SearchConfig()
        raw_weights = search.get("weights")
        weights = dict(defaults.weights)
        if isinstance(raw_weights, Mapping):
            for key, value in raw_weights.items():
                if key in weights:
                    weights[key] = float(value)
        search_cfg = SearchConfig(
            threshold=float(search.get("threshold", defaults.threshold)),
            min_match_chars=int(search.get("min_match_chars", defaults.min_match_chars)),
            weights=weights,
        )

        ingest_cfg = IngestConfig(
            min_text_chars=int(ingest.get("min_text_chars", IngestConfig.min_text_chars)),
            full_text_chars=int(ingest.get("full_text_chars", IngestConfig.full_text_chars)),
            tag_input_chars=int(ingest.get("tag_input_chars", IngestConfig.tag_input_chars)),
            summary_fallback_chars=int(
                ingest.get("summary_fallback_chars", IngestConfig.summary_fallback_chars)
            ),
            ai_timeout=float(ingest.get("ai_timeout", IngestConfig.ai_timeout)),
            related_preview=int(ingest.get("related_preview", IngestConfig.related_preview)),
        )

        return cls(
            ollama=ollama_cfg,
            models=model_cfg,
            store=store_cfg,
            search=search_cfg,
            ingest=ingest_cfg,
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "RecallConfig":
        base_dir = path.resolve().parent
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, Mapping):
            raise ValueError(f"Configuration at {path} must be a mapping")
        return cls.from_mapping(data, base_dir=base_dir)


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name)
    return value if isinstance(value, Mapping) else {}


def load_config(path: Path | str | None = None) -> RecallConfig:
    """Load configuration from YAML (if present) and environment overrides."""

    load_dotenv()

    if path is not None:
        config_path = Path(path).expanduser().resolve()
    else:
        env_path = os.getenv(CONFIG_ENV_VAR)
        config_path = (
            Path(env_path).expanduser().resolve() if env_path else DEFAULT_CONFIG_PATH
        )
    if config_path.exists():
        return RecallConfig.from_yaml(config_path)
    if path is not None or os.getenv(CONFIG_ENV_VAR):
        raise FileNotFoundError(f"Configuration file not found at {config_path}")
    return RecallConfig.from_mapping({}, base_dir=Path.cwd())


__all__ = [
    "RecallConfig",
    "OllamaConfig",
    "ModelConfig",
    "StoreConfig",
    "SearchConfig",
    "IngestConfig",
    "load_config",
]
