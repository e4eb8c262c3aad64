from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Set

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException
from pydantic import ValidationError

from .errors import InvalidRequest
from .models import ConfigMetadata, PaginatorSettings

load_dotenv()

_HERE = Path(__file__).resolve()
_CANDIDATE_CONFIG_PATHS = [parent / "config/config.yaml" for parent in _HERE.parents[:5]]

CONFIG_PATH = next((path for path in _CANDIDATE_CONFIG_PATHS if path.exists()), None)
if CONFIG_PATH is None:  # pragma: no cover - fail fast in broken installs
    raise FileNotFoundError("Default config.yaml could not be located; the package data appears to be missing.")

NOTES = {
    "assets.root": "Directory the template and font paths are resolved against (PAGINATOR_ASSETS_DIR).",
    "layout.content_offset": "Pixels the page content is pushed down to clear the header band.",
    "layout.typography": "Baseline positions in template pixels; override per job to adapt to other templates.",
    "output.dir": "Each job writes to <output.dir>/<title>-<job id>/<output.filename>.",
    "jobs.allow_duplicate_ordinals": "When false, two files with the same page number fail the job.",
}

# Configuration a remote client may override per job: a section maps to the
# keys allowed inside it, or to None when the whole section is open.
REMOTE_OVERRIDABLE_KEYS: Dict[str, Optional[Set[str]]] = {
    "layout": None,
    "jobs": {"allow_duplicate_ordinals"},
}


@lru_cache(maxsize=1)
def _load_default_config() -> DictConfig:
    if not CONFIG_PATH.exists():
        raise FileNotFoundError(f"Default config not found at {CONFIG_PATH}")
    return OmegaConf.load(CONFIG_PATH)


def get_default_config_container(resolve: bool = False) -> Dict[str, Any]:
    config = _load_default_config()
    return OmegaConf.to_container(config, resolve=resolve, enum_to_str=True)  # type: ignore[return-value]


def build_config_metadata() -> ConfigMetadata:
    overridable = {
        section: sorted(keys) if keys is not None else None for section, keys in REMOTE_OVERRIDABLE_KEYS.items()
    }
    return ConfigMetadata(
        defaults=get_default_config_container(resolve=False),
        overridable=overridable,
        notes=NOTES,
    )


def make_runtime_config(overrides: Dict[str, Any]) -> DictConfig:
    base_container = OmegaConf.to_container(_load_default_config(), resolve=False)
    base = OmegaConf.create(base_container)
    OmegaConf.set_struct(base, True)

    cli_config = OmegaConf.create(overrides)
    merged = DictConfig(OmegaConf.merge(base, cli_config))
    return merged


def parse_dotlist(items: Iterable[str]) -> Dict[str, Any]:
    """Turn ``key.path=value`` strings from the command line into a nested override dict."""
    return OmegaConf.to_container(OmegaConf.from_dotlist(list(items)))  # type: ignore[return-value]


def load_settings(overrides: Dict[str, Any] | None = None) -> PaginatorSettings:
    """
    Merge ``overrides`` onto the defaults and validate the result.

    Raises:
        InvalidRequest: If an override names an unknown key or has a wrong type
    """
    try:
        runtime_config = make_runtime_config(overrides or {})
        resolved = OmegaConf.to_container(runtime_config, resolve=True, enum_to_str=True)
        return PaginatorSettings.model_validate(resolved)
    except (OmegaConfBaseException, ValidationError) as exc:
        raise InvalidRequest(f"Invalid configuration overrides: {exc}") from exc
