"""Configuration-driven plugin loader.

Loads plugins declared in a YAML file (``settings.plugins_config_path``) and
builds the composite schema from them.

Supports two declaration forms: class, entrypoint.
Strict mode is enabled by default and will fail startup on load errors.
Registration errors (name collisions, dangling references) are always fatal.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from importlib import import_module
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any

import yaml

from mosaic.config import settings
from mosaic.logging import get_logger

from .composite import CompositeSchema
from .plugin import Plugin
from .registry import SchemaRegistry

logger = get_logger(__name__)


ENTRYPOINT_GROUP = "mosaic.plugins"

BUILTIN_PLUGINS: tuple[str, ...] = (
    "mosaic.plugins.people:PeoplePlugin",
    "mosaic.plugins.events:EventsPlugin",
    "mosaic.plugins.checkins:CheckInsPlugin",
)


@dataclass
class LoaderConfig:
    strict_mode: bool = True
    declarations: list[dict[str, Any]] = field(default_factory=list)


def _load_file_config(path: str) -> LoaderConfig | None:
    try:
        with open(path, encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return None

    return LoaderConfig(
        strict_mode=bool(data.get("strict_mode", True)),
        declarations=list(data.get("plugins", []) or []),
    )


def _discover_config() -> LoaderConfig | None:
    """Discover config from settings.plugins_config_path."""
    if not settings.plugins_config_path:
        return None

    path = Path(settings.plugins_config_path)
    if not path.exists():
        logger.warning("Plugins config path set but not found", path=str(path))
        return None

    cfg = _load_file_config(str(path))
    if cfg:
        logger.info("Loaded plugins config from settings", path=str(path))
    return cfg


def _resolve_class(qualified_name: str) -> type[Plugin]:
    if ":" in qualified_name:
        module_name, class_name = qualified_name.split(":", 1)
    else:
        module_name, class_name = qualified_name.rsplit(".", 1)

    module = import_module(module_name)
    cls = getattr(module, class_name)
    if not isinstance(cls, type) or not issubclass(cls, Plugin):
        raise TypeError(f"Resolved object is not a Plugin subclass: {qualified_name}")
    return cls


def _resolve_entrypoint(name: str) -> type[Plugin]:
    try:
        group_filtered: Iterable[Any] = importlib_metadata.entry_points().select(
            group=ENTRYPOINT_GROUP
        )
    except Exception as e:  # pragma: no cover - edge cases
        raise RuntimeError(f"Failed to read entry points: {e}") from e

    for ep in group_filtered:
        if getattr(ep, "name", None) == name:
            obj = ep.load()
            if not isinstance(obj, type) or not issubclass(obj, Plugin):
                raise TypeError(f"Entry point '{name}' is not a Plugin class")
            return obj

    raise LookupError(f"Entry point not found: {name}")


def builtin_plugins() -> list[Plugin]:
    return [_resolve_class(path)() for path in BUILTIN_PLUGINS]


def load_plugins_from_config(config_path: str | None = None) -> list[Plugin]:
    """Instantiate the plugins named in configuration, in declaration order.

    Without any configuration the built-in plugins are returned.
    Raises on load errors when strict mode is enabled (default).
    """
    cfg: LoaderConfig | None
    if config_path:
        cfg = _load_file_config(config_path)
        if cfg is None:
            raise FileNotFoundError(f"Plugins config not found: {config_path}")
        logger.info("Loaded plugins config from explicit path", path=config_path)
    else:
        cfg = _discover_config()

    if cfg is None:
        logger.info("No plugins configuration found; using built-in plugins")
        return builtin_plugins()

    plugins: list[Plugin] = []
    for decl in cfg.declarations:
        if not isinstance(decl, dict):
            msg = f"Invalid plugin declaration type: {type(decl)}"
            if cfg.strict_mode:
                raise ValueError(msg)
            logger.error(msg)
            continue

        if decl.get("enabled") is False:
            continue

        options = decl.get("options", {}) or {}
        try:
            if "class" in decl:
                cls = _resolve_class(decl["class"])
                source = {"class_path": decl["class"]}
            elif "entrypoint" in decl:
                cls = _resolve_entrypoint(decl["entrypoint"])
                source = {"entrypoint": decl["entrypoint"]}
            else:
                raise ValueError("Plugin declaration must include one of: class, entrypoint")
            instance = cls(**options) if options else cls()
        except Exception as e:
            msg = f"Failed to load plugin declaration: {e}"
            if cfg.strict_mode:
                raise RuntimeError(msg) from e
            logger.error(msg)
            continue

        plugins.append(instance)
        logger.info("Loaded plugin", name=instance.name, **source)

    logger.info(
        "Plugin loading complete",
        requested=len(cfg.declarations),
        loaded=len(plugins),
        names=[p.name for p in plugins],
        strict_mode=cfg.strict_mode,
    )
    return plugins


def build_schema(plugins: Iterable[Plugin]) -> CompositeSchema:
    """Register every plugin's fragment, compose and validate the composite.

    Raises:
        RegistrationError: On any collision, dangling reference or invalid schema.
    """
    registry = SchemaRegistry()
    for plugin in plugins:
        registry.register(plugin.fragment())

    schema = registry.compose()
    schema.validate()
    return schema
