"""
Config file discovery and loading for frame_sync.

Finds YAML config files by convention, resolves ``!include`` directives,
expands ``${VAR}`` / ``${VAR:-default}`` references and merges the files
so that the project-level file wins over the global one.

Usage:
    from frame_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FRAME_SYNC_CONFIG"
PROJECT_DIR = ".frame_sync"

# ---------------------------------------------------------------------------
# Env var interpolation
# ---------------------------------------------------------------------------

_ENV_REF = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` in *value*.

    An unset or empty variable yields its default, or ``""`` without one.
    An unterminated ``${`` is kept as-is.
    """

    def _expand(match: re.Match) -> str:
        current = os.environ.get(match.group(1))
        if current:
            return current
        return match.group(2) if match.group(2) is not None else ""

    return _ENV_REF.sub(_expand, value)


def _interpolate_tree(node: Any) -> Any:
    if isinstance(node, str):
        return interpolate_env_vars(node)
    if isinstance(node, dict):
        return {key: _interpolate_tree(val) for key, val in node.items()}
    if isinstance(node, list):
        return [_interpolate_tree(val) for val in node]
    return node


# ---------------------------------------------------------------------------
# YAML loader with !include
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader subclass that understands ``!include``.

    The global ``yaml.SafeLoader`` stays untouched. Each load carries the
    chain of files being read so include cycles are reported instead of
    recursing forever.
    """


def _include(loader: ConfigLoader, node: yaml.ScalarNode) -> Any:
    """Load the file named by an ``!include`` tag."""
    target = Path(loader.construct_scalar(node))
    if not target.is_absolute():
        target = Path(loader.name).resolve().parent / target
    target = target.resolve()

    chain: list[Path] = getattr(loader, "_include_stack", [])
    if target in chain:
        cycle = " -> ".join(str(p) for p in [*chain, target])
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.exists():
        raise FileNotFoundError(
            f"Include file not found: {target} "
            f"(referenced from {Path(loader.name).resolve()})"
        )
    return _load_yaml(target, _include_stack=[*chain, target])


ConfigLoader.add_constructor("!include", _include)


def _load_yaml(path: Path, *, _include_stack: list[Path] | None = None) -> Any:
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader._include_stack = _include_stack or [path]  # type: ignore[attr-defined]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return the config files that exist, highest precedence first.

    Candidates:
        1. ``$FRAME_SYNC_CONFIG``
        2. ``./.frame_sync/config.yml``
        3. ``./.frame_sync/config.yaml``
        4. ``~/.config/frame_sync/config.yml``
    """
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    project = Path.cwd() / PROJECT_DIR
    candidates.append(project / "config.yml")
    candidates.append(project / "config.yaml")
    candidates.append(Path.home() / ".config" / "frame_sync" / "config.yml")

    return [p for p in candidates if p.exists()]


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Load every discovered config file and merge them.

    Files are applied from lowest to highest precedence; a top-level
    section in a later file replaces the same section wholesale. Env var
    references are expanded once the merge is done.

    Returns:
        The merged mapping, or ``{}`` when no file exists.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _load_yaml(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has a %s root instead of a mapping, skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_tree(merged)
