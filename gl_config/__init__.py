"""
gl_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Components receive the resulting
    ``EngineConfig`` (or pieces of it) by injection; nothing else reads
    configuration files.

Architecture position:
    Configuration -- sits above ``gl_kernel`` and below ``gl_services``.
    The kernel and engines never import from ``gl_config``.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``GL_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying each decision back to the configuration that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from gl_config.loader import load_yaml_file, parse_engine_config
from gl_config.schema import EngineConfig, PostingLimits, RolePolicy, SoDPolicy

_logger = logging.getLogger("gl_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "engine.yaml"

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "EngineConfig",
    "PostingLimits",
    "RolePolicy",
    "SoDPolicy",
    "get_active_config",
]


def get_active_config(path: Path | str | None = None) -> EngineConfig:
    """
    The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to the packaged
            ``gl_config/defaults/engine.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError / ValueError: If the document is malformed.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = parse_engine_config(load_yaml_file(config_path))

    _logger.info(
        "GL_CONFIG_TRACE",
        extra={
            "trace_type": "GL_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "base_currency": config.base_currency,
            "role_count": len(config.sod.roles),
            "source": str(config_path),
        },
    )
    return config
