"""Process-wide parameters loaded from a YAML settings file."""

from __future__ import annotations

import logging
import threading

import numpy as np
import yaml

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """The settings file could not be understood."""


class _Loader(yaml.SafeLoader):
    pass


def _construct_matrix(loader, node):
    mapping = loader.construct_mapping(node, deep=True)
    data = np.asarray(mapping.get("data", []), dtype=float)
    try:
        return data.reshape(int(mapping["rows"]), int(mapping["cols"]))
    except (KeyError, ValueError) as exc:
        raise ConfigError(f"malformed matrix entry: {exc}") from exc


_Loader.add_constructor("tag:yaml.org,2002:opencv-matrix", _construct_matrix)


def _strip_directive(text: str) -> str:
    # Settings files may start with a "%YAML:1.0" line that YAML parsers reject.
    lines = text.splitlines()
    if lines and lines[0].startswith("%YAML"):
        lines = lines[1:]
    return "\n".join(lines)


class Config:
    """Shared settings: load a file with ``set_parameter_file``, read with ``get``."""

    _values: dict | None = None
    _lock = threading.Lock()

    @classmethod
    def set_parameter_file(cls, filename) -> None:
        """Load a settings file, replacing any loaded before.

        On failure no settings remain loaded.
        """
        with cls._lock:
            cls._values = None
            try:
                with open(filename, encoding="utf-8") as fin:
                    text = fin.read()
            except FileNotFoundError:
                logger.error("parameter file %s does not exist.", filename)
                raise FileNotFoundError(f"parameter file {filename} does not exist.") from None
            try:
                values = yaml.load(_strip_directive(text), Loader=_Loader)
            except yaml.YAMLError as exc:
                raise ConfigError(f"cannot parse {filename}: {exc}") from exc
            if values is None:
                values = {}
            if not isinstance(values, dict):
                raise ConfigError(f"{filename} does not hold a mapping of settings")
            cls._values = values

    @classmethod
    def get(cls, key):
        """The value stored under ``key``."""
        with cls._lock:
            if cls._values is None:
                raise RuntimeError("no parameter file has been loaded")
            try:
                return cls._values[key]
            except KeyError:
                raise KeyError(f"parameter {key!r} is not set") from None