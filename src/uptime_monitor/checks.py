from __future__ import annotations

import logging
import math
import os
import re
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, List, Optional

import yaml

from . import config

log = logging.getLogger(__name__)

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_RE = re.compile(r"(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|ms|s|m|h))+")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


class ConfigError(Exception):
    """The checks file is missing, unreadable or malformed."""


class ProbeKind(str, Enum):
    HTTP = "http"
    ICMP = "icmp"


@dataclass(frozen=True)
class Endpoint:
    index: int
    name: str
    kind: str
    dest: str
    interval: timedelta

    @property
    def probe_kind(self) -> Optional[ProbeKind]:
        try:
            return ProbeKind(self.kind)
        except ValueError:
            return None


def parse_duration(value: Any) -> timedelta:
    """Parse a repeat interval.

    Accepts unit strings ("500ms", "5s", "1m30s") and bare numbers,
    which are taken as seconds.
    """
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if _DURATION_RE.fullmatch(text):
            seconds = sum(
                float(num) * _UNIT_SECONDS[unit]
                for num, unit in _DURATION_PART_RE.findall(text)
            )
        else:
            try:
                seconds = float(text)
            except ValueError:
                raise ConfigError(f"invalid duration: {value!r}") from None
    else:
        raise ConfigError(f"invalid duration: {value!r}")
    if not math.isfinite(seconds):
        raise ConfigError(f"invalid duration: {value!r}")
    if seconds < 0:
        raise ConfigError(f"duration must not be negative: {value!r}")
    try:
        return timedelta(seconds=seconds)
    except OverflowError:
        raise ConfigError(f"duration out of range: {value!r}") from None


def _endpoint_from(index: int, item: Any) -> Endpoint:
    if not isinstance(item, dict):
        raise ConfigError(f"check #{index + 1} must be a mapping")
    missing = [k for k in ("name", "type", "dest", "repeat") if k not in item]
    if missing:
        raise ConfigError(
            f"check #{index + 1} is missing {', '.join(missing)}"
        )
    return Endpoint(
        index=index,
        name=str(item["name"]),
        kind=str(item["type"]).strip().lower(),
        dest=str(item["dest"]),
        interval=parse_duration(item["repeat"]),
    )


def load_checks(path: str) -> List[Endpoint]:
    """Read the checks file and assign each entry its stable index."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc.strerror or exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse {path}: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("checks"), list):
        raise ConfigError(f"{path} must contain a 'checks' list")

    endpoints = [_endpoint_from(i, item) for i, item in enumerate(data["checks"])]
    log.info("Loaded %d check(s) from %s", len(endpoints), path)
    return endpoints


def checks_path() -> str:
    return os.environ.get(config.CHECKS_FILE_ENV) or config.CHECKS_FILE
