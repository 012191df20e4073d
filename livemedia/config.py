"""Server configuration loaded from and written to YAML."""

from __future__ import annotations

import logging
import os
import re
import sys
from dataclasses import dataclass, field, fields
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG_PATH = "livemedia.yaml"
EXAMPLE_PUSHER = "Ciallo～(∠・ω< )⌒☆ "

logger = logging.getLogger("livemedia")

_LEVELS = {
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}

_NS_PER = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_UNIT = r"(?:ns|us|µs|μs|ms|s|m|h)"
_NUMBER = r"(?:\d+\.?\d*|\.\d+)"
_DURATION_RE = re.compile(rf"([-+]?)((?:{_NUMBER}{_UNIT})+)")
_PART_RE = re.compile(rf"({_NUMBER})({_UNIT})")


def _parse_duration(text: str) -> timedelta:
    if text in ("0", "+0", "-0"):
        return timedelta(0)
    match = _DURATION_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"time: invalid duration {text!r}")
    nanos = sum(
        int(Decimal(number) * _NS_PER[unit]) for number, unit in _PART_RE.findall(match.group(2))
    )
    if match.group(1) == "-":
        nanos = -nanos
    return timedelta(microseconds=nanos // 1000)


def _fraction(value: int, divisor: int) -> str:
    whole, frac = divmod(value, divisor)
    if not frac:
        return str(whole)
    digits = len(str(divisor)) - 1
    return f"{whole}.{str(frac).rjust(digits, '0').rstrip('0')}"


def _format_duration(delta: timedelta) -> str:
    nanos = ((delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds) * 1000
    if nanos == 0:
        return "0s"
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)
    if nanos < 1_000:
        return f"{sign}{nanos}ns"
    if nanos < 1_000_000:
        return f"{sign}{_fraction(nanos, 1_000)}µs"
    if nanos < 1_000_000_000:
        return f"{sign}{_fraction(nanos, 1_000_000)}ms"
    hours, rest = divmod(nanos, 3_600_000_000_000)
    minutes, rest = divmod(rest, 60_000_000_000)
    text = sign
    if hours:
        text += f"{hours}h"
    if hours or minutes:
        text += f"{minutes}m"
    return text + _fraction(rest, 1_000_000_000) + "s"


def _key(name: str) -> Dict[str, str]:
    return {"yaml": name}


@dataclass
class ServerConfig:
    """Settings of the streaming server."""

    level: str = field(default="", metadata=_key("level"))
    web_addr: str = field(default="127.0.0.1:7001", metadata=_key("web_addr"))
    hls_keep_after_end: bool = field(default=False, metadata=_key("hls_keep_after_end"))
    hls_keep_ts_cache: timedelta = field(
        default=timedelta(minutes=1), metadata=_key("hls_keep_ts_cache")
    )
    write_timeout: int = field(default=10, metadata=_key("rtmp_write_timeout"))
    max_ts_cache_num: int = field(default=3, metadata=_key("hls_history_count"))
    rtmp_addr: str = field(default="0.0.0.0:1935", metadata=_key("rtmp_addr"))
    enable_tls_verify: bool = field(default=True, metadata=_key("rtmp_enable_tls_verify"))
    gop_num: int = field(default=1, metadata=_key("rtmp_gop_num"))
    hflv_info: bool = field(default=False, metadata=_key("flv_api_info"))
    pusher: Dict[str, str] = field(default_factory=dict, metadata=_key("pusher"))

    def to_yaml(self) -> str:
        """Render the configuration as YAML, leaving out empty and zero values."""
        out: Dict[str, Any] = {}
        for spec in fields(self):
            value = getattr(self, spec.name)
            if not value:
                continue
            if isinstance(value, timedelta):
                value = _format_duration(value)
            elif isinstance(value, dict):
                value = dict(value)
            out[spec.metadata["yaml"]] = value
        return yaml.safe_dump(out, sort_keys=False, allow_unicode=True)

    def _apply(self, data: Dict[Any, Any]) -> None:
        by_key = {spec.metadata["yaml"]: spec for spec in fields(self)}
        for key, raw in data.items():
            spec = by_key.get(key)
            if spec is None:
                continue
            current = getattr(self, spec.name)
            setattr(self, spec.name, _convert(key, raw, current))


def _convert(key: str, raw: Any, current: Any) -> Any:
    if isinstance(current, timedelta):
        if raw is None:
            return timedelta(0)
        if isinstance(raw, int) and not isinstance(raw, bool):
            return timedelta(microseconds=raw // 1000)
        if isinstance(raw, str):
            return _parse_duration(raw)
    elif isinstance(current, bool):
        if raw is None:
            return False
        if isinstance(raw, bool):
            return raw
    elif isinstance(current, int):
        if raw is None:
            return 0
        if isinstance(raw, int) and not isinstance(raw, bool):
            return raw
    elif isinstance(current, str):
        if raw is None:
            return ""
        if isinstance(raw, bool):
            return "true" if raw else "false"
        if isinstance(raw, (str, int, float)):
            return str(raw)
    elif isinstance(current, dict):
        if raw is None:
            return {}
        if isinstance(raw, dict):
            return {str(k): "" if v is None else str(v) for k, v in raw.items()}
    raise ValueError(f"cannot use {raw!r} as value of {key}")


def _set_log_level(level: str) -> None:
    mapped = _LEVELS.get(level.lower())
    if mapped is not None:
        logger.setLevel(mapped)


def load_config(path: str) -> ServerConfig:
    """Read a YAML file over the defaults and apply its log level."""
    with open(path, encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    config = ServerConfig()
    if data is not None:
        if not isinstance(data, dict):
            raise ValueError(f"cannot read configuration from {type(data).__name__}")
        config._apply(data)
    _set_log_level(config.level)
    return config


def generate_config(path: Optional[str] = None) -> str:
    """Produce an example configuration.

    It is written to ``path`` when one other than the default name is given,
    and printed otherwise. The YAML text is returned in both cases.
    """
    config = ServerConfig()
    config.pusher["example"] = EXAMPLE_PUSHER
    text = config.to_yaml()
    if path is not None and path != DEFAULT_CONFIG_PATH:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
    else:
        sys.stdout.write(text + "\n")
    return text