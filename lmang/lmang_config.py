"""
Runner configuration, from a YAML file, a mapping or the process environment.

    # lmang.yaml
    timeout_seconds: 2.5
    rng_seed: 21
    skip_args: 1
    debug: false
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml


def _truthy(text: str) -> bool:
    return text.strip().lower() not in ("", "0", "false", "no", "off")


@dataclass
class RunnerConfig:
    timeout_seconds: Optional[float] = None
    rng_seed: int = 0
    skip_args: int = 0
    debug: bool = False

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> RunnerConfig:
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(unknown)}")
        cfg = cls(**data)
        if cfg.timeout_seconds is not None:
            cfg.timeout_seconds = float(cfg.timeout_seconds)
        cfg.rng_seed = int(cfg.rng_seed)
        cfg.skip_args = int(cfg.skip_args)
        cfg.debug = bool(cfg.debug)
        return cfg

    @classmethod
    def from_file(cls, path: str | Path) -> RunnerConfig:
        text = Path(path).read_text(encoding="utf-8")
        data = yaml.safe_load(text)
        if data is not None and not isinstance(data, Mapping):
            raise ValueError(f"{path}: expected a mapping at the top level")
        return cls.from_mapping(data)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> RunnerConfig:
        env = os.environ if environ is None else environ
        cfg = cls()
        if env.get("LMANG_TIMEOUT"):
            cfg.timeout_seconds = float(env["LMANG_TIMEOUT"])
        if env.get("LMANG_RNG_SEED"):
            cfg.rng_seed = int(env["LMANG_RNG_SEED"])
        if "LMANG_DEBUG" in env:
            cfg.debug = _truthy(env["LMANG_DEBUG"])
        return cfg
