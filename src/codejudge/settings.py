from __future__ import annotations

import os
from pathlib import Path
from typing import Dict

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ---- workspace ----
    workspace_root: Path = Path("tmp")

    # ---- time limits (seconds) ----
    compile_timeout_s: int = 30
    max_timeout_s: int = 30

    # toolchain program overrides, e.g. {"python3": "/usr/bin/python3.12"}
    runtimes: Dict[str, str] = {}

    # ---- logging ----
    log_level: str = "INFO"
    log_json: bool = True

    # ---- http ----
    host: str = "127.0.0.1"
    port: int = 3000

    # env prefix JUDGE_*
    model_config = SettingsConfigDict(env_prefix="JUDGE_", extra="ignore")


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return {}
    return data if isinstance(data, dict) else {}


def load_settings(conf_path: str | Path | None = None) -> Settings:
    # 0) base from JUDGE_* env
    s = Settings()

    # 1) conf/judge.yaml (or JUDGE_CONF)
    path = Path(conf_path or os.environ.get("JUDGE_CONF", "conf/judge.yaml"))
    data = _read_yaml(path)

    limits = data.get("limits") or {}
    if not isinstance(limits, dict):
        limits = {}
    logging_cfg = data.get("logging") or {}
    if not isinstance(logging_cfg, dict):
        logging_cfg = {}
    runtimes = data.get("runtimes") or {}
    if not isinstance(runtimes, dict):
        runtimes = {}

    # 2) env wins over yaml: only fill from yaml what env did not set;
    #    the model validates and coerces the yaml values
    from_yaml = {
        "workspace_root": data.get("workspace_root"),
        "compile_timeout_s": limits.get("compile_timeout_s"),
        "max_timeout_s": limits.get("max_timeout_s"),
        "runtimes": {str(k): str(v) for k, v in runtimes.items()} or None,
        "log_level": logging_cfg.get("level"),
        "log_json": logging_cfg.get("json"),
        "host": data.get("host"),
        "port": data.get("port"),
    }
    env_set = s.model_fields_set
    return Settings(**{k: v for k, v in from_yaml.items() if v is not None and k not in env_set})
