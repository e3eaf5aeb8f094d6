"""
YAML 설정 로드

config/ 디렉토리의 YAML 파일을 읽어 하나의 dict로 합칩니다.
FULFILLU_CONFIG_DIR 환경변수로 디렉토리를 바꿀 수 있습니다.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "FULFILLU_CONFIG_DIR"
DEFAULT_CONFIG_DIR = Path(__file__).parent.parent / "config"
DEFAULT_CONFIG_FILES = ("database", "retry", "admin", "logging")


def get_config_dir() -> Path:
    """설정 디렉토리 경로"""
    return Path(os.environ.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR))


def load_config(
    names: tuple[str, ...] | list[str] = DEFAULT_CONFIG_FILES,
    config_dir: str | Path | None = None,
) -> dict[str, Any]:
    """
    설정 파일 로드

    Args:
        names: 읽을 파일 이름 (확장자 제외, 뒤의 파일이 같은 최상위 키를 덮어씀)
        config_dir: 설정 디렉토리 (None이면 get_config_dir())

    Returns:
        최상위 키 기준으로 병합된 설정
    """
    base = Path(config_dir) if config_dir is not None else get_config_dir()
    config: dict[str, Any] = {}

    for name in names:
        path = base / f"{name}.yaml"
        if not path.exists():
            logger.warning(f"Config file not found, skipping: {path}")
            continue
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        config.update(loaded)

    return config
