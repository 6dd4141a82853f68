from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml


DEFAULT_CONFIG_FILE_NAME = "config.yaml"

DOWNLOAD_SERVICE_PORT = "DOWNLOAD_SERVICE_PORT"
DEFAULT_PORT = 8003

DEFAULT_FREE_DOWNLOADS_ON_SIGNUP = 1
DEFAULT_CONSUME_MAX_ATTEMPTS = 3
DEFAULT_PRICING_URL = "/pricing"


@dataclass(slots=True)
class DownloadsConfig:
    """다운로드 원장 설정.

    - free_downloads_on_signup: 가입 시 지급하는 무료 다운로드 횟수
    - consume_max_attempts: 배치 차감 경합 시 재시도 횟수 상한
    - pricing_url: 다운로드가 없을 때 UI 가 이동할 가격 페이지
    """

    free_downloads_on_signup: int = DEFAULT_FREE_DOWNLOADS_ON_SIGNUP
    consume_max_attempts: int = DEFAULT_CONSUME_MAX_ATTEMPTS
    pricing_url: str = DEFAULT_PRICING_URL


@dataclass(slots=True)
class AppConfig:
    """download-service 전체 설정 루트."""

    downloads: DownloadsConfig


def _find_config_path() -> Path:
    """현재 작업 디렉토리부터 상위로 올라가며 config.yaml 을 찾는다."""

    current = Path.cwd()
    for directory in (current, *current.parents):
        candidate = directory / DEFAULT_CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate

    raise RuntimeError(
        f"{DEFAULT_CONFIG_FILE_NAME} not found. Place config.yaml in project root.",
    )


def _read_int(section: dict, key: str, default: int, *, path: Path, minimum: int) -> int:
    raw = section.get(key, default)
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:  # noqa: TRY003
        raise RuntimeError(f"invalid downloads.{key} in {path}: {raw!r}") from exc
    if value < minimum:
        raise RuntimeError(
            f"invalid downloads.{key} in {path}: {value} (must be >= {minimum})"
        )
    return value


def load_downloads_config() -> DownloadsConfig:
    path = _find_config_path()
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    downloads = data.get("downloads") or {}
    if not isinstance(downloads, dict):
        raise RuntimeError(f"invalid downloads section in {path}")

    pricing_url = str(downloads.get("pricing_url") or DEFAULT_PRICING_URL).strip()

    return DownloadsConfig(
        free_downloads_on_signup=_read_int(
            downloads,
            "free_downloads_on_signup",
            DEFAULT_FREE_DOWNLOADS_ON_SIGNUP,
            path=path,
            minimum=0,
        ),
        consume_max_attempts=_read_int(
            downloads,
            "consume_max_attempts",
            DEFAULT_CONSUME_MAX_ATTEMPTS,
            path=path,
            minimum=1,
        ),
        pricing_url=pricing_url or DEFAULT_PRICING_URL,
    )


def load_config() -> AppConfig:
    """download-service 설정을 로드하여 AppConfig 로 반환한다."""

    return AppConfig(downloads=load_downloads_config())


def get_port() -> int:
    return int(os.getenv(DOWNLOAD_SERVICE_PORT, str(DEFAULT_PORT)))


@lru_cache(maxsize=1)
def get_downloads_config() -> DownloadsConfig:
    """프로세스당 한 번만 읽는 다운로드 설정 (요청마다 파일을 다시 읽지 않는다)."""

    return load_downloads_config()
