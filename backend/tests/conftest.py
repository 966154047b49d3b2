from __future__ import annotations

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from app.core.config import Settings
from app.domain import MS_PER_HOUR, AlignedPoint, ViewportConfig


def _load_json(name: str):
    path = Path(__file__).parent / "data" / name
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def hyperliquid_history_payload() -> list[dict[str, object]]:
    return _load_json("hyperliquid_funding_history.json")


@pytest.fixture
def binance_history_payload() -> list[dict[str, object]]:
    return _load_json("binance_funding_rate.json")


@pytest.fixture
def hyperliquid_meta_payload() -> list[object]:
    return _load_json("hyperliquid_meta_and_asset_ctxs.json")


@pytest.fixture
def viewport_config() -> ViewportConfig:
    return ViewportConfig(
        min_window_ms=3 * MS_PER_HOUR,
        button_zoom_in=0.75,
        button_zoom_out=1.25,
        wheel_zoom_in=0.82,
        wheel_zoom_out=1.18,
        wheel_pan_ratio=0.1,
    )


@pytest.fixture
def hourly_series() -> list[AlignedPoint]:
    """Thirty days of hourly points starting at t=0."""
    return [
        AlignedPoint(time=hour * MS_PER_HOUR, primary=0.001, secondary=0.0012, spread=0.0002)
        for hour in range(721)
    ]


@pytest.fixture
def test_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        history_cache_size=4,
        history_cache_ttl_seconds=None,
        http_retry_attempts=2,
        http_retry_base_seconds=0.0,
        export_output_dir=str(tmp_path / "export"),
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings
