"""Configure pytest: import from src/ and isolate user configuration."""

import os
import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_path = str(Path(__file__).parent / "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from mediaprint.utils import config as mediaprint_config  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point config and data directories at tmp_path and drop leaked env vars."""
    config_dir = tmp_path / "config" / "mediaprint"
    monkeypatch.setattr(mediaprint_config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(mediaprint_config, "CONFIG_FILE", config_dir / "config.toml")
    monkeypatch.setattr(mediaprint_config, "DATA_DIR", tmp_path / "data" / "mediaprint")
    for name in list(os.environ):
        if name.startswith("MEDIAPRINT_") or name.startswith("TMDB_"):
            monkeypatch.delenv(name, raising=False)
    return config_dir
