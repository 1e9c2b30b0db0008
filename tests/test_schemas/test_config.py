"""Tests for configuration schemas."""

from pathlib import Path
from unittest.mock import patch

import pytest

from pdf_sign_engine.schemas.config import (
    EngineConfig,
    PlacementConfig,
    ScanDetectionConfig,
    SourceConfig,
)


class TestDefaults:
    """Default values."""

    def test_engine_defaults(self) -> None:
        config = EngineConfig()
        assert config.cache_max_entries == 64
        assert config.compress is True
        assert config.log_level == "INFO"
        assert isinstance(config.scan_detection, ScanDetectionConfig)
        assert isinstance(config.placement, PlacementConfig)
        assert isinstance(config.source, SourceConfig)

    def test_scan_detection_defaults(self) -> None:
        config = ScanDetectionConfig()
        assert config.creator_weight == 0.6
        assert config.producer_weight == 0.5
        assert config.threshold == 0.4
        assert "camscanner" in config.keywords

    def test_keywords_lowercased(self) -> None:
        config = ScanDetectionConfig(keywords=("ScanSnap", "LENS"))
        assert config.keywords == ("scansnap", "lens")

    def test_nested_defaults_not_shared(self) -> None:
        first = EngineConfig()
        second = EngineConfig()
        first.placement.min_width = 99
        assert second.placement.min_width == 20.0


class TestFromYaml:
    """EngineConfig.from_yaml."""

    def test_nested_sections(self, tmp_path: Path) -> None:
        path = tmp_path / "engine.yaml"
        path.write_text(
            "cache_max_entries: 16\n"
            "compress: false\n"
            "scan_detection:\n"
            "  threshold: 0.7\n"
            "  keywords: [Fujitsu, ScanSnap]\n"
            "placement:\n"
            "  min_width: 30\n"
            "source:\n"
            "  max_retries: 5\n",
            encoding="utf-8",
        )

        config = EngineConfig.from_yaml(path)

        assert config.cache_max_entries == 16
        assert config.compress is False
        assert config.scan_detection.threshold == 0.7
        assert config.scan_detection.keywords == ("fujitsu", "scansnap")
        assert config.placement.min_width == 30
        assert config.source.max_retries == 5
        assert config.source.timeout_sec == 30

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert EngineConfig.from_yaml(path) == EngineConfig()

    def test_unknown_key(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("placement:\n  min_widht: 30\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Unknown PlacementConfig keys"):
            EngineConfig.from_yaml(path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ValueError, match="must contain a mapping"):
            EngineConfig.from_yaml(path)


class TestFromEnv:
    """EngineConfig.from_env."""

    @patch("pdf_sign_engine.schemas.config.load_dotenv")
    @patch.dict(
        "os.environ",
        {
            "PDF_SIGN_CACHE_SIZE": "5",
            "PDF_SIGN_LOG_LEVEL": "debug",
            "PDF_SIGN_COMPRESS": "no",
            "PDF_SIGN_SCAN_THRESHOLD": "0.55",
            "PDF_SIGN_FETCH_TIMEOUT": "10",
            "PDF_SIGN_FETCH_RETRIES": "1",
        },
    )
    def test_overrides(self, mock_dotenv) -> None:
        config = EngineConfig.from_env()

        mock_dotenv.assert_called_once()
        assert config.cache_max_entries == 5
        assert config.log_level == "DEBUG"
        assert config.compress is False
        assert config.scan_detection.threshold == 0.55
        assert config.source.timeout_sec == 10
        assert config.source.max_retries == 1

    @patch("pdf_sign_engine.schemas.config.load_dotenv")
    def test_defaults_without_variables(self, mock_dotenv) -> None:
        with patch.dict("os.environ", {}, clear=True):
            assert EngineConfig.from_env() == EngineConfig()
