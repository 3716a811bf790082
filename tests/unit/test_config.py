"""Unit tests for SpeechCoachConfig."""

from pathlib import Path

import pytest
import yaml

from speechcoach.config import SpeechCoachConfig


def write_config(directory: str, data) -> str:
    path = Path(directory) / "speechcoach.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


@pytest.mark.unit
class TestSpeechCoachConfig:

    def test_defaults_when_no_file_found(self, temp_data_dir, monkeypatch):
        monkeypatch.chdir(temp_data_dir)

        config = SpeechCoachConfig()

        assert config.config_file is None
        assert config.get('recognition.language') == 'en-US'
        assert config.get('session.tick_interval_seconds') == 1.0

    def test_file_values_merge_with_defaults(self, temp_data_dir):
        path = write_config(temp_data_dir, {"audio": {"sample_rate": 44100}})

        config = SpeechCoachConfig(path)

        assert config.get('audio.sample_rate') == 44100
        assert config.get('audio.chunk_size') == 1024

    def test_relative_paths_resolve_against_config_dir(self, temp_data_dir):
        path = write_config(temp_data_dir, {
            "storage": {"data_directory": "history_data"},
            "recognition": {"credentials_path": "creds/key.json"},
        })

        config = SpeechCoachConfig(path)

        assert config.get_data_directory() == str(Path(temp_data_dir) / "history_data")
        assert config.get('recognition.credentials_path') == str(Path(temp_data_dir) / "creds/key.json")

    def test_finds_config_in_parent_directory(self, temp_data_dir, monkeypatch):
        write_config(temp_data_dir, {"session": {"default_title": "Pitch Practice"}})
        child = Path(temp_data_dir) / "nested"
        child.mkdir()
        monkeypatch.chdir(child)

        config = SpeechCoachConfig()

        assert config.get('session.default_title') == "Pitch Practice"

    def test_missing_file_raises(self, temp_data_dir):
        with pytest.raises(FileNotFoundError):
            SpeechCoachConfig(str(Path(temp_data_dir) / "missing.yaml"))

    def test_invalid_yaml_raises(self, temp_data_dir):
        path = Path(temp_data_dir) / "speechcoach.yaml"
        path.write_text("audio: [unclosed")

        with pytest.raises(ValueError):
            SpeechCoachConfig(str(path))

    def test_get_and_set(self, temp_data_dir, monkeypatch):
        monkeypatch.chdir(temp_data_dir)
        config = SpeechCoachConfig()

        config.set('level_meter.jitter', 3)
        config.set('new.section.key', 'value')

        assert config.get('level_meter.jitter') == 3
        assert config.get('new.section.key') == 'value'
        assert config.get('does.not.exist', 'fallback') == 'fallback'

    def test_missing_credentials(self, temp_data_dir, monkeypatch):
        monkeypatch.chdir(temp_data_dir)
        config = SpeechCoachConfig()

        with pytest.raises(ValueError):
            config.get_google_credentials_path()
