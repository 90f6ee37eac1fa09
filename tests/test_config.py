"""Tests for frame_sync.config — env-var config loading and validation.

NOT to be confused with test_config_loader.py (YAML discovery) or
test_config_schema.py (Pydantic models). This tests validate_config() and
load_config().
"""

import logging

import pytest

from frame_sync.config import Config, load_config, validate_config


@pytest.fixture
def repo_dir(tmp_path):
    path = tmp_path / "art"
    path.mkdir()
    return path


def _config(repo_dir, tmp_path, **overrides):
    values = {
        "repo_path": str(repo_dir),
        "log_path": str(tmp_path / "logs" / "sync.json"),
    }
    values.update(overrides)
    return Config(**values)


# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    """Tests for validate_config() — paths, names and numeric limits."""

    def test_valid_config(self, repo_dir, tmp_path):
        config = _config(repo_dir, tmp_path)
        validate_config(config)  # should not raise
        assert config.repo_path == str(repo_dir.resolve())

    def test_missing_repository(self, tmp_path):
        config = _config(tmp_path / "nope", tmp_path)
        with pytest.raises(ValueError, match="does not exist"):
            validate_config(config)

    def test_repository_is_a_file(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")
        config = _config(path, tmp_path)
        with pytest.raises(ValueError, match="not a directory"):
            validate_config(config)

    def test_empty_branch(self, repo_dir, tmp_path):
        config = _config(repo_dir, tmp_path, branch="  ")
        with pytest.raises(ValueError, match="Branch name cannot be empty"):
            validate_config(config)

    def test_empty_remote(self, repo_dir, tmp_path):
        config = _config(repo_dir, tmp_path, remote="")
        with pytest.raises(ValueError, match="Remote name cannot be empty"):
            validate_config(config)

    @pytest.mark.parametrize("timeout", [0, 3601])
    def test_git_timeout_out_of_range(self, repo_dir, tmp_path, timeout):
        config = _config(repo_dir, tmp_path, git_timeout=timeout)
        with pytest.raises(ValueError, match="Invalid git timeout"):
            validate_config(config)

    def test_log_limit_out_of_range(self, repo_dir, tmp_path):
        config = _config(repo_dir, tmp_path, log_limit=0)
        with pytest.raises(ValueError, match="Invalid log limit"):
            validate_config(config)

    def test_log_inside_repository_rejected(self, repo_dir, tmp_path):
        """Writing the log must never dirty the working tree."""
        config = _config(repo_dir, tmp_path, log_path=str(repo_dir / "sync.json"))
        with pytest.raises(ValueError, match="must be outside the repository"):
            validate_config(config)

    def test_lfs_disabled_warns(self, repo_dir, tmp_path, caplog):
        config = _config(repo_dir, tmp_path, large_asset_extension=False)
        with caplog.at_level(logging.WARNING):
            validate_config(config)
        assert "Git LFS check disabled" in caplog.text


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfig:
    """Tests for load_config() precedence: CLI > env > YAML > defaults."""

    def test_missing_repository_path(self):
        with pytest.raises(ValueError, match="Repository path not found"):
            load_config()

    def test_env_values(self, repo_dir, tmp_path, monkeypatch):
        monkeypatch.setenv("FRAME_SYNC_REPO_PATH", str(repo_dir))
        monkeypatch.setenv("FRAME_SYNC_BRANCH", "gallery")
        monkeypatch.setenv("FRAME_SYNC_LFS", "false")
        monkeypatch.setenv("FRAME_SYNC_GIT_TIMEOUT", "30")
        monkeypatch.setenv("FRAME_SYNC_LOG_PATH", str(tmp_path / "log.json"))

        config = load_config()

        assert config.repo_path == str(repo_dir.resolve())
        assert config.branch == "gallery"
        assert config.remote == "origin"
        assert config.large_asset_extension is False
        assert config.git_timeout == 30

    def test_cli_beats_env(self, repo_dir, tmp_path, monkeypatch):
        monkeypatch.setenv("FRAME_SYNC_REPO_PATH", str(tmp_path / "elsewhere"))
        monkeypatch.setenv("FRAME_SYNC_REMOTE", "upstream")
        monkeypatch.setenv("FRAME_SYNC_LOG_PATH", str(tmp_path / "log.json"))

        config = load_config(repo_path=str(repo_dir), remote="origin")

        assert config.repo_path == str(repo_dir.resolve())
        assert config.remote == "origin"

    def test_yaml_fallbacks_used_when_env_unset(self, repo_dir, tmp_path):
        config = load_config(
            yaml_fallbacks={
                "path": str(repo_dir),
                "branch": "frames",
                "expected_remote": "acme/frame-art",
                "log_path": str(tmp_path / "log.json"),
                "log_limit": 50,
                "check_on_startup": False,
            }
        )
        assert config.branch == "frames"
        assert config.expected_remote == "acme/frame-art"
        assert config.log_limit == 50
        assert config.check_on_startup is False

    def test_env_beats_yaml(self, repo_dir, tmp_path, monkeypatch):
        monkeypatch.setenv("FRAME_SYNC_LOG_LIMIT", "10")
        config = load_config(
            yaml_fallbacks={
                "path": str(repo_dir),
                "log_path": str(tmp_path / "log.json"),
                "log_limit": 50,
            }
        )
        assert config.log_limit == 10

    def test_invalid_numeric_env(self, repo_dir, monkeypatch):
        monkeypatch.setenv("FRAME_SYNC_REPO_PATH", str(repo_dir))
        monkeypatch.setenv("FRAME_SYNC_GIT_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="FRAME_SYNC_GIT_TIMEOUT"):
            load_config()

    def test_debug_from_env(self, repo_dir, tmp_path, monkeypatch):
        monkeypatch.setenv("FRAME_SYNC_REPO_PATH", str(repo_dir))
        monkeypatch.setenv("FRAME_SYNC_LOG_PATH", str(tmp_path / "log.json"))
        monkeypatch.setenv("FRAME_SYNC_DEBUG", "yes")
        assert load_config().debug is True
