"""Unit tests for the file and memory backends."""

import stat
import sys

import pytest

from jx_auth.credentials.file_backend import FileBackend, default_config_dir, resolve_config_path
from jx_auth.credentials.memory_backend import MemoryBackend
from jx_auth.credentials.models import Config, Server, User
from jx_auth.exceptions import ConfigurationError


@pytest.fixture
def file_backend(tmp_path):
    """FileBackend writing into a temporary directory."""
    return FileBackend("gitAuth.yaml", config_dir=tmp_path / "config")


class TestResolveConfigPath:
    """Tests for config path resolution."""

    def test_bare_name_uses_config_dir(self, tmp_path):
        """A bare name should resolve inside the config directory."""
        assert resolve_config_path("gitAuth.yaml", tmp_path) == tmp_path / "gitAuth.yaml"

    def test_path_used_as_is(self, tmp_path):
        """A name with a separator should be used unchanged."""
        path = tmp_path / "elsewhere" / "auth.yaml"

        assert resolve_config_path(str(path), tmp_path / "ignored") == path

    def test_env_override(self, tmp_path, monkeypatch):
        """JX_AUTH_CONFIG_DIR should set the default directory."""
        monkeypatch.setenv("JX_AUTH_CONFIG_DIR", str(tmp_path / "override"))

        assert default_config_dir() == tmp_path / "override"
        assert resolve_config_path("gitAuth.yaml") == tmp_path / "override" / "gitAuth.yaml"


class TestFileBackend:
    """Tests for FileBackend."""

    def test_missing_file_loads_empty(self, file_backend):
        """A missing file should load as an empty config."""
        assert file_backend.load_config() == Config()

    def test_round_trip_preserves_order(self, file_backend, sample_config):
        """Saved configs should load back deep-equal, order included."""
        file_backend.save_config(sample_config)

        loaded = file_backend.load_config()

        assert loaded == sample_config
        assert [server.url for server in loaded.servers] == ["https://github.com", "https://gitlab.example.com"]
        assert [user.username for user in loaded.servers[0].users] == ["jdoe", "bot"]

    def test_save_creates_directory(self, file_backend):
        """Saving should create the config directory."""
        file_backend.save_config(Config())

        assert file_backend.file_path.exists()
        assert not file_backend.file_path.with_suffix(".tmp").exists()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_save_restricts_permissions(self, file_backend):
        """The saved file should only be readable by the owner."""
        file_backend.save_config(Config())

        mode = stat.S_IMODE(file_backend.file_path.stat().st_mode)
        assert mode == 0o600

    def test_save_without_file_name(self):
        """Saving without a file name should fail."""
        backend = FileBackend("")

        with pytest.raises(ConfigurationError) as exc_info:
            backend.save_config(Config())

        assert exc_info.value.message == "no filename defined for the auth config"

    def test_load_without_file_name(self):
        """Loading without a file name should give an empty config."""
        assert FileBackend("").load_config() == Config()

    def test_invalid_yaml(self, file_backend):
        """A corrupt file should raise ConfigurationError."""
        file_backend.file_path.parent.mkdir(parents=True)
        file_backend.file_path.write_text("servers: [\n")

        with pytest.raises(ConfigurationError):
            file_backend.load_config()

    def test_undecodable_file(self, file_backend):
        """A file that is not valid UTF-8 should raise ConfigurationError."""
        file_backend.file_path.parent.mkdir(parents=True)
        file_backend.file_path.write_bytes(b"servers:\n- url: \xff\n")

        with pytest.raises(ConfigurationError) as exc_info:
            file_backend.load_config()

        assert str(file_backend.file_path) in exc_info.value.message

    def test_reads_hand_written_yaml(self, file_backend):
        """Should read the documented file format."""
        file_backend.file_path.parent.mkdir(parents=True)
        file_backend.file_path.write_text(
            "servers:\n"
            "- url: https://github.com\n"
            "  name: GitHub\n"
            "  kind: github\n"
            "  currentuser: jdoe\n"
            "  users:\n"
            "  - username: jdoe\n"
            "    apitoken: t0k\n"
            "    bearertoken: ''\n"
            "defaultusername: jdoe\n"
            "currentserver: https://github.com\n"
            "pipelineusername: ''\n"
            "pipelineserver: ''\n"
        )

        config = file_backend.load_config()

        assert config.current_auth_server().current_auth() == User(username="jdoe", api_token="t0k")


class TestMemoryBackend:
    """Tests for MemoryBackend."""

    def test_starts_empty(self):
        """A new backend should hold an empty config."""
        assert MemoryBackend().load_config() == Config()

    def test_save_then_load(self):
        """Load should return the last saved config."""
        backend = MemoryBackend()
        config = Config(servers=[Server(url="https://x")])

        backend.save_config(config)

        assert backend.load_config() is config
        assert backend.name == "memory"
