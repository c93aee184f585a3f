"""YAML file backend for developer machines.

Auth configs are stored as plain YAML files, by default under the platform
config directory (``~/.config/jx`` on Linux). A missing file is not an error:
it means nothing has been configured yet.
"""

import logging
import os
from pathlib import Path

from platformdirs import user_config_path

from jx_auth.credentials.models import Config
from jx_auth.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV_VAR = "JX_AUTH_CONFIG_DIR"


def default_config_dir() -> Path:
    """Directory bare config file names resolve against.

    ``$JX_AUTH_CONFIG_DIR`` wins over the platform config directory.
    """
    override = os.getenv(CONFIG_DIR_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return user_config_path("jx")


def resolve_config_path(file_name: str, config_dir: Path | None = None) -> Path:
    """Resolve a config file name to a path.

    Args:
        file_name: Bare file name (e.g. "gitAuth.yaml") or a path
        config_dir: Directory for bare names; defaults to ``default_config_dir()``

    Returns:
        ``file_name`` as-is if it contains a path separator, else the file
        inside the config directory
    """
    if os.sep in file_name or "/" in file_name:
        return Path(file_name).expanduser()
    return (config_dir or default_config_dir()) / file_name


class FileBackend:
    """YAML file auth config storage.

    Security Considerations:
    - Tokens are stored unencrypted; the file is written with mode 600
    - Writes go to a temporary file which then replaces the target

    Example:
        >>> backend = FileBackend("gitAuth.yaml")
        >>> config = backend.load_config()
        >>> config.set_user_auth("https://github.com", User(username="jdoe", api_token="t0k"))
        >>> backend.save_config(config)
    """

    def __init__(self, file_name: str, config_dir: Path | None = None) -> None:
        """Initialize file backend.

        Args:
            file_name: Bare file name or path of the YAML file; may be empty,
                in which case saving fails
            config_dir: Directory bare file names resolve against
        """
        self.file_name = file_name
        self.file_path: Path | None = resolve_config_path(file_name, config_dir) if file_name else None

    @property
    def name(self) -> str:
        return "file"

    def load_config(self) -> Config:
        """Load the config from the YAML file.

        Returns:
            The parsed config, or an empty config if the file does not exist

        Raises:
            ConfigurationError: If the file can not be read or parsed
        """
        if self.file_path is None or not self.file_path.exists():
            return Config()

        try:
            text = self.file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Cannot read auth config file: {self.file_path}") from e

        config = Config.from_yaml(text, source=str(self.file_path))
        logger.debug(f"Loaded auth config from {self.file_path}")
        return config

    def save_config(self, config: Config) -> None:
        """Write the config to the YAML file.

        Raises:
            ConfigurationError: If no file name is set or the file can not be written
        """
        if self.file_path is None:
            raise ConfigurationError("no filename defined for the auth config")

        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)

            temp_file = self.file_path.with_suffix(".tmp")
            temp_file.write_text(config.to_yaml(), encoding="utf-8")

            try:
                temp_file.chmod(0o600)
            except OSError as e:
                logger.warning(f"Could not set file permissions: {e}")

            temp_file.replace(self.file_path)
        except OSError as e:
            raise ConfigurationError(f"Failed to save auth config to {self.file_path}: {e}") from e

        logger.debug(f"Saved auth config to {self.file_path}")
