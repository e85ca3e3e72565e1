"""Configuration management for livepreview.

Settings live in ``livepreview.toml``, found in the working directory or one
of its parents. Every section is optional; command-line options are applied on
top with ``Config.with_overrides``.
"""

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path

from livepreview.core.files import DEFAULT_DOCUMENTS
from livepreview.core.probe import HANDLE_URL_MODES

CONFIG_FILENAME = "livepreview.toml"


@dataclass
class ProjectConfig:
    """Project tree being previewed."""

    root: Path = field(default_factory=lambda: Path("."))
    default_documents: list[str] = field(default_factory=lambda: list(DEFAULT_DOCUMENTS))


@dataclass
class ServerConfig:
    """Loopback surface the preview pane connects to."""

    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class PreviewConfig:
    """How HTML reaches the pane: "auto" probes, "always"/"never" force it."""

    handle_urls: str = "auto"


@dataclass
class LiveReloadConfig:
    """Live reload configuration."""

    enabled: bool = True
    watch_patterns: list[str] | None = None


def _table(data: object, name: str) -> dict[str, object] | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"{name} section must be a dictionary")
    return data


def _string_list(value: object, key: str) -> list[str]:
    if not isinstance(value, list):
        raise ValueError(f"{key} must be a list")
    if not all(isinstance(item, str) for item in value):
        raise ValueError(f"{key} items must be strings")
    return list(value)


@dataclass
class Config:
    """Application configuration."""

    project: ProjectConfig
    server: ServerConfig
    preview: PreviewConfig
    live_reload: LiveReloadConfig
    config_path: Path | None = None

    @property
    def origin(self) -> str:
        """Origin embedded in generated handles."""
        return f"http://{self.server.host}:{self.server.port}"

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Config":
        """Load configuration.

        Args:
            config_path: Explicit config file; when omitted the nearest
                livepreview.toml is used, or defaults if there is none

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If config_path is given but doesn't exist
            ValueError: If configuration is invalid
        """
        if config_path is None:
            config_path = cls._discover_config()
            if config_path is None:
                return cls(
                    project=ProjectConfig(),
                    server=ServerConfig(),
                    preview=PreviewConfig(),
                    live_reload=LiveReloadConfig(),
                )
        elif not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with config_path.open("rb") as f:
            data = tomllib.load(f)

        return cls(
            project=cls._parse_project(data.get("project"), config_path.parent),
            server=cls._parse_server(data.get("server")),
            preview=cls._parse_preview(data.get("preview")),
            live_reload=cls._parse_live_reload(data.get("live_reload")),
            config_path=config_path,
        )

    @classmethod
    def _discover_config(cls) -> Path | None:
        """Find the nearest config file from the working directory upwards."""
        cwd = Path.cwd()
        for directory in (cwd, *cwd.parents):
            candidate = directory / CONFIG_FILENAME
            if candidate.exists():
                return candidate
        return None

    @classmethod
    def _parse_project(cls, data: object, config_dir: Path) -> ProjectConfig:
        """Parse the project section.

        Args:
            data: Raw project section data
            config_dir: Directory containing the config file; root is
                relative to it, and is the root itself when unset

        Returns:
            ProjectConfig instance
        """
        table = _table(data, "project") or {}

        root = table.get("root", ".")
        if not isinstance(root, str):
            raise ValueError("project.root must be a string")

        documents = table.get("default_documents", list(DEFAULT_DOCUMENTS))
        if not isinstance(documents, list) or not documents:
            raise ValueError("project.default_documents must be a non-empty list")
        for name in documents:
            if not isinstance(name, str) or not name or "/" in name:
                raise ValueError("project.default_documents items must be file names")

        return ProjectConfig(root=config_dir / root, default_documents=list(documents))

    @classmethod
    def _parse_server(cls, data: object) -> ServerConfig:
        table = _table(data, "server")
        if table is None:
            return ServerConfig()

        defaults = ServerConfig()
        host = table.get("host", defaults.host)
        port = table.get("port", defaults.port)
        if not isinstance(host, str):
            raise ValueError("server.host must be a string")
        # bool is an int subclass
        if not isinstance(port, int) or isinstance(port, bool):
            raise ValueError("server.port must be an integer")
        return ServerConfig(host=host, port=port)

    @classmethod
    def _parse_preview(cls, data: object) -> PreviewConfig:
        """Parse the preview section.

        ``handle_urls`` also accepts a boolean: true forces handles, false
        forces inline markup.
        """
        table = _table(data, "preview")
        if table is None:
            return PreviewConfig()

        handle_urls = table.get("handle_urls", "auto")
        if isinstance(handle_urls, bool):
            handle_urls = "always" if handle_urls else "never"
        if handle_urls not in HANDLE_URL_MODES:
            raise ValueError(
                f"preview.handle_urls must be one of {', '.join(HANDLE_URL_MODES)}",
            )
        return PreviewConfig(handle_urls=handle_urls)

    @classmethod
    def _parse_live_reload(cls, data: object) -> LiveReloadConfig:
        table = _table(data, "live_reload")
        if table is None:
            return LiveReloadConfig()

        enabled = table.get("enabled", True)
        if not isinstance(enabled, bool):
            raise ValueError("live_reload.enabled must be a boolean")

        patterns = table.get("watch_patterns")
        return LiveReloadConfig(
            enabled=enabled,
            watch_patterns=None if patterns is None else _string_list(patterns, "live_reload.watch_patterns"),
        )

    def with_overrides(
        self,
        *,
        root: Path | None = None,
        host: str | None = None,
        port: int | None = None,
        handle_urls: str | None = None,
        live_reload_enabled: bool | None = None,
    ) -> "Config":
        """Return a copy with command-line overrides applied.

        None means "keep the configured value". The original is not modified.

        Raises:
            ValueError: If handle_urls is not a known mode
        """
        if handle_urls is not None and handle_urls not in HANDLE_URL_MODES:
            raise ValueError(f"Unknown handle URL mode: {handle_urls!r}")

        project = self.project if root is None else replace(self.project, root=root)
        server = replace(
            self.server,
            host=self.server.host if host is None else host,
            port=self.server.port if port is None else port,
        )
        preview = self.preview if handle_urls is None else PreviewConfig(handle_urls=handle_urls)
        live_reload = self.live_reload
        if live_reload_enabled is not None:
            live_reload = replace(self.live_reload, enabled=live_reload_enabled)

        return replace(
            self,
            project=project,
            server=server,
            preview=preview,
            live_reload=live_reload,
        )
