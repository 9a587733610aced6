"""Vault configuration loading and target resolution.

The set of vaults (base URL + API key per vault) is read once at startup from
``~/.config/mcp-tools/vaults.json`` and never reloaded. Two file shapes are
accepted::

    {"targets": [{"id": "work", "name": "Work", "baseUrl": "...", "credential": "..."}],
     "defaultTargetId": "work"}

    [{"id": "work", "name": "Work", "baseUrl": "...", "credential": "..."}]   # legacy

Entries written by older plugin versions (``vaultId``/``apiKey``/
``localRestApiBaseUrl`` under ``vaults``/``defaultVaultId``) are accepted too.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence, Union
from urllib.parse import urlsplit
import json
import logging

from pydantic import (
    AliasChoices,
    AnyHttpUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from .errors import ConfigurationLoadError, ConfigurationNotFoundError
from .schema import summarize_validation_error

logger = logging.getLogger(__name__)

DEFAULT_VAULTS_CONFIG_PATH = Path.home() / ".config" / "mcp-tools" / "vaults.json"

_URL_ADAPTER = TypeAdapter(AnyHttpUrl)

_LOOPBACK_HOSTS = ("localhost", "::1")


def _is_loopback(url: str) -> bool:
    host = urlsplit(url).hostname or ""
    return host in _LOOPBACK_HOSTS or host.startswith("127.")


class VaultTarget(BaseModel):
    """Connection details of one vault."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1, validation_alias=AliasChoices("id", "vaultId"))
    display_name: str = Field(min_length=1, validation_alias=AliasChoices("name", "displayName"))
    base_url: str = Field(validation_alias=AliasChoices("baseUrl", "localRestApiBaseUrl"))
    credential: str = Field(min_length=1, validation_alias=AliasChoices("credential", "apiKey"))
    local_path: Optional[str] = Field(default=None, validation_alias=AliasChoices("path", "localPath"))
    # Unset means: skip verification for loopback hosts, where the Local REST
    # API serves its self-signed certificate, and verify everywhere else
    verify_tls: bool = Field(
        default=None,
        validate_default=True,
        validation_alias=AliasChoices("verifyTls", "verify_tls"),
    )

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        _URL_ADAPTER.validate_python(value)
        return value

    @field_validator("verify_tls", mode="before")
    @classmethod
    def _default_verify_tls(cls, value: Any, info: ValidationInfo) -> Any:
        if value is not None:
            return value
        base_url = info.data.get("base_url")
        return base_url is None or not _is_loopback(base_url)


class _ConfigFile(BaseModel):
    targets: list[VaultTarget] = Field(validation_alias=AliasChoices("targets", "vaults"))
    default_target_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("defaultTargetId", "defaultVaultId")
    )


_LEGACY_ADAPTER = TypeAdapter(list[VaultTarget])


@dataclass(frozen=True)
class ResolvedConfiguration:
    """Loaded vault targets (in file order) and the optional default id."""

    targets: tuple[VaultTarget, ...] = field(default_factory=tuple)
    default_target_id: Optional[str] = None

    @classmethod
    def build(
        cls,
        targets: Sequence[VaultTarget],
        default_target_id: Optional[str] = None,
        source: str = "configuration",
    ) -> "ResolvedConfiguration":
        """Check ids are unique and drop a default id that matches nothing.

        Raises:
            ConfigurationLoadError: If two targets share an id.

        Examples:
            >>> ResolvedConfiguration.build([a, b], "b").default_target_id
            'b'
            >>> ResolvedConfiguration.build([a, b], "missing").default_target_id is None
            True
        """
        seen: set[str] = set()
        for target in targets:
            if target.id in seen:
                raise ConfigurationLoadError(
                    f'Duplicate vaultId "{target.id}" found in {source}. vaultId must be unique.'
                )
            seen.add(target.id)

        if default_target_id is not None and default_target_id not in seen:
            logger.warning(
                'Default vault ID "%s" does not match any configured vault. It will be ignored.',
                default_target_id,
            )
            default_target_id = None

        return cls(targets=tuple(targets), default_target_id=default_target_id)

    def get(self, target_id: str) -> Optional[VaultTarget]:
        for target in self.targets:
            if target.id == target_id:
                return target
        return None


def parse_vaults_config(data: Any, source: str = "configuration") -> ResolvedConfiguration:
    """Validate decoded JSON against the current shape, then the legacy one.

    Raises:
        ConfigurationLoadError: If neither shape matches, or ids repeat.
    """
    try:
        parsed = _ConfigFile.model_validate(data)
    except ValidationError as current_error:
        try:
            legacy = _LEGACY_ADAPTER.validate_python(data)
        except ValidationError as legacy_error:
            logger.error(
                "Vaults configuration validation failed for both formats: %s | legacy: %s",
                summarize_validation_error(current_error),
                summarize_validation_error(legacy_error),
            )
            raise ConfigurationLoadError(
                f"Invalid vaults configuration file at {source}: "
                f"{summarize_validation_error(legacy_error)}"
            ) from legacy_error
        logger.debug("Vaults configuration at %s uses the legacy format", source)
        return ResolvedConfiguration.build(legacy, None, source)

    return ResolvedConfiguration.build(parsed.targets, parsed.default_target_id, source)


class VaultConfigManager:
    """
    Owns the vault configuration and resolves vault ids to targets.

    Resolution order for ``resolve_target``:
        1. explicit id -> that vault, or ConfigurationNotFoundError
        2. default id  -> the default vault
        3. first vault in file order
        4. ConfigurationNotFoundError (no vaults at all)

    Usage:
        >>> vaults = VaultConfigManager()
        >>> vaults.load_or_empty()
        >>> vaults.resolve_target("work").base_url
        'https://127.0.0.1:27124'
    """

    def __init__(
        self,
        path: Union[str, Path, None] = None,
        configuration: Optional[ResolvedConfiguration] = None,
    ):
        """
        Initialize the manager without reading anything.

        Args:
            path: Location of vaults.json. ``~`` is expanded.
            configuration: Pre-built configuration (skips the need to load).
        """
        self._path = Path(path).expanduser() if path else DEFAULT_VAULTS_CONFIG_PATH
        self._configuration = configuration or ResolvedConfiguration()

    @classmethod
    def from_targets(
        cls, targets: Sequence[VaultTarget], default_target_id: Optional[str] = None
    ) -> "VaultConfigManager":
        return cls(configuration=ResolvedConfiguration.build(targets, default_target_id))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def configuration(self) -> ResolvedConfiguration:
        return self._configuration

    @property
    def default_target_id(self) -> Optional[str]:
        return self._configuration.default_target_id

    def load(self) -> ResolvedConfiguration:
        """
        Read and validate the vault file, keeping the result.

        A missing file is not an error: the result has no targets.

        Returns:
            The loaded configuration.

        Raises:
            ConfigurationLoadError: Unreadable file, invalid JSON, neither
                accepted shape, or duplicate ids.
        """
        logger.debug("Attempting to load vaults config from: %s", self._path)
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning(
                "Vaults configuration file not found at %s. Server will start with no vaults configured.",
                self._path,
            )
            self._configuration = ResolvedConfiguration()
            return self._configuration
        except OSError as e:
            raise ConfigurationLoadError(
                f"Failed to load vaults configuration from {self._path}: {e}"
            ) from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse vaults configuration file at %s: %s", self._path, e)
            raise ConfigurationLoadError(
                f"Failed to parse vaults configuration file at {self._path}: Invalid JSON."
            ) from e

        self._configuration = parse_vaults_config(data, str(self._path))
        logger.info(
            "Loaded %d vault(s) from %s (default: %s)",
            len(self._configuration.targets),
            self._path,
            self._configuration.default_target_id or "-",
        )
        return self._configuration

    def load_or_empty(self) -> ResolvedConfiguration:
        """Startup path: a broken file degrades to "no vaults configured"."""
        try:
            return self.load()
        except ConfigurationLoadError as e:
            logger.error("Vault configuration unusable, continuing with no vaults: %s", e)
            self._configuration = ResolvedConfiguration()
            return self._configuration

    def list_targets(self) -> list[VaultTarget]:
        """All targets in file order."""
        return list(self._configuration.targets)

    def resolve_target(self, vault_id: Optional[str] = None) -> VaultTarget:
        """
        Map an optional vault id to one target.

        Args:
            vault_id: Requested vault. ``None`` (or empty) means "default".

        Returns:
            The resolved VaultTarget.

        Raises:
            ConfigurationNotFoundError: Unknown id, or no vaults configured.
        """
        config = self._configuration

        if vault_id:
            target = config.get(vault_id)
            if target is None:
                raise ConfigurationNotFoundError(
                    f'Vault "{vault_id}" not found or not configured. '
                    "Use list_configured_vaults to see available vault IDs."
                )
            return target

        if config.default_target_id:
            target = config.get(config.default_target_id)
            if target is not None:
                return target
            logger.warning(
                'Default vault ID "%s" is not configured, falling back to the first vault',
                config.default_target_id,
            )

        if config.targets:
            return config.targets[0]

        raise ConfigurationNotFoundError(
            f"No vaults configured. Add a vault to {self._path}."
        )
