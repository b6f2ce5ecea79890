"""Configuration loading for the bucket sync tool.

Supports two configuration sources:
1. Environment variables, optionally completed by a .env file - takes priority
2. config.json file

Environment Variable Format:
    SYNC_PAIRS=hetzner1:scaleway1,hetzner2:scaleway2
    {NAME}_S3_ENDPOINT=https://...
    {NAME}_S3_REGION=xxx
    {NAME}_ACCESS_KEY=xxx
    {NAME}_SECRET_KEY=xxx
    {NAME}_S3_ADDRESSING_STYLE=path|virtual   (optional)
    EXCLUDE_BUCKETS="scratch tmp-uploads"      (optional)

Indexed Format (used when SYNC_PAIRS is not set):
    SYNC_SOURCE_PREFIX=hetzner
    SYNC_DEST_PREFIX=scaleway
    SYNC_MAX_INDEX=4
    HETZNER_S3_ENDPOINT / HETZNER_S3_REGION          shared by HETZNER1..N
    HETZNER1_ACCESS_KEY / HETZNER1_SECRET_KEY ...

    Each index is used only when both providers are fully configured;
    incomplete indices are skipped with a warning.

JSON Format:
    {
      "providers": {
        "hetzner1": {"endpoint_url": "...", "region_name": "...",
                     "aws_access_key_id": "...", "aws_secret_access_key": "..."}
      },
      "pairs": ["hetzner1:scaleway1"],
      "exclude_buckets": ["scratch"]
    }
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values

from s3bucketsync.errors import ConfigurationError
from s3bucketsync.models import ProviderConfig, SyncPair

logger = logging.getLogger(__name__)

DEFAULT_MAX_INDEX = 4

# Environment suffix for each ProviderConfig field
ENV_FIELD_SUFFIXES = {
    "endpoint_url": "S3_ENDPOINT",
    "region_name": "S3_REGION",
    "aws_access_key_id": "ACCESS_KEY",
    "aws_secret_access_key": "SECRET_KEY",
}

# Fields that may fall back to the provider family in the indexed scheme
FAMILY_FIELDS = ("endpoint_url", "region_name")


@dataclass
class Settings:
    """Resolved configuration for one run."""

    pairs: list[SyncPair]
    exclude_buckets: tuple = ()
    source: str = "environment"
    skipped: list[str] = field(default_factory=list)


def env_prefix(name: str) -> str:
    """Upper-cased environment variable prefix for a provider name."""
    return re.sub(r"\W", "_", name).upper()


def parse_pair_token(token: str) -> tuple[str, str]:
    """Split a ``SOURCE:DEST`` token into its two provider names.

    Raises:
        ConfigurationError: If the token is not exactly two non-empty names.
    """
    parts = [p.strip() for p in token.split(":")]
    if len(parts) != 2 or not all(parts):
        raise ConfigurationError(
            f"Invalid pair '{token}'. Expected format: SOURCE:DEST"
        )
    return parts[0], parts[1]


def split_pair_list(value: str) -> list[str]:
    """Split a comma-separated pair list, dropping empty entries."""
    return [t.strip() for t in value.split(",") if t.strip()]


def parse_exclusions(value: Optional[str]) -> tuple:
    """Split an exclusion list on commas and whitespace."""
    if not value:
        return ()
    return tuple(t for t in re.split(r"[\s,]+", value) if t)


def provider_from_env(
    name: str,
    environ: Mapping[str, str],
    family: Optional[str] = None,
) -> ProviderConfig:
    """Build a ProviderConfig from ``{NAME}_*`` variables.

    Missing values are left empty; callers decide what an invalid
    provider means. Endpoint and region fall back to ``{FAMILY}_*``
    when ``family`` is given.
    """
    prefix = env_prefix(name)
    values = {}
    for field_name, suffix in ENV_FIELD_SUFFIXES.items():
        value = environ.get(f"{prefix}_{suffix}", "")
        if not value and family and field_name in FAMILY_FIELDS:
            value = environ.get(f"{env_prefix(family)}_{suffix}", "")
        values[field_name] = value.strip()

    style = environ.get(f"{prefix}_S3_ADDRESSING_STYLE", "")
    if not style and family:
        style = environ.get(f"{env_prefix(family)}_S3_ADDRESSING_STYLE", "")

    return ProviderConfig(name=name, addressing_style=style or "path", **values)


def _pairs_from_tokens(tokens: list[str], resolve) -> list[SyncPair]:
    providers: dict[str, ProviderConfig] = {}
    pairs = []
    for token in tokens:
        source_name, dest_name = parse_pair_token(token)
        for name in (source_name, dest_name):
            if name not in providers:
                providers[name] = resolve(name)
        pairs.append(SyncPair(providers[source_name], providers[dest_name]))
    return pairs


def load_from_env(
    environ: Mapping[str, str],
    pair_override: Optional[str] = None,
) -> Settings:
    """Load settings from an environment mapping.

    Args:
        environ: Environment variables (process environment merged with .env).
        pair_override: Single ``SOURCE:DEST`` token replacing the pair list.

    Returns:
        Settings with one SyncPair per configured pair.

    Raises:
        ConfigurationError: If no pair list is defined or a token is malformed.
    """
    exclusions = parse_exclusions(environ.get("EXCLUDE_BUCKETS"))

    if pair_override:
        tokens = [pair_override]
    elif environ.get("SYNC_PAIRS", "").strip():
        tokens = split_pair_list(environ["SYNC_PAIRS"])
    elif environ.get("SYNC_SOURCE_PREFIX"):
        return _load_indexed(environ, exclusions)
    else:
        raise ConfigurationError(
            'SYNC_PAIRS is not defined. Example: SYNC_PAIRS="hetzner1:scaleway1,hetzner2:scaleway2"'
        )

    families = [
        environ.get(key, "").strip()
        for key in ("SYNC_SOURCE_PREFIX", "SYNC_DEST_PREFIX")
    ]

    def resolve(name: str) -> ProviderConfig:
        return provider_from_env(name, environ, family=family_of(name, families))

    pairs = _pairs_from_tokens(tokens, resolve)
    return Settings(pairs=pairs, exclude_buckets=exclusions, source="environment")


def family_of(name: str, families: list[str]) -> Optional[str]:
    """Indexed family a provider name belongs to, e.g. ``hetzner`` for ``hetzner2``."""
    for family in families:
        if not family:
            continue
        suffix = name[len(family):]
        if name.lower().startswith(family.lower()) and suffix.isdigit():
            return family
    return None


def _load_indexed(environ: Mapping[str, str], exclusions: tuple) -> Settings:
    source_family = environ["SYNC_SOURCE_PREFIX"].strip()
    dest_family = environ.get("SYNC_DEST_PREFIX", "").strip()
    if not dest_family:
        raise ConfigurationError("SYNC_SOURCE_PREFIX is set but SYNC_DEST_PREFIX is not")

    raw_max = environ.get("SYNC_MAX_INDEX", str(DEFAULT_MAX_INDEX))
    try:
        max_index = int(raw_max)
    except ValueError as e:
        raise ConfigurationError(f"SYNC_MAX_INDEX must be an integer, got '{raw_max}'") from e

    pairs = []
    skipped = []
    for index in range(1, max_index + 1):
        source = provider_from_env(f"{source_family}{index}", environ, family=source_family)
        dest = provider_from_env(f"{dest_family}{index}", environ, family=dest_family)
        if source.is_valid and dest.is_valid:
            pairs.append(SyncPair(source, dest))
        else:
            logger.warning("Skipping pair %d: missing credentials", index)
            skipped.append(f"{source.name}:{dest.name}")

    return Settings(
        pairs=pairs,
        exclude_buckets=exclusions,
        source="environment (indexed)",
        skipped=skipped,
    )


def load_from_json(config_path: str, pair_override: Optional[str] = None) -> Settings:
    """Load settings from a JSON file.

    Raises:
        ConfigurationError: If the file doesn't exist, contains invalid JSON,
                            or defines no pairs.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError("Config file must contain a JSON object")

    raw_providers = data.get("providers", {})

    def resolve(name: str) -> ProviderConfig:
        entry = raw_providers.get(name) or {}
        return ProviderConfig(
            name=name,
            endpoint_url=entry.get("endpoint_url") or "",
            region_name=entry.get("region_name") or "",
            aws_access_key_id=entry.get("aws_access_key_id") or "",
            aws_secret_access_key=entry.get("aws_secret_access_key") or "",
            addressing_style=entry.get("addressing_style") or "path",
        )

    if pair_override:
        tokens = [pair_override]
    else:
        tokens = data.get("pairs", [])
        if isinstance(tokens, str):
            tokens = split_pair_list(tokens)
    if not tokens:
        raise ConfigurationError(f"No pairs defined in {config_path}")

    exclusions = data.get("exclude_buckets", [])
    if isinstance(exclusions, str):
        exclusions = parse_exclusions(exclusions)

    return Settings(
        pairs=_pairs_from_tokens(tokens, resolve),
        exclude_buckets=tuple(exclusions),
        source=str(path),
    )


def has_env_config(environ: Mapping[str, str]) -> bool:
    """Check if the environment defines a pair list."""
    return bool(environ.get("SYNC_PAIRS") or environ.get("SYNC_SOURCE_PREFIX"))


def read_environment(
    env_file: Optional[str] = ".env",
    environ: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Merge the process environment with values from ``env_file``.

    Values from the .env file win over the shell environment.
    """
    merged = dict(os.environ if environ is None else environ)
    if env_file and Path(env_file).exists():
        merged.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    return merged


def warn_invalid_providers(pairs: list[SyncPair], source: str) -> None:
    """Log one warning per provider with missing fields."""
    seen = set()
    for pair in pairs:
        for provider in (pair.source, pair.destination):
            if provider.name in seen or provider.is_valid:
                continue
            seen.add(provider.name)
            if source.startswith("environment"):
                missing = [
                    f"{env_prefix(provider.name)}_{ENV_FIELD_SUFFIXES[f]}"
                    for f in provider.missing_fields()
                ]
            else:
                missing = provider.missing_fields()
            logger.warning(
                "Missing credentials for provider %s: %s",
                provider.name,
                ", ".join(missing),
            )


def load_settings(
    env_file: Optional[str] = ".env",
    config_path: Optional[str] = "config.json",
    pair_override: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings with environment priority.

    Priority order:
    1. Environment variables (if SYNC_PAIRS or SYNC_SOURCE_PREFIX is set)
    2. config.json file
    3. Environment variables, when only ``pair_override`` names the pair

    Raises:
        ConfigurationError: If nothing is configured or no pair can run.
    """
    env = read_environment(env_file, environ)

    if has_env_config(env):
        settings = load_from_env(env, pair_override)
    elif config_path and Path(config_path).exists():
        settings = load_from_json(config_path, pair_override)
    elif pair_override:
        settings = load_from_env(env, pair_override)
    else:
        raise ConfigurationError(
            "No configuration found. Set SYNC_PAIRS in the environment or a .env file, "
            "or create a config.json file."
        )

    warn_invalid_providers(settings.pairs, settings.source)

    if not any(p.source.is_valid and p.destination.is_valid for p in settings.pairs):
        raise ConfigurationError(
            "No credential pairs found. Configure credentials for at least one pair."
        )

    return settings
