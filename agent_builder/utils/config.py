#!/usr/bin/env python3
"""
Unified configuration management for the agent builder.

Settings are read from ~/.agent-builder/config.json (or the file named by
AGENT_BUILDER_CONFIG) and overlaid with environment variables, which is
where AI provider credentials normally come from.
"""
import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

# Values the editor ships in its .env template; treated as "no key"
PLACEHOLDER_PREFIX = "YOUR_"


@dataclass
class ProviderConfig:
    """Credentials and endpoints for AI providers"""
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    anthropic_version: str = "2023-06-01"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    default_model: str = "gemini-2.0-flash"

    def api_key(self, provider: str) -> Optional[str]:
        """Get a provider's key, ignoring empty and placeholder values"""
        key = getattr(self, f"{provider}_api_key", None)
        if not key or key.strip().upper().startswith(PLACEHOLDER_PREFIX):
            return None
        return key.strip()


@dataclass
class ChainConfig:
    """Chain defaults"""
    default_network: str = "polkadot"


@dataclass
class EngineConfig:
    """Execution engine settings"""
    allow_cycles: bool = False
    http_timeout: float = 30.0
    price_api_url: str = "https://api.coingecko.com/api/v3"


@dataclass
class AppConfig:
    """Main application configuration"""
    providers: ProviderConfig = field(default_factory=ProviderConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "providers": asdict(self.providers),
            "chain": asdict(self.chain),
            "engine": asdict(self.engine),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppConfig":
        """Create from dictionary"""
        return cls(
            providers=ProviderConfig(**data.get("providers", {})),
            chain=ChainConfig(**data.get("chain", {})),
            engine=EngineConfig(**data.get("engine", {})),
        )


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def apply_environment(config: AppConfig, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Overlay environment variables onto a config (in place)"""
    env = os.environ if environ is None else environ

    for provider in ("openai", "anthropic", "gemini"):
        key = env.get(f"{provider.upper()}_API_KEY")
        if key:
            setattr(config.providers, f"{provider}_api_key", key)
    if env.get("DEFAULT_MODEL"):
        config.providers.default_model = env["DEFAULT_MODEL"]
    if env.get("DEFAULT_NETWORK"):
        config.chain.default_network = env["DEFAULT_NETWORK"]

    if env.get("COINGECKO_API_URL"):
        config.engine.price_api_url = env["COINGECKO_API_URL"]
    if env.get("AGENT_BUILDER_HTTP_TIMEOUT"):
        try:
            config.engine.http_timeout = float(env["AGENT_BUILDER_HTTP_TIMEOUT"])
        except ValueError:
            logger.warning("Ignoring invalid AGENT_BUILDER_HTTP_TIMEOUT=%r",
                           env["AGENT_BUILDER_HTTP_TIMEOUT"])
    if env.get("AGENT_BUILDER_ALLOW_CYCLES"):
        config.engine.allow_cycles = _env_flag(env["AGENT_BUILDER_ALLOW_CYCLES"])

    return config


class ConfigManager:
    """Loads and saves the application configuration"""

    DEFAULT_CONFIG_FILE = Path.home() / ".agent-builder" / "config.json"

    def __init__(self, config_file: Optional[Path] = None):
        if config_file is None:
            override = os.environ.get("AGENT_BUILDER_CONFIG")
            config_file = Path(override) if override else self.DEFAULT_CONFIG_FILE
        self.config_file = Path(config_file)
        self.config: Optional[AppConfig] = None

    def _ensure_config_dir(self):
        """Ensure config directory exists"""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        # Set restrictive permissions
        self.config_file.parent.chmod(0o700)

    def load(self, reload: bool = False) -> AppConfig:
        """Load configuration from file and environment"""
        if self.config is not None and not reload:
            return self.config

        config = AppConfig()
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    config = AppConfig.from_dict(json.load(f))
            except (OSError, ValueError, TypeError) as e:
                logger.warning("Could not load config file %s: %s", self.config_file, e)

        self.config = apply_environment(config)
        return self.config

    def save(self, config: Optional[AppConfig] = None):
        """Save configuration to file"""
        if config:
            self.config = config

        if not self.config:
            return

        self._ensure_config_dir()
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self.config.to_dict(), f, indent=2)
        # Set restrictive permissions
        self.config_file.chmod(0o600)

    def clear_credentials(self):
        """Clear stored credentials (for security)"""
        config = self.load()
        config.providers.openai_api_key = None
        config.providers.anthropic_api_key = None
        config.providers.gemini_api_key = None
        self.save(config)
        logger.info("Credentials cleared from %s", self.config_file)


# Global instance
_config_manager = None


def get_config_manager() -> ConfigManager:
    """Get global config manager instance"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
