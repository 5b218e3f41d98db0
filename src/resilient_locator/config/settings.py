"""
Settings - Pydantic models for type-safe configuration.

This module defines all configuration settings as Pydantic models,
providing validation, type hints, and automatic environment variable loading.

The scoring numbers (threshold, tie band, decay, per-strategy weights) are
tunable defaults inferred from how stable different kinds of selectors tend
to be in practice, not a fixed contract.

Example:
    >>> from resilient_locator.config import Settings, load_config
    >>> settings = load_config()  # Loads from env, yaml, and defaults
    >>> print(settings.resolver.min_confidence)
    0.3
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WeightSettings(BaseModel):
    """
    Per-strategy confidence weights.
    
    Attributes:
        stable_attribute: attribute-equals on a whitelisted stable attribute
        generic_attribute: attribute-equals on any other attribute (class, id, ...)
        stable_attribute_contains: attribute-contains on a stable attribute
        generic_attribute_contains: attribute-contains on any other attribute
        text_equals: exact (whitespace-normalized) text match
        text_contains: substring text match
        tag_equals: tag name alone
        css_path: CSS-like structural path
    """
    stable_attribute: float = Field(default=1.0, ge=0.0, le=1.0)
    generic_attribute: float = Field(default=0.6, ge=0.0, le=1.0)
    stable_attribute_contains: float = Field(default=0.7, ge=0.0, le=1.0)
    generic_attribute_contains: float = Field(default=0.4, ge=0.0, le=1.0)
    text_equals: float = Field(default=0.8, ge=0.0, le=1.0)
    text_contains: float = Field(default=0.5, ge=0.0, le=1.0)
    tag_equals: float = Field(default=0.2, ge=0.0, le=1.0)
    css_path: float = Field(default=0.6, ge=0.0, le=1.0)


class ResolverSettings(BaseModel):
    """
    Candidate ranking settings.
    
    Attributes:
        min_confidence: Candidates below this are not trusted as unique
        tie_band: Candidates this close to the top score make it ambiguous
        hop_decay: Multiplier applied per hop of a relative strategy
        weights: Per-strategy base weights
    """
    min_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    tie_band: float = Field(default=0.05, ge=0.0, le=1.0)
    hop_decay: float = Field(default=0.9, gt=0.0, le=1.0)
    weights: WeightSettings = Field(default_factory=WeightSettings)


class StabilitySettings(BaseModel):
    """
    Which attributes and class names are stable or volatile.
    
    Patterns are regular expressions matched with ``re.search`` unless
    anchored. They are compiled once by StabilityPolicy.from_settings().
    """
    stable_attributes: List[str] = Field(default_factory=lambda: [
        "data-testid", "data-test-id", "data-test", "data-qa", "data-cy",
        "data-automation-id", "role",
    ])
    stable_attribute_prefixes: List[str] = Field(default_factory=lambda: ["aria-"])
    
    volatile_attributes: List[str] = Field(default_factory=lambda: [
        "style", "nonce", "data-reactid", "data-react-checksum", "jsaction",
    ])
    volatile_attribute_patterns: List[str] = Field(default_factory=lambda: [
        r"^data-v-[0-9a-f]+$",        # Vue scoped styles
        r"^_ngcontent-",              # Angular emulated encapsulation
        r"^_nghost-",
    ])
    volatile_class_patterns: List[str] = Field(default_factory=lambda: [
        r"^css-[a-zA-Z0-9]+$",        # Emotion/styled-components
        r"^sc-[a-zA-Z]+$",            # Styled-components
        r"^_[a-zA-Z0-9]{5,}$",        # CSS Modules hashes
        r"^[a-zA-Z]+__[a-zA-Z]+_[a-zA-Z0-9]+$",  # BEM with hash
        r"^[a-zA-Z]+_[a-zA-Z]+__[a-zA-Z0-9]{5}$",  # CSS Modules [name]_[local]__[hash]
        r"^jsx-\d+$",                 # Next.js styled-jsx
        r"^svelte-[a-z0-9]+$",        # Svelte
        r"^styles_[a-zA-Z]+__[a-zA-Z0-9]+$",  # CSS Modules
    ])
    volatile_id_patterns: List[str] = Field(default_factory=lambda: [
        r"[-_:.]\d+$",                # Numeric suffix: item-42, field_7
        r"\d{3,}$",                   # Long trailing counters
        r"^:r[0-9a-z]*:$",            # React useId
        r"^[0-9a-f]{8,}$",            # Bare hashes
        r"^(ember|mui|rc|headlessui-[a-z-]+)-?\d+",  # Framework counters
    ])
    max_class_length: int = Field(default=50, ge=1)


class CacheSettings(BaseModel):
    """
    Resolution cache settings.
    
    Attributes:
        enabled: Use the per-locator resolution cache
        max_entries: Entries kept before least-recently-used eviction
    """
    enabled: bool = True
    max_entries: int = Field(default=1024, ge=1, le=1_000_000)


class LoggingSettings(BaseModel):
    """
    Logging configuration.
    
    Attributes:
        level: Log level
        format: Log format string
        file: Log file path (None for console only)
        json_format: Use JSON format for logs
    """
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None
    json_format: bool = False


class Settings(BaseSettings):
    """
    Root settings container - single source of truth for all configuration.
    
    Settings are loaded in this priority order (highest to lowest):
    1. Explicit values passed to constructor
    2. Environment variables (prefixed with RESILIENT_LOCATOR__)
    3. Config file (YAML)
    4. Default values
    
    Example:
        >>> settings = Settings()  # Load from env vars
        >>> settings = Settings(resolver=ResolverSettings(tie_band=0.1))  # Override
    """
    
    model_config = SettingsConfigDict(
        env_prefix="RESILIENT_LOCATOR__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
    
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    stability: StabilitySettings = Field(default_factory=StabilitySettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    
    debug: bool = False
    
    def merge_with(self, overrides: dict) -> "Settings":
        """
        Create a new Settings instance with overrides applied.
        
        Args:
            overrides: Dictionary of values to override
            
        Returns:
            New Settings instance with overrides applied
        """
        current = self.model_dump()
        
        def deep_merge(base: dict, updates: dict) -> dict:
            for key, value in updates.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    deep_merge(base[key], value)
                else:
                    base[key] = value
            return base
        
        merged = deep_merge(current, overrides)
        return Settings(**merged)
