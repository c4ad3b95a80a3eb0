"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- ProviderConfig: Generation provider settings (text, image, speech)
- FetchConfig: Feed retrieval strategies and timeouts
- TranslateConfig: Batch translation settings
- AnalysisConfig: Per-item breakdown and illustration settings
- AudioConfig: Speech decoding and output settings
- LoggingConfig: Logging behavior
- LangfuseConfig: Langfuse tracing settings
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
import os
from typing import Any

import yaml


@dataclass
class ProviderConfig:
    """Configuration for the pluggable generation provider.

    Attributes:
        name: Provider name ("gemini" currently supported)
        text_model: Model used for translation and analysis
        image_model: Model used for editorial illustrations
        speech_model: Model used for narration
        voice: Prebuilt voice name for narration
        image_aspect_ratio: Aspect ratio requested for illustrations
        api_key_env: Environment variable holding the API key (optional)
        base_url: Base URL for the provider API
        api_key: Optional inline API key (overrides env var)
        trust_env: Whether to respect system proxy settings for API requests
        timeout_seconds: Per-request timeout for generation calls
    """

    name: str = "gemini"
    text_model: str = "gemini-2.5-flash"
    image_model: str = "gemini-2.5-flash-image"
    speech_model: str = "gemini-2.5-flash-preview-tts"
    voice: str = "Fenrir"
    image_aspect_ratio: str = "16:9"
    api_key_env: str | None = None
    base_url: str = "https://generativelanguage.googleapis.com"
    api_key: str | None = None
    trust_env: bool = True
    timeout_seconds: float = 60.0


@dataclass
class FetchConfig:
    """Configuration for feed retrieval through public proxies.

    Each strategy URL is a template with a ``{url}`` placeholder that receives
    the percent-encoded feed URL. Strategies are tried in the order
    wrapped -> json -> raw.

    Attributes:
        timeout_seconds: Timeout applied to each strategy attempt independently
        max_items: Maximum number of items extracted from one feed
        snippet_chars: Maximum snippet length before the truncation marker
        user_agent: HTTP User-Agent header string
        trust_env: Whether to respect system proxy settings
        wrapped_proxy_url: Pass-through proxy returning {"contents": markup}
        json_proxy_url: Feed-to-JSON conversion service
        raw_proxy_url: Pass-through proxy returning raw markup
    """

    timeout_seconds: float = 5.0
    max_items: int = 15
    snippet_chars: int = 200
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    trust_env: bool = True
    wrapped_proxy_url: str = "https://api.allorigins.win/get?url={url}"
    json_proxy_url: str = "https://api.rss2json.com/v1/api.json?rss_url={url}"
    raw_proxy_url: str = "https://api.codetabs.com/v1/proxy?quest={url}"


@dataclass
class TranslateConfig:
    """Configuration for batch headline translation.

    Attributes:
        source_language: Language the feeds are published in
        chunk_size: Number of items sent in one generation call
        snippet_chars: Snippet length sent to the model per item
        max_retries: Extra attempts per chunk after a failed call
    """

    source_language: str = "English"
    chunk_size: int = 10
    snippet_chars: int = 200
    max_retries: int = 1


@dataclass
class AnalysisConfig:
    """Configuration for per-item breakdowns and illustrations.

    Attributes:
        use_search_grounding: Enable the Google Search tool for analysis calls
        illustrations: Whether to generate an illustration after each analysis
    """

    use_search_grounding: bool = True
    illustrations: bool = True


@dataclass
class AudioConfig:
    """Configuration for narration decoding and output.

    Attributes:
        sample_rate: Sample rate of the raw PCM returned by the speech model
        channels: Channel count of the raw PCM
        output_dir: Directory where the WAV output writes narrations
    """

    sample_rate: int = 24000
    channels: int = 1
    output_dir: str = "narrations"


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Path of the main log file
        llm_log_enabled: Whether to enable separate LLM interaction logging
        llm_log_detail: LLM log detail level ("response_only", "prompt_response")
        llm_log_redaction: Redaction mode for LLM logs ("none", "redact_content", "redact_urls_authors")
        llm_log_file: Path of the LLM log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "run.jsonl"
    llm_log_enabled: bool = False
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "redact_urls_authors"
    llm_log_file: str = "llm.jsonl"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse tracing.

    Attributes:
        enabled: Whether to enable Langfuse tracing
        public_key: Langfuse public key (optional)
        secret_key: Langfuse secret key (optional)
        host: Langfuse host URL (optional)
        environment: Langfuse environment label (optional)
        release: Langfuse release identifier (optional)
        redaction: Redaction mode for prompt/response payloads
        max_text_chars: Maximum characters for prompt/response payloads
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    release: str | None = None
    redaction: str = "redact_urls_authors"
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    translate: TranslateConfig = field(default_factory=TranslateConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)


DEFAULT_CONFIG = AppConfig()


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file over the defaults.

    Unknown sections and keys are ignored so older config files keep working.
    Every call returns fresh section objects; callers may mutate the result.
    """
    raw: dict[str, Any] = {}
    if path:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config root must be a mapping: {path}")
    return _merge_config(DEFAULT_CONFIG, raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Overlay each YAML section onto the matching dataclass of ``base``."""
    sections: dict[str, Any] = {}
    for section in fields(AppConfig):
        current = getattr(base, section.name)
        overrides = raw.get(section.name) or {}
        if not isinstance(overrides, dict):
            raise ValueError(f"Config section '{section.name}' must be a mapping")
        known = {f.name for f in fields(current)}
        sections[section.name] = replace(
            current, **{key: value for key, value in overrides.items() if key in known}
        )
    return AppConfig(**sections)


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    if cfg.api_key_env:
        return os.getenv(cfg.api_key_env)
    defaults = {
        "gemini": "GOOGLE_API_KEY",
    }
    env_name = defaults.get(cfg.name.lower(), "GOOGLE_API_KEY")
    return os.getenv(env_name)
