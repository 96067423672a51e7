# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""Configuration for the counters telemetry bootstrap.

Configuration precedence (highest to lowest):
1. Code arguments (explicit values passed to CountersConfig)
2. Environment variables (LOG_LEVEL, PROJECT_ID, OTEL_*, FNCOUNTERS_*)
3. YAML config file (fncounters.yaml or specified path)
4. Built-in defaults
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAMESPACE = "nielm"
DEFAULT_SERVICE_NAME = "counters-test"
DEFAULT_SERVICE_VERSION = "1.0.0"

DEFAULT_METRIC_PREFIX = "custom.googleapis.com"
DEFAULT_COUNTERS_PREFIX = "nielm-test/"

# Export timeout never exceeds the export interval.
DEFAULT_EXPORT_INTERVAL_MILLIS = 10_000
DEFAULT_EXPORT_TIMEOUT_MILLIS = 10_000
DEFAULT_BACKGROUND_INTERVAL_SECONDS = 2.0

EXPORTERS = ("gcp", "otlp", "console")

_TRUE_VALUES = ("true", "1", "yes")

# Fields whose environment variables outrank a value read from YAML.
_ENV_OVERRIDES: Dict[str, Tuple[str, ...]] = {
    "service_namespace": ("OTEL_SERVICE_NAMESPACE",),
    "service_name": ("OTEL_SERVICE_NAME",),
    "service_version": ("OTEL_SERVICE_VERSION",),
    "log_level": ("LOG_LEVEL",),
    "project_id": ("PROJECT_ID",),
    "use_gcf_workaround": ("USE_OTEL_GCF_WORKAROUND",),
    "exporter": ("FNCOUNTERS_EXPORTER",),
    "otlp_endpoint": ("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT", "OTEL_EXPORTER_OTLP_ENDPOINT"),
}


def _env_flag(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.lower() in _TRUE_VALUES


@dataclass
class CountersConfig:
    """Configuration for logging, resource identity and the metrics pipeline.

    Example::

        >>> config = CountersConfig(service_name="my-function", exporter="console")

        >>> # Or load from YAML
        >>> config = CountersConfig.from_yaml("config/fncounters.yaml")
    """

    # Static resource identity
    service_namespace: Optional[str] = None
    service_name: Optional[str] = None
    service_version: Optional[str] = None

    # Logging
    log_level: Optional[str] = None

    # GCP project used by the Cloud Monitoring exporter
    project_id: Optional[str] = None

    # Resource detection
    auto_detect_resources: bool = True

    # Cloud Functions generic_task workaround (USE_OTEL_GCF_WORKAROUND)
    use_gcf_workaround: Optional[bool] = None

    # Exporter: "gcp", "otlp" or "console"
    exporter: Optional[str] = None
    metric_prefix: str = DEFAULT_METRIC_PREFIX
    otlp_endpoint: Optional[str] = None
    otlp_headers: Optional[Dict[str, str]] = None

    # Counters
    counters_prefix: str = DEFAULT_COUNTERS_PREFIX
    export_interval_millis: int = DEFAULT_EXPORT_INTERVAL_MILLIS
    export_timeout_millis: int = DEFAULT_EXPORT_TIMEOUT_MILLIS
    background_interval_seconds: float = DEFAULT_BACKGROUND_INTERVAL_SECONDS

    _config_file: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Apply environment variable defaults."""
        if self.service_namespace is None:
            self.service_namespace = os.getenv("OTEL_SERVICE_NAMESPACE", DEFAULT_SERVICE_NAMESPACE)

        if self.service_name is None:
            self.service_name = os.getenv("OTEL_SERVICE_NAME", DEFAULT_SERVICE_NAME)

        if self.service_version is None:
            self.service_version = os.getenv("OTEL_SERVICE_VERSION", DEFAULT_SERVICE_VERSION)

        if self.log_level is None:
            self.log_level = os.getenv("LOG_LEVEL", "DEBUG")

        if self.project_id is None:
            self.project_id = os.getenv("PROJECT_ID")

        env_auto_detect = _env_flag("FNCOUNTERS_AUTO_DETECT_RESOURCES")
        if env_auto_detect is not None:
            self.auto_detect_resources = env_auto_detect

        if self.use_gcf_workaround is None:
            # Any non-empty value opts in.
            self.use_gcf_workaround = bool(os.getenv("USE_OTEL_GCF_WORKAROUND"))

        if self.exporter is None:
            env_exporter = os.getenv("FNCOUNTERS_EXPORTER", "gcp").lower()
            if env_exporter in EXPORTERS:
                self.exporter = env_exporter
            else:
                logger.warning("Ignoring unknown FNCOUNTERS_EXPORTER=%s, using gcp", env_exporter)
                self.exporter = "gcp"

        if self.otlp_endpoint is None:
            env_endpoint = os.getenv("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT")
            if env_endpoint:
                self.otlp_endpoint = env_endpoint
            else:
                base = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318")
                self.otlp_endpoint = f"{base.rstrip('/')}/v1/metrics"

    @property
    def static_attributes(self) -> Dict[str, str]:
        """The three identity entries every resolved resource carries."""
        return {
            "service.namespace": str(self.service_namespace),
            "service.name": str(self.service_name),
            "service.version": str(self.service_version),
        }

    # ------------------------------------------------------------------
    # YAML loading
    # ------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, path: Optional[str] = None) -> CountersConfig:
        """Load configuration from a YAML file.

        Supports environment variable interpolation using ``${VAR_NAME}`` syntax.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If YAML is malformed.
        """
        if path is None:
            raise FileNotFoundError("No config file path provided")

        resolved = Path(path)
        if not resolved.exists():
            raise FileNotFoundError(f"Config file not found: {resolved}")

        import yaml  # type: ignore[import-untyped]

        with open(resolved) as fh:
            raw_content = fh.read()

        content = _interpolate_env_vars(raw_content)

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {resolved}: {exc}") from exc

        if data is None:
            data = {}

        return cls._from_dict(data, config_file=str(resolved))

    @classmethod
    def from_file_or_env(cls, path: Optional[str] = None) -> CountersConfig:
        """Load config from file if exists, otherwise use environment variables.

        Search order:
        1. Explicit *path* argument
        2. ``FNCOUNTERS_CONFIG_FILE`` env var
        3. ``./fncounters.yaml``
        4. ``./config/fncounters.yaml``
        5. Falls back to env-only config
        """
        search_paths: List[Path] = []

        if path:
            search_paths.append(Path(path))

        env_path = os.getenv("FNCOUNTERS_CONFIG_FILE")
        if env_path:
            search_paths.append(Path(env_path))

        search_paths.extend(
            [
                Path("fncounters.yaml"),
                Path("fncounters.yml"),
                Path("config/fncounters.yaml"),
                Path("config/fncounters.yml"),
            ]
        )

        for candidate in search_paths:
            if candidate.exists():
                logger.info("Loading config from: %s", candidate)
                return cls.from_yaml(str(candidate))

        logger.debug("No config file found, using environment variables only")
        return cls()

    @classmethod
    def _from_dict(
        cls,
        data: Dict[str, Any],
        config_file: Optional[str] = None,
    ) -> CountersConfig:
        """Create config from dictionary (parsed YAML)."""
        service = data.get("service", {})
        logging_section = data.get("logging", {})
        resource = data.get("resource", {})
        export = data.get("export", {})
        otlp = data.get("otlp", {})
        counters = data.get("counters", {})

        kwargs: Dict[str, Any] = dict(
            service_namespace=service.get("namespace"),
            service_name=service.get("name"),
            service_version=service.get("version"),
            log_level=logging_section.get("level"),
            project_id=data.get("project_id"),
            auto_detect_resources=resource.get("auto_detect", True),
            use_gcf_workaround=resource.get("gcf_workaround"),
            exporter=export.get("exporter"),
            metric_prefix=export.get("metric_prefix", DEFAULT_METRIC_PREFIX),
            export_interval_millis=export.get("interval_ms", DEFAULT_EXPORT_INTERVAL_MILLIS),
            export_timeout_millis=export.get("timeout_ms", DEFAULT_EXPORT_TIMEOUT_MILLIS),
            otlp_endpoint=otlp.get("endpoint"),
            otlp_headers=otlp.get("headers"),
            counters_prefix=counters.get("prefix", DEFAULT_COUNTERS_PREFIX),
            background_interval_seconds=counters.get("background_interval_s", DEFAULT_BACKGROUND_INTERVAL_SECONDS),
            _config_file=config_file,
        )

        # Leave these unset so __post_init__ reads the environment.
        for name, env_vars in _ENV_OVERRIDES.items():
            if any(os.getenv(var) for var in env_vars):
                kwargs[name] = None

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        return {
            "service": {
                "namespace": self.service_namespace,
                "name": self.service_name,
                "version": self.service_version,
            },
            "logging": {
                "level": self.log_level,
            },
            "project_id": self.project_id,
            "resource": {
                "auto_detect": self.auto_detect_resources,
                "gcf_workaround": self.use_gcf_workaround,
            },
            "export": {
                "exporter": self.exporter,
                "metric_prefix": self.metric_prefix,
                "interval_ms": self.export_interval_millis,
                "timeout_ms": self.export_timeout_millis,
            },
            "otlp": {
                "endpoint": self.otlp_endpoint,
                "headers": self.otlp_headers,
            },
            "counters": {
                "prefix": self.counters_prefix,
                "background_interval_s": self.background_interval_seconds,
            },
        }


def _interpolate_env_vars(content: str) -> str:
    """Interpolate ``${VAR_NAME}`` and ``${VAR_NAME:-default}`` in *content*."""
    pattern = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")

    def _replace(match: re.Match) -> str:  # type: ignore[type-arg]
        var_name = match.group(1)
        default = match.group(2)
        value = os.getenv(var_name)
        if value is not None:
            return value
        if default is not None:
            return default
        return match.group(0)

    return pattern.sub(_replace, content)
