"""
Configuration validation for LinkPulse.

Validates config/settings.yaml on startup with clear, actionable error messages.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class ValidationError:
    """Represents a single validation error."""

    path: str
    message: str
    value: Any = None

    def __str__(self) -> str:
        if self.value is not None:
            return f"settings.yaml:{self.path} {self.message}, got {type(self.value).__name__}: {self.value!r}"
        return f"settings.yaml:{self.path} {self.message}"


@dataclass
class ValidationResult:
    """Result of configuration validation."""

    errors: list[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, path: str, message: str, value: Any = None) -> None:
        self.errors.append(ValidationError(path, message, value))

    def __str__(self) -> str:
        if self.is_valid:
            return "Configuration is valid"
        lines = ["Configuration validation failed:"]
        for error in self.errors:
            lines.append(f"  - {error}")
        return "\n".join(lines)


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a meaningful number here
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ConfigValidator:
    """Validates the settings.yaml configuration file."""

    def __init__(self, config_path: str = "config/settings.yaml"):
        self.config_path = Path(config_path)
        self.result = ValidationResult()

    def validate(self) -> ValidationResult:
        """
        Validate the configuration file.

        Returns:
            ValidationResult with any errors found.
        """
        self.result = ValidationResult()

        if not self.config_path.exists():
            self.result.add_error("", f"Configuration file not found: {self.config_path}")
            return self.result

        try:
            with open(self.config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            self.result.add_error("", f"Invalid YAML syntax: {e}")
            return self.result

        if config is None:
            self.result.add_error("", "Configuration file is empty")
            return self.result

        if not isinstance(config, dict):
            self.result.add_error("", "must be a mapping", config)
            return self.result

        self.validate_mapping(config)
        return self.result

    def validate_mapping(self, config: dict) -> ValidationResult:
        """Validate an already loaded configuration mapping."""
        self._validate_links(config)
        self._validate_activity(config)
        self._validate_fetching(config)
        self._validate_logging(config)
        return self.result

    def _section(self, config: dict, name: str, required: bool = False) -> dict | None:
        section = config.get(name)
        if section is None:
            if required:
                self.result.add_error(name, "is required")
            return None
        if not isinstance(section, dict):
            self.result.add_error(name, "must be a mapping", section)
            return None
        return section

    def _validate_links(self, config: dict) -> None:
        """Validate the links section."""
        links = self._section(config, "links", required=True)
        if links is None:
            return

        path = links.get("path")
        if path is None:
            self.result.add_error("links.path", "is required")
        elif not isinstance(path, str) or not path.strip():
            self.result.add_error("links.path", "must be a non-empty string", path)

        names = {}
        for key in ("active_group", "inactive_group"):
            value = links.get(key)
            if value is None:
                continue
            if not isinstance(value, str) or not value.strip():
                self.result.add_error(f"links.{key}", "must be a non-empty string", value)
            else:
                names[key] = value

        active = names.get("active_group", "cf-links")
        inactive = names.get("inactive_group", "inactive-links")
        if active == inactive:
            self.result.add_error(
                "links.inactive_group", f"must differ from active_group ({active})", inactive
            )

    def _validate_activity(self, config: dict) -> None:
        """Validate the activity section."""
        activity = self._section(config, "activity")
        if activity is None:
            return

        stale_after = activity.get("stale_after_days")
        if stale_after is not None:
            if not _is_int(stale_after):
                self.result.add_error("activity.stale_after_days", "must be an integer", stale_after)
            elif stale_after <= 0:
                self.result.add_error("activity.stale_after_days", "must be > 0", stale_after)

        min_year = activity.get("min_page_year")
        if min_year is not None:
            if not _is_int(min_year):
                self.result.add_error("activity.min_page_year", "must be an integer", min_year)
            elif min_year < 1970:
                self.result.add_error("activity.min_page_year", "must be >= 1970", min_year)

        include_month_names = activity.get("include_month_names")
        if include_month_names is not None and not isinstance(include_month_names, bool):
            self.result.add_error(
                "activity.include_month_names", "must be a boolean", include_month_names
            )

    def _validate_fetching(self, config: dict) -> None:
        """Validate the fetching section."""
        fetching = self._section(config, "fetching")
        if fetching is None:
            return

        timeout = fetching.get("timeout")
        if timeout is not None:
            if not _is_number(timeout):
                self.result.add_error("fetching.timeout", "must be a number", timeout)
            elif timeout <= 0:
                self.result.add_error("fetching.timeout", "must be > 0", timeout)

        user_agent = fetching.get("user_agent")
        if user_agent is not None:
            if not isinstance(user_agent, str):
                self.result.add_error("fetching.user_agent", "must be a string", user_agent)
            elif not user_agent.strip():
                self.result.add_error("fetching.user_agent", "must not be empty")

        max_bytes = fetching.get("max_content_bytes")
        if max_bytes is not None:
            if not _is_int(max_bytes):
                self.result.add_error("fetching.max_content_bytes", "must be an integer", max_bytes)
            elif max_bytes <= 0:
                self.result.add_error("fetching.max_content_bytes", "must be > 0", max_bytes)

        feed_paths = fetching.get("feed_paths")
        if feed_paths is not None:
            if not isinstance(feed_paths, list):
                self.result.add_error("fetching.feed_paths", "must be a list", feed_paths)
            elif len(feed_paths) == 0:
                self.result.add_error("fetching.feed_paths", "must not be empty")
            else:
                for i, feed_path in enumerate(feed_paths):
                    if not isinstance(feed_path, str):
                        self.result.add_error(f"fetching.feed_paths[{i}]", "must be a string", feed_path)
                    elif not feed_path.startswith("/"):
                        self.result.add_error(
                            f"fetching.feed_paths[{i}]", "must start with '/'", feed_path
                        )

    def _validate_logging(self, config: dict) -> None:
        """Validate the logging section."""
        logging_config = self._section(config, "logging")
        if logging_config is None:
            return

        log_dir = logging_config.get("log_dir")
        if log_dir is not None and not isinstance(log_dir, str):
            self.result.add_error("logging.log_dir", "must be a string or null", log_dir)


def validate_config(config_path: str = "config/settings.yaml") -> ValidationResult:
    """
    Convenience function to validate a configuration file.

    Args:
        config_path: Path to the settings.yaml file.

    Returns:
        ValidationResult with any errors found.
    """
    validator = ConfigValidator(config_path)
    return validator.validate()
