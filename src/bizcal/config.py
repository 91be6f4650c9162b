"""
Configuration management for bizcal.
Loads YAML configuration with environment variable substitution and builds
the immutable engine configurations from it.
"""

import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from bizcal.analytics import AnalyticsConfig
from bizcal.billing import BillingConfig
from bizcal.calendar import BusinessRules
from bizcal.core import BizcalError, ConfigError
from bizcal.fiscal import DEFAULT_FISCAL_CONFIG, FiscalYearConfig, get_preset

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _substitute_env_vars(value: str) -> str:
    """Substitute ${VAR:default} patterns with environment variables."""
    pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

    def replacer(match):
        var_name = match.group(1)
        default = match.group(2) if match.group(2) is not None else ''
        return os.environ.get(var_name, default)

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values to substitute environment variables."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _as_bool(value: Any) -> bool:
    # Substituted environment values arrive as strings.
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ConfigError(f"Expected a boolean; got {value!r}.")
    return bool(value)


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_bytes: int = 10485760
    backup_count: int = 5


@dataclass
class Config:
    """Main configuration container."""
    business_rules: BusinessRules = field(default_factory=BusinessRules)
    fiscal: FiscalYearConfig = DEFAULT_FISCAL_CONFIG
    billing: BillingConfig = field(default_factory=BillingConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _read_yaml(path: Path) -> dict:
    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str, local_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML files.

    Args:
        config_path: Path to main config file (e.g., bizcal.yaml)
        local_path: Optional path to local overrides.  When omitted, a
            ``<name>.local.yaml`` beside the main file is used if present.

    Returns:
        Fully populated Config object
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    raw_config = _read_yaml(config_file)

    if local_path:
        local_file = Path(local_path)
        if local_file.exists():
            raw_config = _deep_merge(raw_config, _read_yaml(local_file))
    else:
        auto_local = config_file.with_name(f"{config_file.stem}.local.yaml")
        if auto_local.exists():
            raw_config = _deep_merge(raw_config, _read_yaml(auto_local))

    raw_config = _process_config_values(raw_config)

    return build_config(raw_config)


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _build_fiscal(raw: dict) -> FiscalYearConfig:
    if raw.get('preset'):
        return get_preset(str(raw['preset']))
    return FiscalYearConfig(
        start_month=int(raw.get('start_month', 1)),
        start_day=int(raw.get('start_day', 1)),
    )


def _build_business_rules(raw: dict) -> BusinessRules:
    rules = dict(raw)
    if 'workdays' in rules:
        rules['workdays'] = [int(d) for d in rules['workdays']]
    if 'holidays' in rules:
        rules['holidays'] = [
            {**h, 'recurring': _as_bool(h.get('recurring', False))} for h in rules['holidays']
        ]
    return BusinessRules.from_dict(rules)


def _reconcile_fiscal(rules: BusinessRules, fiscal_raw: dict) -> tuple[BusinessRules, FiscalYearConfig]:
    """
    The fiscal year may be set in the ``fiscal`` section, in
    ``business_rules.fiscal_year_start``, or both if they agree.  Whichever is
    given is copied to the other so both views of the config match.
    """
    if not fiscal_raw:
        return rules, rules.fiscal_year_start or DEFAULT_FISCAL_CONFIG
    fiscal = _build_fiscal(fiscal_raw)
    if rules.fiscal_year_start is None:
        return replace(rules, fiscal_year_start=fiscal), fiscal
    if rules.fiscal_year_start != fiscal:
        raise ConfigError(
            f"business_rules.fiscal_year_start {rules.fiscal_year_start} conflicts with fiscal {fiscal}."
        )
    return rules, fiscal


def build_config(raw: dict) -> Config:
    """
    Build a Config object from an already-parsed mapping.

    Raises:
        ConfigError: if any value is missing, mistyped or out of range
    """
    try:
        rules_raw = raw.get('business_rules', {})
        fiscal_raw = raw.get('fiscal', {})
        billing_raw = raw.get('billing', {})
        analytics_raw = raw.get('analytics', {})
        logging_raw = raw.get('logging', {})

        rules, fiscal = _reconcile_fiscal(_build_business_rules(rules_raw), fiscal_raw)

        return Config(
            business_rules=rules,
            fiscal=fiscal,
            billing=BillingConfig(
                default_billing_day=int(billing_raw.get('default_billing_day', 1)),
                skip_weekends=_as_bool(billing_raw.get('skip_weekends', False)),
                skip_holidays=_as_bool(billing_raw.get('skip_holidays', False)),
                holidays=frozenset(str(h) for h in billing_raw.get('holidays', [])),
                grace_period_days=int(billing_raw.get('grace_period_days', 0)),
                default_trial_days=int(billing_raw.get('default_trial_days', 0)),
                max_deferral_attempts=int(billing_raw.get('max_deferral_attempts', 30)),
            ),
            analytics=AnalyticsConfig(
                week_starts_on=int(analytics_raw.get('week_starts_on', 1)),
                include_today=_as_bool(analytics_raw.get('include_today', True)),
                custom_labels=analytics_raw.get('custom_labels', {}),
            ),
            logging=LoggingConfig(
                level=logging_raw.get('level', 'INFO'),
                file=logging_raw.get('file') or None,
                format=logging_raw.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
                max_bytes=int(logging_raw.get('max_bytes', 10485760)),
                backup_count=int(logging_raw.get('backup_count', 5)),
            ),
        )
    except BizcalError:
        raise
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
