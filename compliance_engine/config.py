"""
Configuration Management for the Staffing Compliance Engine

Regulatory thresholds, engine dispatch, advisory model and monitoring settings
with JSON file and environment support.
"""

import json
import logging
import os
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, asdict, field

logger = logging.getLogger(__name__)

OVERNIGHT_ATTRIBUTIONS = ("split", "same_day")


@dataclass(frozen=True)
class ThresholdsConfig:
    """Regulatory staffing thresholds (vary by jurisdiction)"""
    min_total_ppd: float = 3.2
    min_rn_ppd: float = 0.75

    # Census estimate when only bed capacity is known
    census_capacity_factor: float = 0.85
    # Documented approximation used when capacity is unknown, not a regulatory value
    fallback_census: float = 45.0

    min_staff_per_hour: int = 2

    weekly_overtime_hours: float = 40.0
    critical_overtime_hours: float = 16.0

    def __post_init__(self):
        if self.fallback_census <= 0:
            raise ValueError("fallback_census must be positive")
        if self.census_capacity_factor <= 0:
            raise ValueError("census_capacity_factor must be positive")


@dataclass
class EngineConfig:
    """Analyzer dispatch configuration"""
    parallel: bool = True
    max_workers: int = 4
    # "split": post-midnight hours of an overnight shift count for the next date
    overnight_attribution: str = "split"


@dataclass
class AdvisoryConfig:
    """Optional LLM advisory pass"""
    enabled: bool = False
    model_name: str = "gemini-2.5-flash"
    temperature: float = 0.1
    timeout_seconds: float = 30.0
    calls_per_minute: int = 9
    max_retries: int = 1

    # Token optimization
    max_shifts_in_prompt: int = 500


@dataclass
class MonitoringConfig:
    """Run monitoring configuration"""
    enable_monitoring: bool = True
    log_directory: str = "logs"
    save_session_logs: bool = False


@dataclass
class ComplianceConfig:
    """Complete configuration for the compliance engine"""
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    advisory: AdvisoryConfig = field(default_factory=AdvisoryConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    config_file: str = "config/compliance_config.json"


class ConfigManager:
    """Manages configuration loading, validation, and environment overrides"""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file or "config/compliance_config.json"
        self.config = self._load_config()

    def _load_config(self) -> ComplianceConfig:
        """Load configuration from file with environment overrides"""
        config_dict = self._get_default_config()

        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, 'r') as f:
                    file_config = json.load(f)
                config_dict = self._merge_configs(config_dict, file_config)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Could not load config file %s: %s", self.config_file, e)

        config_dict = self._apply_env_overrides(config_dict)
        config_dict["config_file"] = self.config_file

        return self._dict_to_config(config_dict)

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration as dictionary"""
        return asdict(ComplianceConfig())

    def _merge_configs(self, base: Dict, override: Dict) -> Dict:
        """Recursively merge configuration dictionaries"""
        merged = base.copy()

        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged

    def _apply_env_overrides(self, config_dict: Dict) -> Dict:
        """Apply environment variable overrides"""
        float_overrides = {
            "COMPLIANCE_MIN_TOTAL_PPD": ("thresholds", "min_total_ppd"),
            "COMPLIANCE_MIN_RN_PPD": ("thresholds", "min_rn_ppd"),
            "COMPLIANCE_FALLBACK_CENSUS": ("thresholds", "fallback_census"),
            "COMPLIANCE_OVERTIME_HOURS": ("thresholds", "weekly_overtime_hours"),
            "COMPLIANCE_ADVISORY_TIMEOUT": ("advisory", "timeout_seconds"),
        }
        for env_name, (section, key) in float_overrides.items():
            if env_name in os.environ:
                config_dict.setdefault(section, {})[key] = float(os.environ[env_name])

        if "COMPLIANCE_MAX_WORKERS" in os.environ:
            config_dict.setdefault("engine", {})["max_workers"] = int(os.environ["COMPLIANCE_MAX_WORKERS"])

        if "COMPLIANCE_OVERNIGHT_ATTRIBUTION" in os.environ:
            config_dict.setdefault("engine", {})["overnight_attribution"] = os.environ["COMPLIANCE_OVERNIGHT_ATTRIBUTION"]

        # Advisory configuration
        if "COMPLIANCE_ADVISORY_MODEL" in os.environ:
            config_dict.setdefault("advisory", {})["model_name"] = os.environ["COMPLIANCE_ADVISORY_MODEL"]

        if "COMPLIANCE_ENABLE_ADVISORY" in os.environ:
            config_dict.setdefault("advisory", {})["enabled"] = True

        if "COMPLIANCE_DISABLE_ADVISORY" in os.environ:
            config_dict.setdefault("advisory", {})["enabled"] = False

        # Monitoring configuration
        if "COMPLIANCE_DISABLE_MONITORING" in os.environ:
            config_dict.setdefault("monitoring", {})["enable_monitoring"] = False

        if "COMPLIANCE_LOG_DIR" in os.environ:
            config_dict.setdefault("monitoring", {})["log_directory"] = os.environ["COMPLIANCE_LOG_DIR"]

        return config_dict

    def _dict_to_config(self, config_dict: Dict) -> ComplianceConfig:
        """Convert dictionary to typed configuration object"""
        try:
            return ComplianceConfig(
                thresholds=ThresholdsConfig(**config_dict.get("thresholds", {})),
                engine=EngineConfig(**config_dict.get("engine", {})),
                advisory=AdvisoryConfig(**config_dict.get("advisory", {})),
                monitoring=MonitoringConfig(**config_dict.get("monitoring", {})),
                config_file=config_dict.get("config_file", "config/compliance_config.json")
            )
        except TypeError as e:
            raise ValueError(f"Invalid configuration: {e}")

    def save_config(self, config_file: Optional[str] = None):
        """Save current configuration to file"""
        file_path = config_file or self.config_file

        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(file_path, 'w') as f:
            json.dump(asdict(self.config), f, indent=2)

        logger.info("Configuration saved to %s", file_path)

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = []
        thresholds = self.config.thresholds

        if thresholds.min_total_ppd < 0 or thresholds.min_rn_ppd < 0:
            issues.append("PPD thresholds must be non-negative")

        if thresholds.min_rn_ppd > thresholds.min_total_ppd:
            issues.append("min_rn_ppd cannot exceed min_total_ppd")

        if thresholds.min_staff_per_hour < 0:
            issues.append("min_staff_per_hour must be non-negative")

        if thresholds.weekly_overtime_hours <= 0:
            issues.append("weekly_overtime_hours must be positive")

        if thresholds.critical_overtime_hours < 0:
            issues.append("critical_overtime_hours must be non-negative")

        if self.config.engine.max_workers <= 0:
            issues.append("max_workers must be positive")

        if self.config.engine.overnight_attribution not in OVERNIGHT_ATTRIBUTIONS:
            issues.append(f"overnight_attribution must be one of {', '.join(OVERNIGHT_ATTRIBUTIONS)}")

        advisory = self.config.advisory
        if advisory.enabled and not os.getenv("GEMINI_API_KEY"):
            issues.append("GEMINI_API_KEY environment variable not set (advisory pass enabled)")

        if advisory.timeout_seconds <= 0:
            issues.append("Advisory timeout_seconds must be positive")

        if advisory.calls_per_minute <= 0:
            issues.append("Advisory calls_per_minute must be positive")

        if advisory.temperature < 0 or advisory.temperature > 1:
            issues.append("Advisory temperature must be between 0 and 1")

        return issues

    def print_config_summary(self):
        """Print human-readable configuration summary"""
        thresholds = self.config.thresholds

        print("\n" + "="*60)
        print("🔧 COMPLIANCE ENGINE CONFIGURATION")
        print("="*60)

        print(f"\n📋 THRESHOLDS:")
        print(f"  Minimum total PPD: {thresholds.min_total_ppd}")
        print(f"  Minimum RN PPD: {thresholds.min_rn_ppd}")
        print(f"  Census factor: {thresholds.census_capacity_factor} (fallback census {thresholds.fallback_census})")
        print(f"  Minimum staff per hour: {thresholds.min_staff_per_hour}")
        print(f"  Overtime line: {thresholds.weekly_overtime_hours}h (critical beyond +{thresholds.critical_overtime_hours}h)")

        print(f"\n⚡ ENGINE:")
        print(f"  Parallel: {self.config.engine.parallel} ({self.config.engine.max_workers} workers)")
        print(f"  Overnight attribution: {self.config.engine.overnight_attribution}")

        print(f"\n🔌 ADVISORY:")
        print(f"  Enabled: {self.config.advisory.enabled}")
        print(f"  Model: {self.config.advisory.model_name}")
        print(f"  Timeout: {self.config.advisory.timeout_seconds}s")

        issues = self.validate_config()
        if issues:
            print(f"\n⚠️  CONFIGURATION ISSUES:")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print(f"\n✅ Configuration is valid")

        print("="*60)


def load_config(config_file: Optional[str] = None) -> ComplianceConfig:
    """Load and return compliance engine configuration"""
    manager = ConfigManager(config_file)
    return manager.config


if __name__ == "__main__":
    manager = ConfigManager()
    manager.print_config_summary()
