"""
Configuration management for the Framingham risk engine.

Centralizes engine configuration parameters and provides validation.
Coefficient tables and label thresholds are model constants and are
deliberately absent from this configuration.
"""

from dataclasses import dataclass, asdict
from typing import Optional
import yaml
import logging

logger = logging.getLogger(__name__)


@dataclass
class ModelConfig:
    """
    Configuration for the Framingham Risk Engine.

    Attributes:
        allow_defaulted_inputs: Score legacy payloads that needed population
            averages substituted (results are flagged as low confidence)
        data_dir: Directory holding patient CSV files
        output_dir: Directory for scored population outputs
        sensitivity_samples: Points per parameter in sensitivity sweeps
        random_seed: Random seed for synthetic cohorts
        probability_tolerance: Allowed slack when checking probability bounds
    """
    allow_defaulted_inputs: bool = True

    # Data paths
    data_dir: str = "data"
    output_dir: str = "outputs"

    # Validation settings
    sensitivity_samples: int = 25
    random_seed: Optional[int] = None
    probability_tolerance: float = 0.0

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'ModelConfig':
        """Load configuration from YAML file."""
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

        unknown = set(config_dict) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

        return cls(**config_dict)

    def to_yaml(self, yaml_path: str):
        """Save configuration to YAML file."""
        with open(yaml_path, 'w') as f:
            yaml.dump(asdict(self), f, default_flow_style=False)

    def validate(self) -> bool:
        """Validate configuration parameters."""
        checks = []

        checks.append(isinstance(self.allow_defaulted_inputs, bool))
        checks.append(0 <= self.probability_tolerance < 1)

        # Sensitivity sweeps need at least both endpoints
        checks.append(self.sensitivity_samples >= 2)

        is_valid = all(checks)
        if not is_valid:
            logger.error("Invalid configuration parameters")

        return is_valid
