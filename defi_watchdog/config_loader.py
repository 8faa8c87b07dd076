"""YAML model roster loader with environment variable resolution."""
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from defi_watchdog.data_models import FocusArea, ModelDescriptor

logger = logging.getLogger(__name__)

DEFAULT_MODELS_PATH = Path(__file__).parent / "data" / "models.yaml"

# Used when no roster file is available
BUILTIN_MODELS: List[ModelDescriptor] = [
    ModelDescriptor("deepseek/deepseek-r1:free", "DeepSeek R1", FocusArea.CRITICAL_REASONING, 1.2),
    ModelDescriptor("qwen/qwen-2.5-72b-instruct:free", "Qwen 2.5 72B", FocusArea.PATTERN_ANALYSIS, 1.1),
    ModelDescriptor("meta-llama/llama-3.1-70b-instruct:free", "Llama 3.1 70B", FocusArea.DEFI_SECURITY, 1.0),
    ModelDescriptor("microsoft/wizardlm-2-8x22b:free", "WizardLM 2", FocusArea.GAS_EFFICIENCY, 0.9),
]


class ConfigLoader:
    """Load and parse YAML configuration with environment variable support."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Z_][A-Z0-9_]*)\}')

    @classmethod
    def resolve_env_vars(cls, value: Any) -> Any:
        """
        Resolve environment variables in configuration values.

        Supports ${ENV_VAR} syntax.

        Args:
            value: Configuration value (str, dict, list, or other)

        Returns:
            Resolved value
        """
        if isinstance(value, str):
            def replace_env(match):
                var_name = match.group(1)
                env_value = os.environ.get(var_name)
                if env_value is None:
                    logger.warning(f"Environment variable '{var_name}' not found, using empty string")
                    return ""
                return env_value

            return cls.ENV_VAR_PATTERN.sub(replace_env, value)

        elif isinstance(value, dict):
            return {k: cls.resolve_env_vars(v) for k, v in value.items()}

        elif isinstance(value, list):
            return [cls.resolve_env_vars(item) for item in value]

        else:
            return value

    @classmethod
    def load_yaml(cls, config_path: Path) -> Dict[str, Any]:
        """
        Load YAML configuration file with environment variable resolution.

        Args:
            config_path: Path to YAML file

        Returns:
            Parsed configuration dict
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f) or {}

        if not isinstance(raw_config, dict):
            raise ValueError(f"Configuration root must be a mapping: {config_path}")

        return cls.resolve_env_vars(raw_config)

    @classmethod
    def load_models(cls, config_path: Optional[Union[str, Path]] = None) -> List[ModelDescriptor]:
        """
        Load the model roster from YAML.

        Expected format:
        ```yaml
        models:
          - id: "deepseek/deepseek-r1:free"
            name: "DeepSeek R1"
            focus_area: critical-reasoning
            weight: 1.2
            timeout_seconds: 90   # optional
        ```

        Args:
            config_path: Path to models YAML file (bundled roster if None)

        Returns:
            ModelDescriptors in file order
        """
        path = Path(config_path) if config_path else DEFAULT_MODELS_PATH
        if config_path is None and not path.exists():
            logger.warning(f"Bundled model roster missing at {path}, using built-in defaults")
            return list(BUILTIN_MODELS)

        config = cls.load_yaml(path)
        models = config.get('models', [])
        cls._validate_models_config(models)

        descriptors = [
            ModelDescriptor(
                id=str(model['id']),
                name=str(model['name']),
                focus_area=FocusArea(model.get('focus_area', FocusArea.GENERAL.value)),
                weight=float(model.get('weight', 1.0)),
                timeout_seconds=(
                    float(model['timeout_seconds']) if model.get('timeout_seconds') else None
                ),
            )
            for model in models
        ]
        logger.info(f"Loaded {len(descriptors)} models from {path}")
        return descriptors

    @classmethod
    def _validate_models_config(cls, models: Any):
        """Validate models configuration."""
        if not isinstance(models, list) or not models:
            raise ValueError("Configuration must define a non-empty 'models' list")

        valid_focus = {f.value for f in FocusArea}
        seen_ids = set()
        for model in models:
            if not isinstance(model, dict):
                raise ValueError(f"Model entry must be a mapping, got {type(model).__name__}")
            if 'id' not in model:
                raise ValueError("Model missing 'id' field")
            if 'name' not in model:
                raise ValueError(f"Model '{model['id']}' missing 'name' field")
            if model['id'] in seen_ids:
                raise ValueError(f"Duplicate model id '{model['id']}'")
            seen_ids.add(model['id'])

            focus = model.get('focus_area', FocusArea.GENERAL.value)
            if focus not in valid_focus:
                raise ValueError(
                    f"Model '{model['id']}' has unknown focus_area '{focus}' "
                    f"(expected one of {sorted(valid_focus)})"
                )

            weight = model.get('weight', 1.0)
            if not isinstance(weight, (int, float)) or isinstance(weight, bool) or weight <= 0:
                raise ValueError(f"Model '{model['id']}' weight must be a number > 0, got {weight!r}")
