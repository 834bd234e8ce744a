import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

DEFAULT_CONFIG: dict = {
    "since_hours": 24,
    "model": "gpt-4o",
    "max_prs": 100,
    "ci_branch": "main",
    "output": None,  # None = terminal only; set to a path to also write markdown
    "ai_risk": False,
    "ai_risk_threshold": 0.5,
    "ai_risk_concurrency": 3,
    "ai_risk_delay_ms": 500,
    "ai_risk_timeout": None,  # seconds per analysis call; None waits indefinitely
}


def load_config(config_path: str = ".engdigest.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .engdigest.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from the environment, reading a local .env first.
    load_dotenv()
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config


def validate_config(config: dict) -> None:
    """Raise ValueError if a numeric setting is outside its allowed range."""
    threshold = config["ai_risk_threshold"]
    if not 0 <= threshold <= 1:
        raise ValueError(f"ai_risk_threshold must be between 0 and 1, got {threshold!r}")
    concurrency = config["ai_risk_concurrency"]
    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError(f"ai_risk_concurrency must be a positive integer, got {concurrency!r}")
    if config["ai_risk_delay_ms"] < 0:
        raise ValueError(f"ai_risk_delay_ms must be non-negative, got {config['ai_risk_delay_ms']!r}")
    timeout = config.get("ai_risk_timeout")
    if timeout is not None and timeout <= 0:
        raise ValueError(f"ai_risk_timeout must be positive, got {timeout!r}")
    if config["since_hours"] <= 0:
        raise ValueError(f"since_hours must be positive, got {config['since_hours']!r}")
