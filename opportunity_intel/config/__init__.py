from .config import Config, load_config, validate_config

__all__ = ["Config", "load_config", "validate_config"]
