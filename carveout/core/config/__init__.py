from .config_loader import get_config_value, get_oracle_config, load_config, reset_config_cache

__all__ = ["get_config_value", "get_oracle_config", "load_config", "reset_config_cache"]
