from .settings import Settings, ensure_env_file, load_settings

__all__ = ["Settings", "ensure_env_file", "load_settings"]
