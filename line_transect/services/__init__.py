from .geometry_file_io import load_transect_feature, save_transect_feature
from .settings_store import EditorSettings, SettingsStore

__all__ = ["EditorSettings", "SettingsStore", "load_transect_feature", "save_transect_feature"]
