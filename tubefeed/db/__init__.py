from .preferences import PreferenceStore
