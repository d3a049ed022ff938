"""
tubefeed: video recommendations from watch history, searches,
subscriptions and explicit preferences.
"""
__version__ = "0.1.0"
