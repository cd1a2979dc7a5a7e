"""
Runtime context for caasbase: built-in defaults, settings-file loading and logging.
"""
