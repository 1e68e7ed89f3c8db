"""
Logging and metrics for the push pipeline.
"""
