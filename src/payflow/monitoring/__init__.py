"""
Operational signals: metrics and structured logging.
"""
