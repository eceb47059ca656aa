"""
HTTP API for PayFlow.
"""
