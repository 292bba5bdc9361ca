"""
Shared utilities for Sequestre components.
"""
