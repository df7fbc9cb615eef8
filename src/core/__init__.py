"""Core domain package for feedhook.

Core contains eligibility, channel resolution, and message formatting logic
without any HTTP or storage-specific code, keeping the dispatch rules portable.
"""
