"""Shared Kernel module.

Small, framework-free building blocks the Account context and the
infrastructure both rely on: identifier sanitization and the observation
context bound to probes. Nothing in here may import a bounded context.
"""
