# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for FloodAid.

This package contains cross-cutting core modules:
- config: Application configuration and settings
"""
