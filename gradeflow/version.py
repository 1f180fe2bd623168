# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

"""The version string for Gradeflow."""

__version__ = "0.3.0.dev0"
