# SPDX-FileCopyrightText: 2025-present mediaprint contributors
#
# SPDX-License-Identifier: MIT

"""mediaprint - Media identification and shared fingerprint store."""

from mediaprint.__about__ import __version__

__all__ = ["__version__"]
