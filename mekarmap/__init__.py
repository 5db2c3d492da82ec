# SPDX-License-Identifier: Apache-2.0

"""
MekarMap - offline-first citizen issue reporting core.
"""

__version__ = "1.0.0"
