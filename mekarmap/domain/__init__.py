# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for MekarMap.

This package contains pure business logic functions with no side effects:
report drafting and the visibility and authorization policy.
"""
