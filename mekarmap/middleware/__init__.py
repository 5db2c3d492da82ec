# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains session gating, request validation and error handling
for the MekarMap views.
"""
