# SPDX-License-Identifier: Apache-2.0

"""
Route blueprints returning JSON view models.
"""
