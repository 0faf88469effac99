# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Integration tests exercising both tranches, the credit market and the
transaction processor together.
"""
