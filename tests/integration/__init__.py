# SPDX-License-Identifier: MIT
"""Integration tests for storefront-sync.

These tests wire several components together: the full selector stack over
the in-memory store and a SQLite settings file, and the HTTP store against a
local aiohttp server.
"""
